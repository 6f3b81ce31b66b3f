"""
skills/bus.py — Skill Bus

Routes SkillCall objects from the planner/executor through the pipeline:
  1. Registry lookup  — is the skill registered for this turn?
  2. Arg binding      — coerce and check arguments against the ParamSpec list
  3. Pre-validation   — SkillBase.validate() for semantic checks
  4. Execution        — async with timeout, all exceptions caught
  5. Result norm      — SkillResult always returned, never raises

asyncio.CancelledError is the one exception that passes through: a
cancelled turn is never converted into a skill failure.
"""

from __future__ import annotations

import asyncio
import time
from typing import Any, Optional

from exceptions import CapabilityBackendError, LLMError, PlugbotError, SkillValidationError
from observability.logger import get_logger
from skills.registry import SkillRegistry
from skills.types import ParamSpec, SkillCall, SkillManifest, SkillResult

log = get_logger(__name__)

# Max output size fed back to the planner
MAX_RESULT_CHARS = 8_000

# Default timeout when manifest doesn't specify one
DEFAULT_TIMEOUT_SECONDS = 60.0

_TRUE_STRINGS = frozenset({"true", "yes", "1", "on"})
_FALSE_STRINGS = frozenset({"false", "no", "0", "off"})


class SkillBus:
    """
    Central dispatcher for skill invocations.

    Usage:
        bus = SkillBus(registry)
        result = await bus.dispatch(SkillCall(id="step-1", skill_name="generate_images",
                                              arguments={"prompt": "a cat", "n": 2}))
    """

    def __init__(
        self,
        registry: SkillRegistry,
        default_timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
    ) -> None:
        self._registry = registry
        self._default_timeout = default_timeout_seconds

    @property
    def registry(self) -> SkillRegistry:
        return self._registry

    async def dispatch(self, call: SkillCall) -> SkillResult:
        """
        Dispatch a SkillCall through the full pipeline.

        Returns:
            SkillResult — always. Never raises (except CancelledError).
        """
        start = time.monotonic()
        log.info("skill_bus.dispatch", skill=call.skill_name, call_id=call.id)

        # ── 1. Registry lookup ─────────────────────────────────────────────
        skill = self._registry.get_or_none(call.skill_name)
        if skill is None:
            return SkillResult.fail(
                skill_name=call.skill_name,
                skill_call_id=call.id,
                error=(
                    f"Skill '{call.skill_name}' is not registered. "
                    f"Available: {sorted(self._registry.list_names())}"
                ),
                error_type="SkillNotFoundError",
            )

        # ── 2. Argument binding ────────────────────────────────────────────
        try:
            bound = bind_arguments(skill.manifest, call.arguments)
        except SkillValidationError as e:
            log.warning("skill_bus.invalid_arguments", skill=call.skill_name, error=str(e))
            return SkillResult.fail(
                skill_name=call.skill_name,
                skill_call_id=call.id,
                error=f"Invalid arguments: {e}",
                error_type="SkillValidationError",
                duration_ms=_ms(start),
            )

        # ── 3. Semantic pre-validation ─────────────────────────────────────
        try:
            await skill.validate(**bound)
        except asyncio.CancelledError:
            raise
        except PlugbotError as e:
            return SkillResult.fail(
                skill_name=call.skill_name,
                skill_call_id=call.id,
                error=str(e),
                error_type=type(e).__name__,
                duration_ms=_ms(start),
            )

        # ── 4. Execute ─────────────────────────────────────────────────────
        timeout = skill.manifest.timeout_seconds or self._default_timeout
        kwargs = dict(bound)
        kwargs["_skill_call_id"] = call.id

        try:
            result = await asyncio.wait_for(skill.execute(**kwargs), timeout=timeout)
        except asyncio.TimeoutError:
            duration = _ms(start)
            log.warning("skill_bus.timeout", skill=call.skill_name, timeout=timeout, duration_ms=duration)
            return SkillResult.fail(
                skill_name=call.skill_name,
                skill_call_id=call.id,
                error=f"Skill timed out after {timeout}s",
                error_type="SkillTimeoutError",
                duration_ms=duration,
            )
        except asyncio.CancelledError:
            raise   # propagate clean cancel: never convert to a skill error
        except CapabilityBackendError as e:
            duration = _ms(start)
            log.warning(
                "skill_bus.backend_error",
                skill=call.skill_name, service=e.service, status_code=e.status_code,
                error=str(e), error_type=type(e).__name__, duration_ms=duration,
            )
            return SkillResult.fail(
                skill_name=call.skill_name,
                skill_call_id=call.id,
                error=str(e),
                error_type=type(e).__name__,
                duration_ms=duration,
            )
        except (PlugbotError, LLMError) as e:
            duration = _ms(start)
            log.warning(
                "skill_bus.execution_error",
                skill=call.skill_name, error=str(e), error_type=type(e).__name__,
                duration_ms=duration,
            )
            return SkillResult.fail(
                skill_name=call.skill_name,
                skill_call_id=call.id,
                error=f"{type(e).__name__}: {e}",
                error_type=type(e).__name__,
                duration_ms=duration,
            )
        except Exception as e:
            duration = _ms(start)
            log.error(
                "skill_bus.unexpected_error",
                skill=call.skill_name, error=str(e),
                error_type=type(e).__name__, duration_ms=duration, exc_info=True,
            )
            return SkillResult.fail(
                skill_name=call.skill_name,
                skill_call_id=call.id,
                error=f"{type(e).__name__}: {e}",
                error_type=type(e).__name__,
                duration_ms=duration,
            )

        duration = _ms(start)

        # If the skill returned a failed SkillResult, honour it
        if isinstance(result, SkillResult) and not result.success:
            return result

        if not isinstance(result, SkillResult):
            # Skill returned a raw value (str/dict/etc.): wrap in SkillResult.ok
            result = SkillResult.ok(
                skill_name=call.skill_name,
                skill_call_id=call.id,
                output=result,
                duration_ms=duration,
            )

        output = result.output
        if isinstance(output, str) and len(output) > MAX_RESULT_CHARS:
            output = (
                output[:MAX_RESULT_CHARS]
                + f"\n\n[Output truncated — {len(output) - MAX_RESULT_CHARS} chars omitted]"
            )

        result = SkillResult.ok(
            skill_name=result.skill_name,
            skill_call_id=result.skill_call_id or call.id,
            output=output,
            attachments=result.attachments,
            duration_ms=duration,
        )

        log.info("skill_bus.success", skill=call.skill_name, call_id=call.id, duration_ms=round(duration, 1))
        return result


# ─────────────────────────────────────────────────────────────────────────────
# Argument binder
# ─────────────────────────────────────────────────────────────────────────────

def bind_arguments(manifest: SkillManifest, arguments: Optional[dict]) -> dict[str, Any]:
    """
    Bind raw plan/LLM arguments to a skill's declared parameters.

    - Unknown argument names are rejected.
    - Missing required parameters are rejected; missing optional ones get
      their declared default.
    - Values are coerced to the declared type where the conversion is
      lossless ("3" → 3 for integer, "true" → True for boolean, 3 → "3" for
      string). Anything else raises SkillValidationError.

    Returns a new dict in declaration order.
    """
    arguments = dict(arguments or {})
    known = {p.name for p in manifest.parameters}
    unknown = sorted(k for k in arguments if k not in known)
    if unknown:
        raise SkillValidationError(
            f"{manifest.name}: unexpected argument(s) {unknown}. "
            f"Expected: {[p.name for p in manifest.parameters]}"
        )

    bound: dict[str, Any] = {}
    for param in manifest.parameters:
        if param.name not in arguments or arguments[param.name] is None:
            if param.required:
                raise SkillValidationError(
                    f"{manifest.name}: missing required argument '{param.name}'"
                )
            bound[param.name] = param.default
            continue
        bound[param.name] = _coerce(manifest.name, param, arguments[param.name])
    return bound


def _coerce(skill_name: str, param: ParamSpec, value: Any) -> Any:
    def _bad() -> SkillValidationError:
        return SkillValidationError(
            f"{skill_name}: argument '{param.name}' expected {param.type}, "
            f"got {type(value).__name__} {value!r}"
        )

    if param.type == "string":
        if isinstance(value, str):
            return value
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return str(value)
        raise _bad()

    if param.type == "integer":
        if isinstance(value, bool):
            raise _bad()
        if isinstance(value, int):
            return value
        if isinstance(value, float) and value.is_integer():
            return int(value)
        if isinstance(value, str):
            try:
                return int(value.strip())
            except ValueError:
                raise _bad() from None
        raise _bad()

    if param.type == "number":
        if isinstance(value, bool):
            raise _bad()
        if isinstance(value, (int, float)):
            return value
        if isinstance(value, str):
            try:
                return float(value.strip())
            except ValueError:
                raise _bad() from None
        raise _bad()

    if param.type == "boolean":
        if isinstance(value, bool):
            return value
        if isinstance(value, str):
            lowered = value.strip().lower()
            if lowered in _TRUE_STRINGS:
                return True
            if lowered in _FALSE_STRINGS:
                return False
        raise _bad()

    raise _bad()


def _ms(start: float) -> float:
    return (time.monotonic() - start) * 1000
