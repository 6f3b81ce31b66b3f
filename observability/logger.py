"""
observability/logger.py — Plugbot Structured Logger

structlog routed through stdlib logging. Every line goes to a rotating
JSON file (plugbot.log); the console copy is optional and goes to stderr
so it never interleaves with the CLI transcript on stdout.

Two processors run before rendering:
  - redact_secrets   masks API keys, tokens and connection strings
  - clip_long_text   caps user text, prompts and raw LLM output

Turn-scoped fields (conversation_id, user_id) are attached with
conversation_context() and removed again when the turn ends.

Usage:
    setup_logging(level="INFO", log_dir="./data/logs")   # once, in main.py
    log = get_logger(__name__)
    log.info("skill_bus.dispatch", skill="generate_images", call_id="step_1")
"""

from __future__ import annotations

import logging
import logging.handlers
import re
import sys
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterator

import structlog

LOG_FILE_NAME = "plugbot.log"
REDACTED = "***"
MAX_FIELD_CHARS = 500

_SECRET_KEY = re.compile(r"(^|_)(api_key|apikey|token|password|secret|connection_string)$", re.IGNORECASE)
# Telegram puts the bot token in the request path: /bot<token>/sendMessage
_TELEGRAM_TOKEN_IN_URL = re.compile(r"/bot\d+:[\w-]+")
_CLIPPED_FIELDS = ("text", "prompt", "raw", "query", "answer", "content")

# Chatty libraries that log every HTTP request at INFO
_NOISY_LOGGERS = ("httpx", "httpcore", "openai", "telegram", "telegram.ext", "aioconsole")


# ─────────────────────────────────────────────────────────────────────────────
# Processors
# ─────────────────────────────────────────────────────────────────────────────


def redact_secrets(logger: Any, method_name: str, event_dict: dict) -> dict:
    """Mask secret-looking fields and Telegram bot tokens embedded in URLs."""
    for key, value in list(event_dict.items()):
        if value is None:
            continue
        if _SECRET_KEY.search(key):
            event_dict[key] = REDACTED
        elif isinstance(value, str) and "/bot" in value:
            event_dict[key] = _TELEGRAM_TOKEN_IN_URL.sub(f"/bot{REDACTED}", value)
    return event_dict


def clip_long_text(logger: Any, method_name: str, event_dict: dict) -> dict:
    for key in _CLIPPED_FIELDS:
        value = event_dict.get(key)
        if isinstance(value, str) and len(value) > MAX_FIELD_CHARS:
            event_dict[key] = f"{value[:MAX_FIELD_CHARS]}… (+{len(value) - MAX_FIELD_CHARS} chars)"
    return event_dict


# ─────────────────────────────────────────────────────────────────────────────
# Setup
# ─────────────────────────────────────────────────────────────────────────────


def setup_logging(
    level: str = "INFO",
    log_dir: str | Path = "./data/logs",
    json_format: bool = True,
    console_output: bool = False,
    max_bytes: int = 100 * 1024 * 1024,
    backup_count: int = 5,
) -> None:
    """
    Configure structlog and stdlib logging. Call once at startup.

    Args:
        level:          DEBUG | INFO | WARNING | ERROR | CRITICAL
        log_dir:        Directory that holds plugbot.log and its rotations.
        json_format:    Console format; the file is always JSON.
        console_output: Also log to stderr.
        max_bytes:      Rotation size of plugbot.log.
        backup_count:   Rotated files to keep.
    """
    numeric_level = getattr(logging, level.upper(), logging.INFO)

    pre_chain: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.format_exc_info,
        redact_secrets,
        clip_long_text,
    ]

    handlers = [_file_handler(Path(log_dir), max_bytes, backup_count, pre_chain)]
    if console_output:
        handlers.append(_console_handler(json_format, pre_chain))

    logging.basicConfig(level=numeric_level, handlers=handlers, force=True)

    # Request-level chatter only when debugging
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.DEBUG if numeric_level <= logging.DEBUG else logging.WARNING)

    structlog.configure(
        processors=pre_chain + [structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


def _formatter(renderer: Any, pre_chain: list[Any]) -> structlog.stdlib.ProcessorFormatter:
    return structlog.stdlib.ProcessorFormatter(
        processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, renderer],
        foreign_pre_chain=pre_chain,
    )


def _file_handler(
    log_dir: Path, max_bytes: int, backup_count: int, pre_chain: list[Any],
) -> logging.Handler:
    log_dir.mkdir(parents=True, exist_ok=True)
    handler = logging.handlers.RotatingFileHandler(
        filename=log_dir / LOG_FILE_NAME,
        maxBytes=max_bytes,
        backupCount=backup_count,
        encoding="utf-8",
    )
    handler.setFormatter(_formatter(structlog.processors.JSONRenderer(), pre_chain))
    return handler


def _console_handler(json_format: bool, pre_chain: list[Any]) -> logging.Handler:
    handler = logging.StreamHandler(sys.stderr)
    renderer = structlog.processors.JSONRenderer() if json_format else structlog.dev.ConsoleRenderer(colors=True)
    handler.setFormatter(_formatter(renderer, pre_chain))
    return handler


# ─────────────────────────────────────────────────────────────────────────────
# Loggers + turn context
# ─────────────────────────────────────────────────────────────────────────────


def get_logger(name: str = "plugbot", **initial_values: Any) -> structlog.stdlib.BoundLogger:
    logger = structlog.get_logger(name)
    if initial_values:
        logger = logger.bind(**initial_values)
    return logger


@contextmanager
def conversation_context(conversation_id: str, user_id: str) -> Iterator[None]:
    """
    Attach conversation_id and user_id to every log line emitted inside the
    block, including from skills and service clients the turn awaits.
    Values bound before the block are restored on exit.
    """
    with structlog.contextvars.bound_contextvars(conversation_id=conversation_id, user_id=user_id):
        yield
