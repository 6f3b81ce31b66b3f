"""
main.py — Plugbot Entry Point

Usage:
    python main.py                          # CLI interface, default settings
    python main.py --interface telegram     # Telegram bot
    python main.py --interface cli          # CLI REPL (explicit)
    python main.py --log-level DEBUG        # Verbose logging
    python main.py --config path/to/config.yaml
"""

from __future__ import annotations

from pathlib import Path

from dotenv import load_dotenv

# Load .env from the project root before anything reads the environment
ENV_PATH = Path(__file__).parent / ".env"
load_dotenv(dotenv_path=ENV_PATH)

import argparse
import asyncio
import sys


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="plugbot",
        description="Plugbot: a conversational assistant with pluggable skills",
    )
    parser.add_argument(
        "--interface",
        choices=["cli", "telegram"],
        default="cli",
        help="Interface to start (default: cli)",
    )
    parser.add_argument(
        "--config",
        default=None,
        help="Path to config.yaml (default: $PLUGBOT_CONFIG or config/config.yaml)",
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        default=None,
        help="Override log level from config",
    )
    parser.add_argument(
        "--skip-health-check",
        action="store_true",
        default=False,
        help="Do not ping the LLM provider before starting",
    )
    return parser.parse_args(argv)


def bootstrap(args: argparse.Namespace):
    """
    Load config, validate it fully, and set up logging.
    Returns (settings, log) ready for use.

    Exits with code 1 (after printing a clear message) if:
      - config.yaml has invalid values (Pydantic ValidationError)
      - cross-field problems are found (ConfigError from validate_all())
    """
    from config.settings import load_settings, ConfigError
    from observability.logger import setup_logging, get_logger
    from pydantic import ValidationError

    try:
        settings = load_settings(args.config)
    except ValidationError as exc:
        problems = "\n".join(
            f"  • {e['loc'][-1] if e['loc'] else '?'}: {e['msg']}"
            for e in exc.errors()
        )
        print(
            f"\n❌  Config validation failed:\n\n{problems}\n\n"
            f"    Fix config/config.yaml or your .env file and restart.\n",
            file=sys.stderr,
        )
        sys.exit(1)
    except (OSError, ValueError, TypeError) as exc:
        print(
            f"\n❌  Failed to load config: {type(exc).__name__}: {exc}\n",
            file=sys.stderr,
        )
        sys.exit(1)

    try:
        settings.validate_all()
    except ConfigError as exc:
        print(str(exc), file=sys.stderr)
        sys.exit(1)

    # --log-level overrides config.yaml
    setup_logging(
        level=args.log_level or settings.log_level,
        log_dir=settings.log_dir,
        json_format=settings.logging.json_format,
        console_output=settings.logging.console_output,
        max_bytes=settings.logging.max_file_size_mb * 1024 * 1024,
        backup_count=settings.logging.backup_count,
    )

    log = get_logger("plugbot.main")
    return settings, log


async def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    settings, log = bootstrap(args)

    log.info(
        "plugbot.starting",
        version=settings.bot.version,
        interface=args.interface,
        llm_provider=settings.llm.provider,
        llm_model=settings.llm.chat_model,
        planner=settings.planner.strategy,
    )

    missing = settings.validate_required_for_interface(args.interface)
    if missing:
        log.error(
            "plugbot.startup_failed",
            reason="Missing required environment variables",
            missing=missing,
        )
        print(
            f"\n❌  Missing required environment variables: {', '.join(missing)}\n"
            f"    Copy .env.example → .env and fill in the values.\n",
            file=sys.stderr,
        )
        return 1

    if not args.skip_health_check:
        from brain import LLMClientFactory
        from brain.llm_client import LLMError

        log.info("plugbot.testing_llm", provider=settings.llm.provider)
        try:
            healthy = await LLMClientFactory.from_settings(settings).health_check()
        except (LLMError, ValueError) as e:
            log.error("plugbot.llm_init_failed", error=str(e), error_type=type(e).__name__)
            print(f"\n❌  Failed to initialize LLM provider '{settings.llm.provider}': {e}\n", file=sys.stderr)
            return 1
        if not healthy:
            log.error("plugbot.llm_health_check_failed", provider=settings.llm.provider)
            print(
                f"\n❌  LLM health check failed for '{settings.llm.provider}'.\n"
                f"    Please double check AOAI_API_KEY, AOAI_API_ENDPOINT and your network.\n",
                file=sys.stderr,
            )
            return 1

    Path(settings.log_dir).expanduser().mkdir(parents=True, exist_ok=True)

    log.info("plugbot.interface_starting", interface=args.interface)
    if args.interface == "cli":
        await _run_cli(settings, log)
    elif args.interface == "telegram":
        await _run_telegram(settings, log)

    return 0


async def _run_cli(settings, log) -> None:
    from interfaces.cli import run_cli
    await run_cli(settings, log)


async def _run_telegram(settings, log) -> None:
    from interfaces.telegram import run_telegram

    try:
        await run_telegram(settings=settings, log=log)
    except KeyboardInterrupt:
        log.info("telegram.interrupted")
    except (OSError, RuntimeError) as e:
        log.exception("telegram.crashed", error=str(e), error_type=type(e).__name__)
        raise


def cli_entry() -> None:
    """Console-script entry point (`plugbot`)."""
    sys.exit(asyncio.run(main()))


if __name__ == "__main__":
    cli_entry()
