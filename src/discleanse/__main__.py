"""Entry point for running discleanse.

This module provides the command line entry point. It handles:
- Configuration loading from the environment and an optional YAML file
- Logging setup with secret sanitization
- Client construction and the wipe run
- Mapping the outcome to the process exit code
"""

import argparse
import asyncio
import sys
from pathlib import Path

import structlog

from discleanse._version import __version__
from discleanse.utils.async_helpers import CleanseError, ConfigError
from discleanse.utils.logging import LogEventNames, configure_logging
from discleanse.utils.security import mask_config_value

log = structlog.get_logger()

EXIT_OK = 0
EXIT_FAILURE = 1


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command line arguments.

    Returns:
        Parsed argument namespace
    """
    parser = argparse.ArgumentParser(
        prog="discleanse",
        description=(
            "Delete every message, thread and channel of a Discord guild. "
            "Reads DISCORD_TOKEN and DISCORD_GUILD_ID from the environment."
        ),
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )

    parser.add_argument(
        "-c",
        "--config",
        type=Path,
        default=None,
        help="Optional YAML configuration file (values override the environment)",
    )

    parser.add_argument(
        "-d",
        "--debug",
        action="store_true",
        help="Enable debug logging",
    )

    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Enumerate and count messages without deleting anything",
    )

    parser.add_argument(
        "--format",
        choices=["json", "console"],
        default=None,
        help="Log output format (default: console)",
    )

    return parser.parse_args(argv)


async def run_cleanse(
    config_path: Path | None,
    dry_run: bool = False,
    debug: bool = False,
    log_format: str | None = None,
) -> int:
    """Run one wipe.

    Args:
        config_path: Optional YAML configuration file
        dry_run: If True, only enumerate and classify
        debug: Force debug logging
        log_format: Override the configured log format

    Returns:
        Exit code (0 for success, non-zero for error)
    """
    from discleanse.config.loader import load_config
    from discleanse.core.cleanser import create_cleanser, open_client

    try:
        config = load_config(config_path)

        configure_logging(
            level="DEBUG" if debug else config.logging.level,
            log_format=log_format or config.logging.format,
            file_path=config.logging.file,
        )
        log.info(
            LogEventNames.RUN_STARTING,
            version=__version__,
            guild_id=config.discord_guild_id,
            token=mask_config_value("discord_token", config.discord_token),
            api_base_url=config.api_base_url,
            dry_run=dry_run,
        )

        async with open_client(config) as client:
            cleanser = create_cleanser(config, client)
            await cleanser.run(dry_run=dry_run)

        return EXIT_OK

    except FileNotFoundError as e:
        log.error("configuration_file_not_found", path=str(config_path), error=str(e))
        return EXIT_FAILURE
    except ConfigError as e:
        log.error("configuration_invalid", error=str(e))
        return EXIT_FAILURE
    except CleanseError as e:
        log.error(LogEventNames.RUN_FAILED, error=str(e))
        return EXIT_FAILURE
    except Exception as e:
        log.exception("fatal_error", error=str(e))
        return EXIT_FAILURE


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    args = parse_args(argv)

    configure_logging(
        level="DEBUG" if args.debug else "INFO",
        log_format=args.format or "console",
    )

    try:
        return asyncio.run(run_cleanse(args.config, args.dry_run, args.debug, args.format))
    except KeyboardInterrupt:
        log.warning("interrupted", hint="the guild is partially wiped; run again to continue")
        return EXIT_FAILURE


if __name__ == "__main__":
    sys.exit(main())
