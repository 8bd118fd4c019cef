"""Structured logging for the API and workers, with credential scrubbing."""

import sys
from pathlib import Path
from typing import Any, Iterable, Optional

from loguru import logger

from newsreel.utils.error_handler import redact_secrets

CONSOLE_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> | <level>{message}</level>"
)
FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function}:{line} | {message} | {extra}"


def _make_scrubber(secrets: list[str]):
    """Build a loguru patcher that redacts secrets from the message and bound context."""

    def scrub(record: dict) -> None:
        record["message"] = redact_secrets(record["message"], secrets)
        for key, value in record["extra"].items():
            if isinstance(value, str):
                record["extra"][key] = redact_secrets(value, secrets)

    return scrub


def setup_logging(
    log_level: str = "INFO",
    log_file: Optional[Path] = None,
    rotation: str = "10 MB",
    retention: str = "7 days",
    secrets: Iterable[str] = (),
) -> None:
    """
    Replace loguru's sinks with a coloured stderr sink and an optional rotating file.

    Safe to call again (the worker CLI reconfigures after loading settings).

    Args:
        log_level: Minimum level for both sinks
        log_file: Optional path of a rotating, zip-compressed log file
        rotation: Size or age at which the file rotates
        retention: How long rotated files are kept
        secrets: Credential values replaced by [REDACTED] in every record
    """
    logger.remove()
    logger.configure(patcher=_make_scrubber([value for value in secrets if value]))

    logger.add(sys.stderr, format=CONSOLE_FORMAT, level=log_level, colorize=True)

    if log_file:
        log_file = Path(log_file)
        log_file.parent.mkdir(parents=True, exist_ok=True)
        logger.add(
            log_file,
            format=FILE_FORMAT,
            level=log_level,
            rotation=rotation,
            retention=retention,
            compression="zip",
        )


def get_logger(name: str, **context: Any) -> Any:
    """
    Get a logger bound to a module name and optional context.

    Args:
        name: Logger name (typically __name__)
        **context: Context fields such as job_id, owner or topic

    Returns:
        Bound loguru logger
    """
    return logger.bind(name=name, **context)


# Console logging at INFO until an entry point reconfigures it
setup_logging()
