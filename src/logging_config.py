"""Logging configuration using Loguru.

Provides structured logging with:
- Console output for development
- File rotation for production
- Chat identifiers masked before they reach a sink
"""

import re
import sys
from pathlib import Path

from loguru import logger

# Phone-number based WhatsApp ids: users (@c.us), groups (@g.us) and the
# serialized message ids that embed them
CHAT_ID_RE = re.compile(
    r"(?<!\d)(?P<user>\d{6,})(?:-\d+)?@(?P<server>c\.us|g\.us|s\.whatsapp\.net)"
)

CONSOLE_FORMAT = (
    "<green>{time:HH:mm:ss}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> | "
    "<level>{message}</level>"
)
FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | {name}:{function}:{line} | {message}"


def mask_chat_id(chat_id: str | None) -> str:
    """Mask a chat id for logging: 919876543210@c.us -> 91XXXX3210@c.us."""
    if not chat_id:
        return "XXXX"
    user, sep, server = chat_id.partition("@")
    if len(user) < 6:
        return f"XXXX{sep}{server}"
    return f"{user[:2]}XXXX{user[-4:]}{sep}{server}"


def mask_chat_ids_in_text(text: str) -> str:
    """Mask every chat id embedded in free text, e.g. backend error messages."""
    return CHAT_ID_RE.sub(
        lambda m: mask_chat_id(f"{m.group('user')}@{m.group('server')}"),
        text,
    )


def _mask_record(record: dict) -> None:
    record["message"] = mask_chat_ids_in_text(record["message"])


def setup_logging(
    level: str = "INFO",
    log_dir: str = "logs",
    enable_file: bool = True,
) -> None:
    """Configure application logging.

    Args:
        level: Minimum log level (DEBUG, INFO, WARNING, ERROR)
        log_dir: Directory for log files
        enable_file: Whether to enable file logging
    """
    logger.remove()
    logger.configure(patcher=_mask_record)

    logger.add(
        sys.stderr,
        format=CONSOLE_FORMAT,
        level=level,
        colorize=True,
        backtrace=True,
        diagnose=not enable_file,
    )

    # Production: rotated application log plus an error-only log
    if enable_file:
        log_path = Path(log_dir)
        log_path.mkdir(exist_ok=True)

        logger.add(
            log_path / "whatsapp_gateway_{time:YYYY-MM-DD}.log",
            format=FILE_FORMAT,
            level=level,
            rotation="100 MB",
            retention="30 days",
            compression="gz",
            backtrace=True,
            diagnose=False,
        )
        logger.add(
            log_path / "whatsapp_gateway_errors_{time:YYYY-MM-DD}.log",
            format=FILE_FORMAT + "\n{exception}",
            level="ERROR",
            rotation="50 MB",
            retention="90 days",
            compression="gz",
            backtrace=True,
            diagnose=False,
        )

    logger.info(f"Logging initialized at {level} level")


def get_logger(name: str) -> "logger":
    """Get a logger instance with the given name.

    Usage:
        from src.logging_config import get_logger
        logger = get_logger(__name__)
        logger.info("Message")
    """
    return logger.bind(name=name)
