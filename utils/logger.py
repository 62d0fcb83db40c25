"""
Logging configuration for the application.
One shared logger, plus per-request adapters that tag lines with the chat id.
"""
import logging
import os
import sys


class ColoredFormatter(logging.Formatter):
    """Formatter that colors level names when writing to a terminal."""

    COLORS = {
        'DEBUG': '\033[36m',
        'INFO': '\033[32m',
        'WARNING': '\033[33m',
        'ERROR': '\033[31m',
        'CRITICAL': '\033[35m',
    }
    RESET = '\033[0m'

    def __init__(self, fmt: str, datefmt: str = None, use_color: bool = True):
        super().__init__(fmt, datefmt=datefmt)
        self.use_color = use_color

    def format(self, record: logging.LogRecord) -> str:
        """Format the log record, restoring the level name afterwards."""
        if not self.use_color:
            return super().format(record)

        levelname = record.levelname
        record.levelname = f"{self.COLORS.get(levelname, self.RESET)}{levelname}{self.RESET}"
        try:
            return super().format(record)
        finally:
            record.levelname = levelname


class ChatLogAdapter(logging.LoggerAdapter):
    """Prefixes every message with [Chat <id>]."""

    def process(self, msg, kwargs):
        return f"[Chat {self.extra['chat_id']}] {msg}", kwargs


def _default_level() -> int:
    if os.getenv("LUCK_DEBUG_PROMPTS", "").strip().lower() in ("1", "true", "yes", "on"):
        return logging.DEBUG
    level = logging.getLevelName(os.getenv("LOG_LEVEL", "INFO").upper())
    return level if isinstance(level, int) else logging.INFO


def setup_logger(name: str, level: int = None) -> logging.Logger:
    """
    Set up a logger.

    Args:
        name: Logger name
        level: Logging level (LOG_LEVEL env var, DEBUG when prompt debugging is on)

    Returns:
        Configured logger instance
    """
    level = level if level is not None else _default_level()
    logger = logging.getLogger(name)
    logger.setLevel(level)

    if logger.handlers:
        return logger

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    handler.setFormatter(ColoredFormatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S',
        use_color=sys.stdout.isatty()
    ))

    logger.addHandler(handler)
    return logger


app_logger = setup_logger("luck_relay")


def chat_logger(chat_id: str) -> ChatLogAdapter:
    """Logger adapter tagging lines with a request's chat id."""
    return ChatLogAdapter(app_logger, {"chat_id": chat_id})
