"""
Centralized logging for Flip Oracle.
Colored console output, JSON lines for log shippers, optional rotating file log.
"""

import logging
import sys
import json
from pathlib import Path
from logging.handlers import RotatingFileHandler
from typing import Iterable, Optional


ROOT_LOGGER_NAME = "flip-oracle"

# Attributes every LogRecord carries; anything else came in through `extra=`
_RECORD_ATTRS = set(logging.makeLogRecord({}).__dict__) | {"message", "asctime"}


class Colors:
    RESET = "\033[0m"
    RED = "\033[91m"
    GREEN = "\033[92m"
    YELLOW = "\033[93m"
    MAGENTA = "\033[95m"
    CYAN = "\033[96m"
    GRAY = "\033[90m"


def _extra_fields(record: logging.LogRecord) -> dict:
    return {k: v for k, v in record.__dict__.items() if k not in _RECORD_ATTRS}


def _format_extras(record: logging.LogRecord) -> str:
    extras = _extra_fields(record)
    if not extras:
        return ""
    return " " + " ".join(f"{k}={v}" for k, v in extras.items())


class ColoredFormatter(logging.Formatter):
    """Console formatter; `extra=` fields are appended as key=value pairs."""

    LEVEL_COLORS = {
        logging.DEBUG: Colors.GRAY,
        logging.INFO: Colors.GREEN,
        logging.WARNING: Colors.YELLOW,
        logging.ERROR: Colors.RED,
        logging.CRITICAL: Colors.MAGENTA,
    }

    def format(self, record):
        color = self.LEVEL_COLORS.get(record.levelno, Colors.RESET)
        timestamp = self.formatTime(record, "%Y-%m-%d %H:%M:%S")

        level = f"{color}{record.levelname:<8}{Colors.RESET}"
        name = f"{Colors.CYAN}{record.name}{Colors.RESET}"
        line = f"{Colors.GRAY}{timestamp}{Colors.RESET} | {level} | {name} | {record.getMessage()}{_format_extras(record)}"
        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line


class PlainFormatter(logging.Formatter):
    """Plain formatter for files and non-tty output."""

    def format(self, record):
        timestamp = self.formatTime(record, "%Y-%m-%d %H:%M:%S")
        line = f"{timestamp} | {record.levelname:<8} | {record.name} | {record.getMessage()}{_format_extras(record)}"
        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line


class JsonFormatter(logging.Formatter):
    """One JSON object per line."""

    def format(self, record):
        log_record = {
            "timestamp": self.formatTime(record, "%Y-%m-%dT%H:%M:%S%z"),
            "level": record.levelname,
            "name": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            log_record["exc_info"] = self.formatException(record.exc_info)
        log_record.update(_extra_fields(record))
        return json.dumps(log_record, default=str)


class SecretRedactionFilter(logging.Filter):
    """Replaces known secret values with a placeholder before output."""

    PLACEHOLDER = "[REDACTED]"

    def __init__(self, secrets: Iterable[str] = ()):
        super().__init__()
        self.secrets = set()
        self.add(*secrets)

    def add(self, *secrets: Optional[str]):
        for secret in secrets:
            if not secret:
                continue
            self.secrets.add(secret)
            # hex keys show up with and without the 0x prefix
            if secret.startswith("0x"):
                self.secrets.add(secret[2:])

    def _scrub(self, value):
        if isinstance(value, str):
            for secret in self.secrets:
                value = value.replace(secret, self.PLACEHOLDER)
        return value

    def filter(self, record):
        if not self.secrets:
            return True
        record.msg = self._scrub(record.getMessage())
        record.args = None
        for key, value in _extra_fields(record).items():
            setattr(record, key, self._scrub(value))
        return True


FORMATTERS = {
    "color": ColoredFormatter,
    "plain": PlainFormatter,
    "json": JsonFormatter,
}

redaction_filter = SecretRedactionFilter()


def setup_logger(
    name: str = ROOT_LOGGER_NAME,
    level: str = "INFO",
    log_to_file: bool = False,
    log_file_path: Optional[Path] = None,
    max_file_size: int = 5 * 1024 * 1024,  # 5MB
    backup_count: int = 3,
    formatter: str = "color",
) -> logging.Logger:
    """
    Set up and configure a logger.

    Args:
        name: Logger name
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_to_file: Whether to also log to a file
        log_file_path: Path for log file (defaults to data/oracle.log)
        max_file_size: Max size of log file before rotation
        backup_count: Number of backup files to keep
        formatter: "color", "plain" or "json" for the console handler

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(name)

    # Reconfiguring replaces handlers instead of stacking them
    for handler in list(logger.handlers):
        logger.removeHandler(handler)

    logger.setLevel(getattr(logging, level.upper(), logging.INFO))

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(FORMATTERS.get(formatter, ColoredFormatter)())
    console_handler.addFilter(redaction_filter)
    logger.addHandler(console_handler)

    if log_to_file:
        try:
            if log_file_path is None:
                log_file_path = Path(__file__).parent.parent.parent / "data" / "oracle.log"

            log_file_path.parent.mkdir(parents=True, exist_ok=True)

            file_handler = RotatingFileHandler(
                log_file_path, maxBytes=max_file_size, backupCount=backup_count
            )
            file_handler.setFormatter(PlainFormatter())
            file_handler.addFilter(redaction_filter)
            logger.addHandler(file_handler)
        except (OSError, PermissionError) as e:
            sys.stderr.write(f"WARNING: Could not set up file logging: {e}\n")
            sys.stderr.write("Continuing with console logging only.\n")

    logger.propagate = False

    return logger


_app_logger: Optional[logging.Logger] = None


def get_logger(name: str = None) -> logging.Logger:
    """
    Get a logger instance. If name is provided, returns a child logger.

    Args:
        name: Optional sub-logger name (e.g., "resolver", "ledger")
    """
    global _app_logger

    if _app_logger is None:
        _app_logger = setup_logger()

    if name:
        return _app_logger.getChild(name)
    return _app_logger


def init_logging(
    level: str = "INFO",
    log_to_file: bool = False,
    formatter: str = "color",
    log_file_path: Optional[Path] = None,
    secrets: Iterable[str] = (),
):
    """
    Initialize the application logging system.
    Should be called once at application startup.

    Args:
        level: Log level
        log_to_file: Whether to enable file logging
        formatter: Console formatter name
        log_file_path: Where the rotating file log goes
        secrets: Values that must never appear in log output
    """
    global _app_logger
    redaction_filter.add(*secrets)
    _app_logger = setup_logger(
        level=level, log_to_file=log_to_file, formatter=formatter, log_file_path=log_file_path
    )
    _app_logger.info(f"Logging initialized at {level} level")
