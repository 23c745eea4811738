"""Centralized logging configuration for FlowDesk.

Handlers live on the root logger so that every ``logging.getLogger(__name__)``
in the package shares them. Each handler carries the LogContext filter, so
fields such as ``project_id`` or ``correlation_id`` reach the formatter.
"""

import json
import logging
import logging.handlers
from pathlib import Path
from typing import TYPE_CHECKING, List, Optional

if TYPE_CHECKING:
    from flowdesk.config.settings import FlowDeskConfig

STANDARD_FORMAT = "%(asctime)s %(levelname)-8s [%(name)s] %(message)s"
STANDARD_DATEFMT = "%Y-%m-%d %H:%M:%S"

# Present on every LogRecord; other attributes are structured fields
_RECORD_ATTRIBUTES = frozenset(vars(logging.LogRecord("", 0, "", 0, "", None, None))) | {
    "message",
    "asctime",
    "taskName",
}


class JSONFormatter(logging.Formatter):
    """One JSON object per record, including structured context fields."""

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "location": f"{record.module}.{record.funcName}:{record.lineno}",
        }
        payload.update(
            (key, value)
            for key, value in vars(record).items()
            if key not in _RECORD_ATTRIBUTES and not key.startswith("_")
        )
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)

        # Decimal amounts and dates are written as strings
        return json.dumps(payload, default=str)


class LoggingConfig:
    """
    Handler setup for the FlowDesk process.

    Attributes:
        log_level: DEBUG, INFO, WARNING, ERROR or CRITICAL
        log_format: 'standard' or 'json'
        log_file: Rotating log file; no file output when None
        console: Write records to stderr
        max_bytes: Size at which the log file rotates
        backup_count: Rotated files to keep
    """

    LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")
    FORMATS = ("standard", "json")

    def __init__(
        self,
        log_level: str = "INFO",
        log_format: str = "standard",
        log_file: Optional[str] = None,
        console: bool = True,
        max_bytes: int = 10 * 1024 * 1024,
        backup_count: int = 5,
    ):
        """
        Raises:
            ValueError: If the level or format is unknown
        """
        level = log_level.upper()
        if level not in self.LEVELS:
            raise ValueError(f"Invalid log level: {log_level}. Must be one of {', '.join(self.LEVELS)}")
        if log_format not in self.FORMATS:
            raise ValueError(
                f"Invalid log format: {log_format}. Must be one of {', '.join(self.FORMATS)}"
            )

        self.log_level = level
        self.log_format = log_format
        self.log_file = log_file or None
        self.console = console
        self.max_bytes = max_bytes
        self.backup_count = backup_count

    @classmethod
    def from_config(cls, config: "FlowDeskConfig") -> "LoggingConfig":
        """
        Build the logging setup from application settings.

        ``DEBUG=true`` forces the DEBUG level whatever ``LOG_LEVEL`` says.
        """
        return cls(
            log_level="DEBUG" if config.debug else config.log_level,
            log_format=config.log_format,
            log_file=config.log_file,
            console=config.log_console,
            max_bytes=config.log_max_bytes,
            backup_count=config.log_backup_count,
        )

    def build_formatter(self) -> logging.Formatter:
        if self.log_format == "json":
            return JSONFormatter()
        return logging.Formatter(fmt=STANDARD_FORMAT, datefmt=STANDARD_DATEFMT)

    def build_handlers(self) -> List[logging.Handler]:
        """Create the console and file handlers this setup asks for."""
        handlers: List[logging.Handler] = []
        if self.console:
            handlers.append(logging.StreamHandler())
        if self.log_file:
            Path(self.log_file).parent.mkdir(parents=True, exist_ok=True)
            handlers.append(
                logging.handlers.RotatingFileHandler(
                    filename=self.log_file,
                    maxBytes=self.max_bytes,
                    backupCount=self.backup_count,
                    encoding="utf-8",
                )
            )
        return handlers


def _clear_root_handlers(root_logger: logging.Logger) -> None:
    for handler in list(root_logger.handlers):
        root_logger.removeHandler(handler)
        handler.close()


def configure_logging(config: LoggingConfig) -> None:
    """
    Install handlers on the root logger, replacing any existing ones.

    SQLAlchemy statement logging is switched on only at DEBUG.
    """
    from flowdesk.utils.logging_utils import _ContextFilter

    root_logger = logging.getLogger()
    _clear_root_handlers(root_logger)

    level = getattr(logging, config.log_level)
    root_logger.setLevel(level)

    formatter = config.build_formatter()
    context_filter = _ContextFilter()
    for handler in config.build_handlers():
        handler.setLevel(level)
        handler.setFormatter(formatter)
        handler.addFilter(context_filter)
        root_logger.addHandler(handler)

    logging.getLogger("sqlalchemy.engine").setLevel(
        logging.INFO if level == logging.DEBUG else logging.WARNING
    )


def reset_logging() -> None:
    """Remove root handlers and restore the WARNING level."""
    root_logger = logging.getLogger()
    _clear_root_handlers(root_logger)
    root_logger.setLevel(logging.WARNING)
