"""
Structured JSON logging for the vesting ledger.

Every ledger module logs through ``logging.getLogger(__name__)`` with an
``extra={"event": "vesting.<name>", ...}`` payload. ``setup_logging`` attaches
JSON handlers to the package logger so those payloads come out as one JSON
object per line, optionally mirrored to a rotating file.

Usage:
    from vesting_ledger.core.logging_config import setup_logging

    setup_logging(log_file="/var/log/vesting/ledger.json", level="INFO")
"""

import logging
import logging.handlers
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

from pythonjsonlogger import jsonlogger

DEFAULT_FORMAT = "%(timestamp)s %(level)s %(name)s %(message)s"


class CustomJsonFormatter(jsonlogger.JsonFormatter):
    """JSON formatter stamping network, service and call site onto each record."""

    def __init__(
        self,
        fmt: str = DEFAULT_FORMAT,
        timestamp: bool = True,
        environment: Optional[str] = None,
        service_name: str = "vesting_ledger",
    ):
        super().__init__(fmt=fmt)
        self.timestamp = timestamp
        self.environment = environment or "testnet"
        self.service_name = service_name

    def add_fields(
        self,
        log_record: Dict[str, Any],
        record: logging.LogRecord,
        message_dict: Dict[str, Any],
    ) -> None:
        super().add_fields(log_record, record, message_dict)

        # Format placeholders without a LogRecord attribute arrive as None
        if self.timestamp and not log_record.get("timestamp"):
            log_record["timestamp"] = datetime.fromtimestamp(
                record.created, tz=timezone.utc
            ).isoformat()
        if not log_record.get("level"):
            log_record["level"] = record.levelname.lower()

        log_record["environment"] = self.environment
        log_record["service"] = self.service_name
        log_record["source"] = {
            "function": record.funcName,
            "module": record.module,
            "line": record.lineno,
        }


def _parse_level(level: str) -> int:
    value = logging.getLevelName(level.upper())
    if not isinstance(value, int):
        raise ValueError(f"Unknown log level: {level!r}")
    return value


def _file_handler(log_file: str, max_bytes: int, backup_count: int) -> logging.Handler:
    Path(log_file).parent.mkdir(parents=True, exist_ok=True)
    return logging.handlers.RotatingFileHandler(
        filename=log_file,
        maxBytes=max_bytes,
        backupCount=backup_count,
    )


def setup_logging(
    name: str = "vesting_ledger",
    log_file: Optional[str] = None,
    level: str = "INFO",
    environment: str = "testnet",
    enable_console: bool = True,
    enable_file: bool = True,
    max_bytes: int = 50 * 1024 * 1024,
    backup_count: int = 5,
    stream=None,
) -> logging.Logger:
    """
    Attach JSON handlers to the named logger, replacing any it already has.

    Args:
        name: Logger to configure; child loggers propagate into it
        log_file: Optional path for a rotating JSON log file
        level: Logging level name
        environment: Network label written into every record
        enable_console: Emit to ``stream`` (default: sys.stdout)
        enable_file: Emit to ``log_file`` when one is given
        max_bytes: Rotation threshold for the file handler
        backup_count: Rotated files to keep
        stream: Console stream override

    Returns:
        The configured logger
    """
    numeric_level = _parse_level(level)
    logger = logging.getLogger(name)
    logger.setLevel(numeric_level)

    formatter = CustomJsonFormatter(
        environment=environment,
        service_name=name.split(".")[0],
    )

    handlers: List[logging.Handler] = []
    if enable_console:
        handlers.append(logging.StreamHandler(stream or sys.stdout))
    if enable_file and log_file:
        try:
            handlers.append(_file_handler(log_file, max_bytes, backup_count))
        except OSError as exc:
            logger.warning(
                "Could not open log file %s: %s",
                log_file,
                exc,
                extra={"event": "logging.file_handler_failed"},
            )

    logger.handlers = []
    for handler in handlers:
        handler.setLevel(numeric_level)
        handler.setFormatter(formatter)
        logger.addHandler(handler)

    return logger


def setup_ledger_logging(config=None, stream=None) -> logging.Logger:
    """Configure the package logger from a config class (default: active Config)."""
    if config is None:
        from .config import Config as config
    return setup_logging(
        name="vesting_ledger",
        log_file=config.LOG_FILE,
        level=config.LOG_LEVEL,
        environment=config.NETWORK_TYPE.value,
        stream=stream,
    )


def get_logger(
    name: str,
    log_file: Optional[str] = None,
    level: str = "INFO",
) -> logging.Logger:
    """Return ``name``'s logger, configuring it on first use."""
    logger = logging.getLogger(name)
    if logger.handlers:
        return logger
    return setup_logging(name=name, log_file=log_file, level=level)
