# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""Structured logging setup for Mapper Links.

Work happens on several threads (the watchdog observer, the debounce worker
and the navigation pool), so every JSON record names the thread that wrote
it. Scan summaries attach counts through ``extra={"extra_fields": {...}}``;
those keys land at the top level of the record.
"""

import json
import logging
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Iterable, Optional, Union

DEFAULT_LOG_DIRNAME = ".mapper_links_logs"

# Third-party loggers that report every filesystem event at DEBUG
NOISY_LOGGERS = ("watchdog",)


class StructuredFormatter(logging.Formatter):
    """JSON-lines formatter."""

    def format(self, record: logging.LogRecord) -> str:
        log_data: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "thread": record.threadName,
            "message": record.getMessage(),
        }

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        extra_fields = getattr(record, "extra_fields", None)
        if isinstance(extra_fields, dict):
            log_data.update(extra_fields)

        return json.dumps(log_data, default=str)


def resolve_level(level: Union[int, str]) -> int:
    """Turn a level name such as "debug" into its numeric value.

    Raises:
        ValueError: If the name is not a logging level
    """
    if isinstance(level, int):
        return level
    value = logging.getLevelName(level.strip().upper())
    if not isinstance(value, int):
        raise ValueError(f"Unknown log level: {level}")
    return value


def setup_logging(
    log_dir: Optional[Path] = None,
    log_level: Union[int, str] = logging.INFO,
    console_output: bool = True,
    quiet_loggers: Iterable[str] = NOISY_LOGGERS,
) -> Path:
    """Set up structured logging for the application.

    Args:
        log_dir: Directory for log files. If None, uses .mapper_links_logs/
        log_level: Level number or name (default: INFO)
        console_output: Whether to also write human-readable lines to stderr.
            stdout is left alone because the stdio transport owns it.
        quiet_loggers: Loggers held at WARNING unless log_level is DEBUG.

    Returns:
        Path of the JSON-lines log file.
    """
    level = resolve_level(log_level)
    if log_dir is None:
        log_dir = Path.cwd() / DEFAULT_LOG_DIRNAME
    log_dir.mkdir(parents=True, exist_ok=True)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers.clear()

    log_file = log_dir / f"mapper_links_{datetime.now(timezone.utc).strftime('%Y%m%d')}.log"
    file_handler = logging.FileHandler(log_file, encoding="utf-8")
    file_handler.setLevel(level)
    file_handler.setFormatter(StructuredFormatter())
    root_logger.addHandler(file_handler)

    if console_output:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setLevel(level)
        console_handler.setFormatter(
            logging.Formatter(
                "%(asctime)s [%(threadName)s] %(name)s %(levelname)s: %(message)s",
                datefmt="%H:%M:%S",
            )
        )
        root_logger.addHandler(console_handler)

    for name in quiet_loggers:
        logging.getLogger(name).setLevel(logging.NOTSET if level <= logging.DEBUG else logging.WARNING)

    logging.info(f"Logging initialized at {logging.getLevelName(level)}. Log file: {log_file}")
    return log_file
