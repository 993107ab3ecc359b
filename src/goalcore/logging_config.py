# src/goalcore/logging_config.py
"""
Logging setup for applications embedding GoalCore.

The library itself only ever calls ``logging.getLogger(__name__)``; nothing
is configured at import time. Applications (or ``GoalService.from_config``
when the configuration carries a ``[goalcore.logging]`` table) call
:func:`configure_logging` once to install handlers.

Console output is gated by :class:`DisplayFilter`: unless
``console_enabled`` is set, only records logged with
``extra={"display": True}`` (see :func:`log_display`) reach stderr, so
period-scaling notices can surface while routine chatter stays in the log
file.

Usage:
    from goalcore.logging_config import configure_logging

    configure_logging(config={"console_enabled": True, "console_level": "INFO"})
"""

import logging
import os
import sys
from datetime import datetime
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Optional

DEFAULT_LOGGING_CONFIG: dict[str, Any] = {
    "console_enabled": False,
    "console_level": "WARNING",
    "console_format": "%(levelname)s - %(name)s - %(message)s",
    "display_min_level": "INFO",
    "file_enabled": False,
    "file_level": "DEBUG",
    "file_directory": "~/.local/share/goalcore/logs",
    "file_mode": "single",
    "file_name_pattern": "{app}_{timestamp:%Y%m%d_%H%M%S}.log",
    "file_single_name": "{app}.log",
    "file_format": "%(asctime)s [%(levelname)-8s] %(name)-32s - %(message)s",
    "rotation_max_bytes": 5 * 1024 * 1024,
    "rotation_backup_count": 3,
    "components": {
        "goalcore": "INFO",
        "goalcore.storage": "INFO",
        "goalcore.engine": "INFO",
        "aiosqlite": "WARNING",
        "asyncio": "WARNING",
    },
}


def _to_level(level: str | int, default: int) -> int:
    if isinstance(level, int):
        return level
    resolved = logging.getLevelName(str(level).upper())
    return resolved if isinstance(resolved, int) else default


class DisplayFilter(logging.Filter):
    """
    Console gate.

    With the console globally enabled every record passes and the handler
    level decides. Otherwise only records flagged ``display=True`` at or
    above ``display_min_level`` pass.
    """

    def __init__(self, console_globally_enabled: bool = False, display_min_level: int = logging.INFO) -> None:
        super().__init__()
        self.console_globally_enabled = console_globally_enabled
        self.display_min_level = display_min_level

    def filter(self, record: logging.LogRecord) -> bool:
        if self.console_globally_enabled:
            return True
        return bool(getattr(record, "display", False)) and record.levelno >= self.display_min_level


class LoggingManager:
    """Process-wide singleton that installs and adjusts GoalCore's handlers."""

    _instance: Optional["LoggingManager"] = None

    def __init__(self) -> None:
        self.configured = False
        self.log_file_path: Optional[Path] = None
        self.console_handler: Optional[logging.Handler] = None
        self.file_handler: Optional[logging.Handler] = None

    @classmethod
    def get_instance(cls) -> "LoggingManager":
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    @classmethod
    def reset_instance(cls) -> None:
        """Detach installed handlers and forget the singleton."""
        if cls._instance is not None:
            cls._instance._detach()
        cls._instance = None

    def _detach(self) -> None:
        root = logging.getLogger()
        for handler in (self.console_handler, self.file_handler):
            if handler is not None:
                root.removeHandler(handler)
                handler.close()
        self.console_handler = None
        self.file_handler = None
        self.log_file_path = None
        self.configured = False

    def configure(
        self,
        app_name: str = "goalcore",
        config: Optional[dict[str, Any]] = None,
        force_reconfigure: bool = False,
    ) -> Optional[Path]:
        """
        Install console and (optionally) file handlers on the root logger.

        Only handlers previously installed by this manager are replaced;
        handlers added by the host application are left alone.

        Returns:
            The log file path, or None when file logging is disabled.
        """
        if self.configured and not force_reconfigure:
            return self.log_file_path
        self._detach()

        settings = {**DEFAULT_LOGGING_CONFIG, **(config or {})}
        root = logging.getLogger()
        root.setLevel(logging.DEBUG)

        console_enabled = bool(settings["console_enabled"])
        self.console_handler = logging.StreamHandler(sys.stderr)
        self.console_handler.setFormatter(logging.Formatter(settings["console_format"]))
        self.console_handler.setLevel(
            _to_level(settings["console_level"], logging.WARNING) if console_enabled else logging.DEBUG
        )
        self.console_handler.addFilter(
            DisplayFilter(console_enabled, _to_level(settings["display_min_level"], logging.INFO))
        )
        root.addHandler(self.console_handler)

        if settings["file_enabled"]:
            self.file_handler, self.log_file_path = self._file_handler(settings, app_name)
            if self.file_handler is not None:
                root.addHandler(self.file_handler)

        for component, level in settings["components"].items():
            logging.getLogger(component).setLevel(_to_level(level, logging.INFO))

        self.configured = True
        logging.getLogger(__name__).debug("Logging configured (log file: %s)", self.log_file_path)
        return self.log_file_path

    @staticmethod
    def _file_handler(settings: dict[str, Any], app_name: str) -> tuple[Optional[logging.Handler], Optional[Path]]:
        log_dir = Path(os.path.expanduser(settings["file_directory"]))
        try:
            log_dir.mkdir(parents=True, exist_ok=True)
            if settings["file_mode"] == "per_run":
                path = log_dir / settings["file_name_pattern"].format(app=app_name, timestamp=datetime.now())
                handler: logging.Handler = logging.FileHandler(path, encoding="utf-8")
            else:
                path = log_dir / settings["file_single_name"].format(app=app_name)
                handler = RotatingFileHandler(
                    path,
                    maxBytes=settings["rotation_max_bytes"],
                    backupCount=settings["rotation_backup_count"],
                    encoding="utf-8",
                )
        except OSError as e:
            sys.stderr.write(f"Warning: file logging disabled, cannot open log in {log_dir}: {e}\n")
            return None, None
        handler.setLevel(_to_level(settings["file_level"], logging.DEBUG))
        handler.setFormatter(logging.Formatter(settings["file_format"]))
        return handler, path

    def set_console_level(self, level: str | int) -> None:
        if self.console_handler is not None:
            self.console_handler.setLevel(_to_level(level, logging.WARNING))

    def set_file_level(self, level: str | int) -> None:
        if self.file_handler is not None:
            self.file_handler.setLevel(_to_level(level, logging.DEBUG))


def configure_logging(
    app_name: str = "goalcore",
    config: Optional[dict[str, Any]] = None,
    force_reconfigure: bool = False,
) -> Optional[Path]:
    """
    Configure logging once per process.

    Args:
        app_name: Used in the log file name.
        config: Overrides merged over ``DEFAULT_LOGGING_CONFIG``
            (typically ``GoalCoreConfig.logging``).
        force_reconfigure: Replace handlers installed by an earlier call.

    Returns:
        Path to the log file, or None when file logging is off.
    """
    return LoggingManager.get_instance().configure(app_name, config, force_reconfigure)


def log_display(logger: logging.Logger, level: int, msg: str, *args: Any, **kwargs: Any) -> None:
    """Log ``msg`` flagged for console display even when the console is quiet."""
    kwargs["extra"] = {**(kwargs.get("extra") or {}), "display": True}
    logger.log(level, msg, *args, **kwargs)


def set_console_level(level: str | int) -> None:
    LoggingManager.get_instance().set_console_level(level)


def set_file_level(level: str | int) -> None:
    LoggingManager.get_instance().set_file_level(level)


def set_component_level(component: str, level: str | int) -> None:
    logging.getLogger(component).setLevel(_to_level(level, logging.INFO))
