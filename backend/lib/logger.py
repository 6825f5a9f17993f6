"""
Console logging for the Release Tour backend.

Every record is one line: time, icon, level, logger name, message. The icon
comes from the component that emitted the record (cache, session, clients),
falling back to a per-level icon for third-party loggers.

`TourLogger` adds helpers for the adapter: startup/shutdown banners, HTTP
request timing and a one-line summary of each session transition.
"""

import logging
import os
import sys
from datetime import datetime
from typing import Any, Dict, Optional

RESET = '\033[0m'
BOLD = '\033[1m'
DIM = '\033[90m'

LEVEL_STYLES = {
    'DEBUG': ('\033[36m', '🔍'),
    'INFO': ('\033[32m', 'ℹ️'),
    'WARNING': ('\033[33m', '⚠️'),
    'ERROR': ('\033[31m', '❌'),
    'CRITICAL': ('\033[35m', '🚨'),
}

# Last dotted component of the logger name
COMPONENT_ICONS = {
    'tour_session': '🧭',
    'lesson_cache': '📚',
    'api_client': '🌐',
    'execution_dispatcher': '▶️',
    'version_resolver': '🔢',
    'overlay_store': '💾',
    'kv_store': '🗄️',
    'main': '🚀',
}

NOISY_LOGGERS = ('asyncio', 'httpx', 'httpcore', 'urllib3', 'hpack')


class ColoredFormatter(logging.Formatter):
    """Single-line formatter with component icons and optional ANSI colors."""

    def __init__(self, use_colors: bool = True):
        super().__init__()
        self.use_colors = use_colors and sys.stdout.isatty()

    def _paint(self, text: str, color: str) -> str:
        return f"{color}{text}{RESET}" if self.use_colors else text

    def format(self, record: logging.LogRecord) -> str:
        color, level_icon = LEVEL_STYLES.get(record.levelname, (RESET, '•'))
        icon = COMPONENT_ICONS.get(record.name.rsplit('.', 1)[-1], level_icon)
        stamp = datetime.fromtimestamp(record.created).strftime('%H:%M:%S.%f')[:-3]

        line = " ".join([
            self._paint(f"[{stamp}]", DIM),
            icon,
            self._paint(f"{record.levelname:8s}", color),
            self._paint(record.name, BOLD),
            f"| {record.getMessage()}",
        ])
        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line


class TourLogger:
    """Thin wrapper over a stdlib logger with adapter-specific helpers."""

    def __init__(self, name: str):
        self.logger = logging.getLogger(name)

    @staticmethod
    def _with_fields(message: str, fields: Optional[Dict[str, Any]]) -> str:
        if not fields:
            return message
        rendered = "\n".join(f"  {key}: {value}" for key, value in fields.items())
        return f"{message}\n{rendered}"

    def debug(self, message: str, fields: Optional[Dict[str, Any]] = None):
        self.logger.debug(self._with_fields(message, fields))

    def info(self, message: str, fields: Optional[Dict[str, Any]] = None):
        self.logger.info(self._with_fields(message, fields))

    def warning(self, message: str, fields: Optional[Dict[str, Any]] = None):
        self.logger.warning(self._with_fields(message, fields))

    def error(self, message: str, error: Optional[Exception] = None, fields: Optional[Dict[str, Any]] = None):
        if error is not None:
            message = f"{message} ({type(error).__name__}: {error})"
        self.logger.error(self._with_fields(message, fields), exc_info=error)

    def section(self, title: str, fields: Optional[Dict[str, Any]] = None):
        """Framed block for startup and shutdown."""
        rule = "=" * 72
        self.logger.info(self._with_fields(f"\n{rule}\n📋 {title.upper()}\n{rule}", fields))

    def request(self, method: str, path: str):
        self.logger.info(f"📥 {method} {path}")

    def response(self, status: int, path: str, duration: Optional[float] = None):
        timing = f" in {duration * 1000:.1f} ms" if duration is not None else ""
        self.logger.info(f"📤 {status} {path}{timing}")

    def transition(self, action: str, snapshot: Dict[str, Any]):
        """
        Summarize the session after an action.

        Args:
            action: Action class name
            snapshot: RenderSnapshot.to_dict() output
        """
        state = snapshot.get("state") or {}
        where = state.get("screen", "?")
        if state.get("version"):
            where += f" {state['version']}"
        if state.get("lesson_id") is not None:
            where += f"/{state['lesson_id']}"

        message = f"🧭 {action} -> {where}"
        result = snapshot.get("execution_result")
        if result is not None and action == "RunCode":
            message += " (run ok)" if result.get("ok") else f" (run failed: {result.get('kind')})"

        if snapshot.get("error_banner"):
            self.logger.warning(f"{message} | banner: {snapshot['error_banner']}")
        else:
            self.logger.info(message)


def setup_logging(level: Optional[int] = None, use_colors: bool = True) -> logging.Logger:
    """
    Route all logging to stdout through ColoredFormatter.

    The level defaults to RELEASE_TOUR_LOG_LEVEL (INFO when unset).
    """
    if level is None:
        level_name = os.getenv("RELEASE_TOUR_LOG_LEVEL", "INFO").upper()
        level = getattr(logging, level_name, logging.INFO)

    root = logging.getLogger()
    for handler in list(root.handlers):
        root.removeHandler(handler)

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    handler.setFormatter(ColoredFormatter(use_colors=use_colors))
    root.setLevel(level)
    root.addHandler(handler)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    return root


def get_logger(name: str) -> TourLogger:
    return TourLogger(name)
