"""
Logger Utility
==============

Context-tagged logging for the agent.

Every module creates its own logger with a short context name, so a line
in the log tells you which component produced it:

    [2025-01-31T10:30:00] [INFO] [Agent] Iteration 2: dispatching 3 tool calls

All output goes to stderr. stdout belongs to the conversation itself (the
CLI prints streamed answers there), and mixing the two makes both
unreadable when the output is piped.

Usage:
    from agentloop.utils.logger import Logger

    logger = Logger("ToolRegistry")
    logger.info("Provider connected", {"provider": "calc", "tools": 3})

    child = logger.child("calc")
    child.debug("Invoking add")   # [ToolRegistry:calc] Invoking add
"""

import json
import os
import sys
from datetime import datetime
from enum import IntEnum
from typing import Any


class LogLevel(IntEnum):
    """Log levels; higher values are more severe."""
    DEBUG = 10
    INFO = 20
    WARNING = 30
    ERROR = 40


class Colors:
    """ANSI escape codes for colored terminal output."""
    RESET = "\033[0m"
    DEBUG = "\033[36m"    # Cyan
    INFO = "\033[32m"     # Green
    WARNING = "\033[33m"  # Yellow
    ERROR = "\033[31m"    # Red
    DIM = "\033[2m"


_LEVEL_NAMES = {
    "DEBUG": LogLevel.DEBUG,
    "INFO": LogLevel.INFO,
    "WARNING": LogLevel.WARNING,
    "WARN": LogLevel.WARNING,
    "ERROR": LogLevel.ERROR,
}


def parse_log_level(value: str | None, default: LogLevel = LogLevel.INFO) -> LogLevel:
    """Map a level name such as "debug" or "WARN" to a LogLevel."""
    if not value:
        return default
    return _LEVEL_NAMES.get(value.strip().upper(), default)


# Process-wide override set by set_log_level(); None means "read LOG_LEVEL"
_level_override: LogLevel | None = None


def set_log_level(level: LogLevel | str) -> None:
    """
    Set the minimum level for every logger in the process.

    The CLI calls this once after loading configuration so that a
    LOG_LEVEL coming from .env (not only the real environment) applies.
    """
    global _level_override
    _level_override = level if isinstance(level, LogLevel) else parse_log_level(level)


def _current_level() -> LogLevel:
    if _level_override is not None:
        return _level_override
    return parse_log_level(os.getenv("LOG_LEVEL"))


class Logger:
    """
    A context-aware logger with colored output.

    Example:
        logger = Logger("Agent")
        logger.info("Starting up")
        logger.warning("Provider unavailable", {"provider": "fetch"})
        logger.error("Model call failed", exc)
    """

    def __init__(self, context: str = ""):
        """
        Args:
            context: Prefix shown on every line (e.g. "Agent", "Skills")
        """
        self.context = context

    def child(self, child_context: str) -> "Logger":
        """Create a logger whose context is "<parent>:<child>"."""
        new_context = f"{self.context}:{child_context}" if self.context else child_context
        return Logger(new_context)

    def is_enabled_for(self, level: LogLevel) -> bool:
        return level >= _current_level()

    def _format_message(self, level_name: str, message: str, color: str) -> str:
        timestamp = datetime.now().isoformat(timespec="seconds")
        context_str = f"[{self.context}] " if self.context else ""

        if not sys.stderr.isatty():
            return f"[{timestamp}] [{level_name}] {context_str}{message}"

        return (
            f"{Colors.DIM}[{timestamp}]{Colors.RESET} "
            f"{color}[{level_name}]{Colors.RESET} "
            f"{context_str}{message}"
        )

    def _log(
        self,
        level: LogLevel,
        level_name: str,
        color: str,
        message: str,
        data: dict[str, Any] | None = None
    ) -> None:
        if not self.is_enabled_for(level):
            return

        print(self._format_message(level_name, message, color), file=sys.stderr)

        if data:
            data_str = json.dumps(data, indent=2, default=str, ensure_ascii=False)
            print(data_str, file=sys.stderr)

    def debug(self, message: str, data: dict[str, Any] | None = None) -> None:
        """Detailed tracing, shown only with LOG_LEVEL=DEBUG."""
        self._log(LogLevel.DEBUG, "DEBUG", Colors.DEBUG, message, data)

    def info(self, message: str, data: dict[str, Any] | None = None) -> None:
        """General operational information (the default level)."""
        self._log(LogLevel.INFO, "INFO", Colors.INFO, message, data)

    def warning(self, message: str, data: dict[str, Any] | None = None) -> None:
        """Something went wrong but the agent carries on."""
        self._log(LogLevel.WARNING, "WARN", Colors.WARNING, message, data)

    def error(self, message: str, error: BaseException | None = None) -> None:
        """
        Log an error, optionally with the exception that caused it.

        Args:
            message: What failed
            error: Exception whose type and message are included
        """
        data = None
        if error is not None:
            data = {
                "error_type": type(error).__name__,
                "error_message": str(error),
            }
        self._log(LogLevel.ERROR, "ERROR", Colors.ERROR, message, data)


# Default logger for code that has no better context
logger = Logger("agentloop")
