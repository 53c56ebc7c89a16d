"""
Centralized logging utilities for boiler

Provides consistent tagged console output with configurable debug levels:
- [INFO] for general information
- [WARN] for warnings
- [ERROR] for errors
- [RESULT] for final results
- [DEBUG] for debug information
- [SEARCH] for sample search iterations
- [PASS] for full-file refinement passes
- And a few domain-specific tags (sample, remux, cleanup, discovery)

Usage:
    from boiler.utils.logging import get_logger, set_debug_mode

    set_debug_mode(True)  # Enable debug messages

    logger = get_logger("quality_search")
    logger.info("This is an info message")
    logger.search("Iteration 1: quality 60")
"""

import os
from enum import Enum
from typing import Optional

from tqdm import tqdm

# Global logging configuration
_DEBUG_ENABLED = False
_QUIET_MODE = False
_LOG_LEVEL = "INFO"


class LogLevel(Enum):
    DEBUG = 0
    INFO = 1
    WARN = 2
    ERROR = 3


def _init_debug_mode():
    global _DEBUG_ENABLED
    if os.getenv('DEBUG', '').lower() in ('1', 'true', 'yes'):
        _DEBUG_ENABLED = True

_init_debug_mode()


def set_debug_mode(enabled: bool):
    """Enable or disable debug mode globally"""
    global _DEBUG_ENABLED
    _DEBUG_ENABLED = enabled


def set_quiet_mode(enabled: bool):
    """Enable or disable quiet mode (suppress INFO and DEBUG messages)"""
    global _QUIET_MODE
    _QUIET_MODE = enabled


def set_log_level(level: str):
    """Set the global log level: DEBUG, INFO, WARN, ERROR"""
    global _LOG_LEVEL
    _LOG_LEVEL = level.upper()


class Logger:
    """Centralized logger with consistent formatting and configurable output"""

    def __init__(self, module_name: str = ""):
        self.module_name = module_name
        self.prefix = f"[{module_name}] " if module_name else ""

    def _should_log(self, level: LogLevel) -> bool:
        """Check if message should be logged based on current settings"""
        if _QUIET_MODE and level in (LogLevel.DEBUG, LogLevel.INFO):
            return False
        if level is LogLevel.DEBUG:
            return _DEBUG_ENABLED

        level_hierarchy = {
            "DEBUG": LogLevel.DEBUG,
            "INFO": LogLevel.INFO,
            "WARN": LogLevel.WARN,
            "ERROR": LogLevel.ERROR
        }

        current_level = level_hierarchy.get(_LOG_LEVEL, LogLevel.INFO)
        return level.value >= current_level.value

    def _log(self, level: str, message: str):
        log_level = LogLevel[level]
        if not self._should_log(log_level):
            return
        # tqdm.write keeps an active progress bar intact
        tqdm.write(f"[{level}] {self.prefix}{message}")

    def _tagged(self, tag: str, message: str, level: LogLevel = LogLevel.INFO):
        if self._should_log(level):
            tqdm.write(f"[{tag}] {message}")

    def debug(self, message: str):
        """Log debug message (only if debug mode enabled)"""
        if _DEBUG_ENABLED:
            self._log("DEBUG", message)

    def info(self, message: str):
        self._log("INFO", message)

    def warn(self, message: str):
        self._log("WARN", message)

    def error(self, message: str):
        self._log("ERROR", message)

    def result(self, message: str):
        """Log result message"""
        self._tagged("RESULT", f"{self.prefix}{message}")

    # Domain-specific logging methods
    def search(self, message: str):
        """Log sample search iteration message"""
        self._tagged("SEARCH", message)

    def search_debug(self, message: str):
        if _DEBUG_ENABLED:
            self._tagged("SEARCH-DEBUG", message, LogLevel.DEBUG)

    def passes(self, message: str):
        """Log full-file refinement pass message"""
        self._tagged("PASS", message)

    def sample(self, message: str):
        if _DEBUG_ENABLED:
            self._tagged("SAMPLE", message, LogLevel.DEBUG)

    def remux(self, message: str):
        self._tagged("REMUX", message)

    def cleanup(self, message: str):
        """Log cleanup operation"""
        self._tagged("CLEANUP", message)

    def discovery(self, message: str):
        """Log file discovery message"""
        self._tagged("DISCOVERY", message)

    def cmd(self, message: str):
        """Log command execution message"""
        if _DEBUG_ENABLED:
            self._tagged("CMD", message, LogLevel.DEBUG)


def get_logger(module_name: str = "") -> Logger:
    """Get a logger instance for a module"""
    return Logger(module_name)


def create_progress_bar(total: Optional[int] = None, desc: str = "", unit: str = "it",
                        position: Optional[int] = None, leave: bool = True):
    """Create a progress bar with consistent styling"""
    return tqdm(total=total, desc=desc, unit=unit, position=position, leave=leave,
                disable=_QUIET_MODE)


def print_section_header(title: str, width: int = 70):
    """Print a section header with consistent formatting"""
    if _QUIET_MODE:
        return
    print("=" * width)
    print(title)
    print("=" * width)


def format_duration(seconds: float) -> str:
    """Format duration in seconds to a human-readable string"""
    if seconds < 60:
        return f"{seconds:.1f}s"
    elif seconds < 3600:
        return f"{seconds/60:.1f}m"
    else:
        hours = int(seconds // 3600)
        minutes = int((seconds % 3600) // 60)
        return f"{hours}h {minutes}m"
