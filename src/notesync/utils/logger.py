#!/usr/bin/env python3
"""
Logging utilities for NoteSync.

This module provides a centralized logging system with support for different
log levels, colored console output, and rotating file logging. Only the
package root logger owns handlers; module loggers propagate to it.
"""

import sys
import logging
import logging.handlers
from pathlib import Path
from typing import Optional, Dict

from colorama import init as colorama_init, Fore, Style
from rich.console import Console
from rich.logging import RichHandler

from .platform import platform_detector

colorama_init()

ROOT_LOGGER = 'notesync'
LOG_FILENAME = 'notesync.log'
LOG_MAX_BYTES = 5 * 1024 * 1024
LOG_BACKUP_COUNT = 5


class ColoredFormatter(logging.Formatter):
    """Formatter with colored level names for plain stream logging."""

    COLORS = {
        'DEBUG': Fore.CYAN,
        'INFO': Fore.GREEN,
        'WARNING': Fore.YELLOW,
        'ERROR': Fore.RED,
        'CRITICAL': Fore.MAGENTA,
    }

    def __init__(self, fmt: str = None, datefmt: str = None, use_colors: bool = True):
        super().__init__(fmt, datefmt)
        self.use_colors = use_colors

    def format(self, record: logging.LogRecord) -> str:
        if not self.use_colors:
            return super().format(record)

        original_levelname = record.levelname
        color = self.COLORS.get(record.levelname, '')
        record.levelname = f"{color}{record.levelname}{Style.RESET_ALL}"
        try:
            return super().format(record)
        finally:
            record.levelname = original_levelname


class NoteSyncLogger:
    """Thin wrapper around a stdlib logger."""

    def __init__(self, name: str = ROOT_LOGGER, use_rich: bool = True):
        self.name = name
        self.logger = logging.getLogger(name)

        # Module loggers inherit the root logger's handlers
        if name != ROOT_LOGGER:
            return

        self.logger.setLevel(logging.INFO)
        if self.logger.handlers:
            return

        self._setup_handlers(use_rich)

    def _setup_handlers(self, use_rich: bool):
        """Setup logging handlers for console and file output."""
        self.logger.addHandler(_console_handler(use_rich, logging.INFO))
        self._setup_file_handler()

    def set_console(self, use_rich: bool):
        """Swap the console handler between rich and plain coloured output."""
        for handler in list(self.logger.handlers):
            if not isinstance(handler, logging.FileHandler):
                self.logger.removeHandler(handler)
        self.logger.addHandler(_console_handler(use_rich, self.logger.level))

    def _setup_file_handler(self):
        """Setup rotating file logging under the platform log directory."""
        try:
            log_dir = platform_detector.get_log_dir()
            log_dir.mkdir(parents=True, exist_ok=True)

            file_handler = logging.handlers.RotatingFileHandler(
                log_dir / LOG_FILENAME,
                maxBytes=LOG_MAX_BYTES,
                backupCount=LOG_BACKUP_COUNT
            )
            file_handler.setFormatter(_file_formatter())
            file_handler.setLevel(logging.DEBUG)
            self.logger.addHandler(file_handler)

        except OSError as e:
            self.logger.warning(f"Could not setup file logging: {e}")

    def set_level(self, level: str):
        """Set the logging level of this logger and its console handlers."""
        log_level = getattr(logging, level.upper(), logging.INFO)
        if not isinstance(log_level, int):
            log_level = logging.INFO

        self.logger.setLevel(log_level)
        for handler in self.logger.handlers:
            if not isinstance(handler, logging.FileHandler):
                handler.setLevel(log_level)

    def debug(self, message: str, *args, **kwargs):
        self.logger.debug(message, *args, **kwargs)

    def info(self, message: str, *args, **kwargs):
        self.logger.info(message, *args, **kwargs)

    def warning(self, message: str, *args, **kwargs):
        self.logger.warning(message, *args, **kwargs)



def _console_handler(use_rich: bool, level: int) -> logging.Handler:
    if use_rich:
        handler = RichHandler(
            console=Console(stderr=True),
            show_time=False,
            show_path=False,
            rich_tracebacks=True
        )
        handler.setFormatter(logging.Formatter("%(message)s"))
    else:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(
            ColoredFormatter("[%(levelname)s] %(name)s: %(message)s",
                             use_colors=sys.stderr.isatty())
        )
    handler.setLevel(level)
    return handler


def _file_formatter() -> logging.Formatter:
    return logging.Formatter(
        "%(asctime)s - %(name)s - %(levelname)s - "
        "%(filename)s:%(lineno)d - %(message)s",
        datefmt='%Y-%m-%d %H:%M:%S'
    )


_loggers: Dict[str, NoteSyncLogger] = {}


def get_logger(name: str = ROOT_LOGGER) -> NoteSyncLogger:
    """Get or create a logger instance."""
    if name not in _loggers:
        if name != ROOT_LOGGER and ROOT_LOGGER not in _loggers:
            _loggers[ROOT_LOGGER] = NoteSyncLogger(ROOT_LOGGER)
        _loggers[name] = NoteSyncLogger(name)
    return _loggers[name]


def setup_logging(
    level: str = 'INFO',
    log_file: Optional[Path] = None,
    verbose: bool = False,
    plain: bool = False
):
    """Setup logging configuration.

    ``plain`` replaces the rich console handler with a plain stream handler
    whose level names are coloured only on a terminal.
    """
    if verbose:
        level = 'DEBUG'

    logger = get_logger()
    logger.set_console(use_rich=not plain)
    logger.set_level(level)

    if log_file:
        try:
            log_file = Path(log_file)
            log_file.parent.mkdir(parents=True, exist_ok=True)

            file_handler = logging.FileHandler(log_file)
            file_handler.setFormatter(_file_formatter())
            logger.logger.addHandler(file_handler)
            logger.info(f"Logging to file: {log_file}")

        except OSError as e:
            logger.warning(f"Could not setup custom log file {log_file}: {e}")
