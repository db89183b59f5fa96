# Copyright 2024 inuex35
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.


"""Logging configuration for PyQC"""

import logging
import os
import sys
from enum import Enum
from typing import Optional

LOG_ENV = "PYQC_LOG"
ROOT_LOGGER = "pyqc"


class LogLevel(Enum):
    """Log levels for the system"""
    TRACE = 5
    DEBUG = logging.DEBUG
    INFO = logging.INFO
    WARNING = logging.WARNING
    ERROR = logging.ERROR
    CRITICAL = logging.CRITICAL


# Add TRACE level to logging
logging.addLevelName(LogLevel.TRACE.value, "TRACE")


def trace(self, message, *args, **kwargs):
    """Add trace method to logger"""
    if self.isEnabledFor(LogLevel.TRACE.value):
        self._log(LogLevel.TRACE.value, message, args, **kwargs)


# Add trace method to Logger class
logging.Logger.trace = trace


class ColoredFormatter(logging.Formatter):
    """Colored log formatter"""

    # Color codes
    COLORS = {
        'TRACE': '\033[36m',     # Cyan
        'DEBUG': '\033[34m',     # Blue
        'INFO': '\033[32m',      # Green
        'WARNING': '\033[33m',   # Yellow
        'ERROR': '\033[31m',     # Red
        'CRITICAL': '\033[35m',  # Magenta
    }
    RESET = '\033[0m'

    def format(self, record):
        # Work on a copy so that other handlers see the plain level name
        record = logging.makeLogRecord(record.__dict__)
        log_color = self.COLORS.get(record.levelname, self.RESET)
        record.levelname = f"{log_color}{record.levelname}{self.RESET}"
        return super().format(record)


def level_from_env(default: str = "INFO") -> str:
    """Return the log level name requested through ``PYQC_LOG``.

    Unknown names fall back to ``default``.
    """
    level = os.environ.get(LOG_ENV, default).strip().upper()
    if level not in LogLevel.__members__:
        return default
    return level


def setup_logger(name: str = ROOT_LOGGER,
                 level: Optional[str] = None,
                 log_file: Optional[str] = None,
                 console: bool = True) -> logging.Logger:
    """
    Setup logger with specified configuration

    Parameters:
    -----------
    name : str
        Logger name
    level : Optional[str]
        Log level (TRACE, DEBUG, INFO, WARNING, ERROR, CRITICAL).
        Read from ``PYQC_LOG`` when None.
    log_file : Optional[str]
        Log file path (if None, no file logging)
    console : bool
        Enable console output

    Returns:
    --------
    logging.Logger
        Configured logger
    """
    if level is None:
        level = level_from_env()
    numeric_level = getattr(LogLevel, level.upper()).value

    logger = logging.getLogger(name)
    logger.setLevel(numeric_level)

    # Remove existing handlers
    logger.handlers = []

    # Console handler
    if console:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(numeric_level)
        console_format = ColoredFormatter(
            '%(asctime)s - %(levelname)s - %(message)s',
            datefmt='%H:%M:%S'
        )
        console_handler.setFormatter(console_format)
        logger.addHandler(console_handler)

    # File handler
    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setLevel(numeric_level)
        file_format = logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        )
        file_handler.setFormatter(file_format)
        logger.addHandler(file_handler)

    return logger
