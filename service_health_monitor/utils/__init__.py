"""工具模块"""

from .exceptions import (HealthMonitorError, ConfigError, CheckerError, RuntimeUnavailableError,
                         AlertError)
from .log_manager import LogManager, LogLevel, get_logger, configure_logging, log_manager

__all__ = [
    'HealthMonitorError', 'ConfigError', 'CheckerError', 'RuntimeUnavailableError', 'AlertError',
    'LogManager', 'LogLevel', 'get_logger', 'configure_logging', 'log_manager'
]
