"""Centralized logging configuration for Decision Trace.

@public

This module provides logging configuration management for the trace client
and the trace service. It supports both YAML-based configuration and
programmatic setup with sensible defaults.

Key features:
- YAML configuration file support
- Environment variable overrides
- Component-specific log levels
- Automatic logger creation with proper formatting

Usage:
    >>> from decision_trace.logging import get_trace_logger
    >>> logger = get_trace_logger(__name__)
    >>> logger.info("Delivery worker started")

Environment variables:
    DECISION_TRACE_LOGGING_CONFIG: Path to custom logging.yml
    DECISION_TRACE_LOG_LEVEL: Default log level (INFO, DEBUG, etc.)
"""

import logging
import logging.config
import os
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

# Default log levels for different components
DEFAULT_LOG_LEVELS = {
    "decision_trace": "INFO",
    "decision_trace.tracing": "INFO",
    "decision_trace.store": "INFO",
    "decision_trace.query": "INFO",
}


class LoggingConfig:
    """Manages logging configuration for the trace library.

    @public

    Attributes:
        config_path: Path to YAML configuration file.
        _config: Cached configuration dictionary.

    Configuration precedence:
        1. Explicit config_path parameter
        2. DECISION_TRACE_LOGGING_CONFIG environment variable
        3. Default configuration

    Example:
        >>> config = LoggingConfig()
        >>> config.apply()
        >>>
        >>> config = LoggingConfig(Path("custom_logging.yml"))
        >>> config.apply()

    Note:
        Configuration is lazy-loaded and cached after first access.
    """

    def __init__(self, config_path: Optional[Path] = None):
        """Initialize logging configuration.

        Args:
            config_path: Optional path to YAML configuration file.
                        If None, checks the environment and falls back
                        to the default configuration.
        """
        self.config_path = config_path or self._get_default_config_path()
        self._config: Optional[Dict[str, Any]] = None

    @staticmethod
    def _get_default_config_path() -> Optional[Path]:
        """Get default config path from the environment, or None."""
        if env_path := os.environ.get("DECISION_TRACE_LOGGING_CONFIG"):
            return Path(env_path)
        return None

    def load_config(self) -> Dict[str, Any]:
        """Load logging configuration from file or defaults.

        Returns:
            Dictionary in ``logging.config.dictConfig`` format.

        Note:
            Configuration is cached after first load. Create a new
            LoggingConfig instance to reload from disk.
        """
        if self._config is None:
            if self.config_path and self.config_path.exists():
                with open(self.config_path, "r") as f:
                    self._config = yaml.safe_load(f)
            else:
                self._config = self._get_default_config()
        assert self._config is not None
        return self._config

    @staticmethod
    def _get_default_config() -> Dict[str, Any]:
        """Get default logging configuration.

        Default format:
            "HH:MM:SS.mmm | LEVEL | logger.name - message"

        Environment variables:
            DECISION_TRACE_LOG_LEVEL: Override default log level
        """
        return {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "standard": {
                    "format": "%(asctime)s.%(msecs)03d | %(levelname)-7s | %(name)s - %(message)s",
                    "datefmt": "%H:%M:%S",
                },
                "detailed": {
                    "format": (
                        "%(asctime)s | %(levelname)-7s | %(name)s | "
                        "%(funcName)s:%(lineno)d - %(message)s"
                    ),
                    "datefmt": "%Y-%m-%d %H:%M:%S",
                },
            },
            "handlers": {
                "console": {
                    "class": "logging.StreamHandler",
                    "formatter": "standard",
                    "stream": "ext://sys.stdout",
                },
            },
            "loggers": {
                "decision_trace": {
                    "level": os.environ.get("DECISION_TRACE_LOG_LEVEL", "INFO"),
                    "handlers": ["console"],
                    "propagate": False,
                },
            },
            "root": {
                "level": "WARNING",
                "handlers": ["console"],
            },
        }

    def apply(self):
        """Apply the logging configuration to Python's logging system.

        Note:
            Multiple calls will reconfigure logging.
        """
        config = self.load_config()
        logging.config.dictConfig(config)


# Global configuration instance
_logging_config: Optional[LoggingConfig] = None


def setup_logging(config_path: Optional[Path] = None, level: Optional[str] = None):
    """Setup logging for the Decision Trace library.

    @public

    Args:
        config_path: Optional path to YAML logging configuration file.
                    If None, uses environment variables or defaults.
        level: Optional log level override (INFO, DEBUG, WARNING, etc.).
              This overrides any level set in configuration or environment.

    Example:
        >>> setup_logging()
        >>> setup_logging(Path("/etc/traces/logging.yml"))
        >>> setup_logging(level="DEBUG")
    """
    global _logging_config

    _logging_config = LoggingConfig(config_path)
    _logging_config.apply()

    if level:
        for logger_name in DEFAULT_LOG_LEVELS:
            logging.getLogger(logger_name).setLevel(level)


def get_trace_logger(name: str) -> logging.Logger:
    """Get a logger for trace components.

    @public

    Automatically initializes logging if not already configured.

    Args:
        name: Logger name, typically __name__.

    Example:
        >>> logger = get_trace_logger(__name__)
        >>> logger.debug("Ignoring step: no active run")
    """
    if _logging_config is None:
        setup_logging()

    return logging.getLogger(name)
