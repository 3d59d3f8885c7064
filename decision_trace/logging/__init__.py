"""Logging infrastructure for Decision Trace.

@public

Key components:
    get_trace_logger: Factory function for creating component loggers
    setup_logging: Initialize logging configuration from YAML
    LoggingConfig: Configuration class for logging settings

Example:
    >>> from decision_trace.logging import get_trace_logger
    >>>
    >>> logger = get_trace_logger(__name__)
    >>> logger.info("Processing started")

Note:
    Library modules obtain loggers through get_trace_logger() so that the
    default configuration is applied on first use.
"""

from .logging_config import LoggingConfig, get_trace_logger, setup_logging

__all__ = [
    "LoggingConfig",
    "setup_logging",
    "get_trace_logger",
]
