"""Core configuration settings for trace capture and delivery.

@public

This module provides centralized configuration management for Decision Trace,
handling the ingest endpoint and the client-side delivery knobs. Settings are
loaded from environment variables with .env file support via pydantic-settings.

Environment variables:
    TRACE_API_URL: Base URL of the trace API (the client POSTs to ``{url}/ingest``)
    TRACE_ENABLED: Master switch for instrumentation (true/false)
    TRACE_BATCH_SIZE: Number of pending events that triggers an automatic flush
    TRACE_SUMMARY_LIMIT: Default length above which step arrays are summarized
    TRACE_DELIVERY_TIMEOUT: HTTP timeout in seconds for one ingest request

Configuration precedence:
    1. Environment variables (highest priority)
    2. .env file in current directory
    3. Default values

Example:
    >>> from decision_trace.settings import settings
    >>>
    >>> print(settings.trace_api_url)
    >>> print(settings.trace_batch_size)

.env file format:
    TRACE_API_URL=http://traces.internal:3001/api
    TRACE_ENABLED=true
    TRACE_BATCH_SIZE=25
    TRACE_SUMMARY_LIMIT=200

Note:
    Settings are loaded once at module import and frozen. Construct a new
    Settings object (or pass explicit arguments to TraceClient) to use
    different values in the same process.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Configuration for trace capture and delivery.

    @public

    Attributes:
        trace_api_url: Base URL of the trace API. The HTTP transport sends
                       batches to ``{trace_api_url}/ingest``.

        trace_enabled: When False, clients created from these settings record
                       nothing and never start a delivery thread.

        trace_batch_size: Pending-event count that triggers an automatic,
                          non-blocking flush.

        trace_summary_limit: Default maximum length of ``candidates`` and
                             ``filtered`` before they are replaced by a Summary.

        trace_delivery_timeout: Timeout in seconds for one ingest request.

    Example:
        >>> settings = Settings(trace_batch_size=1)
        >>> client = TraceClient.from_settings(settings)
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        frozen=True,
    )

    # Delivery
    trace_api_url: str = "http://localhost:3001/api"
    trace_enabled: bool = True
    trace_batch_size: int = 10
    trace_delivery_timeout: float = 10.0

    # Capture
    trace_summary_limit: int = 100


settings = Settings()
"""Global settings instance for the entire application.

@public

Example:
    >>> from decision_trace.settings import settings
    >>> print(f"Sending traces to {settings.trace_api_url}")
"""
