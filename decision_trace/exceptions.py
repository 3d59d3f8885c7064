"""Exception hierarchy for Decision Trace.

This module defines the exception hierarchy used throughout the Decision Trace library.
All exceptions inherit from DecisionTraceError, providing a consistent error handling interface.
"""

from typing import Any


class DecisionTraceError(Exception):
    """Base exception for all Decision Trace errors."""


class DeliveryError(DecisionTraceError):
    """Raised when a batch of trace events cannot be delivered to the backend.

    Never propagated into instrumented pipeline code; it is only handed to the
    client's ``on_error`` callback.
    """


class ServiceError(DecisionTraceError):
    """Base exception for errors surfaced at the service boundary."""

    status_code: int = 500

    def to_dict(self) -> dict[str, Any]:
        """Structured error body for the transport layer."""
        return {"error": str(self)}


class IngestPayloadError(ServiceError):
    """Raised when an ingest payload does not carry a list of events."""

    status_code = 400


class RunNotFoundError(ServiceError):
    """Raised when a run is looked up by an id the store does not know."""

    status_code = 404

    def __init__(self, run_id: str) -> None:
        super().__init__(f"Run not found: {run_id}")
        self.run_id = run_id

    def to_dict(self) -> dict[str, Any]:
        return {"error": "Run not found", "runId": self.run_id}
