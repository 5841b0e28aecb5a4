"""
Error taxonomy for the explorer.

Every error surfaced to a caller is an ExplorerError with a stable `kind`
and the HTTP status the routes answer with.
"""

from typing import Any


class ExplorerError(Exception):
    """Base class for all errors surfaced by the explorer."""

    kind: str = "error"
    status_code: int = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict[str, Any]:
        return {"error": self.message, "kind": self.kind}


class ValidationError(ExplorerError):
    """Missing or invalid request fields. Never retried."""

    kind = "validation"
    status_code = 400


class NotFoundError(ExplorerError):
    """Unknown connection profile or messaging entity."""

    kind = "not_found"
    status_code = 404


class DuplicateNameError(ExplorerError):
    """A connection profile with the same name already exists."""

    kind = "duplicate_name"
    status_code = 409


class BrokerError(ExplorerError):
    """Non-transient failure reported by Service Bus."""

    kind = "broker"
    status_code = 502


class TransientBrokerError(BrokerError):
    """Connectivity failure (timeout, address unavailable, aggregate failure)."""

    kind = "transient_broker"
    status_code = 503

    TIMED_OUT = "timed_out"
    ADDRESS_UNAVAILABLE = "address_unavailable"
    AGGREGATE_CONNECTION_FAILURE = "aggregate_connection_failure"

    def __init__(self, message: str, category: str):
        super().__init__(message)
        self.category = category

    def to_dict(self) -> dict[str, Any]:
        return {**super().to_dict(), "category": self.category}


class PartialCompletionError(ExplorerError):
    """
    Some, but not all, fetched messages were completed during a destructive receive.

    Carries the same date-filtered messages a successful receive would return;
    `total_count` is the size of the fetched batch.
    Messages after `completed_count` remain locked and will be redelivered once
    their lock expires.
    """

    kind = "partial_completion"
    status_code = 207

    def __init__(self, message: str, completed_count: int, total_count: int, messages: list | None = None):
        super().__init__(message)
        self.completed_count = completed_count
        self.total_count = total_count
        self.messages = messages or []

    def to_dict(self) -> dict[str, Any]:
        return {
            **super().to_dict(),
            "completedCount": self.completed_count,
            "totalCount": self.total_count,
            "messages": [m.model_dump(mode="json", by_alias=True) for m in self.messages],
        }
