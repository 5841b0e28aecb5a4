"""
Service Bus error handling utilities.

Classifies failures raised by the Service Bus SDK (and the sockets under it)
into the explorer's error taxonomy, with a remediation hint for the
connectivity failures users actually hit: blocked AMQP port, VPN, dual-stack
connect failures.
"""

import errno
from collections.abc import Generator, Iterator
from contextlib import contextmanager

from azure.core.exceptions import ClientAuthenticationError, ResourceNotFoundError
from azure.servicebus.exceptions import (
    MessagingEntityNotFoundError,
    OperationTimeoutError,
    ServiceBusAuthenticationError,
    ServiceBusAuthorizationError,
)

from common.errors import (
    BrokerError,
    DuplicateNameError,
    ExplorerError,
    NotFoundError,
    TransientBrokerError,
    ValidationError,
)
from common.logging import get_logger

logger = get_logger(__name__)

TIMED_OUT_MESSAGE = "Connection timed out. Port 5671 (AMQP) may be blocked by firewall."
ADDRESS_UNAVAILABLE_MESSAGE = "Network address not available. Check your network configuration or VPN."
AGGREGATE_FAILURE_MESSAGE = (
    "Failed to connect to Service Bus. Port 5671 (AMQP) may be blocked by firewall or network configuration. "
    "Please ensure AMQP over TLS (port 5671) is accessible, or enable SERVICE_BUS_USE_WEBSOCKET to use port 443."
)

NOT_FOUND_EXCEPTIONS = (ResourceNotFoundError, MessagingEntityNotFoundError)
AUTH_EXCEPTIONS = (ClientAuthenticationError, ServiceBusAuthenticationError, ServiceBusAuthorizationError)
TIMEOUT_EXCEPTIONS = (TimeoutError, OperationTimeoutError)

# Failures that will not go away by trying again
NON_RETRYABLE = (ValidationError, NotFoundError, DuplicateNameError) + NOT_FOUND_EXCEPTIONS + AUTH_EXCEPTIONS


def _iter_causes(exc: BaseException) -> Iterator[BaseException]:
    """Yield the exception, its chained causes and any exception-group members (breadth first)."""
    seen: set[int] = set()
    pending: list[BaseException | None] = [exc]
    while pending:
        current = pending.pop(0)
        if current is None or id(current) in seen:
            continue
        seen.add(id(current))
        yield current
        if isinstance(current, BaseExceptionGroup):
            pending.extend(current.exceptions)
        pending.extend([current.__cause__, current.__context__])


def is_retryable(exc: BaseException) -> bool:
    return not any(isinstance(e, NON_RETRYABLE) for e in _iter_causes(exc))


def classify_broker_error(exc: BaseException) -> ExplorerError:
    """Map an SDK or socket failure to an ExplorerError with a human-readable message."""
    if isinstance(exc, ExplorerError):
        return exc

    causes = list(_iter_causes(exc))

    for cause in causes:
        if isinstance(cause, NOT_FOUND_EXCEPTIONS):
            return NotFoundError(f"Messaging entity not found: {cause}")

    # Several simultaneous transport failures, e.g. IPv4 and IPv6 both refused
    for cause in causes:
        if isinstance(cause, BaseExceptionGroup) and len(cause.exceptions) > 1:
            return TransientBrokerError(
                AGGREGATE_FAILURE_MESSAGE, TransientBrokerError.AGGREGATE_CONNECTION_FAILURE
            )

    for cause in causes:
        if isinstance(cause, TIMEOUT_EXCEPTIONS) or (isinstance(cause, OSError) and cause.errno == errno.ETIMEDOUT):
            return TransientBrokerError(TIMED_OUT_MESSAGE, TransientBrokerError.TIMED_OUT)
        if isinstance(cause, OSError) and cause.errno == errno.EADDRNOTAVAIL:
            return TransientBrokerError(ADDRESS_UNAVAILABLE_MESSAGE, TransientBrokerError.ADDRESS_UNAVAILABLE)

    return BrokerError(str(exc) or type(exc).__name__)


@contextmanager
def handle_broker_errors(operation_name: str) -> Generator[None, None, None]:
    """
    Context manager for handling Service Bus errors consistently.

    Explorer errors pass through untouched. Anything else is classified,
    logged and re-raised as the matching ExplorerError.

    Args:
        operation_name: Name of the operation (e.g., "Peek", "List queues")
            Used in log messages for context.

    Usage:
        with handle_broker_errors("Peek"):
            messages = await broker.peek(receiver, 10)

    Raises:
        ExplorerError: The classified error, chained to the original exception.
    """
    try:
        yield
    except ExplorerError:
        raise
    except Exception as e:
        classified = classify_broker_error(e)
        logger.error(f"[{operation_name}] {type(e).__name__}: {e!r} -> {classified.kind}: {classified.message}")
        raise classified from e
