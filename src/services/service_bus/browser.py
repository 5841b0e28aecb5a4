"""
Entity browser: the single integration point for listing, peek, receive and send.

Every operation validates its inputs before touching the network, opens its
own BrokerClient and closes it (and any receiver/sender) on every exit path.

Peek is non-destructive. Receive locks the fetched messages; with
`complete=True` they are completed one by one in fetch order, otherwise they
become visible again when the broker's lock expires. The enqueued-time filter
runs after fetch and completion, so it narrows what is returned without ever
changing what was completed.
"""

import json
from collections.abc import Callable
from datetime import UTC, datetime, timedelta
from functools import partial
from typing import Any

from common.broker_errors import classify_broker_error, handle_broker_errors
from common.config import config
from common.errors import PartialCompletionError, ValidationError
from common.logging import get_logger
from models.entity import EntityRef, QueueInfo, QueueRef, SubQueue, TopicInfo, TopicRef
from models.message import BrowseResult, NormalizedMessage
from services.service_bus.broker import BrokerClient
from services.service_bus.normalizer import normalize_message
from services.service_bus.retry import list_with_retry

logger = get_logger(__name__)

EPOCH = datetime(1970, 1, 1, tzinfo=UTC)


def _as_utc(value: datetime) -> datetime:
    """Naive datetimes are taken to be UTC."""
    return value.replace(tzinfo=UTC) if value.tzinfo is None else value


def filter_by_enqueued_time(
    messages: list[NormalizedMessage],
    received_from: datetime | None = None,
    received_to: datetime | None = None,
    now: datetime | None = None,
) -> list[NormalizedMessage]:
    """Keep messages enqueued within [received_from, received_to]. Messages without a timestamp are kept."""
    lower = _as_utc(received_from) if received_from else EPOCH
    if received_to:
        upper = _as_utc(received_to)
    else:
        upper = (now or datetime.now(UTC)) + timedelta(hours=config.date_filter_lookahead_hours)

    return [
        m for m in messages if m.enqueued_time_utc is None or lower <= _as_utc(m.enqueued_time_utc) <= upper
    ]


def encode_body(body: Any) -> tuple[str | bytes, str | None]:
    """Strings and bytes are sent as-is; anything else is sent as JSON."""
    if isinstance(body, (str, bytes)):
        return body, None
    return json.dumps(body), "application/json"


class EntityBrowser:
    """Peek, receive, send and list against queues and topic subscriptions."""

    def __init__(self, broker_factory: Callable[[str], BrokerClient] = BrokerClient):
        self.broker_factory = broker_factory

    # ============================================================================
    # VALIDATION
    # ============================================================================

    @staticmethod
    def _validate_connection_string(connection_string: str) -> None:
        if not connection_string or not connection_string.strip():
            raise ValidationError("Connection string is required")

    def _validate_target(self, connection_string: str, entity: EntityRef, needs_subscription: bool) -> None:
        self._validate_connection_string(connection_string)
        if not entity.name or not entity.name.strip():
            raise ValidationError("Missing required parameters: entityName")
        if needs_subscription and isinstance(entity, TopicRef) and not entity.subscription:
            raise ValidationError("Subscription name is required for topics")

    @staticmethod
    def _validate_batch(
        max_messages: int, received_from: datetime | None, received_to: datetime | None
    ) -> None:
        if not 1 <= max_messages <= config.max_batch_size:
            raise ValidationError(f"maxMessages must be between 1 and {config.max_batch_size}")
        if received_from and received_to and _as_utc(received_from) > _as_utc(received_to):
            raise ValidationError("receivedFrom must not be later than receivedTo")

    # ============================================================================
    # LISTINGS
    # ============================================================================

    async def check_connection(self, connection_string: str) -> None:
        """Verify the namespace is reachable by fetching the first page of queues."""
        self._validate_connection_string(connection_string)

        with handle_broker_errors("Connect"):
            async with self.broker_factory(connection_string) as broker:
                async for _ in broker.list_queues():
                    break
        logger.info("Connection check succeeded")

    async def list_queues(self, connection_string: str) -> list[QueueInfo]:
        self._validate_connection_string(connection_string)

        with handle_broker_errors("List queues"):
            async with self.broker_factory(connection_string) as broker:
                queues = await list_with_retry(broker.list_queues, operation_name="List queues")

        logger.info(f"Listed {len(queues)} queues")
        return queues

    async def list_topics(self, connection_string: str) -> list[TopicInfo]:
        """List topics with their subscriptions. Each topic's subscription listing is retried on its own."""
        self._validate_connection_string(connection_string)

        with handle_broker_errors("List topics"):
            async with self.broker_factory(connection_string) as broker:
                topic_names = await list_with_retry(broker.list_topics, operation_name="List topics")

                topics = []
                for topic_name in topic_names:
                    subscriptions = await list_with_retry(
                        partial(broker.list_subscriptions, topic_name),
                        operation_name=f"List subscriptions of {topic_name}",
                    )
                    topics.append(TopicInfo(name=topic_name, subscriptions=subscriptions))

        logger.info(f"Listed {len(topics)} topics")
        return topics

    # ============================================================================
    # PEEK, RECEIVE & SEND
    # ============================================================================

    async def peek(
        self,
        connection_string: str,
        entity: EntityRef,
        sub_queue: SubQueue = SubQueue.MAIN,
        max_messages: int = 10,
        received_from: datetime | None = None,
        received_to: datetime | None = None,
    ) -> BrowseResult:
        """Read up to `max_messages` without locking or completing them."""
        self._validate_target(connection_string, entity, needs_subscription=True)
        self._validate_batch(max_messages, received_from, received_to)

        with handle_broker_errors("Peek"):
            async with self.broker_factory(connection_string) as broker:
                async with broker.create_receiver(entity, sub_queue) as receiver:
                    peeked = await broker.peek(receiver, max_messages)
                    messages = [normalize_message(broker.to_raw_message(m)) for m in peeked]

        visible = filter_by_enqueued_time(messages, received_from, received_to)

        logger.info(f"Peeked {len(messages)} messages from {entity} ({sub_queue.value}), returning {len(visible)}")
        return BrowseResult(messages=visible, has_more=len(peeked) == max_messages, fetched_count=len(peeked))

    async def receive(
        self,
        connection_string: str,
        entity: EntityRef,
        sub_queue: SubQueue = SubQueue.MAIN,
        max_messages: int = 10,
        complete: bool = False,
        wait_ms: int | None = None,
        received_from: datetime | None = None,
        received_to: datetime | None = None,
    ) -> BrowseResult:
        """
        Receive up to `max_messages`, waiting at most `wait_ms`.

        With `complete=True` every fetched message is completed, in fetch order,
        before returning. If completing message k fails, messages k+1..n are left
        locked and PartialCompletionError is raised with the counts and the
        same date-filtered messages a successful call would return.

        Without `complete`, the messages stay locked until the broker's lock
        duration expires and are then redelivered. This is not a peek.
        """
        wait_ms = config.receive_wait_ms if wait_ms is None else wait_ms
        self._validate_target(connection_string, entity, needs_subscription=True)
        self._validate_batch(max_messages, received_from, received_to)
        if wait_ms < 0:
            raise ValidationError("waitMs must not be negative")

        with handle_broker_errors("Receive"):
            async with self.broker_factory(connection_string) as broker:
                async with broker.create_receiver(entity, sub_queue) as receiver:
                    received = await broker.receive(receiver, max_messages, wait_ms)
                    messages = [normalize_message(broker.to_raw_message(m)) for m in received]
                    visible = filter_by_enqueued_time(messages, received_from, received_to)

                    if complete:
                        await self._complete_all(broker, receiver, received, visible)

        action = "received and completed" if complete else "received"
        logger.info(f"{len(messages)} messages {action} from {entity} ({sub_queue.value}), returning {len(visible)}")
        return BrowseResult(messages=visible, has_more=len(received) == max_messages, fetched_count=len(received))

    async def _complete_all(self, broker: BrokerClient, receiver, received: list, visible: list[NormalizedMessage]) -> None:
        completed = 0
        for msg in received:
            try:
                await broker.complete(receiver, msg)
            except Exception as e:
                cause = classify_broker_error(e)
                logger.error(f"Completed {completed}/{len(received)} messages before failure: {cause.message}")
                raise PartialCompletionError(
                    f"Completed {completed} of {len(received)} messages; the rest remain locked "
                    f"and will be redelivered. Cause: {cause.message}",
                    completed_count=completed,
                    total_count=len(received),
                    messages=visible,
                ) from e
            completed += 1

    async def send(
        self,
        connection_string: str,
        entity: EntityRef,
        body: Any,
        properties: dict | None = None,
    ) -> None:
        """Send one message. A topic's subscription, if given, is ignored."""
        self._validate_target(connection_string, entity, needs_subscription=False)
        if body is None or body == "":
            raise ValidationError("Message body cannot be empty")

        payload, content_type = encode_body(body)

        with handle_broker_errors("Send"):
            async with self.broker_factory(connection_string) as broker:
                async with broker.create_sender(entity) as sender:
                    await broker.send(sender, payload, properties or {}, content_type)

        logger.info(f"Sent message to {entity.kind} '{entity.name}'")
