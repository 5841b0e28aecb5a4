"""
Per-call Service Bus handle.

BrokerClient bundles the data-plane client (peek, receive, complete, send)
and the administration client (listings with runtime counters) for one
connection string. Each explorer operation opens its own BrokerClient with
`async with` and closes it before returning; handles are never shared.
"""

from collections.abc import AsyncIterator

from azure.servicebus import ServiceBusMessage, ServiceBusReceivedMessage, ServiceBusSubQueue, TransportType
from azure.servicebus.aio import ServiceBusClient as AzureServiceBusClient
from azure.servicebus.aio import ServiceBusReceiver, ServiceBusSender
from azure.servicebus.aio.management import ServiceBusAdministrationClient
from azure.servicebus.amqp import AmqpMessageBodyType

from common.config import config
from common.errors import ValidationError
from common.logging import get_logger
from models.entity import EntityRef, QueueInfo, QueueRef, SubQueue, SubscriptionInfo
from models.message import RawMessage

logger = get_logger(__name__)


class BrokerClient:
    """Service Bus capability for a single connection string. Use as an async context manager."""

    def __init__(self, connection_string: str, use_websocket: bool | None = None):
        use_websocket = config.service_bus_use_websocket if use_websocket is None else use_websocket

        client_kwargs = {}
        if use_websocket:
            client_kwargs["transport_type"] = TransportType.AmqpOverWebsocket
            logger.debug("Using WebSocket transport (VPN-compatible, port 443)")
        else:
            logger.debug("Using AMQP transport (standard, port 5671)")

        # The admin client opens no transport until first use; build it before the data-plane client
        try:
            self.admin_client = ServiceBusAdministrationClient.from_connection_string(connection_string)
            self.client = AzureServiceBusClient.from_connection_string(connection_string, **client_kwargs)
        except ValueError as e:
            raise ValidationError(f"Invalid connection string: {e}") from e

    async def __aenter__(self) -> "BrokerClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    async def close(self) -> None:
        try:
            await self.client.close()
        finally:
            await self.admin_client.close()

    # ============================================================================
    # LISTINGS (fresh async iterables, one per call)
    # ============================================================================

    async def list_queues(self) -> AsyncIterator[QueueInfo]:
        async for props in self.admin_client.list_queues_runtime_properties():
            yield QueueInfo(
                name=props.name,
                active_message_count=props.active_message_count,
                dead_letter_message_count=props.dead_letter_message_count,
                scheduled_message_count=props.scheduled_message_count,
            )

    async def list_topics(self) -> AsyncIterator[str]:
        async for props in self.admin_client.list_topics():
            yield props.name

    async def list_subscriptions(self, topic_name: str) -> AsyncIterator[SubscriptionInfo]:
        async for props in self.admin_client.list_subscriptions_runtime_properties(topic_name):
            yield SubscriptionInfo(
                name=props.name,
                active_message_count=props.active_message_count,
                dead_letter_message_count=props.dead_letter_message_count,
            )

    # ============================================================================
    # RECEIVE & SEND
    # ============================================================================

    def create_receiver(self, entity: EntityRef, sub_queue: SubQueue) -> ServiceBusReceiver:
        receiver_kwargs = {}
        if sub_queue == SubQueue.DEAD_LETTER:
            receiver_kwargs["sub_queue"] = ServiceBusSubQueue.DEAD_LETTER

        if isinstance(entity, QueueRef):
            return self.client.get_queue_receiver(queue_name=entity.name, **receiver_kwargs)
        return self.client.get_subscription_receiver(
            topic_name=entity.name, subscription_name=entity.subscription, **receiver_kwargs
        )

    def create_sender(self, entity: EntityRef) -> ServiceBusSender:
        # Topic sends always target the topic itself, never a subscription
        if isinstance(entity, QueueRef):
            return self.client.get_queue_sender(queue_name=entity.name)
        return self.client.get_topic_sender(topic_name=entity.name)

    async def peek(self, receiver: ServiceBusReceiver, count: int) -> list[ServiceBusReceivedMessage]:
        return await receiver.peek_messages(max_message_count=count)

    async def receive(self, receiver: ServiceBusReceiver, count: int, wait_ms: int) -> list[ServiceBusReceivedMessage]:
        return await receiver.receive_messages(max_message_count=count, max_wait_time=wait_ms / 1000)

    async def complete(self, receiver: ServiceBusReceiver, message: ServiceBusReceivedMessage) -> None:
        await receiver.complete_message(message)

    async def send(
        self,
        sender: ServiceBusSender,
        body: str | bytes,
        properties: dict | None = None,
        content_type: str | None = None,
    ) -> None:
        msg = ServiceBusMessage(body, application_properties=properties or None, content_type=content_type)
        await sender.send_messages(msg)

    @staticmethod
    def to_raw_message(message: ServiceBusReceivedMessage) -> RawMessage:
        """Extract the raw body and metadata. Data bodies arrive as a generator of byte chunks."""
        body = message.body
        if message.body_type == AmqpMessageBodyType.DATA:
            body = b"".join(body)
        elif message.body_type == AmqpMessageBodyType.SEQUENCE:
            body = list(body)

        return RawMessage(
            message_id=message.message_id,
            body=body,
            application_properties=message.application_properties or {},
            enqueued_time_utc=message.enqueued_time_utc,
            sequence_number=message.sequence_number,
        )
