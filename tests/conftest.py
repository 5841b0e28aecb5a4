"""In-memory stand-in for a Service Bus namespace, shaped like BrokerClient."""

import itertools
from dataclasses import dataclass, field
from datetime import UTC, datetime

import pytest

from models.entity import QueueInfo, QueueRef, SubQueue, SubscriptionInfo
from models.message import RawMessage


@dataclass
class FakeMessage:
    body: bytes | str
    message_id: str = ""
    application_properties: dict = field(default_factory=dict)
    enqueued_time_utc: datetime | None = None
    sequence_number: int = 0


@dataclass
class FakeEntity:
    """One queue or subscription: a main and a dead-letter sub-queue."""

    main: list[FakeMessage] = field(default_factory=list)
    dead_letter: list[FakeMessage] = field(default_factory=list)
    locked: list[FakeMessage] = field(default_factory=list)

    def sub_queue(self, sub_queue: SubQueue) -> list[FakeMessage]:
        return self.dead_letter if sub_queue == SubQueue.DEAD_LETTER else self.main


class FakeHandle:
    def __init__(self, entity: FakeEntity, sub_queue: SubQueue | None = None, target=None):
        self.entity = entity
        self.sub_queue = sub_queue
        self.target = target
        self.closed = False

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info):
        self.closed = True


class FakeNamespace:
    """Holds the broker state shared by every FakeBroker opened against it."""

    def __init__(self):
        self.queues: dict[str, FakeEntity] = {}
        self.topics: dict[str, dict[str, FakeEntity]] = {}
        self.brokers: list["FakeBroker"] = []
        self.handles: list[FakeHandle] = []
        self.completed: list[FakeMessage] = []
        self.fail_complete_at: int | None = None
        self._sequence = itertools.count(1)

    def add_queue(self, name: str) -> FakeEntity:
        return self.queues.setdefault(name, FakeEntity())

    def add_subscription(self, topic: str, subscription: str) -> FakeEntity:
        return self.topics.setdefault(topic, {}).setdefault(subscription, FakeEntity())

    def make_message(self, body, enqueued_time_utc: datetime | None = None, **properties) -> FakeMessage:
        seq = next(self._sequence)
        return FakeMessage(
            body=body,
            message_id=f"msg-{seq}",
            application_properties=properties,
            enqueued_time_utc=enqueued_time_utc or datetime.now(UTC),
            sequence_number=seq,
        )

    def expire_locks(self) -> None:
        for entity in itertools.chain(self.queues.values(), *(subs.values() for subs in self.topics.values())):
            entity.main[:0] = entity.locked
            entity.locked.clear()

    def factory(self, connection_string: str) -> "FakeBroker":
        broker = FakeBroker(self, connection_string)
        self.brokers.append(broker)
        return broker


class FakeBroker:
    def __init__(self, namespace: FakeNamespace, connection_string: str):
        self.namespace = namespace
        self.connection_string = connection_string
        self.closed = False

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info):
        self.closed = True

    def _entity(self, entity) -> FakeEntity:
        if isinstance(entity, QueueRef):
            return self.namespace.queues[entity.name]
        return self.namespace.topics[entity.name][entity.subscription]

    async def list_queues(self):
        for name, entity in self.namespace.queues.items():
            yield QueueInfo(
                name=name,
                active_message_count=len(entity.main) + len(entity.locked),
                dead_letter_message_count=len(entity.dead_letter),
                scheduled_message_count=0,
            )

    async def list_topics(self):
        for name in self.namespace.topics:
            yield name

    async def list_subscriptions(self, topic_name: str):
        for name, entity in self.namespace.topics[topic_name].items():
            yield SubscriptionInfo(
                name=name,
                active_message_count=len(entity.main) + len(entity.locked),
                dead_letter_message_count=len(entity.dead_letter),
            )

    def create_receiver(self, entity, sub_queue: SubQueue) -> FakeHandle:
        handle = FakeHandle(self._entity(entity), sub_queue, entity)
        self.namespace.handles.append(handle)
        return handle

    def create_sender(self, entity) -> FakeHandle:
        handle = FakeHandle(None, None, entity)
        self.namespace.handles.append(handle)
        return handle

    async def peek(self, receiver: FakeHandle, count: int) -> list[FakeMessage]:
        if receiver.sub_queue == SubQueue.DEAD_LETTER:
            return list(receiver.entity.dead_letter[:count])
        return list((receiver.entity.locked + receiver.entity.main)[:count])

    async def receive(self, receiver: FakeHandle, count: int, wait_ms: int) -> list[FakeMessage]:
        source = receiver.entity.sub_queue(receiver.sub_queue)
        batch = source[:count]
        del source[:count]
        receiver.entity.locked.extend(batch)
        return batch

    async def complete(self, receiver: FakeHandle, message: FakeMessage) -> None:
        if self.namespace.fail_complete_at is not None and len(self.namespace.completed) == self.namespace.fail_complete_at:
            raise RuntimeError("lock lost")
        receiver.entity.locked.remove(message)
        self.namespace.completed.append(message)

    async def send(self, sender: FakeHandle, body, properties=None, content_type=None) -> None:
        target = sender.target
        if isinstance(target, QueueRef):
            self.namespace.queues[target.name].main.append(self.namespace.make_message(body, **(properties or {})))
            return
        for subscription in self.namespace.topics[target.name].values():
            subscription.main.append(self.namespace.make_message(body, **(properties or {})))

    @staticmethod
    def to_raw_message(message: FakeMessage) -> RawMessage:
        body = message.body.encode("utf-8") if isinstance(message.body, str) else message.body
        return RawMessage(
            message_id=message.message_id,
            body=body,
            application_properties=message.application_properties,
            enqueued_time_utc=message.enqueued_time_utc,
            sequence_number=message.sequence_number,
        )


@pytest.fixture
def namespace() -> FakeNamespace:
    return FakeNamespace()
