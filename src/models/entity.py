"""Messaging entity references and runtime info."""

from enum import Enum
from typing import Annotated, Literal

from pydantic import Field

from models.base import ApiModel


class EntityType(str, Enum):
    QUEUE = "queue"
    TOPIC = "topic"


class SubQueue(str, Enum):
    """Which physical sub-queue a receiver attaches to."""

    MAIN = "main"
    DEAD_LETTER = "deadLetter"


class QueueRef(ApiModel):
    kind: Literal["queue"] = "queue"
    name: str

    def __str__(self) -> str:
        return f"queue '{self.name}'"


class TopicRef(ApiModel):
    """A topic, optionally narrowed to one subscription (required for peek/receive, ignored for send)."""

    kind: Literal["topic"] = "topic"
    name: str
    subscription: str | None = None

    def __str__(self) -> str:
        if self.subscription:
            return f"topic '{self.name}' subscription '{self.subscription}'"
        return f"topic '{self.name}'"


EntityRef = Annotated[QueueRef | TopicRef, Field(discriminator="kind")]


class QueueInfo(ApiModel):
    name: str
    active_message_count: int | None = None
    dead_letter_message_count: int | None = None
    scheduled_message_count: int | None = None


class SubscriptionInfo(ApiModel):
    name: str
    active_message_count: int | None = None
    dead_letter_message_count: int | None = None
    scheduled_message_count: int | None = None


class TopicInfo(ApiModel):
    name: str
    subscriptions: list[SubscriptionInfo] = Field(default_factory=list)
