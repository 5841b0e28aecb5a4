"""HTTP request bodies for the Service Bus endpoints."""

from datetime import datetime
from typing import Any

from pydantic import Field

from common.config import config
from common.errors import ValidationError
from models.base import ApiModel
from models.entity import EntityRef, EntityType, QueueRef, SubQueue, TopicRef


class ConnectionRequest(ApiModel):
    connection_string: str = ""


class EntityRequest(ConnectionRequest):
    entity_name: str = ""
    entity_type: EntityType | None = None
    subscription: str | None = None

    def to_entity(self) -> EntityRef:
        """Build the entity reference. Emptiness checks are left to the browser."""
        if self.entity_type is None:
            raise ValidationError("Missing required parameters: entityType")
        if self.entity_type == EntityType.QUEUE:
            return QueueRef(name=self.entity_name)
        return TopicRef(name=self.entity_name, subscription=self.subscription)


class PeekRequest(EntityRequest):
    max_messages: int = Field(default_factory=lambda: config.default_max_messages)
    sub_queue: SubQueue | None = None
    received_from: datetime | None = Field(None, description="Only return messages enqueued at or after this time")
    received_to: datetime | None = Field(None, description="Only return messages enqueued at or before this time")


class ReceiveRequest(PeekRequest):
    complete_messages: bool = False
    wait_ms: int = Field(default_factory=lambda: config.receive_wait_ms)


class SendRequest(EntityRequest):
    message_body: Any = None
    properties: dict[str, Any] | None = None
