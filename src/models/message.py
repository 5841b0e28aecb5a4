"""Message models: what the broker hands over and what the explorer returns."""

import base64
from datetime import datetime
from typing import Annotated, Any, Literal

from pydantic import BaseModel, Field, field_serializer

from models.base import ApiModel


class RawMessage(BaseModel):
    """A peeked or received message as delivered by the broker, before any decoding."""

    message_id: str | None = None
    body: Any = None
    application_properties: dict = Field(default_factory=dict)
    enqueued_time_utc: datetime | None = None
    sequence_number: int | None = None


# Message body variants


class TextBody(ApiModel):
    kind: Literal["text"] = "text"
    value: str


class StructuredBody(ApiModel):
    kind: Literal["structured"] = "structured"
    value: Any


class OpaqueBody(ApiModel):
    """Bytes that could not be decoded. Serialized as base64 in JSON."""

    kind: Literal["opaque"] = "opaque"
    value: bytes

    @field_serializer("value", when_used="json")
    def _serialize_value(self, value: bytes) -> str:
        return base64.b64encode(value).decode("ascii")


MessageBody = Annotated[TextBody | StructuredBody | OpaqueBody, Field(discriminator="kind")]


class NormalizedMessage(ApiModel):
    """The stable, display-ready shape of a message."""

    message_id: str | None = None
    body: MessageBody
    properties: dict = Field(default_factory=dict)
    enqueued_time_utc: datetime | None = None
    sequence_number: int | None = None

    @field_serializer("sequence_number", when_used="json")
    def _serialize_sequence_number(self, value: int | None) -> str | None:
        # 64-bit on the broker, wider than a JSON number can carry exactly
        return None if value is None else str(value)


class BrowseResult(ApiModel):
    """One fetched batch. `has_more` is a heuristic (full batch returned), not a broker cursor."""

    messages: list[NormalizedMessage] = Field(default_factory=list)
    has_more: bool = False
    fetched_count: int = Field(0, description="Messages fetched from the broker, before date filtering")
