"""Saved connection-string profiles."""

from datetime import datetime

from pydantic import ConfigDict, Field

from models.base import ApiModel


class ConnectionProfile(ApiModel):
    """A named Service Bus connection string stored in the local database."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    connection_string: str
    created_at: datetime
    updated_at: datetime


class ConnectionCreate(ApiModel):
    name: str = Field("", description="Unique profile name")
    connection_string: str = Field("", description="Service Bus connection string")


class ConnectionUpdate(ApiModel):
    name: str = Field("", description="New profile name")
    connection_string: str | None = Field(None, description="New connection string; omit to keep the stored one")
