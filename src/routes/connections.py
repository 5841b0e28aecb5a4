"""Saved connection profile endpoints."""

from fastapi import APIRouter, Request

from common.errors import NotFoundError
from common.logging import get_logger
from models.base import ApiModel
from models.connection import ConnectionCreate, ConnectionProfile, ConnectionUpdate
from services.connections.store import ConnectionStore

logger = get_logger(__name__)
router = APIRouter(prefix="/api/connections", tags=["connections"])


class ConnectionResponse(ApiModel):
    connection: ConnectionProfile


class ConnectionsResponse(ApiModel):
    connections: list[ConnectionProfile]


def get_store(request: Request) -> ConnectionStore:
    return request.app.state.connection_store


@router.get("", response_model=ConnectionsResponse)
def list_connections(request: Request):
    return ConnectionsResponse(connections=get_store(request).list())


@router.post("", response_model=ConnectionResponse, status_code=201)
def create_connection(body: ConnectionCreate, request: Request):
    connection = get_store(request).create(body.name, body.connection_string)
    return ConnectionResponse(connection=connection)


@router.get("/{connection_id}", response_model=ConnectionResponse)
def get_connection(connection_id: int, request: Request):
    connection = get_store(request).get(connection_id)
    if connection is None:
        raise NotFoundError("Connection not found")
    return ConnectionResponse(connection=connection)


@router.put("/{connection_id}", response_model=ConnectionResponse)
def update_connection(connection_id: int, body: ConnectionUpdate, request: Request):
    """Rename a profile; the connection string is only replaced when a new one is given."""
    connection = get_store(request).update(connection_id, body.name, body.connection_string)
    return ConnectionResponse(connection=connection)


@router.delete("/{connection_id}")
def delete_connection(connection_id: int, request: Request):
    if not get_store(request).delete(connection_id):
        raise NotFoundError("Connection not found")
    return {"success": True}
