"""Service Bus browsing endpoints: connect, list, peek, receive and send."""

from fastapi import APIRouter, Request

from common.logging import get_logger
from models.base import ApiModel
from models.entity import QueueInfo, SubQueue, TopicInfo
from models.message import BrowseResult
from models.requests import ConnectionRequest, PeekRequest, ReceiveRequest, SendRequest
from services.service_bus.browser import EntityBrowser

logger = get_logger(__name__)
router = APIRouter(prefix="/api/servicebus", tags=["service-bus"])


class QueuesResponse(ApiModel):
    queues: list[QueueInfo]


class TopicsResponse(ApiModel):
    topics: list[TopicInfo]


class SuccessResponse(ApiModel):
    success: bool = True


def get_browser(request: Request) -> EntityBrowser:
    return request.app.state.browser


@router.post("/connect", response_model=SuccessResponse)
async def connect(body: ConnectionRequest, request: Request):
    """Check that the namespace behind a connection string is reachable."""
    await get_browser(request).check_connection(body.connection_string)
    return SuccessResponse()


@router.post("/queues", response_model=QueuesResponse)
async def list_queues(body: ConnectionRequest, request: Request):
    """List queues with their runtime message counts."""
    queues = await get_browser(request).list_queues(body.connection_string)
    return QueuesResponse(queues=queues)


@router.post("/topics", response_model=TopicsResponse)
async def list_topics(body: ConnectionRequest, request: Request):
    """List topics, each with its subscriptions and their message counts."""
    topics = await get_browser(request).list_topics(body.connection_string)
    return TopicsResponse(topics=topics)


@router.post("/peek", response_model=BrowseResult)
async def peek_messages(body: PeekRequest, request: Request):
    """
    Peek at messages without consuming them.

    Example request:
        ```json
        {
            "connectionString": "Endpoint=sb://...",
            "entityName": "events",
            "entityType": "topic",
            "subscription": "sub1",
            "maxMessages": 10,
            "subQueue": "deadLetter"
        }
        ```
    """
    return await get_browser(request).peek(
        body.connection_string,
        body.to_entity(),
        sub_queue=body.sub_queue or SubQueue.MAIN,
        max_messages=body.max_messages,
        received_from=body.received_from,
        received_to=body.received_to,
    )


@router.post("/receive", response_model=BrowseResult)
async def receive_messages(body: ReceiveRequest, request: Request):
    """
    Receive messages, optionally completing them.

    Messages received without `completeMessages` stay locked until the lock
    expires and are then redelivered.
    """
    return await get_browser(request).receive(
        body.connection_string,
        body.to_entity(),
        sub_queue=body.sub_queue or SubQueue.MAIN,
        max_messages=body.max_messages,
        complete=body.complete_messages,
        wait_ms=body.wait_ms,
        received_from=body.received_from,
        received_to=body.received_to,
    )


@router.post("/send", response_model=SuccessResponse)
async def send_message(body: SendRequest, request: Request):
    """Send a message to a queue or topic. JSON values are sent as application/json."""
    await get_browser(request).send(
        body.connection_string,
        body.to_entity(),
        body.message_body,
        body.properties,
    )
    return SuccessResponse()
