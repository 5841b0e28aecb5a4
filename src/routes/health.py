"""Health check and service info endpoints."""

from fastapi import APIRouter, Request

from common.config import config
from common.logging import get_logger

logger = get_logger(__name__)
router = APIRouter(tags=["health"])


@router.get("/")
async def root():
    """Root endpoint with basic info."""
    return {
        "service": "Service Bus Explorer API",
        "version": "0.1.0",
        "status": "running",
        "description": "Browse Azure Service Bus queues, topics and messages",
        "endpoints": {
            "health": "/health",
            "docs": "/docs",
            "connections": "/api/connections",
            "queues": "/api/servicebus/queues",
            "topics": "/api/servicebus/topics",
            "peek": "/api/servicebus/peek",
            "receive": "/api/servicebus/receive",
            "send": "/api/servicebus/send",
        },
        "example_request": {
            "connectionString": "Endpoint=sb://<namespace>.servicebus.windows.net/;SharedAccessKeyName=...;SharedAccessKey=...",
            "entityName": "orders",
            "entityType": "queue",
            "maxMessages": 10,
        },
    }


@router.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "service": "servicebus-explorer"}


@router.get("/health/debug")
def debug_check(request: Request):
    """Debug endpoint to verify configuration and the local profile store."""
    checks = {
        "status": "checking",
        "config": {
            "transport": "AmqpOverWebsocket (443)" if config.service_bus_use_websocket else "Amqp (5671)",
            "listing_max_retries": config.listing_max_retries,
            "receive_wait_ms": config.receive_wait_ms,
        },
        "connection_store": {},
    }

    try:
        profiles = request.app.state.connection_store.list()
        checks["connection_store"] = {"available": True, "profiles": len(profiles)}
    except Exception as e:
        checks["connection_store"] = {"available": False, "error": f"{type(e).__name__}: {e}"}

    checks["status"] = "healthy" if checks["connection_store"]["available"] else "unhealthy"

    logger.info(f"Debug check result: {checks}")
    return checks
