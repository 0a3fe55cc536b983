import asyncio
import json
from typing import Any, Optional, Set

from fastapi import WebSocket
from fastapi.encoders import jsonable_encoder
from loguru import logger

FANOUT_CHANNEL = "events:inventory"


class ConnectionManager:
    """Connected dashboard sockets. Delivery is best-effort and at-most-once."""

    def __init__(self):
        self.active: Set[WebSocket] = set()

    async def connect(self, websocket: WebSocket):
        await websocket.accept()
        self.active.add(websocket)
        logger.info(f"WebSocket client connected ({len(self.active)} active)")

    def disconnect(self, websocket: WebSocket):
        if websocket not in self.active:
            return
        self.active.discard(websocket)
        logger.info(f"WebSocket client disconnected ({len(self.active)} active)")

    async def broadcast(self, message: str) -> int:
        delivered = 0
        for websocket in list(self.active):
            try:
                await websocket.send_text(message)
                delivered += 1
            except Exception as e:
                logger.warning(f"Dropping WebSocket client after send failure: {str(e)}")
                self.disconnect(websocket)
        return delivered


manager = ConnectionManager()


async def publish_event(event_type: str, data: Any, redis: Optional[Any] = None) -> int:
    """
    Sends {type, data} to every worker's clients. Never raises.

    With Redis the message goes to FANOUT_CHANNEL and each worker's relay
    delivers it to its own sockets, this one included. Without Redis, or
    when the publish fails, only local sockets get it.
    """
    message = json.dumps({"type": event_type, "data": jsonable_encoder(data)})

    if redis is not None:
        try:
            return await redis.publish(FANOUT_CHANNEL, message)
        except Exception as e:
            logger.warning(f"Failed to publish {event_type} to Redis, delivering locally: {str(e)}")

    return await manager.broadcast(message)


async def relay_events(redis, connections: ConnectionManager = manager, retry_delay: float = 1.0):
    """
    Подписка на FANOUT_CHANNEL: пересылает сообщения подключенным клиентам.

    Runs until cancelled and resubscribes after connection errors.
    """
    while True:
        pubsub = redis.pubsub()
        try:
            await pubsub.subscribe(FANOUT_CHANNEL)
            logger.info(f"Subscribed to {FANOUT_CHANNEL}")
            async for message in pubsub.listen():
                if message.get("type") != "message":
                    continue
                data = message["data"]
                if isinstance(data, bytes):
                    data = data.decode()
                await connections.broadcast(data)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.error(f"Fanout relay lost its Redis subscription: {str(e)}")
        finally:
            await pubsub.aclose()

        await asyncio.sleep(retry_delay)
