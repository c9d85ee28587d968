"""
WebSocket Connection Manager
Handles persistent shell connections for real-time updates.

Live-query callbacks run on background threads; they never touch a socket
directly. Each connection gets an outbox (asyncio.Queue) that threads feed
through loop.call_soon_threadsafe, and a pump task drains it onto the socket.
"""
import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, Callable, Dict

from fastapi import WebSocket

from utils.mongo_helpers import sanitize_mongo_doc

logger = logging.getLogger(__name__)


class ConnectionManager:
    """
    Manages WebSocket connections and their outboxes
    """

    def __init__(self):
        # Active connections by connection_id
        self.active_connections: Dict[str, WebSocket] = {}
        self.outboxes: Dict[str, asyncio.Queue] = {}

    async def connect(self, websocket: WebSocket, connection_id: str):
        """
        Accept new WebSocket connection
        """
        await websocket.accept()
        self.active_connections[connection_id] = websocket
        self.outboxes[connection_id] = asyncio.Queue()

        await websocket.send_json({
            "type": "CONNECTED",
            "connection_id": connection_id,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        })

    def disconnect(self, connection_id: str):
        """
        Remove connection and its outbox
        """
        self.active_connections.pop(connection_id, None)
        self.outboxes.pop(connection_id, None)

    def publisher(self, connection_id: str, loop: asyncio.AbstractEventLoop) -> Callable[[str, Dict[str, Any]], None]:
        """
        Thread-safe publish function for one connection.

        Messages published after disconnect are dropped.
        """
        def publish(kind: str, payload: Dict[str, Any]) -> None:
            outbox = self.outboxes.get(connection_id)
            if outbox is None or loop.is_closed():
                return
            message = {"type": kind, "payload": sanitize_mongo_doc(payload)}
            loop.call_soon_threadsafe(outbox.put_nowait, message)

        return publish

    async def pump(self, connection_id: str):
        """
        Drain a connection's outbox onto its socket until cancelled
        """
        outbox = self.outboxes[connection_id]
        websocket = self.active_connections[connection_id]
        while True:
            message = await outbox.get()
            message["timestamp"] = datetime.now(timezone.utc).isoformat()
            await websocket.send_json(message)

    async def stop_pump(self, task: asyncio.Task):
        """
        Cancel a pump task and wait for it.

        A pump that already died on a failed send has its exception
        retrieved here; the socket is gone either way.
        """
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        except Exception as e:
            logger.info(f"Shell pump ended after a failed send: {e}")

    def get_connection_count(self) -> int:
        """
        Get number of active connections
        """
        return len(self.active_connections)


# Global singleton instance
manager = ConnectionManager()
