"""
WebSocket event channel for the Storefront API.
Tracks connected listeners and broadcasts named events in real time.
"""

import asyncio
import json
import logging
from typing import Any, List, Optional, Set

from fastapi import WebSocket

logger = logging.getLogger(__name__)


class ConnectionManager:
    """Tracks connected WebSocket clients and broadcasts events."""

    def __init__(self):
        self.active_connections: List[WebSocket] = []
        self._lock = asyncio.Lock()
        self._pending: Set[asyncio.Task] = set()
        self._loop: Optional[asyncio.AbstractEventLoop] = None

    async def connect(self, websocket: WebSocket):
        """Accept a new WebSocket connection and register it."""
        await websocket.accept()
        self._loop = asyncio.get_running_loop()
        async with self._lock:
            self.active_connections.append(websocket)
        logger.info(
            "WebSocket client connected. Total clients: %d",
            len(self.active_connections),
        )

    async def disconnect(self, websocket: WebSocket):
        """Remove a disconnected client."""
        async with self._lock:
            if websocket in self.active_connections:
                self.active_connections.remove(websocket)
        logger.info(
            "WebSocket client disconnected. Total clients: %d",
            len(self.active_connections),
        )

    async def broadcast(self, name: str, payload: Any = None) -> int:
        """Send ``{"event": name, "data": payload}`` to every connected client.

        Clients that fail to receive are dropped.  Returns the number of
        clients the event was delivered to.
        """
        message = json.dumps({"event": name, "data": payload}, default=str)
        stale: List[WebSocket] = []

        async with self._lock:
            connections = list(self.active_connections)

        delivered = 0
        for ws in connections:
            try:
                await ws.send_text(message)
                delivered += 1
            except Exception:
                stale.append(ws)

        if stale:
            async with self._lock:
                for ws in stale:
                    if ws in self.active_connections:
                        self.active_connections.remove(ws)
            logger.info("Removed %d stale WebSocket connections", len(stale))
        return delivered

    def emit(self, name: str, payload: Any = None) -> None:
        """Fire-and-forget ``broadcast`` usable from sync and async code.

        Sync handlers run in a worker thread, so the broadcast is handed
        to the loop that owns the sockets.
        """
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            loop = None

        if loop is not None:
            task = loop.create_task(self.broadcast(name, payload))
            self._pending.add(task)
            task.add_done_callback(self._pending.discard)
        elif self._loop is not None and self._loop.is_running():
            asyncio.run_coroutine_threadsafe(self.broadcast(name, payload), self._loop)
        else:
            logger.debug("No running event loop; %r not broadcast to %d clients",
                         name, self.client_count)

    @property
    def client_count(self) -> int:
        return len(self.active_connections)
