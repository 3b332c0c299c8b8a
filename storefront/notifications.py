"""
Notification bridge — named events pushed to real-time listeners.

The bridge is owned by the application (``app.state.notifier``) and bound
to a channel once during startup.  Any handler can emit through it:

    @router.post("/")
    async def place_order(notifier: NotificationBridge = Depends(get_notifier)):
        ...
        notifier.emit("order.created", {"id": order_id})

Emission before a channel is bound is logged and dropped.
"""

from __future__ import annotations

import logging
from typing import Any, Optional, Protocol

from fastapi import FastAPI, Request

logger = logging.getLogger(__name__)


class EventChannel(Protocol):
    """Anything that can broadcast a named event to its listeners."""

    def emit(self, name: str, payload: Any) -> None:
        ...


class NotificationBridge:
    """Holds at most one event channel; the last ``bind`` wins."""

    def __init__(self, channel: Optional[EventChannel] = None):
        self._channel = channel

    def bind(self, channel: EventChannel) -> None:
        if self._channel is not None and self._channel is not channel:
            logger.warning("Replacing bound notification channel %r", self._channel)
        self._channel = channel

    @property
    def channel(self) -> Optional[EventChannel]:
        return self._channel

    @property
    def is_bound(self) -> bool:
        return self._channel is not None

    def emit(self, name: str, payload: Any = None) -> None:
        """Broadcast ``name`` with ``payload``; a no-op when unbound."""
        if self._channel is None:
            logger.error("Notification channel is not initialized. Dropped event %r", name)
            return
        self._channel.emit(name, payload)


def bind_notification_channel(app: FastAPI, channel: EventChannel) -> NotificationBridge:
    """Bind ``channel`` to the app's bridge and expose it on ``app.state``."""
    bridge = getattr(app.state, "notifier", None)
    if bridge is None:
        bridge = NotificationBridge()
        app.state.notifier = bridge
    bridge.bind(channel)
    app.state.event_channel = channel
    return bridge


def get_notifier(request: Request) -> NotificationBridge:
    """FastAPI dependency returning the app-owned bridge."""
    return request.app.state.notifier
