"""Row-change notifications pushed to WebSocket clients.

Clients subscribe to a group per table and re-fetch whatever they display when
a ``change`` message arrives. Delivery is best-effort: at most once, in no
particular order, and never carries the row itself.

Message sent to clients::

    {"type": "change", "table": "study_halls", "event": "UPDATE", "id": 7, ...}
"""

import logging

from asgiref.sync import async_to_sync
from channels.generic.websocket import AsyncJsonWebsocketConsumer
from channels.layers import get_channel_layer
from django.db import transaction

logger = logging.getLogger(__name__)

INSERT = "INSERT"
UPDATE = "UPDATE"
DELETE = "DELETE"

# Close code for unauthenticated connections.
CLOSE_UNAUTHENTICATED = 4401


def send_to_group(group, message):
    layer = get_channel_layer()
    if layer is None:
        return
    async_to_sync(layer.group_send)(group, {"type": "change.message", "message": message})


def broadcast_change(table, event, pk, **extra):
    """Notify subscribers of *table* once the current transaction commits."""
    message = {"type": "change", "table": table, "event": event, "id": pk}
    message.update(extra)
    transaction.on_commit(lambda: send_to_group(table, message))


def post_save_event(created):
    return INSERT if created else UPDATE


class ChangeFeedConsumer(AsyncJsonWebsocketConsumer):
    """Join the group named by ``group_name`` and relay change messages.

    Lifecycle:
        1. connect() -> reject anonymous users, join group
        2. receive_json() -> answer {"type": "ping"} with {"type": "pong"}
        3. change_message() -> forward the change to the client
        4. disconnect() -> leave group
    """

    group_name = None

    async def connect(self):
        user = self.scope.get("user")
        if user is None or not user.is_authenticated:
            logger.warning("WS connect rejected for %s: not authenticated", self.group_name)
            await self.close(code=CLOSE_UNAUTHENTICATED)
            return

        await self.channel_layer.group_add(self.group_name, self.channel_name)
        await self.accept()
        logger.info("WS connected: user %s group %s", user.pk, self.group_name)

    async def disconnect(self, close_code):
        await self.channel_layer.group_discard(self.group_name, self.channel_name)
        logger.info("WS disconnected: group %s code %s", self.group_name, close_code)

    async def receive_json(self, content, **kwargs):
        if isinstance(content, dict) and content.get("type") == "ping":
            await self.send_json({"type": "pong"})
        else:
            logger.debug("WS ignored message on %s", self.group_name)

    async def change_message(self, event):
        await self.send_json(event["message"])
