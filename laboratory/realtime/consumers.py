import json

from channels.generic.websocket import AsyncWebsocketConsumer

from laboratory.services.dashboard import UPDATES_GROUP


class UpdatesConsumer(AsyncWebsocketConsumer):
    """Pushes dashboard refresh events to connected lab screens."""
    GROUP = UPDATES_GROUP

    async def connect(self):
        await self.channel_layer.group_add(self.GROUP, self.channel_name)
        await self.accept()
        await self.send(json.dumps({"type": "welcome", "message": "connected"}))

    async def disconnect(self, close_code):
        await self.channel_layer.group_discard(self.GROUP, self.channel_name)

    async def broadcast_refresh(self, event):
        # event: {"type": "broadcast.refresh", "version": int, "ts": "...", "keys": ["dashboard:<id>", ...]}
        await self.send(json.dumps(event))
