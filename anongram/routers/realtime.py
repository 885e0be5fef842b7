from __future__ import annotations

from fastapi import APIRouter, WebSocket

from anongram.realtime.channel import RealtimeChannel

router = APIRouter(tags=["realtime"])


@router.websocket("/ws")
async def realtime_socket(websocket: WebSocket):
    channel: RealtimeChannel = websocket.app.state.channel
    await channel.serve(websocket)
