"""Realtime infrastructure (WebSocket hub, event frames, inbound channel).

Presence, typing and chat events share one in-process hub; services publish to
it after their state changes and the channel feeds client frames back into the
services.
"""
