"""
RealtimeChannel driven directly on an event loop with fake sockets.
"""
from __future__ import annotations

import asyncio
import json
import time

from anongram.realtime.channel import RealtimeChannel
from anongram.services.container import build_services


class FakeSocket:
    def __init__(self) -> None:
        self.sent: list[dict] = []

    async def accept(self) -> None:
        return None

    async def send_json(self, data) -> None:
        self.sent.append(data)


def _frame(**data) -> str:
    return json.dumps(data)


async def _join(channel, user_id):
    sock = FakeSocket()
    conn_id = await channel.hub.connect(sock)
    await channel.handle(conn_id, _frame(type="user:join", userId=user_id))
    assert sock.sent[-1]["type"] == "join:ok"
    return conn_id, sock


def test_close_overlapping_a_new_tab_keeps_user_online(store, settings, mailer, monkeypatch):
    services = build_services(settings, store, mailer=mailer)
    channel = RealtimeChannel(services)
    user_id = store.get_user_by_email("user1@test.com").id
    original_update = store.update_user

    def slow_offline_write(uid, **values):
        if values.get("is_online") is False:
            time.sleep(0.2)
        return original_update(uid, **values)

    async def scenario():
        tab_a, _ = await _join(channel, user_id)
        monkeypatch.setattr(store, "update_user", slow_offline_write)
        closing = asyncio.create_task(channel.close(tab_a))
        await asyncio.sleep(0.05)
        await _join(channel, user_id)
        await closing

    asyncio.run(scenario())

    assert channel.hub.online_user_ids() == [user_id]
    assert store.get_user(user_id).is_online is True


def test_second_tab_does_not_toggle_presence(store, settings, mailer):
    services = build_services(settings, store, mailer=mailer)
    channel = RealtimeChannel(services)
    user_id = store.get_user_by_email("user2@test.com").id

    async def scenario():
        observer_id = store.get_user_by_email("user3@test.com").id
        _, observer = await _join(channel, observer_id)
        tab_a, _ = await _join(channel, user_id)
        tab_b, _ = await _join(channel, user_id)
        await channel.close(tab_a)
        still_online = store.get_user(user_id).is_online
        await channel.close(tab_b)
        for _ in range(5):
            await asyncio.sleep(0)
        return observer, still_online

    observer, still_online = asyncio.run(scenario())

    assert still_online is True
    assert store.get_user(user_id).is_online is False
    statuses = [(f["status"], f["userId"]) for f in observer.sent if f["type"] == "user:status"]
    assert statuses == [("online", user_id), ("offline", user_id)]


def test_read_receipt_requires_the_joined_recipient(store, settings, mailer):
    services = build_services(settings, store, mailer=mailer)
    channel = RealtimeChannel(services)
    sender = store.get_user_by_email("user1@test.com").id
    recipient = store.get_user_by_email("user2@test.com").id
    outsider = store.get_user_by_email("user3@test.com").id
    message = services.messages.send(sender, "for your eyes", recipient_id=recipient)

    async def scenario():
        stranger = FakeSocket()
        stranger_id = await channel.hub.connect(stranger)
        await channel.handle(stranger_id, _frame(type="message:read", messageId=message["id"]))

        outsider_conn, wrong_reader = await _join(channel, outsider)
        await channel.handle(outsider_conn, _frame(type="message:read", messageId=message["id"]))
        return stranger, wrong_reader

    stranger, wrong_reader = asyncio.run(scenario())

    # later frames are presence broadcasts
    assert stranger.sent[0]["type"] == "error"
    assert stranger.sent[0]["error"] == "ValidationError"
    assert wrong_reader.sent[-1]["error"] == "ValidationError"
    assert store.get_message(message["id"]).is_read is False
