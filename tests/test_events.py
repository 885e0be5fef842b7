from __future__ import annotations

import pytest
from pydantic import ValidationError

from anongram.realtime.events import (
    JoinFrame,
    Pong,
    SendMessageFrame,
    TypingFrame,
    UserOffline,
    parse_frame,
)


def test_parse_inbound_frames():
    join = parse_frame('{"type": "user:join", "userId": 3}')
    assert isinstance(join, JoinFrame)
    assert join.user_id == 3 and join.token is None

    send = parse_frame(b'{"type": "message:send", "text": "hi", "receiverId": 4, "messageType": "sticker"}')
    assert isinstance(send, SendMessageFrame)
    assert (send.receiver_id, send.message_type) == (4, "sticker")

    typing = parse_frame('{"type": "user_typing"}')
    assert isinstance(typing, TypingFrame)
    assert typing.is_typing is True


@pytest.mark.parametrize(
    "raw",
    [
        "not json",
        "{}",
        '{"type": "teleport"}',
        '{"type": "user:join"}',
        '{"type": "message:read", "messageId": "abc"}',
    ],
)
def test_malformed_frames_are_rejected(raw):
    with pytest.raises(ValidationError):
        parse_frame(raw)


def test_outbound_frames_use_camel_case():
    assert UserOffline(user_id=2, last_seen=5).to_wire() == {
        "type": "user:status",
        "status": "offline",
        "userId": 2,
        "lastSeen": 5,
    }
    pong = Pong().to_wire()
    assert pong["type"] == "pong"
    assert isinstance(pong["timestamp"], int)
