"""
Realtime hub: tracks WebSocket connections and fans events out to them.

Single process, in memory. Delivery is best-effort and fire-and-forget: a
listener that is not connected when an event is published never sees it, and
a failed send is logged and skipped. Connections are only removed by
``disconnect``, which the socket loop calls when it ends, so presence stays in
step with the sockets.

``publish`` and ``publish_to_user`` may be called from the event loop or from
worker threads (sync endpoints run in a threadpool); delivery is always
scheduled on the loop that owns the sockets.
"""

from __future__ import annotations

import asyncio
import itertools
import logging
import threading
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Any, Iterable, Optional, Protocol

from anongram.realtime.events import Frame

logger = logging.getLogger(__name__)


class Listener(Protocol):
    async def accept(self) -> None: ...

    async def send_json(self, data: Any) -> None: ...


class EventPublisher(Protocol):
    def publish(self, event: Frame, *, exclude: Optional[str] = None) -> None: ...

    def publish_to_user(self, user_id: int, event: Frame, *, exclude: Optional[str] = None) -> None: ...


@dataclass
class Connection:
    id: str
    listener: Listener
    user_id: Optional[int] = None


@dataclass
class PresenceChange:
    """Users whose live-connection count crossed zero because of one hub operation."""

    online: list[int] = field(default_factory=list)
    offline: list[int] = field(default_factory=list)


class ConnectionHub:
    """Connection registry with global broadcast and per-user rooms."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._connections: dict[str, Connection] = {}
        self._rooms: dict[int, set[str]] = defaultdict(set)
        self._ids = itertools.count(1)
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._tasks: set[asyncio.Task] = set()

    # ------------------------------ lifecycle ------------------------------
    async def connect(self, listener: Listener) -> str:
        await listener.accept()
        loop = asyncio.get_running_loop()
        with self._lock:
            self._loop = loop
            conn_id = f"c{next(self._ids)}"
            self._connections[conn_id] = Connection(id=conn_id, listener=listener)
        logger.debug("connection %s opened", conn_id)
        return conn_id

    def associate(self, conn_id: str, user_id: int) -> PresenceChange:
        """Bind a connection to a user, moving it out of any previous user's room."""
        change = PresenceChange()
        with self._lock:
            conn = self._connections.get(conn_id)
            if conn is None:
                return change
            if conn.user_id == user_id:
                return change
            previous = self._detach(conn)
            if previous is not None:
                change.offline.append(previous)
            room = self._rooms[user_id]
            if not room:
                change.online.append(user_id)
            room.add(conn_id)
            conn.user_id = user_id
        return change

    def disconnect(self, conn_id: str) -> PresenceChange:
        change = PresenceChange()
        with self._lock:
            conn = self._connections.pop(conn_id, None)
            if conn is None:
                return change
            previous = self._detach(conn)
            if previous is not None:
                change.offline.append(previous)
        logger.debug("connection %s closed", conn_id)
        return change

    def _detach(self, conn: Connection) -> Optional[int]:
        """Remove ``conn`` from its room; returns the user id when that room became empty."""
        user_id = conn.user_id
        if user_id is None:
            return None
        conn.user_id = None
        room = self._rooms.get(user_id)
        if room is None:
            return None
        room.discard(conn.id)
        if room:
            return None
        self._rooms.pop(user_id, None)
        return user_id

    # ------------------------------ queries ------------------------------
    def user_for(self, conn_id: str) -> Optional[int]:
        with self._lock:
            conn = self._connections.get(conn_id)
            return conn.user_id if conn else None

    def connection_count(self, user_id: int | None = None) -> int:
        with self._lock:
            if user_id is None:
                return len(self._connections)
            return len(self._rooms.get(user_id, ()))

    def has_connections(self, user_id: int) -> bool:
        return self.connection_count(user_id) > 0

    def online_user_ids(self) -> list[int]:
        with self._lock:
            return sorted(self._rooms)

    # ------------------------------ delivery ------------------------------
    def publish(self, event: Frame, *, exclude: Optional[str] = None) -> None:
        with self._lock:
            targets = [c.listener for cid, c in self._connections.items() if cid != exclude]
        self._dispatch(targets, event)

    def publish_to_user(self, user_id: int, event: Frame, *, exclude: Optional[str] = None) -> None:
        with self._lock:
            targets = [
                self._connections[cid].listener
                for cid in self._rooms.get(user_id, ())
                if cid != exclude and cid in self._connections
            ]
        self._dispatch(targets, event)

    async def send(self, conn_id: str, event: Frame) -> None:
        """Direct reply to one connection, awaited by the caller."""
        with self._lock:
            conn = self._connections.get(conn_id)
        if conn is not None:
            await self._deliver([conn.listener], event.to_wire())

    def _dispatch(self, targets: list[Listener], event: Frame) -> None:
        loop = self._loop
        if not targets or loop is None or loop.is_closed():
            return
        payload = event.to_wire()
        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None
        if running is loop:
            task = loop.create_task(self._deliver(targets, payload))
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)
        else:
            try:
                asyncio.run_coroutine_threadsafe(self._deliver(targets, payload), loop)
            except RuntimeError:
                logger.warning("event loop gone; dropping %s", payload.get("type"))

    async def _deliver(self, targets: Iterable[Listener], payload: dict) -> None:
        for listener in targets:
            try:
                await listener.send_json(payload)
            except Exception as exc:  # a dead socket must not stop the fan-out
                logger.info("skipping listener after failed send of %s: %s", payload.get("type"), exc)


def emit(
    publisher: EventPublisher,
    event: Frame,
    *,
    user_id: Optional[int] = None,
    exclude: Optional[str] = None,
) -> None:
    """Publish after a state change; a fan-out failure is logged, never raised."""
    try:
        if user_id is None:
            publisher.publish(event, exclude=exclude)
        else:
            publisher.publish_to_user(user_id, event, exclude=exclude)
    except Exception:
        logger.exception("fan-out of %s failed", type(event).__name__)


class NullPublisher:
    """Publisher that drops everything; used where no realtime channel is wired."""

    def publish(self, event: Frame, *, exclude: Optional[str] = None) -> None:
        return None

    def publish_to_user(self, user_id: int, event: Frame, *, exclude: Optional[str] = None) -> None:
        return None
