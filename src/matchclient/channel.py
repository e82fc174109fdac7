"""Transport channels between the two clients of a match.

A channel is a duplex event stream: named events go out through emit()
and inbound events are delivered to handlers registered with on(). The
relay on the other side is a dumb pipe, so delivery is at-least-once and
may interleave roster updates with moves arbitrarily.

Two implementations:

- LocalRelay / RelayChannel: an in-process relay, used for hot-seat play,
  replay and tests.
- WebSocketChannel: JSON frames over an attached WebSocket connection.
"""

from __future__ import annotations

import abc
import asyncio
import json
import logging
from collections import deque
from typing import Any, Callable

from matchclient.errors import TransportFailure

logger = logging.getLogger(__name__)

# Wire event names. These must match the relay server exactly.
MOVE = "move"
GAME_RESET = "gameReset"
OPPONENT_JOINED = "opponentJoined"
PLAYER_DISCONNECTED = "playerDisconnected"

Handler = Callable[[Any], None]


class Channel(abc.ABC):
    """Duplex event channel with an explicit connect/disconnect lifecycle.

    emit() never raises: a channel that cannot deliver right away either
    buffers the event or reports the loss through on_connection_lost.
    """

    def __init__(self) -> None:
        self._handlers: dict[str, Handler] = {}
        self._lost_callbacks: list[Callable[[str], None]] = []

    def on(self, event: str, handler: Handler) -> None:
        self._handlers[event] = handler

    def off(self, event: str) -> None:
        self._handlers.pop(event, None)

    def on_connection_lost(self, callback: Callable[[str], None]) -> None:
        self._lost_callbacks.append(callback)

    def off_connection_lost(self, callback: Callable[[str], None]) -> None:
        if callback in self._lost_callbacks:
            self._lost_callbacks.remove(callback)

    def _deliver(self, event: str, data: Any) -> None:
        handler = self._handlers.get(event)
        if handler is None:
            logger.debug("No handler for inbound %r", event)
            return
        handler(data)

    def _connection_lost(self, reason: str) -> None:
        logger.error("Channel lost: %s", reason)
        for callback in self._lost_callbacks:
            callback(reason)

    @property
    @abc.abstractmethod
    def connected(self) -> bool: ...

    @abc.abstractmethod
    async def connect(self) -> None: ...

    @abc.abstractmethod
    async def disconnect(self) -> None: ...

    @abc.abstractmethod
    def emit(self, event: str, payload: dict) -> None: ...


# ---------------------------------------------------------------------------
# In-process relay
# ---------------------------------------------------------------------------


class LocalRelay:
    """Room-based relay that forwards events between channels in one process."""

    def __init__(self) -> None:
        self._rooms: dict[str, list[RelayChannel]] = {}

    def channel(self, room: str, username: str) -> RelayChannel:
        return RelayChannel(self, room, username)

    def members(self, room: str) -> list[RelayChannel]:
        return list(self._rooms.get(room, []))

    def _roster(self, room: str) -> dict:
        return {"players": [{"username": ch.username} for ch in self._rooms.get(room, [])]}

    def join(self, channel: RelayChannel) -> None:
        members = self._rooms.setdefault(channel.room, [])
        if channel in members:
            return
        members.append(channel)
        roster = self._roster(channel.room)
        for member in members:
            member._deliver(OPPONENT_JOINED, roster)

    def leave(self, channel: RelayChannel) -> None:
        members = self._rooms.get(channel.room, [])
        if channel not in members:
            return
        members.remove(channel)
        for member in members:
            member._deliver(PLAYER_DISCONNECTED, None)

    def forward(self, sender: RelayChannel, event: str, payload: dict) -> None:
        for member in self._rooms.get(payload.get("room", sender.room), []):
            if member is sender:
                continue
            if event == MOVE:
                member._deliver(MOVE, payload.get("move"))
            elif event == GAME_RESET:
                member._deliver(GAME_RESET, None)
            else:
                member._deliver(event, payload)


class RelayChannel(Channel):
    def __init__(self, relay: LocalRelay, room: str, username: str):
        super().__init__()
        self._relay = relay
        self.room = room
        self.username = username
        self.sent: list[tuple[str, dict]] = []
        self._connected = False

    @property
    def connected(self) -> bool:
        return self._connected

    async def connect(self) -> None:
        self.join()

    async def disconnect(self) -> None:
        self.leave()

    def join(self) -> None:
        self._connected = True
        self._relay.join(self)

    def leave(self) -> None:
        self._connected = False
        self._relay.leave(self)

    def emit(self, event: str, payload: dict) -> None:
        self.sent.append((event, payload))
        if not self._connected:
            logger.warning("Dropping %r emitted while not connected", event)
            return
        self._relay.forward(self, event, payload)


# ---------------------------------------------------------------------------
# WebSocket
# ---------------------------------------------------------------------------


class WebSocketChannel(Channel):
    """Channel over a WebSocket carrying {"event": ..., "data": ...} frames.

    The socket is attached from outside (the service's /ws/relay endpoint).
    Outbound events are buffered and written by a background task, so events
    emitted while no socket is attached go out, in order, after the next attach.
    """

    def __init__(self, timeout: float = 30.0):
        super().__init__()
        self._ws = None
        self._timeout = timeout
        self._outbox: deque[tuple[str, dict]] = deque()
        self._wakeup = asyncio.Event()
        self._reader_task: asyncio.Task | None = None
        self._writer_task: asyncio.Task | None = None
        self._attached = asyncio.Event()
        self._closed = asyncio.Event()

    @property
    def connected(self) -> bool:
        return self._ws is not None

    @property
    def backlog(self) -> int:
        return len(self._outbox)

    def attach(self, ws) -> None:
        """Attach a WebSocket connection. Replaces any previous connection."""
        self._cancel_tasks()
        self._ws = ws
        self._closed.clear()
        self._attached.set()
        if self._outbox:
            self._wakeup.set()
        self._reader_task = asyncio.create_task(self._read_loop())
        self._writer_task = asyncio.create_task(self._write_loop())

    def detach(self) -> None:
        """Detach the current WebSocket connection."""
        self._cancel_tasks()
        self._ws = None
        self._attached.clear()
        self._closed.set()

    def _cancel_tasks(self) -> None:
        try:
            current = asyncio.current_task()
        except RuntimeError:
            current = None
        for task in (self._reader_task, self._writer_task):
            if task and task is not current and not task.done():
                task.cancel()
        self._reader_task = self._writer_task = None

    async def connect(self) -> None:
        """Wait for a socket to be attached."""
        try:
            await asyncio.wait_for(self._attached.wait(), timeout=self._timeout)
        except asyncio.TimeoutError:
            raise TransportFailure("No relay connection attached")

    async def disconnect(self) -> None:
        self.detach()

    async def wait_closed(self) -> None:
        await self._closed.wait()

    def emit(self, event: str, payload: dict) -> None:
        self._outbox.append((event, payload))
        self._wakeup.set()

    def _lost(self, reason: str) -> None:
        self.detach()
        self._connection_lost(reason)

    async def _read_loop(self) -> None:
        """Background task that reads frames and dispatches them to handlers."""
        try:
            while self._ws:
                raw = await self._ws.receive_text()
                try:
                    msg = json.loads(raw)
                    event = msg["event"]
                except (ValueError, KeyError, TypeError):
                    logger.warning("Discarding malformed frame: %.200s", raw)
                    continue
                self._deliver(event, msg.get("data"))
        except asyncio.CancelledError:
            raise
        except Exception as e:
            # Connection closed under us
            self._lost(str(e) or type(e).__name__)

    async def _write_loop(self) -> None:
        """Background task that drains the outbox in emission order."""
        while True:
            await self._wakeup.wait()
            while self._outbox:
                ws = self._ws
                if ws is None:
                    return
                event, payload = self._outbox[0]
                frame = json.dumps({"event": event, "data": payload}, separators=(",", ":"))
                try:
                    await ws.send_text(frame)
                except Exception as e:
                    self._lost(str(e) or type(e).__name__)
                    return
                self._outbox.popleft()
            self._wakeup.clear()
