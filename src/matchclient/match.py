"""One match instance: a serialized event queue in front of the core.

Every input (clicks, local moves and resets, channel events) becomes an
event on a single queue. dispatch() handles one event to completion, so
preconditions are always checked against the state at handling time,
never against state observed before an await.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable

from pydantic import ValidationError

from matchclient.channel import (
    GAME_RESET,
    MOVE,
    OPPONENT_JOINED,
    PLAYER_DISCONNECTED,
    Channel,
)
from matchclient.errors import MoveRejected
from matchclient.models import Candidate, Player, RosterPayload, Seat
from matchclient.notices import NoticeBoard
from matchclient.orchestrator import MoveOrchestrator
from matchclient.projection import snapshot
from matchclient.readiness import ReadinessGate
from matchclient.selection import SelectionMachine

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Events
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Click:
    square: str


@dataclass(frozen=True)
class LocalMove:
    candidate: Candidate


@dataclass(frozen=True)
class LocalReset:
    pass


@dataclass(frozen=True)
class RemoteMove:
    payload: Any


@dataclass(frozen=True)
class RemoteReset:
    pass


@dataclass(frozen=True)
class RosterChanged:
    players: tuple[Player, ...]


@dataclass(frozen=True)
class PeerDisconnected:
    pass


@dataclass(frozen=True)
class ConnectionLost:
    reason: str


Event = Click | LocalMove | LocalReset | RemoteMove | RemoteReset | RosterChanged | PeerDisconnected | ConnectionLost


# ---------------------------------------------------------------------------
# Match
# ---------------------------------------------------------------------------


class Match:
    def __init__(
        self,
        room: str,
        seat: Seat,
        channel: Channel,
        players: list[Player] | None = None,
        promotion: str = "q",
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.channel = channel
        self.notices = NoticeBoard()
        self.orchestrator = MoveOrchestrator(
            room, seat, channel,
            gate=ReadinessGate(players),
            notices=self.notices,
            clock=clock,
        )
        self.selection = SelectionMachine(self.orchestrator, promotion=promotion)
        self._events: asyncio.Queue[Event] = asyncio.Queue()
        self._listen()

    @property
    def room(self) -> str:
        return self.orchestrator.room

    @property
    def seat(self) -> Seat:
        return self.orchestrator.seat

    @property
    def gate(self) -> ReadinessGate:
        return self.orchestrator.gate

    def _listen(self) -> None:
        ch = self.channel
        ch.on(MOVE, lambda data: self.submit(RemoteMove(data)))
        ch.on(GAME_RESET, lambda _data: self.submit(RemoteReset()))
        ch.on(OPPONENT_JOINED, self._on_roster)
        ch.on(PLAYER_DISCONNECTED, lambda _data: self.submit(PeerDisconnected()))
        ch.on_connection_lost(self._on_lost)

    def close(self) -> None:
        for event in (MOVE, GAME_RESET, OPPONENT_JOINED, PLAYER_DISCONNECTED):
            self.channel.off(event)
        self.channel.off_connection_lost(self._on_lost)

    def _on_lost(self, reason: str) -> None:
        self.submit(ConnectionLost(reason))

    def _on_roster(self, data: Any) -> None:
        try:
            roster = RosterPayload.model_validate(data or {})
        except ValidationError:
            logger.warning("Discarding malformed roster payload: %r", data)
            return
        self.submit(RosterChanged(tuple(roster.players)))

    # --- queue ---

    def submit(self, event: Event) -> None:
        self._events.put_nowait(event)

    @property
    def pending(self) -> int:
        return self._events.qsize()

    def process_pending(self) -> int:
        """Handle every queued event now. Returns how many were handled."""
        handled = 0
        while not self._events.empty():
            self._safe_dispatch(self._events.get_nowait())
            handled += 1
        return handled

    async def run(self) -> None:
        while True:
            event = await self._events.get()
            self._safe_dispatch(event)

    def _safe_dispatch(self, event: Event) -> None:
        try:
            self.dispatch(event)
        except MoveRejected:
            pass  # already surfaced as a notice
        except ValueError as e:
            logger.warning("Ignoring %s: %s", type(event).__name__, e)

    def handle(self, event: Event) -> Any:
        """Run queued events first, then `event`, returning its result."""
        self.process_pending()
        return self.dispatch(event)

    def dispatch(self, event: Event) -> Any:
        orch = self.orchestrator
        if isinstance(event, Click):
            return self.selection.click(event.square)
        if isinstance(event, LocalMove):
            return orch.attempt_local_move(event.candidate)
        if isinstance(event, LocalReset):
            return orch.reset_match("local")
        if isinstance(event, RemoteMove):
            return orch.apply_remote_move(event.payload)
        if isinstance(event, RemoteReset):
            return orch.reset_match("remote")
        if isinstance(event, RosterChanged):
            return self.gate.update(list(event.players))
        if isinstance(event, PeerDisconnected):
            self.notices.post(
                "Player Disconnected",
                "Your opponent has disconnected. You can wait for them to reconnect or start a new game.",
            )
            return None
        if isinstance(event, ConnectionLost):
            self.notices.post("Connection Lost", f"Lost connection to the game server: {event.reason}")
            return None
        raise TypeError(f"Unknown event: {event!r}")

    # --- presentation ---

    def snapshot(self) -> dict:
        orch = self.orchestrator
        return snapshot(
            room=orch.room,
            seat=orch.seat,
            oracle=orch.oracle,
            gate=orch.gate,
            selection=self.selection.current,
            status=orch.status,
            history=orch.history,
            captured=orch.captured,
        )
