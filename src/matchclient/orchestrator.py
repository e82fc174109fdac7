"""Move orchestration: the only place the position and its derived state change.

Local attempts are checked for readiness, terminal status, turn and
legality (in that order) and emitted to the peer once applied. Remote
moves are trusted but still validated; anything invalid is logged and
dropped without telling the user. Remote moves that arrive before the
roster is known to be full are held back until it is.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Callable

from pydantic import ValidationError

from matchclient.channel import GAME_RESET, MOVE, Channel
from matchclient.errors import (
    IllegalMove,
    MatchOver,
    MoveRejected,
    NotReady,
    RemoteProtocolViolation,
    WrongTurn,
)
from matchclient.models import (
    IN_PROGRESS,
    Candidate,
    MatchStatus,
    MovePayload,
    MoveRecord,
    MoveResult,
    Origin,
    Seat,
    StatusKind,
)
from matchclient.notices import NoticeBoard
from matchclient.oracle import RulesOracle
from matchclient.readiness import ReadinessGate

logger = logging.getLogger(__name__)


class MoveOrchestrator:
    def __init__(
        self,
        room: str,
        seat: Seat,
        channel: Channel,
        oracle: RulesOracle | None = None,
        gate: ReadinessGate | None = None,
        notices: NoticeBoard | None = None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.room = room
        self.seat = seat
        self.channel = channel
        self.oracle = oracle or RulesOracle()
        self.gate = gate or ReadinessGate()
        self.notices = notices or NoticeBoard()
        self._clock = clock

        self._history: list[MoveRecord] = []
        self._captured: dict[Seat, list[str]] = {Seat.WHITE: [], Seat.BLACK: []}
        self._status: MatchStatus = self.oracle.status()
        self._deferred: list[MovePayload] = []
        self._listeners: list[Callable[[], None]] = []

        self.gate.subscribe(self._on_readiness)

    # --- read-only views ---

    @property
    def history(self) -> list[MoveRecord]:
        return list(self._history)

    @property
    def captured(self) -> dict[Seat, list[str]]:
        return {seat: list(pieces) for seat, pieces in self._captured.items()}

    @property
    def status(self) -> MatchStatus:
        return self._status

    @property
    def deferred(self) -> int:
        return len(self._deferred)

    @property
    def fen(self) -> str:
        return self.oracle.fen

    @property
    def is_local_turn(self) -> bool:
        return self.oracle.side_to_move is self.seat

    def on_position_change(self, callback: Callable[[], None]) -> None:
        """Register a callback run after every applied move or reset."""
        self._listeners.append(callback)

    # --- mutation ---

    def _reject(self, error: type[MoveRejected], message: str) -> MoveRejected:
        self.notices.post(error.title, message)
        return error(message)

    def _commit(self, result: MoveResult) -> None:
        self._history.append(MoveRecord(
            move=result.san,
            player=result.mover.label,
            time=self._clock().strftime("%H:%M:%S"),
            captured=result.captured,
        ))
        if result.captured:
            self._captured[result.mover].append(result.captured)
        self._status = self.oracle.status()
        for callback in self._listeners:
            callback()

    def _announce_status(self) -> None:
        status = self._status
        if status.kind is StatusKind.CHECKMATE:
            self.notices.post("Game Over", f"Checkmate! {status.winner.label} wins!")
        elif status.kind is StatusKind.DRAW:
            self.notices.post("Game Over", "The game ended in a draw.")
        elif status.kind is StatusKind.CHECK:
            checked = self.oracle.side_to_move.label
            self.notices.post("Check!", f"{checked} king is in check!")

    def attempt_local_move(self, candidate: Candidate) -> MoveResult:
        """Validate and apply a move made on this client, then send it to the peer.

        Raises a MoveRejected subclass (after posting a notice) and leaves
        all state untouched when the move cannot be made.
        """
        if not self.gate.match_ready:
            raise self._reject(NotReady, "Please wait for your opponent to join the game before making moves.")
        if self._status.terminal:
            raise self._reject(MatchOver, "The game is over. Start a new game to keep playing.")
        if not self.is_local_turn:
            raise self._reject(WrongTurn, "It is not your turn!")

        result = self.oracle.apply(candidate)
        if result is None:
            raise self._reject(IllegalMove, "That move is not legal!")

        logger.info("Local move %s (%s) in room %s", result.san, result.uci, self.room)
        self._commit(result)
        self.channel.emit(MOVE, {"move": candidate.as_wire(), "room": self.room})
        self._announce_status()
        return result

    def _parse_remote(self, payload: Any) -> MovePayload:
        if isinstance(payload, MovePayload):
            return payload
        try:
            return MovePayload.model_validate(payload)
        except ValidationError as e:
            raise RemoteProtocolViolation(f"Malformed move payload: {payload!r}") from e

    def apply_remote_move(self, payload: Any) -> MoveResult | None:
        """Apply a move delivered by the peer.

        Returns None when the move was deferred or discarded.
        """
        try:
            move = self._parse_remote(payload)
        except RemoteProtocolViolation as e:
            logger.warning("%s", e)
            return None

        if not self.gate.match_ready:
            logger.info("Deferring remote move %s%s until both players are present",
                        move.from_square, move.to_square)
            self._deferred.append(move)
            return None

        if self._status.terminal:
            logger.warning("Discarding remote move %s%s: game is over", move.from_square, move.to_square)
            return None

        result = self.oracle.apply(move.to_candidate())
        if result is None:
            logger.warning("Discarding illegal remote move %s%s (fen %s)",
                           move.from_square, move.to_square, self.oracle.fen)
            return None

        logger.info("Remote move %s (%s) in room %s", result.san, result.uci, self.room)
        self._commit(result)
        self._announce_status()
        return result

    def _on_readiness(self, ready: bool) -> None:
        if not ready or not self._deferred:
            return
        pending, self._deferred = self._deferred, []
        logger.info("Applying %d deferred remote move(s)", len(pending))
        for move in pending:
            self.apply_remote_move(move)

    def reset_match(self, origin: Origin) -> None:
        if origin not in ("local", "remote"):
            raise ValueError(f"Unknown reset origin: {origin!r}")
        self.oracle.reset()
        self._history.clear()
        self._captured = {Seat.WHITE: [], Seat.BLACK: []}
        self._status = IN_PROGRESS
        self._deferred.clear()
        for callback in self._listeners:
            callback()

        logger.info("Match reset (%s) in room %s", origin, self.room)
        if origin == "local":
            self.channel.emit(GAME_RESET, {"room": self.room})
        elif origin == "remote":
            self.notices.post("Game Reset", "Your opponent has reset the game.")
