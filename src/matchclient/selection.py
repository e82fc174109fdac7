"""Click-to-move selection state machine.

Idle until the local player clicks one of their own pieces that has legal
moves; PieceSelected until the next click confirms, cancels or reselects,
or until the orchestrator interrupts because the position changed.
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

import chess

from matchclient.errors import MoveRejected
from matchclient.models import Candidate

if TYPE_CHECKING:
    from matchclient.orchestrator import MoveOrchestrator

logger = logging.getLogger(__name__)


class HighlightKind(enum.Enum):
    SELECTED = "selected"
    CAPTURE_AVAILABLE = "capture-available"
    EMPTY_TARGET = "empty-target"


@dataclass(frozen=True)
class Selection:
    square: str
    destinations: tuple[str, ...]
    highlights: dict[str, HighlightKind] = field(default_factory=dict)


class SelectionMachine:
    def __init__(self, orchestrator: MoveOrchestrator, promotion: str = "q"):
        self._orch = orchestrator
        self._promotion = promotion
        self._current: Selection | None = None
        orchestrator.on_position_change(self.interrupt)

    @property
    def current(self) -> Selection | None:
        return self._current

    @property
    def idle(self) -> bool:
        return self._current is None

    def interrupt(self) -> None:
        """Force Idle; the board changed under the user."""
        self._current = None

    def _select(self, square: str) -> None:
        oracle = self._orch.oracle
        dests = oracle.legal_destinations(square)
        if not dests:
            self._current = None
            self._orch.notices.post("No Moves", "This piece has no legal moves available.")
            return

        highlights = {square: HighlightKind.SELECTED}
        for dest in dests:
            if oracle.occupant(dest) is not None:
                highlights[dest] = HighlightKind.CAPTURE_AVAILABLE
            else:
                highlights[dest] = HighlightKind.EMPTY_TARGET
        self._current = Selection(square, tuple(dests), highlights)

    def click(self, square: str) -> None:
        square = square.lower()
        if square not in chess.SQUARE_NAMES:
            raise ValueError(f"Invalid square: {square}")
        orch = self._orch

        if not orch.gate.match_ready:
            orch.notices.post("Game Not Ready", "Please wait for your opponent to join before making moves.")
            return
        if not orch.is_local_turn:
            orch.notices.post("Not Your Turn", "Please wait for your opponent to move.")
            return

        current = self._current
        if current is not None and square in current.destinations:
            candidate = Candidate(current.square, square, self._promotion)
            try:
                orch.attempt_local_move(candidate)
            except MoveRejected as e:
                logger.info("Selected move %s%s rejected: %s", current.square, square, e)
            self._current = None
            return

        occupant = orch.oracle.occupant(square)
        if occupant is None or occupant.seat is not orch.seat:
            self._current = None
            return

        if current is not None and current.square == square:
            self._current = None
            return

        self._select(square)
