"""Readiness gate: a match is playable once both seats are occupied."""

from __future__ import annotations

import logging
from typing import Callable

from matchclient.models import Player

logger = logging.getLogger(__name__)

WAITING_FOR_OPPONENT = "waiting_for_opponent"
SEATS = 2


class ReadinessGate:
    def __init__(self, players: list[Player] | None = None):
        self._roster: list[Player] = list(players or [])
        self._subscribers: list[Callable[[bool], None]] = []

    @property
    def roster(self) -> list[Player]:
        return list(self._roster)

    @property
    def match_ready(self) -> bool:
        return len(self._roster) >= SEATS

    @property
    def blocking_reason(self) -> str | None:
        return None if self.match_ready else WAITING_FOR_OPPONENT

    @property
    def joined_count(self) -> int:
        return min(len(self._roster), SEATS)

    def subscribe(self, callback: Callable[[bool], None]) -> None:
        """Register a callback invoked with the new flag on every transition."""
        self._subscribers.append(callback)

    def update(self, players: list[Player]) -> None:
        was_ready = self.match_ready
        self._roster = list(players)
        ready = self.match_ready
        if ready == was_ready:
            return
        logger.info("Match %s (%d players)", "ready" if ready else "waiting", len(players))
        for callback in self._subscribers:
            callback(ready)
