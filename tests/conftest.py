from datetime import datetime

import pytest

from matchclient.channel import Channel
from matchclient.models import Candidate, Player, Seat
from matchclient.orchestrator import MoveOrchestrator
from matchclient.readiness import ReadinessGate

FIXED_TIME = datetime(2024, 1, 1, 12, 30, 45)

FOOLS_MATE = ["f2f3", "e7e5", "g2g4", "d8h4"]


class RecordingChannel(Channel):
    """Channel test double: records emissions, delivers inbound events on demand."""

    def __init__(self):
        super().__init__()
        self.sent: list[tuple[str, dict]] = []
        self._connected = False

    @property
    def connected(self) -> bool:
        return self._connected

    async def connect(self) -> None:
        self._connected = True

    async def disconnect(self) -> None:
        self._connected = False

    def emit(self, event: str, payload: dict) -> None:
        self.sent.append((event, payload))

    def deliver(self, event: str, data=None) -> None:
        self._deliver(event, data)

    def lose(self, reason: str) -> None:
        self._connection_lost(reason)


def two_players():
    return [Player(username="alice"), Player(username="bob")]


def candidate(uci: str) -> Candidate:
    return Candidate(uci[:2], uci[2:4], uci[4:] or "q")


@pytest.fixture
def channel():
    return RecordingChannel()


@pytest.fixture
def white(channel):
    """Orchestrator seated as white in a full room."""
    return MoveOrchestrator(
        "ROOM1", Seat.WHITE, channel,
        gate=ReadinessGate(two_players()),
        clock=lambda: FIXED_TIME,
    )


@pytest.fixture
def black(channel):
    """Orchestrator seated as black in a full room."""
    return MoveOrchestrator(
        "ROOM1", Seat.BLACK, channel,
        gate=ReadinessGate(two_players()),
        clock=lambda: FIXED_TIME,
    )


@pytest.fixture
def play():
    """Play UCI moves alternately: local attempts on our turn, remote otherwise."""
    def _play(orch: MoveOrchestrator, *moves: str) -> None:
        for uci in moves:
            if orch.is_local_turn:
                orch.attempt_local_move(candidate(uci))
            else:
                assert orch.apply_remote_move(candidate(uci).as_wire()) is not None, uci
    return _play
