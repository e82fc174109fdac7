"""Domain types and wire models shared by the match client.

Dataclasses and enums describe local state; the pydantic models describe
payloads crossing the transport channel and the HTTP service.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Literal

import chess
from pydantic import BaseModel, ConfigDict, Field


# ---------------------------------------------------------------------------
# Seats and status
# ---------------------------------------------------------------------------


class Seat(enum.Enum):
    WHITE = "white"
    BLACK = "black"

    @property
    def color(self) -> chess.Color:
        return chess.WHITE if self is Seat.WHITE else chess.BLACK

    @property
    def label(self) -> str:
        return self.value.capitalize()

    @property
    def opponent(self) -> Seat:
        return Seat.BLACK if self is Seat.WHITE else Seat.WHITE

    @classmethod
    def from_color(cls, color: chess.Color) -> Seat:
        return cls.WHITE if color == chess.WHITE else cls.BLACK


class StatusKind(enum.Enum):
    IN_PROGRESS = "in_progress"
    CHECK = "check"
    CHECKMATE = "checkmate"
    DRAW = "draw"


@dataclass(frozen=True)
class MatchStatus:
    kind: StatusKind = StatusKind.IN_PROGRESS
    winner: Seat | None = None  # only set for checkmate

    @property
    def terminal(self) -> bool:
        return self.kind in (StatusKind.CHECKMATE, StatusKind.DRAW)


IN_PROGRESS = MatchStatus()


# ---------------------------------------------------------------------------
# Moves
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Candidate:
    """A proposed move that has not been validated yet."""
    from_square: str
    to_square: str
    promotion: str | None = "q"

    def as_wire(self) -> dict:
        return {"from": self.from_square, "to": self.to_square, "promotion": self.promotion}


@dataclass(frozen=True)
class MoveResult:
    """What the rules oracle reports for an applied move."""
    uci: str
    san: str
    mover: Seat
    captured: str | None     # piece kind letter, e.g. "n"
    check: bool
    checkmate: bool
    draw: bool


@dataclass(frozen=True)
class MoveRecord:
    move: str                # SAN
    player: str              # "White" / "Black"
    time: str
    captured: str | None = None


@dataclass(frozen=True)
class Occupant:
    kind: str                # "p", "n", "b", "r", "q", "k"
    seat: Seat


# ---------------------------------------------------------------------------
# Wire payloads
# ---------------------------------------------------------------------------


class MovePayload(BaseModel):
    """Move descriptor as exchanged between peers: {from, to, promotion}."""
    from_square: str = Field(..., min_length=2, max_length=2, alias="from")
    to_square: str = Field(..., min_length=2, max_length=2, alias="to")
    promotion: str | None = Field(None, min_length=1, max_length=1)

    model_config = ConfigDict(populate_by_name=True)

    def to_candidate(self) -> Candidate:
        return Candidate(self.from_square.lower(), self.to_square.lower(), self.promotion)


class Player(BaseModel):
    username: str | None = None


class RosterPayload(BaseModel):
    players: list[Player] = Field(default_factory=list)


class ClickRequest(BaseModel):
    square: str = Field(..., min_length=2, max_length=2)


Origin = Literal["local", "remote"]
