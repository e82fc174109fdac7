"""Presentation projection: view-level facts derived from match state.

Everything here is a pure function of its arguments. snapshot() bundles
the lot into the JSON-friendly dict handed to the rendering layer.
"""

from __future__ import annotations

from matchclient.models import MatchStatus, MoveRecord, Player, Seat, StatusKind
from matchclient.oracle import RulesOracle
from matchclient.readiness import ReadinessGate
from matchclient.selection import HighlightKind, Selection

PIECE_VALUES = {"p": 1, "n": 3, "b": 3, "r": 5, "q": 9, "k": 0}

PIECE_SYMBOLS = {
    "p": "♟", "r": "♜", "n": "♞", "b": "♝", "q": "♛", "k": "♚",
    "P": "♙", "R": "♖", "N": "♘", "B": "♗", "Q": "♕", "K": "♔",
}

HIGHLIGHT_STYLES = {
    HighlightKind.SELECTED: {"backgroundColor": "rgba(255, 255, 0, 0.8)"},
    HighlightKind.CAPTURE_AVAILABLE: {"backgroundColor": "rgba(255, 0, 0, 0.7)", "borderRadius": "50%"},
    HighlightKind.EMPTY_TARGET: {"backgroundColor": "rgba(0, 255, 0, 0.6)", "borderRadius": "50%"},
}


def current_turn_label(oracle: RulesOracle) -> str:
    return oracle.side_to_move.value


def is_local_turn(oracle: RulesOracle, seat: Seat) -> bool:
    return current_turn_label(oracle) == seat.value


def material_score(captured: dict[Seat, list[str]], side: Seat) -> int:
    """Material gained by `side`: the value of the pieces it has captured."""
    return sum(PIECE_VALUES.get(kind, 0) for kind in captured.get(side, []))


def captured_symbols(captured: dict[Seat, list[str]], side: Seat) -> list[str]:
    """Glyphs for the pieces `side` captured, drawn in the victim's colour."""
    return [PIECE_SYMBOLS[kind if side is Seat.WHITE else kind.upper()] for kind in captured.get(side, [])]


def player_label(roster: list[Player], seat: Seat, side: Seat, waiting: bool = False) -> str:
    if len(roster) < 2:
        return "Waiting for player..." if waiting else "Unknown"
    index = 0 if side is seat else 1
    return roster[index].username or "Anonymous"


def square_styling(selection: Selection | None) -> dict[str, dict]:
    if selection is None:
        return {}
    return {square: dict(HIGHLIGHT_STYLES[kind]) for square, kind in selection.highlights.items()}


def status_text(status: MatchStatus, ready: bool) -> str:
    if status.kind is StatusKind.CHECKMATE:
        return f"Checkmate! {status.winner.label} wins!"
    if status.kind is StatusKind.DRAW:
        return "Draw"
    return "Active" if ready else "Waiting"


def move_log(records: list[MoveRecord]) -> list[dict]:
    return [
        {
            "number": i // 2 + 1,
            "move": r.move,
            "player": r.player,
            "time": r.time,
            "captured": r.captured,
            "captured_symbol": PIECE_SYMBOLS[r.captured] if r.captured else None,
        }
        for i, r in enumerate(records)
    ]


def snapshot(
    room: str,
    seat: Seat,
    oracle: RulesOracle,
    gate: ReadinessGate,
    selection: Selection | None,
    status: MatchStatus,
    history: list[MoveRecord],
    captured: dict[Seat, list[str]],
) -> dict:
    ready = gate.match_ready
    roster = gate.roster
    return {
        "room": room,
        "seat": seat.value,
        "fen": oracle.fen,
        "turn": current_turn_label(oracle),
        "is_local_turn": is_local_turn(oracle, seat),
        "ready": ready,
        "blocking_reason": gate.blocking_reason,
        "players_joined": f"{gate.joined_count}/2",
        "players": {
            side.value: player_label(roster, seat, side, waiting=not ready)
            for side in Seat
        },
        "selection": None if selection is None else {
            "square": selection.square,
            "destinations": list(selection.destinations),
        },
        "square_styles": square_styling(selection),
        "status": status.kind.value,
        "winner": status.winner.value if status.winner else None,
        "status_text": status_text(status, ready),
        "move_log": move_log(history),
        "captured": {side.value: list(captured[side]) for side in Seat},
        "captured_symbols": {side.value: captured_symbols(captured, side) for side in Seat},
        "scores": {side.value: material_score(captured, side) for side in Seat},
        "can_reset": ready,
    }
