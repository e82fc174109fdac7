"""CLI utility to replay a game between two clients joined through an in-process relay.

Usage:
    python -m matchclient.cli <move> [<move> ...] [--seat white|black]
        [--room ID] [--log-level LEVEL]

Moves are SAN or UCI and are played alternately by whichever client is to
move. Prints the chosen seat's snapshot as JSON, plus any move that was
refused and the notices raised along the way.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys

import chess

from matchclient.channel import LocalRelay
from matchclient.errors import MoveRejected
from matchclient.match import LocalMove, Match
from matchclient.models import Candidate, Seat


def _to_candidate(board: chess.Board, text: str) -> Candidate:
    # Parse move: accept SAN or UCI
    try:
        move = board.parse_san(text)
    except (chess.InvalidMoveError, chess.IllegalMoveError, chess.AmbiguousMoveError):
        move = chess.Move.from_uci(text)
    promotion = chess.piece_symbol(move.promotion) if move.promotion else None
    return Candidate(chess.square_name(move.from_square), chess.square_name(move.to_square), promotion)


async def replay(moves: list[str], seat: str = "white", room: str = "replay") -> dict:
    relay = LocalRelay()
    matches = {}
    for side, name in ((Seat.WHITE, "white-player"), (Seat.BLACK, "black-player")):
        ch = relay.channel(room, name)
        matches[side] = Match(room, side, ch)
        await ch.connect()
    for m in matches.values():
        m.process_pending()

    rejected = None
    for text in moves:
        mover = matches[matches[Seat.WHITE].orchestrator.oracle.side_to_move]
        try:
            candidate = _to_candidate(mover.orchestrator.oracle.copy_board(), text)
            mover.handle(LocalMove(candidate))
        except (ValueError, MoveRejected) as e:
            rejected = {"move": text, "error": str(e) or type(e).__name__}
            break
        for m in matches.values():
            m.process_pending()

    shown = matches[Seat(seat)]
    return {
        "snapshot": shown.snapshot(),
        "rejected": rejected,
        "notices": [{"title": n.title, "message": n.message} for n in shown.notices.drain()],
    }


def main() -> None:
    parser = argparse.ArgumentParser(
        description="Replay moves between two relayed match clients",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("moves", nargs="*", help="Moves in SAN or UCI notation")
    parser.add_argument(
        "--seat", default="white", choices=[s.value for s in Seat],
        help="Whose view to print (default: white)",
    )
    parser.add_argument("--room", default="replay", help="Room identifier")
    parser.add_argument("--log-level", default="WARNING", help="Logging level")
    args = parser.parse_args()

    logging.basicConfig(level=args.log_level.upper(), stream=sys.stderr)

    result = asyncio.run(replay(args.moves, seat=args.seat, room=args.room))
    json.dump(result, sys.stdout, indent=2, ensure_ascii=False)
    print()
    if result["rejected"]:
        sys.exit(1)


if __name__ == "__main__":
    main()
