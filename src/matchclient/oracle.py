"""Rules oracle: legality and move application on top of python-chess.

Wraps a single mutable chess.Board. Each call is synchronous and leaves
the board untouched unless a legal move is applied.
"""

from __future__ import annotations

import chess

from matchclient.models import (
    IN_PROGRESS,
    Candidate,
    MatchStatus,
    MoveResult,
    Occupant,
    Seat,
    StatusKind,
)

PROMOTION_PIECES = {"q": chess.QUEEN, "r": chess.ROOK, "b": chess.BISHOP, "n": chess.KNIGHT}


def _game_status(board: chess.Board) -> MatchStatus:
    if board.is_checkmate():
        return MatchStatus(StatusKind.CHECKMATE, winner=Seat.from_color(not board.turn))
    if (
        board.is_stalemate()
        or board.is_insufficient_material()
        or board.is_repetition(3)
        or board.is_fifty_moves()
    ):
        return MatchStatus(StatusKind.DRAW)
    if board.is_check():
        return MatchStatus(StatusKind.CHECK)
    return IN_PROGRESS


class RulesOracle:
    def __init__(self, fen: str = chess.STARTING_FEN):
        self._board = chess.Board(fen)

    @property
    def fen(self) -> str:
        return self._board.fen()

    @property
    def side_to_move(self) -> Seat:
        return Seat.from_color(self._board.turn)

    @property
    def ply_count(self) -> int:
        return len(self._board.move_stack)

    def reset(self) -> None:
        self._board.reset()

    def copy_board(self) -> chess.Board:
        """Detached copy for read-only inspection."""
        return self._board.copy()

    def occupant(self, square: str) -> Occupant | None:
        piece = self._board.piece_at(chess.parse_square(square))
        if piece is None:
            return None
        return Occupant(kind=chess.piece_symbol(piece.piece_type), seat=Seat.from_color(piece.color))

    def legal_destinations(self, square: str) -> list[str]:
        """Destination squares reachable from `square`, in board order.

        Promotions to different pieces share a destination and are listed once.
        """
        origin = chess.parse_square(square)
        dests: list[str] = []
        for move in self._board.legal_moves:
            if move.from_square == origin:
                name = chess.square_name(move.to_square)
                if name not in dests:
                    dests.append(name)
        return dests

    def _resolve(self, candidate: Candidate) -> chess.Move | None:
        try:
            from_sq = chess.parse_square(candidate.from_square.lower())
            to_sq = chess.parse_square(candidate.to_square.lower())
        except ValueError:
            return None

        promotion = None
        if candidate.promotion:
            promotion = PROMOTION_PIECES.get(candidate.promotion.lower())
            if promotion is None:
                return None

        move = chess.Move(from_sq, to_sq, promotion=promotion)
        if move in self._board.legal_moves:
            return move
        # A promotion hint on a non-promoting move is ignored.
        plain = chess.Move(from_sq, to_sq)
        if promotion is not None and plain in self._board.legal_moves:
            return plain
        return None

    def is_legal(self, candidate: Candidate) -> bool:
        return self._resolve(candidate) is not None

    def apply(self, candidate: Candidate) -> MoveResult | None:
        """Push the candidate if legal. Returns None (board unchanged) otherwise."""
        move = self._resolve(candidate)
        if move is None:
            return None

        board = self._board
        captured = None
        if board.is_en_passant(move):
            captured = chess.piece_symbol(chess.PAWN)
        elif board.is_capture(move):
            captured = chess.piece_symbol(board.piece_type_at(move.to_square))

        mover = Seat.from_color(board.turn)
        san = board.san(move)
        board.push(move)

        status = _game_status(board)
        return MoveResult(
            uci=move.uci(),
            san=san,
            mover=mover,
            captured=captured,
            check=board.is_check(),
            checkmate=status.kind is StatusKind.CHECKMATE,
            draw=status.kind is StatusKind.DRAW,
        )

    def status(self) -> MatchStatus:
        return _game_status(self._board)
