"""Failure taxonomy for the match client.

Local move failures derive from MoveRejected and are always paired with a
notice on the notice board before they are raised. Remote and transport
failures never reach the user as game events.
"""


class MoveRejected(Exception):
    """A locally originated move was refused; state is unchanged."""

    title = "Invalid Move"


class NotReady(MoveRejected):
    """Both seats are not occupied yet."""

    title = "Game Not Ready"


class WrongTurn(MoveRejected):
    """The local seat is not the side to move."""


class IllegalMove(MoveRejected):
    """The rules oracle refused the candidate."""


class MatchOver(MoveRejected):
    """The match reached checkmate or a draw."""

    title = "Game Over"


class RemoteProtocolViolation(Exception):
    """A remote payload failed validation and was discarded."""


class TransportFailure(RuntimeError):
    """The channel to the relay is gone or was never attached."""
