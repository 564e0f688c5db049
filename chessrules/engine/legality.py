from __future__ import annotations

from types import TracebackType
from typing import Optional, Type

from .board import Board
from .move import Square
from .pieces import Color, Piece, en_passant_victim


class MoveProbe:
    """Tentatively relocate a piece so king safety can be inspected.

    Only the squares the move touches and the mover's position are changed:
    the origin and destination occupants, plus the pawn lifted by an en
    passant capture. Move flags and the board's last move are never written,
    and everything is put back when the ``with`` block exits, however it exits.

    Usage::

        with MoveProbe(board, origin, destination):
            exposed = board.in_check(side)
    """

    def __init__(self, board: Board, origin: Square, destination: Square) -> None:
        self.board = board
        self.origin = origin
        self.destination = destination
        self._piece: Optional[Piece] = None
        self._captured: Optional[Piece] = None
        self._victim: Optional[Piece] = None
        self._victim_square: Optional[Square] = None

    def __enter__(self) -> Board:
        board = self.board
        piece = board[self.origin]
        if piece is None:
            raise ValueError(f"no piece on {self.origin}")
        captured = board[self.destination]
        victim = en_passant_victim(piece, self.destination, board)

        self._piece = piece
        self._captured = captured
        self._victim = victim
        if victim is not None:
            self._victim_square = victim.position
        try:
            if victim is not None:
                board[victim.position] = None
            board[self.destination] = piece
            board[self.origin] = None
        except BaseException:
            # __exit__ does not run when __enter__ raises
            self._restore()
            raise
        return board

    def __exit__(
        self,
        exc_type: Optional[Type[BaseException]],
        exc: Optional[BaseException],
        tb: Optional[TracebackType],
    ) -> None:
        self._restore()

    def _restore(self) -> None:
        board = self.board
        board[self.destination] = self._captured
        board[self.origin] = self._piece
        if self._victim is not None and self._victim_square is not None:
            board[self._victim_square] = self._victim


def is_legal(
    board: Board,
    origin: Square,
    destination: Square,
    side: Color,
    *,
    assume_pseudo: bool = False,
) -> bool:
    """Return True if moving ``origin`` to ``destination`` keeps ``side``'s king safe.

    The ``assume_pseudo`` flag skips the pseudo-legality check when the caller
    has just made it, as the legal-move enumeration does for every candidate.
    """
    if not assume_pseudo and not board.move_is_pseudo_legal(origin, destination):
        return False
    piece = board[origin]
    if piece is None or piece.color is not side:
        return False
    with MoveProbe(board, origin, destination):
        return not board.in_check(side)
