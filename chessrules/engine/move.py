from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


FILES = "abcdefgh"
PROMOTION_LETTERS = {"q", "r", "b", "n"}


@dataclass(frozen=True)
class Square:
    """Board coordinate.

    Attributes:
        row (int): 0 is Black's back rank (rank 8), 7 is White's (rank 1).
        col (int): 0 is the a-file, 7 is the h-file.

    A square may carry off-board coordinates; ``on_board`` tells the two apart
    and the board refuses to index anything outside ``0..7``.
    """

    row: int
    col: int

    def on_board(self) -> bool:
        return 0 <= self.row < 8 and 0 <= self.col < 8

    def offset(self, dr: int, dc: int) -> "Square":
        return Square(self.row + dr, self.col + dc)

    def __str__(self) -> str:
        if not self.on_board():
            return f"({self.row},{self.col})"
        return square_to_str(self)


@dataclass(frozen=True)
class Move:
    """Coordinate move as submitted by callers.

    Attributes:
        origin (Square): Square the piece leaves.
        destination (Square): Square the piece lands on.
        promotion (Optional[str]): Lowercase promotion letter, if any.
    """

    origin: Square
    destination: Square
    promotion: Optional[str] = None

    def to_uci(self) -> str:
        """Serialize the move into coordinate form.

        Returns:
            str: Move encoded like ``"e2e4"`` or ``"e7e8q"``.
        """
        return square_to_str(self.origin) + square_to_str(self.destination) + (self.promotion or "")


def parse_uci(uci: str) -> Move:
    """Parse a coordinate move string.

    Args:
        uci (str): Move such as ``"e2e4"`` or ``"a7a8n"``.

    Returns:
        Move: Parsed move.

    Raises:
        ValueError: If the string has an invalid length, squares, or promotion
            letter.
    """
    if not isinstance(uci, str) or len(uci) not in (4, 5):
        raise ValueError(f"invalid move length: {uci!r}")
    origin = str_to_square(uci[0:2])
    destination = str_to_square(uci[2:4])
    promo: Optional[str] = None
    if len(uci) == 5:
        promo = uci[4].lower()
        if promo not in PROMOTION_LETTERS:
            raise ValueError(f"invalid promotion piece: {promo!r}")
    return Move(origin, destination, promo)


def str_to_square(s: str) -> Square:
    """Convert algebraic notation into a board square.

    Args:
        s (str): Square name such as ``"e4"``.

    Returns:
        Square: Row/column coordinate for ``s``.

    Raises:
        ValueError: If ``s`` is not a valid square.
    """
    if len(s) != 2 or s[0] < "a" or s[0] > "h" or s[1] < "1" or s[1] > "8":
        raise ValueError(f"invalid square: {s!r}")
    col = ord(s[0]) - ord("a")
    row = 8 - int(s[1])
    return Square(row, col)


def square_to_str(sq: Square) -> str:
    """Convert a board square into algebraic notation.

    Raises:
        ValueError: If ``sq`` is off the board.
    """
    if not sq.on_board():
        raise ValueError(f"invalid square: ({sq.row},{sq.col})")
    return FILES[sq.col] + str(8 - sq.row)
