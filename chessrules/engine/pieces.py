from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Callable, Dict, Optional

from .move import Square

if TYPE_CHECKING:
    from .board import Board


class Color(Enum):
    WHITE = "white"
    BLACK = "black"

    @property
    def opponent(self) -> "Color":
        return Color.BLACK if self is Color.WHITE else Color.WHITE

    @property
    def forward(self) -> int:
        """Row delta of a pawn advance: White moves toward row 0."""
        return -1 if self is Color.WHITE else 1

    @property
    def home_row(self) -> int:
        return 7 if self is Color.WHITE else 0

    @property
    def promotion_row(self) -> int:
        return 0 if self is Color.WHITE else 7


class PieceKind(Enum):
    PAWN = "pawn"
    KNIGHT = "knight"
    BISHOP = "bishop"
    ROOK = "rook"
    QUEEN = "queen"
    KING = "king"


class Wing(Enum):
    KINGSIDE = "kingside"
    QUEENSIDE = "queenside"


PROMOTION_KINDS = {PieceKind.QUEEN, PieceKind.ROOK, PieceKind.BISHOP, PieceKind.KNIGHT}

KIND_TO_LETTER: Dict[PieceKind, str] = {
    PieceKind.PAWN: "p",
    PieceKind.KNIGHT: "n",
    PieceKind.BISHOP: "b",
    PieceKind.ROOK: "r",
    PieceKind.QUEEN: "q",
    PieceKind.KING: "k",
}
LETTER_TO_KIND = {v: k for k, v in KIND_TO_LETTER.items()}


@dataclass(eq=False)
class Piece:
    """A piece owned by a board.

    Equality is identity: the en passant check compares the last mover with
    the pawn standing beside the capturer.

    Attributes:
        color (Color): Owner, fixed at construction.
        kind (PieceKind): Variant tag used for geometry dispatch.
        position (Square): Current square, written only by the board.
        has_moved (bool): Set on first move; gates castling and double steps.
        just_double_stepped (bool): Pawn-only, true right after a two-square
            advance and cleared by that pawn's next move.
    """

    color: Color
    kind: PieceKind
    position: Square
    has_moved: bool = False
    just_double_stepped: bool = False

    @property
    def symbol(self) -> str:
        """FEN character (uppercase = white, lowercase = black)."""
        letter = KIND_TO_LETTER[self.kind]
        return letter.upper() if self.color is Color.WHITE else letter

    def pseudo_legal(self, destination: Square, board: "Board") -> bool:
        return pseudo_legal(self, destination, board)


def _sign(n: int) -> int:
    return (n > 0) - (n < 0)


def clear_path(origin: Square, destination: Square, board: "Board") -> bool:
    """Return True if every square strictly between the two is empty.

    The destination's occupant is not examined.

    Raises:
        ValueError: If the squares do not share a row, column or diagonal.
    """
    dr = destination.row - origin.row
    dc = destination.col - origin.col
    if not (dr == 0 or dc == 0 or abs(dr) == abs(dc)):
        raise ValueError(f"no straight path from {origin} to {destination}")
    step_r, step_c = _sign(dr), _sign(dc)
    cur = origin.offset(step_r, step_c)
    while cur != destination:
        if board[cur] is not None:
            return False
        cur = cur.offset(step_r, step_c)
    return True


def en_passant_victim(pawn: Piece, destination: Square, board: "Board") -> Optional[Piece]:
    """Return the enemy pawn captured if ``pawn`` moves to ``destination`` en passant.

    The move must be a one-step forward diagonal into an empty square, beside
    an enemy pawn whose two-square advance was the board's last move.
    """
    if pawn.kind is not PieceKind.PAWN or not destination.on_board():
        return None
    origin = pawn.position
    if destination.row - origin.row != pawn.color.forward or abs(destination.col - origin.col) != 1:
        return None
    if board[destination] is not None:
        return None
    victim = board[Square(origin.row, destination.col)]
    if victim is None or victim.kind is not PieceKind.PAWN or victim.color is pawn.color:
        return None
    if not victim.just_double_stepped:
        return None
    last = board.last_move
    if last is None or last.piece is not victim:
        return None
    if abs(last.start.row - last.end.row) != 2:
        return None
    return victim


def _pawn_move(pawn: Piece, destination: Square, board: "Board") -> bool:
    origin = pawn.position
    dr = destination.row - origin.row
    dc = destination.col - origin.col
    forward = pawn.color.forward
    if dc == 0:
        if dr == forward:
            return board[destination] is None
        if dr == 2 * forward and not pawn.has_moved:
            return board[origin.offset(forward, 0)] is None and board[destination] is None
        return False
    if abs(dc) == 1 and dr == forward:
        occupant = board[destination]
        if occupant is not None:
            return occupant.color is not pawn.color
        return en_passant_victim(pawn, destination, board) is not None
    return False


def _knight_move(piece: Piece, destination: Square, board: "Board") -> bool:
    dr = abs(destination.row - piece.position.row)
    dc = abs(destination.col - piece.position.col)
    return (dr, dc) in ((1, 2), (2, 1))


def _bishop_move(piece: Piece, destination: Square, board: "Board") -> bool:
    dr = abs(destination.row - piece.position.row)
    dc = abs(destination.col - piece.position.col)
    return dr == dc and dr != 0 and clear_path(piece.position, destination, board)


def _rook_move(piece: Piece, destination: Square, board: "Board") -> bool:
    dr = destination.row - piece.position.row
    dc = destination.col - piece.position.col
    return (dr == 0) != (dc == 0) and clear_path(piece.position, destination, board)


def _queen_move(piece: Piece, destination: Square, board: "Board") -> bool:
    return _bishop_move(piece, destination, board) or _rook_move(piece, destination, board)


def _king_move(king: Piece, destination: Square, board: "Board") -> bool:
    dr = destination.row - king.position.row
    dc = destination.col - king.position.col
    if max(abs(dr), abs(dc)) == 1:
        return True
    if dr == 0 and abs(dc) == 2:
        wing = Wing.KINGSIDE if dc > 0 else Wing.QUEENSIDE
        return board.can_castle(king.color, wing)
    return False


_GEOMETRY: Dict[PieceKind, Callable[[Piece, Square, "Board"], bool]] = {
    PieceKind.PAWN: _pawn_move,
    PieceKind.KNIGHT: _knight_move,
    PieceKind.BISHOP: _bishop_move,
    PieceKind.ROOK: _rook_move,
    PieceKind.QUEEN: _queen_move,
    PieceKind.KING: _king_move,
}


def pseudo_legal(piece: Piece, destination: Square, board: "Board") -> bool:
    """Return True if ``piece`` may move to ``destination`` ignoring king safety.

    Args:
        piece (Piece): Piece standing on the board.
        destination (Square): Target square, possibly off-board.
        board (Board): Board the piece belongs to.

    Returns:
        bool: False for off-board or friendly-occupied destinations, otherwise
        the verdict of the piece kind's geometry rule.
    """
    if not destination.on_board() or destination == piece.position:
        return False
    occupant = board[destination]
    if occupant is not None and occupant.color is piece.color:
        return False
    return _GEOMETRY[piece.kind](piece, destination, board)


def attacks_square(piece: Piece, target: Square, board: "Board") -> bool:
    """Return True if ``piece`` attacks ``target``.

    Pawns and kings are resolved from their capture pattern alone so that two
    kings probing each other's squares never recurse into castling checks.
    """
    origin = piece.position
    dr = target.row - origin.row
    dc = target.col - origin.col
    if piece.kind is PieceKind.PAWN:
        return dr == piece.color.forward and abs(dc) == 1
    if piece.kind is PieceKind.KING:
        return max(abs(dr), abs(dc)) == 1
    return pseudo_legal(piece, target, board)
