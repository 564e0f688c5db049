from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Iterable, List, Optional

from .move import Square, square_to_str, str_to_square
from .pieces import (
    LETTER_TO_KIND,
    PROMOTION_KINDS,
    Color,
    Piece,
    PieceKind,
    Wing,
    attacks_square,
    en_passant_victim,
)


STARTPOS_PLACEMENT = "rnbqkbnr/pppppppp/8/8/8/8/PPPPPPPP/RNBQKBNR"

BACK_RANK = [
    PieceKind.ROOK,
    PieceKind.KNIGHT,
    PieceKind.BISHOP,
    PieceKind.QUEEN,
    PieceKind.KING,
    PieceKind.BISHOP,
    PieceKind.KNIGHT,
    PieceKind.ROOK,
]

KING_COL = 4
# wing -> (rook origin col, rook destination col, king destination col)
CASTLE_COLUMNS: Dict[Wing, tuple[int, int, int]] = {
    Wing.KINGSIDE: (7, 5, 6),
    Wing.QUEENSIDE: (0, 3, 2),
}
CASTLING_LETTERS: Dict[tuple[Color, Wing], str] = {
    (Color.WHITE, Wing.KINGSIDE): "K",
    (Color.WHITE, Wing.QUEENSIDE): "Q",
    (Color.BLACK, Wing.KINGSIDE): "k",
    (Color.BLACK, Wing.QUEENSIDE): "q",
}


class BoardInvariantError(RuntimeError):
    """Raised when board bookkeeping is found corrupted."""


class MoveKind(Enum):
    NORMAL = "normal"
    DOUBLE_STEP = "double_step"
    EN_PASSANT = "en_passant"
    CASTLE = "castle"
    PROMOTION = "promotion"


@dataclass(frozen=True)
class LastMove:
    piece: Piece
    start: Square
    end: Square


@dataclass(frozen=True)
class PieceRecord:
    """Flat persisted form of one piece."""

    square: Square
    kind: PieceKind
    color: Color
    has_moved: bool = False


@dataclass
class MoveRecord:
    """Everything ``Board.execute_move`` changed, enough for ``Board.undo``."""

    piece: Piece
    origin: Square
    destination: Square
    kind: MoveKind
    prev_has_moved: bool
    prev_double_stepped: bool
    prev_last_move: Optional[LastMove]
    captured: Optional[Piece] = None
    captured_square: Optional[Square] = None
    rook: Optional[Piece] = None
    rook_origin: Optional[Square] = None
    rook_destination: Optional[Square] = None
    prev_rook_has_moved: bool = False
    promoted: Optional[Piece] = None


class Board:
    """8x8 grid of pieces plus the last executed move.

    Notes:
    - Row 0 is Black's back rank, row 7 is White's; White pawns move toward row 0.
    - The board owns every piece placed on it; a captured piece is simply
      dropped from the grid.
    - Legality against king safety is not checked here (see ``legality``).
    """

    def __init__(self) -> None:
        self._grid: List[List[Optional[Piece]]] = [[None] * 8 for _ in range(8)]
        self.last_move: Optional[LastMove] = None
        # color -> square the king was last placed on
        self._kings: Dict[Color, Square] = {}

    @classmethod
    def empty(cls) -> "Board":
        return cls()

    @classmethod
    def standard(cls) -> "Board":
        """Create a board with the canonical starting position."""
        board = cls()
        for col, kind in enumerate(BACK_RANK):
            board.place(Piece(Color.BLACK, kind, Square(0, col)))
            board.place(Piece(Color.BLACK, PieceKind.PAWN, Square(1, col)))
            board.place(Piece(Color.WHITE, PieceKind.PAWN, Square(6, col)))
            board.place(Piece(Color.WHITE, kind, Square(7, col)))
        return board

    # -- Square access ------------------------------------------------------

    def __getitem__(self, sq: Square) -> Optional[Piece]:
        if not sq.on_board():
            raise ValueError(f"off-board square: ({sq.row},{sq.col})")
        return self._grid[sq.row][sq.col]

    def __setitem__(self, sq: Square, piece: Optional[Piece]) -> None:
        if not sq.on_board():
            raise ValueError(f"off-board square: ({sq.row},{sq.col})")
        self._grid[sq.row][sq.col] = piece
        if piece is None:
            return
        piece.position = sq
        if piece.kind is PieceKind.KING:
            self._kings[piece.color] = sq

    def place(self, piece: Piece) -> None:
        self[piece.position] = piece

    def pieces(self, color: Color) -> List[Piece]:
        """Live pieces of ``color`` in row-major order."""
        return [p for row in self._grid for p in row if p is not None and p.color is color]

    def king_square(self, color: Color) -> Square:
        """Return the tracked king square for ``color``.

        Raises:
            BoardInvariantError: If no king was ever placed for ``color`` or the
                tracked square no longer holds that king.
        """
        sq = self._kings.get(color)
        if sq is None:
            raise BoardInvariantError(f"no {color.value} king on board")
        occupant = self[sq]
        if occupant is None or occupant.kind is not PieceKind.KING or occupant.color is not color:
            raise BoardInvariantError(f"{color.value} king missing from tracked square {sq}")
        return sq

    # -- Queries ------------------------------------------------------------

    def move_is_pseudo_legal(self, origin: Square, destination: Square) -> bool:
        if not origin.on_board() or not destination.on_board():
            return False
        piece = self[origin]
        if piece is None:
            return False
        return piece.pseudo_legal(destination, self)

    def attacked_by(self, sq: Square, side: Color) -> bool:
        """Return True if any piece of ``side`` attacks ``sq``."""
        return any(attacks_square(p, sq, self) for p in self.pieces(side))

    def in_check(self, side: Color) -> bool:
        return self.attacked_by(self.king_square(side), side.opponent)

    def can_castle(self, side: Color, wing: Wing) -> bool:
        """Return True if ``side`` may castle on ``wing`` right now.

        Requires an unmoved king and rook on their home squares, empty squares
        between them, the king not in check, and no attacked square on the
        king's path or landing square.
        """
        row = side.home_row
        rook_col, _, king_dest_col = CASTLE_COLUMNS[wing]
        king = self[Square(row, KING_COL)]
        if king is None or king.kind is not PieceKind.KING or king.color is not side or king.has_moved:
            return False
        rook = self[Square(row, rook_col)]
        if rook is None or rook.kind is not PieceKind.ROOK or rook.color is not side or rook.has_moved:
            return False
        lo, hi = sorted((KING_COL, rook_col))
        if any(self._grid[row][c] is not None for c in range(lo + 1, hi)):
            return False
        if self.in_check(side):
            return False
        step = 1 if king_dest_col > KING_COL else -1
        for col in range(KING_COL + step, king_dest_col + step, step):
            if self.attacked_by(Square(row, col), side.opponent):
                return False
        return True

    # -- Mutation -----------------------------------------------------------

    def _relocate(self, piece: Piece, origin: Square, destination: Square) -> None:
        self[destination] = piece
        self[origin] = None

    def execute_move(
        self, origin: Square, destination: Square, promotion: Optional[PieceKind] = None
    ) -> Optional[MoveRecord]:
        """Execute a pseudo-legal move, including special-move side effects.

        Args:
            origin (Square): Square of the moving piece.
            destination (Square): Target square.
            promotion (Optional[PieceKind]): Piece a promoting pawn becomes;
                defaults to a queen.

        Returns:
            Optional[MoveRecord]: Undo information, or None if the move is not
            pseudo-legal (the board is left untouched).

        Raises:
            ValueError: If ``promotion`` is not a queen, rook, bishop or knight.
        """
        if promotion is not None and promotion not in PROMOTION_KINDS:
            raise ValueError(f"invalid promotion piece: {promotion.value}")
        if not self.move_is_pseudo_legal(origin, destination):
            return None

        piece = self[origin]
        assert piece is not None
        record = MoveRecord(
            piece=piece,
            origin=origin,
            destination=destination,
            kind=MoveKind.NORMAL,
            prev_has_moved=piece.has_moved,
            prev_double_stepped=piece.just_double_stepped,
            prev_last_move=self.last_move,
        )

        victim = en_passant_victim(piece, destination, self)
        if victim is not None:
            record.kind = MoveKind.EN_PASSANT
            record.captured = victim
            record.captured_square = victim.position
            self[victim.position] = None
            self._relocate(piece, origin, destination)
        elif (
            piece.kind is PieceKind.KING
            and origin.row == destination.row
            and abs(destination.col - origin.col) == 2
        ):
            wing = Wing.KINGSIDE if destination.col > origin.col else Wing.QUEENSIDE
            rook_col, rook_dest_col, _ = CASTLE_COLUMNS[wing]
            rook_origin = Square(origin.row, rook_col)
            rook_destination = Square(origin.row, rook_dest_col)
            rook = self[rook_origin]
            assert rook is not None
            record.kind = MoveKind.CASTLE
            record.rook = rook
            record.rook_origin = rook_origin
            record.rook_destination = rook_destination
            record.prev_rook_has_moved = rook.has_moved
            self._relocate(piece, origin, destination)
            self._relocate(rook, rook_origin, rook_destination)
            rook.has_moved = True
        else:
            captured = self[destination]
            if captured is not None:
                record.captured = captured
                record.captured_square = destination
            self._relocate(piece, origin, destination)
            if piece.kind is PieceKind.PAWN and abs(destination.row - origin.row) == 2:
                record.kind = MoveKind.DOUBLE_STEP

        piece.has_moved = True
        if piece.kind is PieceKind.PAWN:
            piece.just_double_stepped = record.kind is MoveKind.DOUBLE_STEP
        self.last_move = LastMove(piece, origin, destination)

        if piece.kind is PieceKind.PAWN and destination.row == piece.color.promotion_row:
            promoted = Piece(piece.color, promotion or PieceKind.QUEEN, destination, has_moved=True)
            self[destination] = promoted
            record.kind = MoveKind.PROMOTION
            record.promoted = promoted
        return record

    def undo(self, record: MoveRecord) -> None:
        """Revert a move produced by ``execute_move``.

        Records must be undone in reverse order of execution.
        """
        piece = record.piece
        self[record.destination] = None
        self[record.origin] = piece
        if record.captured is not None and record.captured_square is not None:
            self[record.captured_square] = record.captured
        if record.rook is not None and record.rook_origin is not None and record.rook_destination is not None:
            self[record.rook_destination] = None
            self[record.rook_origin] = record.rook
            record.rook.has_moved = record.prev_rook_has_moved
        piece.has_moved = record.prev_has_moved
        piece.just_double_stepped = record.prev_double_stepped
        self.last_move = record.prev_last_move

    # -- Records ------------------------------------------------------------

    def to_records(self) -> List[PieceRecord]:
        return [
            PieceRecord(p.position, p.kind, p.color, p.has_moved)
            for row in self._grid
            for p in row
            if p is not None
        ]

    @classmethod
    def from_records(cls, records: Iterable[PieceRecord]) -> "Board":
        """Build a board from flat piece records.

        Double-step flags and the last move are not part of a record, so a
        rebuilt board never has an en passant capture pending.

        Raises:
            ValueError: On off-board or duplicate squares, pawns on a back
                rank, or a side without exactly one king.
        """
        board = cls()
        kings = {Color.WHITE: 0, Color.BLACK: 0}
        for rec in records:
            if not rec.square.on_board():
                raise ValueError(f"off-board square: ({rec.square.row},{rec.square.col})")
            if board[rec.square] is not None:
                raise ValueError(f"duplicate square: {rec.square}")
            if rec.kind is PieceKind.PAWN and rec.square.row in (0, 7):
                raise ValueError(f"pawn on back rank: {rec.square}")
            if rec.kind is PieceKind.KING:
                kings[rec.color] += 1
            board.place(Piece(rec.color, rec.kind, rec.square, has_moved=rec.has_moved))
        for color, count in kings.items():
            if count != 1:
                raise ValueError(f"expected exactly one {color.value} king, found {count}")
        return board

    # -- FEN ----------------------------------------------------------------

    @classmethod
    def from_fen(cls, placement: str, castling: str = "-", en_passant: str = "-") -> "Board":
        """Build a board from the first, third and fourth FEN fields.

        Move flags are derived: pawns off their starting row, and kings or
        rooks without a matching castling right, count as moved. An en passant
        target marks the pawn in front of it as having just double-stepped.

        Raises:
            ValueError: If any field is malformed.
        """
        ranks = placement.split("/")
        if len(ranks) != 8:
            raise ValueError("FEN board must have 8 ranks")
        if castling != "-" and (not castling or any(ch not in "KQkq" for ch in castling)):
            raise ValueError("invalid castling rights")
        rights = set() if castling == "-" else set(castling)

        records: List[PieceRecord] = []
        for row, rank in enumerate(ranks):
            col = 0
            for ch in rank:
                if ch.isdigit():
                    n = int(ch)
                    if n < 1 or n > 8:
                        raise ValueError("invalid empty count in FEN rank")
                    col += n
                    continue
                kind = LETTER_TO_KIND.get(ch.lower())
                if kind is None:
                    raise ValueError(f"invalid piece in FEN: {ch!r}")
                if col >= 8:
                    raise ValueError("too many squares in FEN rank")
                color = Color.WHITE if ch.isupper() else Color.BLACK
                sq = Square(row, col)
                records.append(PieceRecord(sq, kind, color, _derived_has_moved(kind, color, sq, rights)))
                col += 1
            if col != 8:
                raise ValueError("rank does not sum to 8 squares in FEN")

        board = cls.from_records(records)
        if en_passant != "-":
            board._seed_en_passant(en_passant)
        return board

    def _seed_en_passant(self, target_str: str) -> None:
        try:
            target = str_to_square(target_str)
        except ValueError as e:
            raise ValueError("invalid en passant square") from e
        if target.row == 5:
            color = Color.WHITE
        elif target.row == 2:
            color = Color.BLACK
        else:
            raise ValueError("invalid en passant square rank")
        pawn = self[Square(target.row + color.forward, target.col)]
        if pawn is None or pawn.kind is not PieceKind.PAWN or pawn.color is not color:
            raise ValueError("en passant square without a double-stepped pawn")
        pawn.has_moved = True
        pawn.just_double_stepped = True
        self.last_move = LastMove(pawn, Square(target.row - color.forward, target.col), pawn.position)

    def placement_fen(self) -> str:
        rows: List[str] = []
        for row in self._grid:
            run = 0
            out = []
            for p in row:
                if p is None:
                    run += 1
                    continue
                if run:
                    out.append(str(run))
                    run = 0
                out.append(p.symbol)
            if run:
                out.append(str(run))
            rows.append("".join(out))
        return "/".join(rows)

    def castling_fen(self) -> str:
        """Castling rights implied by unmoved kings and rooks on home squares."""
        letters = []
        for (color, wing), letter in CASTLING_LETTERS.items():
            row = color.home_row
            king = self._grid[row][KING_COL]
            rook = self._grid[row][CASTLE_COLUMNS[wing][0]]
            if (
                king is not None
                and king.kind is PieceKind.KING
                and king.color is color
                and not king.has_moved
                and rook is not None
                and rook.kind is PieceKind.ROOK
                and rook.color is color
                and not rook.has_moved
            ):
                letters.append(letter)
        return "".join(letters) or "-"

    def en_passant_fen(self) -> str:
        last = self.last_move
        if last is None or last.piece.kind is not PieceKind.PAWN or not last.piece.just_double_stepped:
            return "-"
        if abs(last.start.row - last.end.row) != 2:
            return "-"
        return square_to_str(Square((last.start.row + last.end.row) // 2, last.end.col))


def _derived_has_moved(kind: PieceKind, color: Color, sq: Square, rights: set[str]) -> bool:
    if kind is PieceKind.PAWN:
        return sq.row != color.home_row + color.forward
    if kind is PieceKind.KING:
        if sq != Square(color.home_row, KING_COL):
            return True
        return not any(CASTLING_LETTERS[(color, w)] in rights for w in Wing)
    if kind is PieceKind.ROOK:
        for wing in Wing:
            if sq == Square(color.home_row, CASTLE_COLUMNS[wing][0]):
                return CASTLING_LETTERS[(color, wing)] not in rights
        return True
    return False
