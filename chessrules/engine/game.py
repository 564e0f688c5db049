from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, Iterator, List, Optional, Tuple

from .board import CASTLE_COLUMNS, KING_COL, Board, BoardInvariantError, MoveKind, MoveRecord, PieceRecord
from .legality import is_legal
from .move import Square, square_to_str
from .pieces import KIND_TO_LETTER, PROMOTION_KINDS, Color, PieceKind, Wing


logger = logging.getLogger(__name__)


class GameStatus(Enum):
    ACTIVE = "active"
    CHECK = "check"
    CHECKMATE = "checkmate"
    STALEMATE = "stalemate"

    @property
    def is_terminal(self) -> bool:
        return self in (GameStatus.CHECKMATE, GameStatus.STALEMATE)


class MoveOutcome(Enum):
    ACCEPTED = "accepted"
    REJECTED_MALFORMED = "rejected_malformed"
    REJECTED_NO_PIECE = "rejected_no_piece"
    REJECTED_WRONG_COLOR = "rejected_wrong_color"
    REJECTED_ILLEGAL = "rejected_illegal"
    REJECTED_GAME_OVER = "rejected_game_over"


class CastleOutcome(Enum):
    ACCEPTED = "accepted"
    REJECTED = "rejected"


@dataclass(frozen=True)
class MoveResult:
    outcome: MoveOutcome
    captured: Optional[PieceKind] = None

    @property
    def accepted(self) -> bool:
        return self.outcome is MoveOutcome.ACCEPTED


@dataclass(frozen=True)
class HistoryEntry:
    """One accepted move as shown to callers."""

    move_number: int
    side: Color
    piece: PieceKind
    origin: Square
    destination: Square
    captured: Optional[PieceKind]
    kind: MoveKind
    promotion: Optional[PieceKind] = None

    def to_uci(self) -> str:
        promo = KIND_TO_LETTER[self.promotion] if self.promotion is not None else ""
        return square_to_str(self.origin) + square_to_str(self.destination) + promo


@dataclass
class _UndoFrame:
    record: MoveRecord
    side: Color
    status: GameStatus
    halfmove_clock: int
    fullmove_number: int


def _iter_legal_moves(board: Board, side: Color) -> Iterator[Tuple[Square, Square]]:
    for piece in board.pieces(side):
        origin = piece.position
        for row in range(8):
            for col in range(8):
                dest = Square(row, col)
                if board.move_is_pseudo_legal(origin, dest) and is_legal(
                    board, origin, dest, side, assume_pseudo=True
                ):
                    yield origin, dest


def legal_moves(board: Board, side: Color) -> List[Tuple[Square, Square]]:
    """Enumerate every legal (origin, destination) pair for ``side``.

    Computed fresh on each call. A promoting pawn contributes one pair per
    destination; the promotion piece is chosen when the move is submitted.
    """
    return list(_iter_legal_moves(board, side))


def has_any_legal_move(board: Board, side: Color) -> bool:
    return any(True for _ in _iter_legal_moves(board, side))


def evaluate_status(board: Board, side: Color) -> GameStatus:
    """Derive check, checkmate or stalemate for ``side`` to move."""
    in_check = board.in_check(side)
    if not has_any_legal_move(board, side):
        return GameStatus.CHECKMATE if in_check else GameStatus.STALEMATE
    return GameStatus.CHECK if in_check else GameStatus.ACTIVE


@dataclass
class Game:
    """Turn state machine around a board.

    Responsibility: validate submitted moves for the side to move, execute
    them, keep history and derive the game status.

    After a terminal move ``current_side`` stays on the side that made it, so
    the winner of a checkmate is ``current_side``.
    """

    board: Board
    current_side: Color = Color.WHITE
    status: GameStatus = GameStatus.ACTIVE
    history: List[HistoryEntry] = field(default_factory=list)
    halfmove_clock: int = 0
    fullmove_number: int = 1
    _frames: List[_UndoFrame] = field(default_factory=list, repr=False)

    def __post_init__(self) -> None:
        if self.board.in_check(self.current_side.opponent):
            raise ValueError(f"{self.current_side.opponent.value} is in check but not to move")
        self.status = evaluate_status(self.board, self.current_side)
        if self.status.is_terminal:
            # Loaded in a finished position: treat the opponent as the last mover
            self.current_side = self.current_side.opponent

    @classmethod
    def new(cls) -> "Game":
        return cls(board=Board.standard())

    @classmethod
    def from_board(cls, board: Board, side: Color = Color.WHITE) -> "Game":
        return cls(board=board, current_side=side)

    @classmethod
    def from_records(cls, records: Iterable[PieceRecord], side: Color = Color.WHITE) -> "Game":
        return cls(board=Board.from_records(records), current_side=side)

    @classmethod
    def from_fen(cls, fen: str) -> "Game":
        """Create a game from a FEN string.

        The halfmove and fullmove fields are optional and default to ``0 1``.

        Raises:
            ValueError: If the FEN is malformed or inconsistent, including a
                position where the side not to move is in check.
        """
        if not fen or not isinstance(fen, str):
            raise ValueError("FEN must be a non-empty string")
        parts = fen.strip().split()
        if len(parts) not in (4, 6):
            raise ValueError("FEN must have 4 or 6 fields")
        placement, stm, castling, ep = parts[:4]
        if stm not in ("w", "b"):
            raise ValueError("side to move must be 'w' or 'b'")
        side = Color.WHITE if stm == "w" else Color.BLACK
        if ep != "-" and ep[1:] != ("6" if side is Color.WHITE else "3"):
            raise ValueError("en passant square does not match side to move")
        halfmove_clock, fullmove_number = 0, 1
        if len(parts) == 6:
            try:
                halfmove_clock = int(parts[4])
                fullmove_number = int(parts[5])
            except ValueError as e:
                raise ValueError("invalid move counters in FEN") from e
            if halfmove_clock < 0 or fullmove_number <= 0:
                raise ValueError("invalid move counters in FEN")
        board = Board.from_fen(placement, castling, ep)
        return cls(
            board=board,
            current_side=side,
            halfmove_clock=halfmove_clock,
            fullmove_number=fullmove_number,
        )

    def to_fen(self) -> str:
        stm = "w" if self.side_to_move is Color.WHITE else "b"
        return " ".join(
            [
                self.board.placement_fen(),
                stm,
                self.board.castling_fen(),
                self.board.en_passant_fen(),
                str(self.halfmove_clock),
                str(self.fullmove_number),
            ]
        )

    # --- Queries ---

    @property
    def side_to_move(self) -> Color:
        """Side that has to answer the position; differs from ``current_side`` once the game is over."""
        return self.current_side.opponent if self.status.is_terminal else self.current_side

    @property
    def is_over(self) -> bool:
        return self.status.is_terminal

    @property
    def winner(self) -> Optional[Color]:
        return self.current_side if self.status is GameStatus.CHECKMATE else None

    def in_check(self) -> bool:
        return self.board.in_check(self.side_to_move)

    def legal_moves(self) -> List[Tuple[Square, Square]]:
        return legal_moves(self.board, self.side_to_move)

    def status_for(self, side: Color) -> GameStatus:
        return evaluate_status(self.board, side)

    def move_history_uci(self) -> List[str]:
        return [h.to_uci() for h in self.history]

    # --- Moves ---

    def attempt_move(
        self, origin: Square, destination: Square, promotion: Optional[PieceKind] = None
    ) -> MoveResult:
        """Validate and play a move for ``current_side``.

        Every rejection leaves the board exactly as it was.
        """
        outcome = self._screen(origin, destination, promotion)
        if outcome is not MoveOutcome.ACCEPTED:
            logger.debug("move %s -> %s rejected: %s", origin, destination, outcome.value)
            return MoveResult(outcome)
        return self._commit(origin, destination, promotion)

    def attempt_castle(self, wing: Wing) -> CastleOutcome:
        """Castle ``current_side`` on ``wing`` if the position allows it."""
        side = self.current_side
        if self.status.is_terminal:
            return CastleOutcome.REJECTED
        row = side.home_row
        origin = Square(row, KING_COL)
        destination = Square(row, CASTLE_COLUMNS[wing][2])
        if not self.board.can_castle(side, wing) or not is_legal(self.board, origin, destination, side):
            logger.debug("%s castle %s rejected", side.value, wing.value)
            return CastleOutcome.REJECTED
        self._commit(origin, destination, None)
        return CastleOutcome.ACCEPTED

    def undo_move(self) -> None:
        if not self._frames:
            raise ValueError("no moves to undo")
        frame = self._frames.pop()
        self.board.undo(frame.record)
        self.history.pop()
        self.current_side = frame.side
        self.status = frame.status
        self.halfmove_clock = frame.halfmove_clock
        self.fullmove_number = frame.fullmove_number

    def _screen(
        self, origin: Square, destination: Square, promotion: Optional[PieceKind]
    ) -> MoveOutcome:
        if self.status.is_terminal:
            return MoveOutcome.REJECTED_GAME_OVER
        if not origin.on_board() or not destination.on_board():
            return MoveOutcome.REJECTED_MALFORMED
        if promotion is not None and promotion not in PROMOTION_KINDS:
            return MoveOutcome.REJECTED_MALFORMED
        piece = self.board[origin]
        if piece is None:
            return MoveOutcome.REJECTED_NO_PIECE
        if piece.color is not self.current_side:
            return MoveOutcome.REJECTED_WRONG_COLOR
        target = self.board[destination]
        if target is not None and target.kind is PieceKind.KING:
            return MoveOutcome.REJECTED_ILLEGAL
        if not self.board.move_is_pseudo_legal(origin, destination):
            return MoveOutcome.REJECTED_ILLEGAL
        if not is_legal(self.board, origin, destination, self.current_side, assume_pseudo=True):
            return MoveOutcome.REJECTED_ILLEGAL
        return MoveOutcome.ACCEPTED

    def _commit(
        self, origin: Square, destination: Square, promotion: Optional[PieceKind]
    ) -> MoveResult:
        side = self.current_side
        frame_status = self.status
        record = self.board.execute_move(origin, destination, promotion)
        if record is None:
            raise BoardInvariantError(f"validated move {origin} -> {destination} failed to execute")

        captured = record.captured.kind if record.captured is not None else None
        self.history.append(
            HistoryEntry(
                move_number=len(self.history) + 1,
                side=side,
                piece=record.piece.kind,
                origin=origin,
                destination=destination,
                captured=captured,
                kind=record.kind,
                promotion=record.promoted.kind if record.promoted is not None else None,
            )
        )
        self._frames.append(
            _UndoFrame(record, side, frame_status, self.halfmove_clock, self.fullmove_number)
        )
        if record.piece.kind is PieceKind.PAWN or captured is not None:
            self.halfmove_clock = 0
        else:
            self.halfmove_clock += 1
        if side is Color.BLACK:
            self.fullmove_number += 1

        self.status = evaluate_status(self.board, side.opponent)
        if self.status.is_terminal:
            logger.info("game over: %s after %s", self.status.value, self.history[-1].to_uci())
        else:
            self.current_side = side.opponent
        logger.debug("%s played %s", side.value, self.history[-1].to_uci())
        return MoveResult(MoveOutcome.ACCEPTED, captured)


def new_game() -> Game:
    return Game.new()
