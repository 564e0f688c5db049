from __future__ import annotations

import pytest

from chessrules.engine.board import MoveKind
from chessrules.engine.game import Game, GameStatus, MoveOutcome
from chessrules.engine.move import str_to_square as sq
from chessrules.engine.pieces import Color, PieceKind


def test_promotion_defaults_to_queen() -> None:
    game = Game.from_fen("4k3/P7/8/8/8/8/8/4K3 w - - 0 1")
    result = game.attempt_move(sq("a7"), sq("a8"))
    assert result.accepted
    queen = game.board[sq("a8")]
    assert queen is not None
    assert queen.kind is PieceKind.QUEEN and queen.color is Color.WHITE
    assert game.status is GameStatus.CHECK
    entry = game.history[-1]
    assert entry.kind is MoveKind.PROMOTION
    assert entry.piece is PieceKind.PAWN
    assert entry.promotion is PieceKind.QUEEN
    assert game.move_history_uci() == ["a7a8q"]


@pytest.mark.parametrize("kind", [PieceKind.KNIGHT, PieceKind.BISHOP, PieceKind.ROOK])
def test_promotion_to_chosen_piece(kind: PieceKind) -> None:
    game = Game.from_fen("4k3/P7/8/8/8/8/8/4K3 w - - 0 1")
    assert game.attempt_move(sq("a7"), sq("a8"), kind).accepted
    promoted = game.board[sq("a8")]
    assert promoted is not None and promoted.kind is kind


@pytest.mark.parametrize("kind", [PieceKind.KING, PieceKind.PAWN])
def test_invalid_promotion_choice_is_rejected(kind: PieceKind) -> None:
    fen = "4k3/P7/8/8/8/8/8/4K3 w - - 0 1"
    game = Game.from_fen(fen)
    assert game.attempt_move(sq("a7"), sq("a8"), kind).outcome is MoveOutcome.REJECTED_MALFORMED
    assert game.to_fen() == fen
    assert game.history == []


def test_capture_promotion() -> None:
    game = Game.from_fen("1r2k3/P7/8/8/8/8/8/4K3 w - - 0 1")
    result = game.attempt_move(sq("a7"), sq("b8"))
    assert result.accepted and result.captured is PieceKind.ROOK
    queen = game.board[sq("b8")]
    assert queen is not None and queen.kind is PieceKind.QUEEN


def test_black_promotes_on_row_seven() -> None:
    game = Game.from_fen("4k3/8/8/8/8/8/p7/4K3 b - - 0 1")
    assert game.attempt_move(sq("a2"), sq("a1")).accepted
    queen = game.board[sq("a1")]
    assert queen is not None and queen.color is Color.BLACK and queen.kind is PieceKind.QUEEN
    assert game.status is GameStatus.CHECK
    assert game.current_side is Color.WHITE


def test_undo_promotion_restores_pawn() -> None:
    fen = "4k3/P7/8/8/8/8/8/4K3 w - - 0 1"
    game = Game.from_fen(fen)
    assert game.attempt_move(sq("a7"), sq("a8"), PieceKind.KNIGHT).accepted
    game.undo_move()
    pawn = game.board[sq("a7")]
    assert pawn is not None and pawn.kind is PieceKind.PAWN
    assert game.board[sq("a8")] is None
    assert game.to_fen() == fen
