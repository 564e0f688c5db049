from __future__ import annotations

from chessrules.engine.board import MoveKind
from chessrules.engine.game import Game, MoveOutcome, legal_moves
from chessrules.engine.move import str_to_square as sq
from chessrules.engine.pieces import Color, PieceKind


def test_capture_after_e4_d5_removes_pawn_from_d5(play) -> None:
    game = play(Game.new(), "e2e4", "d7d5")
    result = game.attempt_move(sq("e4"), sq("d5"))
    assert result.accepted
    assert result.captured is PieceKind.PAWN
    pawn = game.board[sq("d5")]
    assert pawn is not None and pawn.color is Color.WHITE
    assert game.board[sq("e4")] is None


def test_en_passant_immediately_after_double_step(play) -> None:
    game = play(Game.new(), "e2e4", "a7a6", "e4e5", "d7d5")
    assert (sq("e5"), sq("d6")) in game.legal_moves()
    result = game.attempt_move(sq("e5"), sq("d6"))
    assert result.accepted
    assert result.captured is PieceKind.PAWN
    assert game.board[sq("d5")] is None
    pawn = game.board[sq("d6")]
    assert pawn is not None and pawn.color is Color.WHITE
    assert game.history[-1].kind is MoveKind.EN_PASSANT


def test_diagonal_into_empty_square_without_double_step_is_illegal(play) -> None:
    game = play(Game.new(), "e2e4", "a7a6", "e4e5", "d7d6")
    # d6 is occupied now, so check the other diagonal
    before = game.to_fen()
    assert game.attempt_move(sq("e5"), sq("f6")).outcome is MoveOutcome.REJECTED_ILLEGAL
    assert game.to_fen() == before


def test_en_passant_expires_after_one_turn(play) -> None:
    game = play(Game.new(), "e2e4", "a7a6", "e4e5", "d7d5", "g1f3", "h7h6")
    before = game.to_fen()
    assert game.attempt_move(sq("e5"), sq("d6")).outcome is MoveOutcome.REJECTED_ILLEGAL
    assert game.to_fen() == before
    pawn = game.board[sq("d5")]
    assert pawn is not None and pawn.just_double_stepped


def test_single_steps_do_not_enable_en_passant(play) -> None:
    game = play(Game.new(), "e2e4", "d7d6", "e4e5", "d6d5")
    assert game.attempt_move(sq("e5"), sq("d6")).outcome is MoveOutcome.REJECTED_ILLEGAL


def test_black_captures_en_passant() -> None:
    game = Game.from_fen("4k3/8/8/8/3p4/8/4P3/4K3 w - - 0 1")
    assert game.attempt_move(sq("e2"), sq("e4")).accepted
    assert game.to_fen().split()[3] == "e3"
    result = game.attempt_move(sq("d4"), sq("e3"))
    assert result.accepted and result.captured is PieceKind.PAWN
    assert game.board[sq("e4")] is None
    assert game.to_fen().split()[3] == "-"


def test_en_passant_target_from_fen() -> None:
    game = Game.from_fen("4k3/8/8/8/3pP3/8/8/4K3 b - e3 0 1")
    assert (sq("d4"), sq("e3")) in game.legal_moves()
    assert game.to_fen() == "4k3/8/8/8/3pP3/8/8/4K3 b - e3 0 1"


def test_en_passant_exposing_king_along_rank_is_illegal() -> None:
    fen = "8/8/8/K2pP2r/8/8/8/7k w - d6 0 1"
    game = Game.from_fen(fen)
    assert (sq("e5"), sq("d6")) not in legal_moves(game.board, Color.WHITE)
    assert game.attempt_move(sq("e5"), sq("d6")).outcome is MoveOutcome.REJECTED_ILLEGAL
    assert game.to_fen() == fen

    unpinned = Game.from_fen("8/8/8/K2pP3/8/8/8/7k w - d6 0 1")
    assert unpinned.attempt_move(sq("e5"), sq("d6")).accepted


def test_double_step_flag_clears_on_next_move(play) -> None:
    game = play(Game.new(), "e2e4", "a7a6", "e4e5")
    pawn = game.board[sq("e5")]
    assert pawn is not None and not pawn.just_double_stepped
