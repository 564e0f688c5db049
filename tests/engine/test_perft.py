from __future__ import annotations

import pytest

from chessrules.engine.board import Board
from chessrules.engine.game import Game
from chessrules.engine.perft import perft
from chessrules.engine.pieces import Color


START_FEN = "rnbqkbnr/pppppppp/8/8/8/8/PPPPPPPP/RNBQKBNR w KQkq - 0 1"
KIWIPETE = "r3k2r/p1ppqpb1/bn2pnp1/3PN3/1p2P3/2N2Q1p/PPPBBPPP/R3K2R w KQkq - 0 1"
POSITION_3 = "8/2p5/3p4/KP5r/1R3p1k/8/4P1P1/8 w - - 0 1"


def _perft(fen: str, depth: int) -> int:
    game = Game.from_fen(fen)
    return perft(game.board, game.side_to_move, depth)


@pytest.mark.parametrize("depth,nodes", [(0, 1), (1, 20), (2, 400), (3, 8902)])
def test_startpos(depth: int, nodes: int) -> None:
    assert _perft(START_FEN, depth) == nodes


@pytest.mark.parametrize("depth,nodes", [(1, 48), (2, 2039)])
def test_kiwipete(depth: int, nodes: int) -> None:
    assert _perft(KIWIPETE, depth) == nodes


@pytest.mark.parametrize("depth,nodes", [(1, 14), (2, 191), (3, 2812)])
def test_position_3(depth: int, nodes: int) -> None:
    assert _perft(POSITION_3, depth) == nodes


def test_perft_leaves_board_unchanged() -> None:
    game = Game.from_fen(KIWIPETE)
    before = (game.board.placement_fen(), game.board.to_records(), game.board.last_move)
    perft(game.board, Color.WHITE, 2)
    assert (game.board.placement_fen(), game.board.to_records(), game.board.last_move) == before


def test_negative_depth_rejected() -> None:
    with pytest.raises(ValueError):
        perft(Board.standard(), Color.WHITE, -1)
