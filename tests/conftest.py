import os
import sys

import pytest


# Ensure the repository root is on sys.path for `from chessrules...` imports
REPO_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), os.pardir))
if REPO_ROOT not in sys.path:
    sys.path.insert(0, REPO_ROOT)

from chessrules.engine.game import Game  # noqa: E402
from chessrules.engine.move import str_to_square  # noqa: E402


@pytest.fixture
def play():
    """Play coordinate moves on a game, failing the test on any rejection."""

    def _play(game: Game, *moves: str) -> Game:
        for mv in moves:
            result = game.attempt_move(str_to_square(mv[:2]), str_to_square(mv[2:4]))
            assert result.accepted, f"{mv}: {result.outcome}"
        return game

    return _play
