from __future__ import annotations

from .board import Board, BoardInvariantError
from .game import legal_moves
from .pieces import Color


def perft(board: Board, side: Color, depth: int) -> int:
    """Compute perft node count for ``side`` to move on ``board`` at ``depth``.

    Definition:
    - depth == 0 returns 1 (the current node).
    - depth > 0 returns the sum over all legal child positions' perft(depth-1).

    Note: children are visited with execute/undo on the same board, which is
    restored before returning. Promotions count once per origin/destination
    pair (always to a queen), so positions with promoting pawns differ from
    the standard published counts.
    """
    if depth < 0:
        raise ValueError("depth must be >= 0")
    if depth == 0:
        return 1

    moves = legal_moves(board, side)
    if depth == 1:
        return len(moves)

    nodes = 0
    for origin, destination in moves:
        record = board.execute_move(origin, destination)
        if record is None:
            raise BoardInvariantError(f"legal move {origin} -> {destination} failed to execute")
        try:
            nodes += perft(board, side.opponent, depth - 1)
        finally:
            board.undo(record)
    return nodes
