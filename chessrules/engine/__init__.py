"""Pure rule engine: squares, pieces, board, legality and game state."""
