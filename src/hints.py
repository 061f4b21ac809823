# hints.py
# One-ply greedy move advisor. Read-only: it never changes a game.

import math
from typing import Optional, Sequence

from config import WEIGHT_EMPTY, WEIGHT_MAX_TILE, WEIGHT_MONOTONICITY, WEIGHT_SMOOTHNESS
from core import Board, Direction, can_move, get_empty_cells, max_tile, process_move, transpose_board

# Tie-break order: the first direction seen with the top score wins.
HINT_ORDER = (Direction.UP, Direction.DOWN, Direction.LEFT, Direction.RIGHT)

_DIRECTION_TEXT = {
    Direction.UP: "↑ UP",
    Direction.DOWN: "↓ DOWN",
    Direction.LEFT: "← LEFT",
    Direction.RIGHT: "→ RIGHT",
}


def _line_monotonicity(line: Sequence[int]) -> int:
    increasing = 0
    decreasing = 0
    for curr, nxt in zip(line, line[1:]):
        if curr <= nxt:
            increasing += 1
        if curr >= nxt:
            decreasing += 1
    return max(increasing, decreasing)


def monotonicity(board: Board) -> int:
    """
    Sums, over every row and column, the larger of the non-decreasing and
    non-increasing adjacent-pair counts. Empty cells count as 0.
    """
    rows = sum(_line_monotonicity(row) for row in board)
    cols = sum(_line_monotonicity(col) for col in transpose_board(board))
    return rows + cols


def smoothness(board: Board) -> float:
    """
    Negated sum of |log2(a) - log2(b)| over horizontally and vertically
    adjacent non-zero pairs. Always <= 0.
    """
    total = 0.0
    for lines in (board, transpose_board(board)):
        for line in lines:
            for a, b in zip(line, line[1:]):
                if a and b:
                    total -= abs(math.log2(a) - math.log2(b))
    return total


def evaluate_board(board: Board) -> float:
    """
    Scores a board for desirability; higher is better.
    Args:
        board (Board): The board to score.
    Returns:
        float: Weighted sum of empty cells, max tile, monotonicity and smoothness.
    """
    score = len(get_empty_cells(board)) * WEIGHT_EMPTY
    score += max_tile(board) * WEIGHT_MAX_TILE
    score += monotonicity(board) * WEIGHT_MONOTONICITY
    score += smoothness(board) * WEIGHT_SMOOTHNESS
    return score


def get_best_move(board: Board) -> Optional[Direction]:
    """
    Picks the direction whose resulting board evaluates highest.
    Args:
        board (Board): The current board.
    Returns:
        Optional[Direction]: The suggested direction, or None when no move is possible.
    """
    if not can_move(board):
        return None

    best_direction = None
    best_score = -math.inf
    for direction in HINT_ORDER:
        result = process_move(board, direction)
        if not result.changed:
            continue
        score = evaluate_board(result.board)
        if score > best_score:
            best_score = score
            best_direction = direction
    return best_direction


def get_hint_text(board: Board) -> str:
    best = get_best_move(board)
    if best is None:
        return "No moves available"
    return f"Try: {_DIRECTION_TEXT[best]}"
