import pytest

import core
import hints
from core import Direction, to_board
from conftest import ALTERNATING


def board_with(*cells, size=4):
    board = core.create_empty_board(size)
    for row, col, value in cells:
        board = core.set_value(board, (row, col), value)
    return board


def test_evaluate_empty_board():
    # 16 empty * 100 + 8 lines of monotonicity 3 * 50
    assert hints.evaluate_board(core.create_empty_board(4)) == pytest.approx(2800)


def test_evaluate_single_tile():
    assert hints.evaluate_board(board_with((0, 0, 2))) == pytest.approx(1500 + 20 + 1200)


def test_monotonicity_and_smoothness():
    board = to_board([[2, 4], [8, 2]])
    assert hints.monotonicity(board) == 4
    assert hints.smoothness(board) == pytest.approx(-6)


def test_smoothness_ignores_empty_cells():
    assert hints.smoothness(to_board([[2, 0], [0, 1024]])) == 0


def test_best_move_none_when_stuck():
    assert hints.get_best_move(to_board(ALTERNATING)) is None
    assert hints.get_hint_text(to_board(ALTERNATING)) == "No moves available"


def test_best_move_ties_go_to_up():
    # The lone tile can go four ways and every result scores the same.
    board = board_with((1, 1, 2))
    scores = {d: hints.evaluate_board(core.process_move(board, d).board) for d in Direction}
    assert len(set(scores.values())) == 1
    assert hints.get_best_move(board) == Direction.UP


def test_best_move_prefers_merge():
    board = board_with((0, 0, 2), (0, 1, 2))
    assert hints.get_best_move(board) == Direction.LEFT
    assert hints.get_hint_text(board) == "Try: ← LEFT"


def test_best_move_skips_directions_that_change_nothing():
    board = to_board([
        [2, 4, 8, 16],
        [4, 8, 16, 32],
        [8, 16, 32, 64],
        [0, 0, 0, 0],
    ])
    assert not core.can_move_in_direction(board, Direction.UP)
    assert hints.get_best_move(board) == Direction.DOWN


def test_hint_does_not_touch_board():
    board = board_with((0, 0, 2), (0, 1, 2))
    hints.get_best_move(board)
    assert board == board_with((0, 0, 2), (0, 1, 2))
