import itertools

import pytest

from core import to_board
from game_state import GameState
from storage import InMemoryStorage


def scripted(*draws, then=0.0):
    """A random source that returns the given draws, then `then` forever."""
    values = itertools.chain(draws, itertools.repeat(then))
    return lambda: next(values)


def make_state(rows, **fields):
    board = to_board(rows)
    return GameState(board=board, size=len(board), **fields)


class FailingStorage:
    """Storage whose every operation raises, like an unavailable backend."""

    def get(self, key):
        raise OSError("storage unavailable")

    def set(self, key, value):
        raise OSError("storage unavailable")

    def remove(self, key):
        raise OSError("storage unavailable")


@pytest.fixture
def storage():
    return InMemoryStorage()


ALTERNATING = [
    [2, 4, 2, 4],
    [4, 2, 4, 2],
    [2, 4, 2, 4],
    [4, 2, 4, 2],
]
