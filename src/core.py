# core.py
# This file is intended to be the stateless rule engine for a 2048 game:
# board primitives, line merging, directional moves and tile spawning.
# Every function returns a new board; nothing here mutates its input.

from enum import Enum
from typing import Callable, Iterable, List, NamedTuple, Optional, Sequence, Tuple
import random

from config import SPAWN_TWO_PROBABILITY

Board = Tuple[Tuple[int, ...], ...]
Line = Tuple[int, ...]
RandomSource = Callable[[], float]


class Direction(str, Enum):
    """Represents the possible move directions."""
    UP = "UP"
    DOWN = "DOWN"
    LEFT = "LEFT"
    RIGHT = "RIGHT"


class Position(NamedTuple):
    """A (row, col) cell address, 0-indexed."""
    row: int
    col: int


class MoveResult(NamedTuple):
    """Outcome of attempting one directional move on one board."""
    board: Board
    score_gained: int
    changed: bool


class MergeResult(NamedTuple):
    line: Line
    score: int


class OutOfRangeError(IndexError):
    """Raised when a mutating accessor addresses a cell outside the board."""


# --- Board Helper Functions ---

def to_board(rows: Iterable[Iterable[int]]) -> Board:
    """
    Converts any nested sequence of ints into the immutable board form.
    Args:
        rows (Iterable[Iterable[int]]): Rows of tile values.
    Returns:
        Board: A tuple of row tuples.
    """
    return tuple(tuple(int(cell) for cell in row) for row in rows)


def get_board_size(board: Sequence[Sequence[int]]) -> int:
    """
    Checks that every row is as long as the board is tall.
    Args:
        board (Sequence[Sequence[int]]): Rows of tile values.
    Returns:
        int: The side length N.
    Raises:
        ValueError: If the board has no rows or any row has the wrong length.
    """
    if not board or any(len(row) != len(board) for row in board):
        raise ValueError(f"Board must be square; got {len(board)} rows of lengths {[len(row) for row in board]}.")
    return len(board)


def create_empty_board(size: int) -> Board:
    """
    Creates an N x N board with every cell empty.
    Args:
        size (int): The dimension of the board.
    Returns:
        Board: A new all-zero board.
    Raises:
        ValueError: If board size is not a positive integer.
    """
    if not isinstance(size, int) or size <= 0:
        raise ValueError("Board size must be a positive integer.")
    return tuple((0,) * size for _ in range(size))


def get_empty_cells(board: Board) -> List[Position]:
    """
    Get coordinates of empty (0-value) cells in the given board, row-major.
    Args:
        board (Board): The board to check.
    Returns:
        List[Position]: Positions of the empty cells.
    """
    empty_cells = []
    for row, cells in enumerate(board):
        for col, value in enumerate(cells):
            if value == 0:
                empty_cells.append(Position(row, col))
    return empty_cells


def has_empty_cells(board: Board) -> bool:
    return any(value == 0 for row in board for value in row)


def _in_range(board: Board, row: int, col: int) -> bool:
    return 0 <= row < len(board) and 0 <= col < len(board[row])


def get_value(board: Board, pos: Tuple[int, int]) -> int:
    """
    Reads the value at a position. Out-of-range positions read as empty (0),
    which keeps adjacency checks at the edges simple.
    """
    row, col = pos
    if not _in_range(board, row, col):
        return 0
    return board[row][col]


def set_value(board: Board, pos: Tuple[int, int], value: int) -> Board:
    """
    Returns a copy of the board with one cell replaced.
    Args:
        board (Board): The game board.
        pos (Tuple[int, int]): The (row, col) to write.
        value (int): The new tile value.
    Returns:
        Board: A new board; untouched rows are shared with the input.
    Raises:
        OutOfRangeError: If pos lies outside the board.
    """
    row, col = pos
    if not _in_range(board, row, col):
        raise OutOfRangeError(f"Position ({row}, {col}) is outside a {len(board)}x{len(board)} board.")
    target = board[row]
    new_row = target[:col] + (value,) + target[col + 1:]
    return board[:row] + (new_row,) + board[row + 1:]


def boards_equal(a: Sequence[Sequence[int]], b: Sequence[Sequence[int]]) -> bool:
    """Structural equality; boards of different sizes compare unequal."""
    if len(a) != len(b):
        return False
    return all(tuple(row_a) == tuple(row_b) for row_a, row_b in zip(a, b))


def has_tile_value(board: Board, value: int) -> bool:
    """True if any cell holds the given value."""
    return any(cell == value for row in board for cell in row)


def max_tile(board: Board) -> int:
    return max((cell for row in board for cell in row), default=0)


def random_tile_value(rng: RandomSource = random.random) -> int:
    """
    Draws the value of a freshly spawned tile (90% chance of 2, 10% chance of 4).
    Args:
        rng (RandomSource): Uniform [0, 1) draw function.
    Returns:
        int: Either 2 or 4.
    """
    return 2 if rng() < SPAWN_TWO_PROBABILITY else 4


def _pick(cells: List[Position], rng: RandomSource) -> Position:
    # min() guards a source that returns exactly 1.0
    index = min(int(rng() * len(cells)), len(cells) - 1)
    return cells[index]


def initialize_board(size: int = 4, count: int = 2, rng: RandomSource = random.random) -> Board:
    """
    Builds a new board with `count` random starting tiles.
    Each tile lands on a uniformly chosen cell among those still empty.
    Args:
        size (int): The dimension of the N x N game board. Default is 4.
        count (int): How many starting tiles to place. Default is 2.
        rng (RandomSource): Uniform [0, 1) draw function.
    Returns:
        Board: The initial board.
    Raises:
        ValueError: If board size is not positive or count is negative.
    """
    if count < 0:
        raise ValueError("Initial tile count must not be negative.")
    board = create_empty_board(size)
    for _ in range(count):
        empty_cells = get_empty_cells(board)
        if not empty_cells:
            break
        board = set_value(board, _pick(empty_cells, rng), random_tile_value(rng))
    return board


# --- Line Manipulation (Core Move Logic Helpers) ---

def merge_line(line: Sequence[int]) -> MergeResult:
    """
    Slides a single line toward index 0 and merges equal neighbours.
    A tile produced by a merge is never merged again in the same call.
    Args:
        line (Sequence[int]): One row or column.
    Returns:
        MergeResult: The merged line (same length, zero padded) and the score gained.
    """
    compressed = [value for value in line if value != 0]
    merged: List[int] = []
    score = 0
    read_idx = 0

    while read_idx < len(compressed):
        current_val = compressed[read_idx]
        if read_idx + 1 < len(compressed) and current_val == compressed[read_idx + 1]:
            merged_value = current_val * 2
            merged.append(merged_value)
            score += merged_value
            read_idx += 2  # Skip the tile that was consumed by the merge
        else:
            merged.append(current_val)
            read_idx += 1

    merged += [0] * (len(line) - len(merged))
    return MergeResult(tuple(merged), score)


def merge_line_right(line: Sequence[int]) -> MergeResult:
    """Mirror of merge_line: slides and merges toward the end of the line."""
    result = merge_line(tuple(reversed(line)))
    return MergeResult(tuple(reversed(result.line)), result.score)


def would_line_change(line: Sequence[int]) -> bool:
    return merge_line(line).line != tuple(line)


def can_merge_or_slide(line: Sequence[int]) -> bool:
    """
    Checks whether a leftward merge could alter the line: either some zero
    sits before a non-zero tile, or two tiles adjacent after compression are equal.
    """
    seen_gap = False
    for value in line:
        if value == 0:
            seen_gap = True
        elif seen_gap:
            return True

    compressed = [value for value in line if value != 0]
    return any(a == b for a, b in zip(compressed, compressed[1:]))


# --- Board Transformations ---

def transpose_board(board: Board) -> Board:
    """
    Transposes a given board (swaps rows and columns). Applying it twice
    returns the original board.
    """
    return tuple(zip(*board))


# --- Core Game Move Processing ---

def _apply_to_all_lines(board: Board, merge: Callable[[Sequence[int]], MergeResult]) -> MoveResult:
    """
    Applies a line merge to every row and aggregates the score.
    `changed` compares whole boards, not per-line flags.
    """
    rows = []
    total_score_increase = 0
    for row in board:
        result = merge(row)
        rows.append(result.line)
        total_score_increase += result.score
    new_board = tuple(rows)
    if boards_equal(board, new_board):
        return MoveResult(board, 0, False)
    return MoveResult(new_board, total_score_increase, True)


def move_left(board: Board) -> MoveResult:
    return _apply_to_all_lines(board, merge_line)


def move_right(board: Board) -> MoveResult:
    return _apply_to_all_lines(board, merge_line_right)


def move_up(board: Board) -> MoveResult:
    result = move_left(transpose_board(board))
    if not result.changed:
        return MoveResult(board, 0, False)
    return MoveResult(transpose_board(result.board), result.score_gained, True)


def move_down(board: Board) -> MoveResult:
    result = move_right(transpose_board(board))
    if not result.changed:
        return MoveResult(board, 0, False)
    return MoveResult(transpose_board(result.board), result.score_gained, True)


_MOVES = {
    Direction.LEFT: move_left,
    Direction.RIGHT: move_right,
    Direction.UP: move_up,
    Direction.DOWN: move_down,
}


def coerce_direction(direction: object) -> Optional[Direction]:
    """Maps a Direction or its name to a Direction, or None if unrecognised."""
    if isinstance(direction, Direction):
        return direction
    try:
        return Direction(direction)
    except ValueError:
        return None


def process_move(board: Board, direction: object) -> MoveResult:
    """
    Processes a move in the specified direction.
    Args:
        board (Board): The current game board.
        direction (Direction): The direction to move. Unknown values are
            treated as a move that changes nothing.
    Returns:
        MoveResult: The board after the move, the score gained and whether
                    the board changed.
    """
    chosen = coerce_direction(direction)
    if chosen is None:
        return MoveResult(board, 0, False)
    return _MOVES[chosen](board)


# --- Game State Checks ---

def can_move_in_direction(board: Board, direction: Direction) -> bool:
    return process_move(board, direction).changed


def can_move(board: Board) -> bool:
    """
    Checks if any move is possible in any direction on the board.
    This is the authoritative "no legal moves" test.
    """
    return any(can_move_in_direction(board, direction) for direction in Direction)


def is_game_won(board: Board, win_tile: int = 2048) -> bool:
    return has_tile_value(board, win_tile)


def is_game_over(board: Board) -> bool:
    return not can_move(board)


# --- Spawning ---

def add_random_tile(board: Board, rng: RandomSource = random.random) -> Board:
    """
    Adds a new tile (90% chance of 2, 10% chance of 4) to a uniformly chosen empty cell.
    Args:
        board (Board): The current game board.
        rng (RandomSource): Uniform [0, 1) draw function.
    Returns:
        Board: A new board with the added tile, or the same board when it is full.
    """
    empty_cells = get_empty_cells(board)
    if not empty_cells:
        return board
    position = _pick(empty_cells, rng)
    return set_value(board, position, random_tile_value(rng))


def spawn_tile_at(board: Board, pos: Tuple[int, int], value: int) -> Board:
    """
    Places a 2 or 4 at an exact position, for tests and scripted scenarios.
    Raises:
        ValueError: If value is not 2 or 4.
        OutOfRangeError: If pos lies outside the board.
    """
    if value not in (2, 4):
        raise ValueError("Spawned tiles must be 2 or 4.")
    return set_value(board, pos, value)
