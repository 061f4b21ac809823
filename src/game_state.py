# game_state.py
# Turn-by-turn state machine for a 2048 game. Each call takes a GameState
# snapshot and returns a new one; snapshots are frozen and never mutated.

import json
import logging
import random
import time
from enum import Enum
from typing import Any, Mapping, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, StrictBool, StrictInt, field_validator, model_validator

import core
from config import DEFAULT_INITIAL_TILES, DEFAULT_SIZE, DEFAULT_WINNING_TILE, HISTORY_LIMIT
from core import Board, RandomSource
from storage import KeyValueStorage, load_best_score, read_saved_game, save_best_score, write_saved_game

logger = logging.getLogger(__name__)


class GameProgressState(Enum):
    """Represents the current progress state of the game."""
    IN_PROGRESS = 1
    GAME_OVER = 2  # Lost
    GAME_WON = 3


class GameConfig(BaseModel):
    """Settings for creating a new game; fixed for the lifetime of a run."""
    model_config = ConfigDict(frozen=True)

    size: int = Field(
        default=DEFAULT_SIZE,
        gt=0,
        description="Size of the N x N game board (e.g., 4 for a 4x4 board)."
    )
    winning_tile: int = Field(
        default=DEFAULT_WINNING_TILE,
        gt=0,
        description="The tile value to achieve for winning the game (e.g., 2048)."
    )
    initial_tile_count: int = Field(
        default=DEFAULT_INITIAL_TILES,
        ge=0,
        description="How many tiles are placed on the board at the start."
    )


class GameState(BaseModel):
    """Represents the complete, externally visible state of a game."""
    model_config = ConfigDict(frozen=True)

    board: Tuple[Tuple[StrictInt, ...], ...] = Field(..., description="The N x N game board, represented as rows of tile values.")
    size: StrictInt = Field(..., gt=0, description="The dimension N of the N x N board.")
    score: StrictInt = Field(default=0, ge=0, description="Current score of the game.")
    best_score: StrictInt = Field(default=0, ge=0, description="Best score ever reached, kept across resets.")
    won: StrictBool = Field(default=False, description="True on the turn the winning tile first appears.")
    over: StrictBool = Field(default=False, description="True when no direction changes the board.")
    has_seen_win_message: StrictBool = Field(default=False, description="Latched once the winning tile has appeared.")
    move_count: StrictInt = Field(default=0, ge=0)
    history: Tuple["GameState", ...] = Field(default=(), description="Pre-move snapshots, oldest first.")
    start_time: float = Field(default_factory=time.time, description="Unix time the elapsed-time clock started.")
    combo: StrictInt = Field(default=0, ge=0, description="Consecutive moves that scored.")
    winning_tile: StrictInt = Field(default=DEFAULT_WINNING_TILE, gt=0)
    initial_tile_count: StrictInt = Field(default=DEFAULT_INITIAL_TILES, ge=0)

    @field_validator("board")
    @classmethod
    def _check_tile_values(cls, board: Board) -> Board:
        for row in board:
            for value in row:
                if value != 0 and (value < 2 or value & (value - 1)):
                    raise ValueError(f"{value} is not a valid tile value.")
        return board

    @model_validator(mode="after")
    def _check_board_shape(self) -> "GameState":
        if core.get_board_size(self.board) != self.size:
            raise ValueError(f"Board must be {self.size}x{self.size}.")
        return self


def _as_config(config: Union[GameConfig, Mapping[str, Any], None]) -> GameConfig:
    if config is None:
        return GameConfig()
    if isinstance(config, GameConfig):
        return config
    return GameConfig(**config)


# --- Construction ---

def create_initial_state(
    config: Union[GameConfig, Mapping[str, Any], None] = None,
    *,
    rng: RandomSource = random.random,
    storage: Optional[KeyValueStorage] = None,
) -> GameState:
    """
    Starts a new game.
    Args:
        config (GameConfig): Size, winning tile and initial tile count. A plain
            mapping is accepted and missing keys take their defaults.
        rng (RandomSource): Uniform [0, 1) draw function for tile placement.
        storage (KeyValueStorage): Where the best score is loaded from, if any.
    Returns:
        GameState: A fresh, active game.
    Raises:
        ValueError: If the config is invalid (e.g., non-positive size).
    """
    config = _as_config(config)
    board = core.initialize_board(config.size, config.initial_tile_count, rng)
    return GameState(
        board=board,
        size=config.size,
        best_score=load_best_score(storage),
        winning_tile=config.winning_tile,
        initial_tile_count=config.initial_tile_count,
        over=not core.can_move(board),
    )


# --- Turn API ---

def _snapshot(state: GameState) -> GameState:
    return state.model_copy(update={"history": ()})


def process_move(
    state: GameState,
    direction: Any,
    *,
    rng: RandomSource = random.random,
    storage: Optional[KeyValueStorage] = None,
) -> GameState:
    """
    Plays one turn: slide and merge, spawn a tile, then update score and flags.
    Args:
        state (GameState): The current game.
        direction (Direction): The direction to move.
        rng (RandomSource): Uniform [0, 1) draw function for the spawned tile.
        storage (KeyValueStorage): Receives the best score when it improves.
    Returns:
        GameState: The next state, or `state` itself if the game is over or
                   the move changes nothing.
    """
    if state.over:
        return state

    result = core.process_move(state.board, direction)
    logger.debug("Move %s: changed=%s score_gained=%d", direction, result.changed, result.score_gained)
    if not result.changed:
        return state

    board = core.add_random_tile(result.board, rng)

    new_score = state.score + result.score_gained
    new_best = max(new_score, state.best_score)
    if new_best > state.best_score:
        logger.info("New best score: %d", new_best)
        save_best_score(storage, new_best)

    has_target = core.has_tile_value(board, state.winning_tile)
    over = not core.can_move(board)
    if over:
        logger.info("Game over after %d moves with score %d.", state.move_count + 1, new_score)

    return state.model_copy(update={
        "board": board,
        "score": new_score,
        "best_score": new_best,
        "won": has_target and not state.has_seen_win_message,
        "has_seen_win_message": state.has_seen_win_message or has_target,
        "over": over,
        "move_count": state.move_count + 1,
        "combo": state.combo + 1 if result.score_gained > 0 else 0,
        "history": (state.history + (_snapshot(state),))[-HISTORY_LIMIT:],
    })


# --- Control API ---

def reset_game(
    state: GameState,
    config: Union[GameConfig, Mapping[str, Any], None] = None,
    *,
    rng: RandomSource = random.random,
) -> GameState:
    """
    Starts over, carrying only the best score forward. Without a config the
    new game keeps the outgoing settings.
    """
    if config is None:
        config = GameConfig(
            size=state.size,
            winning_tile=state.winning_tile,
            initial_tile_count=state.initial_tile_count,
        )
    fresh = create_initial_state(config, rng=rng)
    logger.info("Game reset (previous score %d).", state.score)
    return fresh.model_copy(update={"best_score": state.best_score})


def continue_after_win(state: GameState) -> GameState:
    return state.model_copy(update={"won": False, "has_seen_win_message": True})


def undo(state: GameState) -> GameState:
    """
    Restores the most recent pre-move snapshot. The best score keeps its
    current value so it never goes down.
    """
    if not state.history:
        return state
    previous = state.history[-1]
    return previous.model_copy(update={
        "best_score": state.best_score,
        "history": state.history[:-1],
    })


def can_undo(state: GameState) -> bool:
    return bool(state.history)


def can_continue(state: GameState) -> bool:
    return state.won and not state.over


# --- Derived values ---

def game_progress(state: GameState) -> GameProgressState:
    if state.won:
        return GameProgressState.GAME_WON
    if state.over:
        return GameProgressState.GAME_OVER
    return GameProgressState.IN_PROGRESS


def elapsed_seconds(state: GameState, now: Optional[float] = None) -> int:
    now = time.time() if now is None else now
    return max(int(now - state.start_time), 0)


def format_time(seconds: int) -> str:
    """Formats a duration as MM:SS."""
    minutes, secs = divmod(seconds, 60)
    return f"{minutes:02d}:{secs:02d}"


def combo_multiplier(combo: int) -> float:
    return min(1 + combo * 0.1, 3)


# --- Saved games ---

def save_full_state(storage: Optional[KeyValueStorage], state: GameState) -> None:
    """Persists the game without its undo history."""
    write_saved_game(storage, state.model_dump_json(exclude={"history"}))


def load_full_state(storage: Optional[KeyValueStorage], now: Optional[float] = None) -> Optional[GameState]:
    """
    Loads a saved game. The history comes back empty and the elapsed-time
    clock restarts at `now`.
    Returns:
        Optional[GameState]: The saved game, or None if absent or malformed.
    """
    blob = read_saved_game(storage)
    if not blob:
        return None
    try:
        data = json.loads(blob)
        if not isinstance(data, dict) or "board" not in data or "score" not in data:
            raise ValueError("Saved game is missing its board or score.")
        data["history"] = ()
        data["start_time"] = time.time() if now is None else now
        return GameState.model_validate(data)
    except (ValueError, TypeError):
        logger.warning("Discarding malformed saved game.", exc_info=True)
        return None
