import logging
import os
from typing import Optional

from fastapi import Depends, FastAPI, HTTPException, Request, Response
from pydantic import BaseModel, Field
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address

import game_state
import hints
from config import FeatureFlags, load_feature_flags
from core import Direction
from game_state import GameConfig, GameProgressState, GameState
from storage import InMemoryStorage, JsonFileStorage, KeyValueStorage, clear_saved_state

logger = logging.getLogger(__name__)

# Initialize the rate limiter
limiter = Limiter(key_func=get_remote_address)
app = FastAPI(
    title="2048 Game API",
    description="A stateless API for playing the 2048 game. "\
                "The client keeps the full game state and sends it with every request.",
    version="2.0.0"
)
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

_feature_flags = load_feature_flags()
_storage: KeyValueStorage = (
    JsonFileStorage(os.environ["G2048_STORAGE_PATH"])
    if os.environ.get("G2048_STORAGE_PATH")
    else InMemoryStorage()
)


def get_feature_flags() -> FeatureFlags:
    return _feature_flags


def get_storage() -> KeyValueStorage:
    return _storage


def _require(enabled: bool, feature: str) -> None:
    if not enabled:
        raise HTTPException(status_code=403, detail=f"The {feature} feature is disabled.")

# --- Pydantic Models for API requests and responses ---

class MoveRequestData(BaseModel):
    """Data required to make a move."""
    state: GameState = Field(..., description="Current game state before the move.")
    direction: Direction = Field(
        ...,
        description="Direction of the move (UP, DOWN, LEFT, RIGHT)."
    )


class MoveResponseData(BaseModel):
    """Response after a move, including the new game state and move effectiveness."""
    state: GameState
    progress: GameProgressState = Field(
        ...,
        description="Current progress state of the game (IN_PROGRESS, GAME_WON, GAME_OVER)."
    )
    move_was_effective: bool = Field(
        ...,
        description="True if the move resulted in a change to the board state, False otherwise."
    )
    message: Optional[str] = Field(
        default=None,
        description="An optional message, e.g., if a move was ineffective or the game ended."
    )
    move_count: Optional[int] = Field(default=None, description="Moves played so far; set when the move counter is enabled.")
    elapsed_time: Optional[str] = Field(default=None, description="MM:SS since the game started; set when the timer is enabled.")
    combo_multiplier: Optional[float] = Field(default=None, description="Bonus multiplier for the current combo; set when combos are enabled.")


class ResetRequestData(BaseModel):
    state: GameState
    config: Optional[GameConfig] = Field(
        default=None,
        description="Settings for the new game. Defaults to the settings of the current game."
    )


class HintResponseData(BaseModel):
    direction: Optional[Direction] = Field(..., description="Suggested direction, or null if no move is possible.")
    text: str
    evaluation: float = Field(..., description="Heuristic score of the current board.")

# --- API Endpoints ---

@app.post("/game/new", response_model=GameState, summary="Start a New 2048 Game")
@limiter.limit("100/minute")
async def start_new_game(
    request: Request,
    settings: GameConfig,
    storage: KeyValueStorage = Depends(get_storage),
):
    """
    Initializes a new 2048 game based on the provided settings.

    - **size**: Dimension of the N x N board (e.g., 4 for 4x4). Default is 4.
    - **winning_tile**: Tile value to reach to win (e.g., 2048). Default is 2048.
    - **initial_tile_count**: Tiles on the starting board. Default is 2.

    The best score is loaded from server-side storage.
    """
    try:
        return game_state.create_initial_state(settings, storage=storage)
    except ValueError as e:
        logger.warning("Rejected new game settings: %s", e)
        raise HTTPException(status_code=400, detail=str(e))


@app.post("/game/move", response_model=MoveResponseData, summary="Make a Move in the Game")
@limiter.limit("100/minute")
async def make_move(
    request: Request,
    request_data: MoveRequestData,
    storage: KeyValueStorage = Depends(get_storage),
    flags: FeatureFlags = Depends(get_feature_flags),
):
    """
    Processes a player's move in the game.

    The API will:
    1. Slide and merge tiles in the requested direction.
    2. If the move changed the board, add a new random tile (2 or 4).
    3. Update the score, best score, win and game-over flags.

    Moves on a finished game, and moves that change nothing, return the state unchanged.
    """
    current = request_data.state
    new_state = game_state.process_move(current, request_data.direction, storage=storage)
    move_was_effective = new_state is not current

    message_for_client: Optional[str] = None
    if current.over:
        message_for_client = "Game is over; start a new game."
    elif not move_was_effective:
        message_for_client = "Move was not effective; board state unchanged by slide."

    progress = game_state.game_progress(new_state)
    if progress == GameProgressState.GAME_WON and move_was_effective:
        message_for_client = "Congratulations! You won!"
    elif progress == GameProgressState.GAME_OVER and move_was_effective:
        message_for_client = "Game Over. No more valid moves."

    if flags.enable_save_load and move_was_effective:
        game_state.save_full_state(storage, new_state)

    return MoveResponseData(
        state=new_state,
        progress=progress,
        move_was_effective=move_was_effective,
        message=message_for_client,
        move_count=new_state.move_count if flags.enable_move_counter else None,
        elapsed_time=game_state.format_time(game_state.elapsed_seconds(new_state)) if flags.enable_timer else None,
        combo_multiplier=game_state.combo_multiplier(new_state.combo) if flags.enable_combo else None,
    )


@app.post("/game/reset", response_model=GameState, summary="Restart, Keeping the Best Score")
@limiter.limit("100/minute")
async def reset(request: Request, request_data: ResetRequestData):
    try:
        return game_state.reset_game(request_data.state, request_data.config)
    except ValueError as e:
        logger.warning("Rejected reset settings: %s", e)
        raise HTTPException(status_code=400, detail=str(e))


@app.post("/game/continue", response_model=GameState, summary="Keep Playing After Winning")
@limiter.limit("100/minute")
async def continue_game(request: Request, state: GameState):
    return game_state.continue_after_win(state)


@app.post("/game/undo", response_model=GameState, summary="Undo the Last Move")
@limiter.limit("100/minute")
async def undo_move(
    request: Request,
    state: GameState,
    flags: FeatureFlags = Depends(get_feature_flags),
):
    _require(flags.enable_undo, "undo")
    return game_state.undo(state)


@app.post("/game/hint", response_model=HintResponseData, summary="Suggest a Move")
@limiter.limit("100/minute")
async def hint(
    request: Request,
    state: GameState,
    flags: FeatureFlags = Depends(get_feature_flags),
):
    """Suggests the direction whose resulting board scores best under the heuristic."""
    _require(flags.enable_hints, "hints")
    return HintResponseData(
        direction=hints.get_best_move(state.board),
        text=hints.get_hint_text(state.board),
        evaluation=hints.evaluate_board(state.board),
    )


@app.post("/game/save", status_code=204, summary="Save the Current Game")
@limiter.limit("100/minute")
async def save_game(
    request: Request,
    state: GameState,
    storage: KeyValueStorage = Depends(get_storage),
    flags: FeatureFlags = Depends(get_feature_flags),
):
    _require(flags.enable_save_load, "save/load")
    game_state.save_full_state(storage, state)
    return Response(status_code=204)


@app.get("/game/saved", response_model=GameState, summary="Load the Saved Game")
@limiter.limit("100/minute")
async def load_game(
    request: Request,
    storage: KeyValueStorage = Depends(get_storage),
    flags: FeatureFlags = Depends(get_feature_flags),
):
    _require(flags.enable_save_load, "save/load")
    saved = game_state.load_full_state(storage)
    if saved is None:
        raise HTTPException(status_code=404, detail="No saved game.")
    return saved


@app.delete("/game/saved", status_code=204, summary="Delete the Saved Game")
@limiter.limit("100/minute")
async def delete_saved_game(
    request: Request,
    storage: KeyValueStorage = Depends(get_storage),
    flags: FeatureFlags = Depends(get_feature_flags),
):
    _require(flags.enable_save_load, "save/load")
    clear_saved_state(storage)
    return Response(status_code=204)
