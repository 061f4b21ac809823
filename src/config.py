# config.py
# Defaults and feature flags for the 2048 engine.

import os
from typing import Mapping, Optional

from pydantic import BaseModel, ConfigDict

# --- Game defaults ---
DEFAULT_SIZE = 4
DEFAULT_WINNING_TILE = 2048
DEFAULT_INITIAL_TILES = 2
HISTORY_LIMIT = 10
SPAWN_TWO_PROBABILITY = 0.9

# --- Heuristic weights ---
WEIGHT_EMPTY = 100
WEIGHT_MAX_TILE = 10
WEIGHT_MONOTONICITY = 50
WEIGHT_SMOOTHNESS = 20

# --- Storage keys ---
BEST_SCORE_KEY = "2048-best-score"
GAME_STATE_KEY = "2048-current-game"

ENV_PREFIX = "G2048_"
_TRUTHY = {"1", "true", "yes", "on"}


class FeatureFlags(BaseModel):
    """Optional features. All are off unless switched on through the environment."""
    model_config = ConfigDict(frozen=True)

    enable_undo: bool = False
    enable_move_counter: bool = False
    enable_timer: bool = False
    enable_combo: bool = False
    enable_hints: bool = False
    enable_save_load: bool = False


def load_feature_flags(environ: Optional[Mapping[str, str]] = None) -> FeatureFlags:
    """
    Reads feature flags from G2048_ENABLE_* environment variables.
    Args:
        environ (Mapping[str, str]): Variables to read. Defaults to os.environ.
    Returns:
        FeatureFlags: Flags with every unset variable left at False.
    """
    environ = os.environ if environ is None else environ
    values = {}
    for name in FeatureFlags.model_fields:
        raw = environ.get(ENV_PREFIX + name.upper())
        if raw is not None:
            values[name] = raw.strip().lower() in _TRUTHY
    return FeatureFlags(**values)
