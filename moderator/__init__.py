"""Night-resolution engine for a Mafia-variant party game."""

from moderator.actions import ValidationContext, ValidationResult, build_wake_order, validate_action
from moderator.catalog import ROLE_DEFINITIONS, RoleCatalogError, get_role_alignment, validate_catalog
from moderator.engine import (
    complete_night,
    get_wake_order,
    resolve_day_elimination,
    rollback_night,
    skip_day_elimination,
    start_game,
    start_night,
    submit_action,
)
from moderator.resolver import resolve_night
from moderator.rules import Alignment, MagicianChoice, NO_ACTION, Phase, Role, WinLabel
from moderator.state import (
    GameState,
    NightAction,
    NightInput,
    NightOutcome,
    NightResult,
    Player,
    RoleMemory,
    initial_role_memory,
)
from moderator.win import evaluate_win_condition

__all__ = [
    "resolve_night",
    "evaluate_win_condition",
    "validate_action",
    "build_wake_order",
    "validate_catalog",
    "get_role_alignment",
    "start_game",
    "start_night",
    "submit_action",
    "complete_night",
    "get_wake_order",
    "resolve_day_elimination",
    "skip_day_elimination",
    "rollback_night",
    "initial_role_memory",
    "ROLE_DEFINITIONS",
    "RoleCatalogError",
    "ValidationContext",
    "ValidationResult",
    "Role",
    "Alignment",
    "Phase",
    "MagicianChoice",
    "WinLabel",
    "NO_ACTION",
    "GameState",
    "NightAction",
    "NightInput",
    "NightOutcome",
    "NightResult",
    "Player",
    "RoleMemory",
]
