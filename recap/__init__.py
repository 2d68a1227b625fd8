"""Public views of night results for narration and UI layers."""

from recap.models import (
    NightActionSubmission,
    NightRecapPublic,
    NightResultPublic,
    build_night_recap,
    game_state_to_public,
    night_result_to_public,
    submissions_to_night_actions,
)

__all__ = [
    "NightActionSubmission",
    "NightRecapPublic",
    "NightResultPublic",
    "build_night_recap",
    "game_state_to_public",
    "night_result_to_public",
    "submissions_to_night_actions",
]
