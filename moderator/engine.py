"""Moderator session engine: pure state transitions around the night resolver."""

import copy
import logging
from typing import Optional

from moderator.actions import ValidationContext, ValidationResult, build_wake_order, validate_action
from moderator.config import load_settings
from moderator.resolver import resolve_night
from moderator.rules import MagicianChoice, Phase, Role
from moderator.state import (
    Event,
    EventKind,
    GameState,
    NightAction,
    NightActions,
    NightInput,
    NightResult,
    NightSnapshot,
    Player,
    duplicate_assignments,
    empty_night_actions,
    empty_role_assignments,
    initial_role_memory,
)
from moderator.win import evaluate_win_condition

logger = logging.getLogger(__name__)


def _append_bounded(items: list, item, limit: int) -> list:
    items = list(items) + [item]
    return items[-limit:] if len(items) > limit else items


def _emit(state: GameState, event: Event) -> None:
    """Append event to state, dropping the oldest past the configured cap (mutates state)."""
    state.events = _append_bounded(state.events, event, load_settings().max_timeline_entries)


def _require_phase(state: GameState, *phases: Phase) -> None:
    if state.phase not in phases:
        allowed = ", ".join(p.value for p in phases)
        raise ValueError(f"Expected phase {allowed}, game is in {state.phase.value}")


def _update_winner(state: GameState) -> None:
    state.winner = evaluate_win_condition(state.players, state.dead_player_ids, state.role_assignments)
    if state.winner:
        state.phase = Phase.ENDED
        _emit(
            state,
            Event(
                kind=EventKind.GAME_OVER,
                night_number=state.night_number,
                day_number=state.day_number or None,
                message=f"{state.winner}.",
            ),
        )
        logger.info("Game %s over: %s", state.game_id, state.winner)


def start_game(
    game_id: str,
    player_names: list[str],
    roles: list[Role],
) -> GameState:
    """
    Create a new game in setup phase, one role per player.
    Call start_night to begin Night 1.
    """
    if len(player_names) != len(roles):
        raise ValueError("player_names and roles must have same length")

    players = [Player(id=f"player_{i}", name=name) for i, name in enumerate(player_names)]
    assignments = empty_role_assignments()
    for player, role in zip(players, roles):
        assignments[role].append(player.id)

    state = GameState(
        game_id=game_id,
        players=players,
        phase=Phase.SETUP,
        role_assignments=assignments,
        role_memory=initial_role_memory(),
    )
    _emit(
        state,
        Event(
            kind=EventKind.GAME_START,
            night_number=0,
            message=f"Game started with {len(players)} players.",
        ),
    )
    return state


def roles_in_play(state: GameState) -> list[Role]:
    return [role for role, ids in state.role_assignments.items() if ids]


def get_wake_order(state: GameState) -> list[Role]:
    """Roles to wake tonight; a role is awake-able while any holder lives."""
    in_play = roles_in_play(state)
    alive = {role: state.first_alive_for_role(role) is not None for role in in_play}
    return build_wake_order(in_play, state.night_number, roles_alive=alive)


def start_night(state: GameState) -> GameState:
    """Begin the next night: promote a pending Vigilante lockout and clear submissions."""
    _require_phase(state, Phase.SETUP, Phase.DAY)
    state = copy.deepcopy(state)
    vigilante = state.role_memory.vigilante
    if vigilante.pending_lockout:
        vigilante.locked_out = True
        vigilante.pending_lockout = False
        logger.debug("Vigilante lockout is now active")
    state.night_actions = empty_night_actions()
    state.phase = Phase.NIGHT
    _emit(
        state,
        Event(
            kind=EventKind.NIGHT_START,
            night_number=state.night_number,
            message=f"Night {state.night_number} started.",
        ),
    )
    return state


def submit_action(
    state: GameState,
    role: Role,
    target_ids: list[str],
    choice: Optional[MagicianChoice] = None,
) -> tuple[GameState, ValidationResult]:
    """Validate and record one role's submission. Returns (new state, validation result)."""
    _require_phase(state, Phase.NIGHT)
    context = ValidationContext(
        night_number=state.night_number,
        memory=state.role_memory,
    )
    verdict = validate_action(role, target_ids, context, choice=choice)
    if not verdict.valid:
        return state, verdict
    state = copy.deepcopy(state)
    state.night_actions[role] = NightAction(target_ids=list(target_ids), choice=choice)
    return state, verdict


def summarize_night_result(result: NightResult) -> str:
    """Short timeline line, e.g. '2 deaths · 1 save'."""

    def plural(count: int, word: str) -> str:
        return f"{count} {word}{'' if count == 1 else 's'}"

    parts = []
    if result.deaths:
        parts.append(plural(len(result.deaths), "death"))
    if result.saves:
        parts.append(plural(len(result.saves), "save"))
    if result.recruits:
        parts.append(plural(len(result.recruits), "recruit"))
    if result.blocked:
        parts.append(f"{len(result.blocked)} blocked")
    return " · ".join(parts) if parts else "No major effects recorded"


def complete_night(state: GameState, night_actions: Optional[NightActions] = None) -> GameState:
    """
    Resolve the night from the submitted actions (or state.night_actions), thread the
    outcome into the session, evaluate the win condition and move to day.
    Returns new state; does not mutate input.
    """
    _require_phase(state, Phase.NIGHT)
    state = copy.deepcopy(state)
    actions = copy.deepcopy(night_actions) if night_actions is not None else state.night_actions

    snapshot = NightSnapshot(
        night_number=state.night_number,
        dead_player_ids=list(state.dead_player_ids),
        role_assignments=copy.deepcopy(state.role_assignments),
        night_actions=copy.deepcopy(actions),
        role_memory=copy.deepcopy(state.role_memory),
        lover_pairs=list(state.lover_pairs),
        converted_origins=dict(state.converted_origins),
    )
    outcome = resolve_night(
        NightInput(
            night_number=state.night_number,
            players=list(state.players),
            dead_player_ids=state.dead_player_ids,
            role_assignments=state.role_assignments,
            night_actions=actions,
            role_memory=state.role_memory,
            lover_pairs=state.lover_pairs,
        )
    )
    dupes = duplicate_assignments(outcome.next_role_assignments)
    if dupes:
        raise ValueError(f"Players hold more than one role after night {state.night_number}: {dupes}")

    state.history = _append_bounded(state.history, snapshot, load_settings().max_history_snapshots)
    state.dead_player_ids = outcome.next_dead_player_ids
    state.role_assignments = outcome.next_role_assignments
    state.role_memory = outcome.next_role_memory
    state.lover_pairs = outcome.next_lover_pairs
    state.night_actions = actions
    state.last_night_result = outcome.result
    for detail in outcome.result.recruit_details:
        state.converted_origins[detail.player_id] = detail.from_role

    _emit(
        state,
        Event(
            kind=EventKind.NIGHT_RESOLVED,
            night_number=state.night_number,
            day_number=state.night_number + 1,
            message=f"Night {state.night_number} resolved: {summarize_night_result(outcome.result)}.",
            extra={"deaths": list(outcome.result.deaths), "saves": list(outcome.result.saves)},
        ),
    )
    state.day_number = state.night_number + 1
    state.night_number += 1
    state.phase = Phase.DAY
    _update_winner(state)
    return state


def resolve_day_elimination(
    state: GameState,
    nominee_id: str,
    postman_target_id: Optional[str] = None,
) -> GameState:
    """
    Hang the day's nominee. A nominee the Lawyer defended last night survives.
    A hung Postman (delivery unused) takes postman_target_id along unless that
    player is also defended. Returns new state.
    """
    _require_phase(state, Phase.DAY)
    if not state.is_alive(nominee_id):
        raise ValueError(f"Nominee {nominee_id} is not a living player")
    if postman_target_id is not None and (not state.is_alive(postman_target_id) or postman_target_id == nominee_id):
        raise ValueError("Postman delivery target must be another living player")

    state = copy.deepcopy(state)
    immune = set(state.last_night_result.day_immunities) if state.last_night_result else set()
    day = state.day_number or state.night_number

    if nominee_id in immune:
        _emit(
            state,
            Event(
                kind=EventKind.DAY_ELIMINATION,
                night_number=state.night_number,
                day_number=day,
                player_id=nominee_id,
                message=f"Day {day}: the nominee was protected by the Lawyer and survived.",
            ),
        )
        return state

    new_deaths = [nominee_id]
    postman_hung = (
        state.role_of(nominee_id) == Role.POSTMAN and not state.role_memory.postman.used_delivery
    )
    if postman_hung:
        state.role_memory.postman.used_delivery = True
        if postman_target_id and postman_target_id not in immune:
            new_deaths.append(postman_target_id)

    state.dead_player_ids = list(state.dead_player_ids) + new_deaths
    for player_id in new_deaths:
        player = state.get_player(player_id)
        role = state.role_of(player_id)
        _emit(
            state,
            Event(
                kind=EventKind.DAY_ELIMINATION,
                night_number=state.night_number,
                day_number=day,
                player_id=player_id,
                message=f"Day {day}: {player.name if player else player_id} was eliminated.",
                extra={"role": role.value if role else None},
            ),
        )
    _update_winner(state)
    return state


def skip_day_elimination(state: GameState) -> GameState:
    """Town chose not to hang anyone today."""
    _require_phase(state, Phase.DAY)
    state = copy.deepcopy(state)
    day = state.day_number or state.night_number
    _emit(
        state,
        Event(
            kind=EventKind.DAY_SKIPPED,
            night_number=state.night_number,
            day_number=day,
            message=f"Day {day}: Town skipped the elimination vote.",
        ),
    )
    return state


def rollback_night(state: GameState) -> GameState:
    """
    Restore the full snapshot taken before the most recent night resolved.
    Night effects are never inverted piecemeal. Raises ValueError with no history.
    """
    if not state.history:
        raise ValueError("No night to roll back")
    state = copy.deepcopy(state)
    snapshot = state.history.pop()
    state.night_number = snapshot.night_number
    state.dead_player_ids = list(snapshot.dead_player_ids)
    state.role_assignments = copy.deepcopy(snapshot.role_assignments)
    state.night_actions = copy.deepcopy(snapshot.night_actions)
    state.role_memory = copy.deepcopy(snapshot.role_memory)
    state.lover_pairs = list(snapshot.lover_pairs)
    state.converted_origins = dict(snapshot.converted_origins)
    state.last_night_result = None
    state.winner = None
    state.day_number = 0
    state.phase = Phase.NIGHT
    _emit(
        state,
        Event(
            kind=EventKind.ROLLBACK,
            night_number=snapshot.night_number,
            message=f"Rolled back to Night {snapshot.night_number}.",
        ),
    )
    logger.info("Game %s rolled back to night %d", state.game_id, snapshot.night_number)
    return state
