"""Night resolver: pure, deterministic resolution of one night's submitted actions.

Phases run in a fixed order over a single ResolutionContext value:

1. target modifiers (Bus Driver swap, pending-conversion detection)
2. ability blocks (Bartender)
3. protection (Doctor, Lawyer, Magician)
4. kills (Mafia, Rival Mafia, Serial Killer, Vigilante), then saves
5. passive effects (Grandma retaliation, lover chain)
6. investigations (Detective) and Cupid's bond
7. post-investigation state changes (Made Man recruit, Vigilante lockout)

Inputs are never mutated; the outcome carries fresh copies.
"""

import copy
import logging
from dataclasses import dataclass, field
from typing import Optional

from moderator.catalog import get_detective_result_for_role, get_role_alignment
from moderator.rules import (
    Alignment,
    GRANDMA_CAUSE,
    KILL_CAUSES,
    KILLER_ROLES,
    MAFIA_SACRIFICE_ORDER,
    MAGICIAN_KILL_CAUSE,
    MagicianChoice,
    RECRUIT_INELIGIBLE_ROLES,
    RIVAL_SACRIFICE_ORDER,
    Role,
    SHARED_FATE_CAUSE,
    VISITING_ROLES,
    is_actionable_target,
)
from moderator.state import (
    BusSwap,
    DeathDetail,
    Investigation,
    LoverPair,
    NightInput,
    NightOutcome,
    NightResult,
    RecruitDetail,
    RoleAssignments,
    RoleMemory,
    build_player_role_map,
)

logger = logging.getLogger(__name__)


@dataclass
class ResolutionContext:
    """Working state threaded through the phases of one night."""

    night_number: int
    dead_set: set[str]
    assignments: RoleAssignments
    memory: RoleMemory
    player_roles: dict[str, Role]
    lover_pairs: list[LoverPair]
    role_targets: dict[Role, list[str]] = field(default_factory=dict)
    blocked: list[Role] = field(default_factory=list)
    protected: set[str] = field(default_factory=set)
    day_immunities: list[str] = field(default_factory=list)
    deaths: dict[str, list[str]] = field(default_factory=dict)  # id -> distinct causes, in order
    saves: list[str] = field(default_factory=list)
    investigations: list[Investigation] = field(default_factory=list)
    recruits: list[str] = field(default_factory=list)
    recruit_details: list[RecruitDetail] = field(default_factory=list)
    lover_pairs_created: list[LoverPair] = field(default_factory=list)
    notes: list[str] = field(default_factory=list)
    swap_a: Optional[str] = None
    swap_b: Optional[str] = None
    converted_role: Optional[Role] = None
    vigilante_fired: bool = False

    def add_death(self, player_id: Optional[str], cause: str) -> None:
        if not player_id:
            return
        causes = self.deaths.setdefault(player_id, [])
        if cause not in causes:
            causes.append(cause)

    def is_dead(self, player_id: str) -> bool:
        """Dead before tonight or dying tonight."""
        return player_id in self.dead_set or player_id in self.deaths

    def is_blocked(self, role: Role) -> bool:
        return role in self.blocked

    def first_target(self, role: Role) -> Optional[str]:
        """The role's first effective target, or None when absent or no-action."""
        targets = self.role_targets.get(role) or []
        if targets and is_actionable_target(targets[0]):
            return targets[0]
        return None

    def first_alive(self, role: Role) -> Optional[str]:
        """First holder of the role who was alive when the night began."""
        for player_id in self.assignments.get(role, []):
            if player_id and player_id not in self.dead_set:
                return player_id
        return None


def _unique(items):
    return tuple(dict.fromkeys(items))


def _redirect(target_id: str, swap_a: Optional[str], swap_b: Optional[str]) -> str:
    if not swap_a or not swap_b:
        return target_id
    if target_id == swap_a:
        return swap_b
    if target_id == swap_b:
        return swap_a
    return target_id


def create_context(night: NightInput) -> ResolutionContext:
    """Copy the threaded state into a fresh working context."""
    assignments = copy.deepcopy(night.role_assignments)
    return ResolutionContext(
        night_number=night.night_number,
        dead_set=set(night.dead_player_ids),
        assignments=assignments,
        memory=copy.deepcopy(night.role_memory),
        player_roles=build_player_role_map(assignments, night.players),
        lover_pairs=[tuple(pair) for pair in night.lover_pairs],
    )


def apply_target_modifiers(night: NightInput, ctx: ResolutionContext) -> None:
    bus = night.night_actions.get(Role.BUS_DRIVER)
    bus_targets = bus.target_ids if bus else []
    ctx.swap_a = bus_targets[0] if len(bus_targets) > 0 and is_actionable_target(bus_targets[0]) else None
    ctx.swap_b = bus_targets[1] if len(bus_targets) > 1 and is_actionable_target(bus_targets[1]) else None

    for role, action in night.night_actions.items():
        ctx.role_targets[role] = [
            _redirect(t, ctx.swap_a, ctx.swap_b) if is_actionable_target(t) else t
            for t in action.target_ids
        ]
    if ctx.swap_a and ctx.swap_b:
        ctx.notes.append("Bus Driver swap was applied.")
        logger.debug("Bus Driver swapped %s <-> %s", ctx.swap_a, ctx.swap_b)

    # Detected before the recruit executes so the Detective can be silenced in phase 6
    recruit_target = ctx.first_target(Role.MADE_MAN)
    if recruit_target and not night.role_memory.made_man.used_recruit:
        ctx.converted_role = ctx.player_roles.get(recruit_target)


def apply_ability_blocks(ctx: ResolutionContext) -> None:
    target = ctx.first_target(Role.BARTENDER)
    if not target:
        return
    blocked_role = ctx.player_roles.get(target)
    if blocked_role is None:
        return
    if blocked_role not in ctx.blocked:
        ctx.blocked.append(blocked_role)
    ctx.notes.append(f"{blocked_role.value} was blocked by Bartender.")
    logger.debug("Bartender blocked %s", blocked_role.value)


def apply_protection(night: NightInput, ctx: ResolutionContext) -> None:
    if not ctx.is_blocked(Role.DOCTOR):
        target = ctx.first_target(Role.DOCTOR)
        if target and target not in ctx.dead_set:
            ctx.protected.add(target)
            ctx.memory.doctor.last_saved_player_id = target

    if not ctx.is_blocked(Role.LAWYER):
        target = ctx.first_target(Role.LAWYER)
        if target and target not in ctx.dead_set:
            if target not in ctx.day_immunities:
                ctx.day_immunities.append(target)
            ctx.memory.lawyer.last_defended_player_id = target

    if not ctx.is_blocked(Role.MAGICIAN):
        action = night.night_actions.get(Role.MAGICIAN)
        choice = action.choice if action else None
        target = ctx.first_target(Role.MAGICIAN)
        if target and target not in ctx.dead_set:
            if choice == MagicianChoice.SAVE:
                ctx.protected.add(target)
                ctx.memory.magician.used_save = True
            elif choice == MagicianChoice.KILL:
                ctx.add_death(target, MAGICIAN_KILL_CAUSE)
                ctx.memory.magician.used_kill = True

    logger.debug("Protected tonight: %s", sorted(ctx.protected))


def apply_kills(night: NightInput, ctx: ResolutionContext) -> None:
    vigilante = night.role_memory.vigilante
    for role in KILLER_ROLES:
        if ctx.is_blocked(role):
            continue
        target = ctx.first_target(role)
        if not target or target in ctx.dead_set:
            continue
        if role == Role.VIGILANTE:
            if night.night_number == 1 or vigilante.locked_out or vigilante.used_shot:
                ctx.notes.append("Vigilante action was ignored due to role restrictions.")
                logger.info("Ignored Vigilante shot at %s (night %d)", target, night.night_number)
                continue
            ctx.memory.vigilante.used_shot = True
            ctx.vigilante_fired = True
        ctx.add_death(target, KILL_CAUSES[role])

    # One protection cancels every kill aimed at that player except the Vanishing Act
    for target in list(ctx.deaths):
        if target not in ctx.protected:
            continue
        remaining = [cause for cause in ctx.deaths[target] if cause == MAGICIAN_KILL_CAUSE]
        if remaining:
            ctx.deaths[target] = remaining
            continue
        del ctx.deaths[target]
        if target not in ctx.saves:
            ctx.saves.append(target)

    logger.debug("After kills: deaths=%s saves=%s", list(ctx.deaths), ctx.saves)


def _sacrifice(ctx: ResolutionContext, priority: tuple[Role, ...]) -> Optional[str]:
    for role in priority:
        member = ctx.first_alive(role)
        if member:
            return member
    return None


def _apply_grandma_retaliation(ctx: ResolutionContext) -> None:
    # Based on being alive at the start of the night: a same-night kill does not stop Home Defense
    grandma_id = ctx.first_alive(Role.GRANDMA)
    if not grandma_id:
        return
    for role in VISITING_ROLES:
        if ctx.is_blocked(role):
            continue
        targets = ctx.role_targets.get(role) or []
        if not any(is_actionable_target(t) and t == grandma_id for t in targets):
            continue
        if role == Role.MAFIA:
            victim = _sacrifice(ctx, MAFIA_SACRIFICE_ORDER)
            if victim:
                ctx.add_death(victim, GRANDMA_CAUSE)
                ctx.notes.append("Grandma retaliated against the Mafia visit.")
        elif role == Role.RIVAL_MAFIA:
            victim = _sacrifice(ctx, RIVAL_SACRIFICE_ORDER)
            if victim:
                ctx.add_death(victim, GRANDMA_CAUSE)
                ctx.notes.append("Grandma retaliated against the Rival Mafia visit.")
        else:
            actor = ctx.first_alive(role)
            if actor:
                ctx.add_death(actor, f"Visited Grandma as {role.label} and died to Home Defense.")
                ctx.notes.append(f"{role.value} died while visiting Grandma.")
        logger.debug("Grandma retaliation against %s visit", role.value)


def apply_lover_chain(ctx: ResolutionContext) -> None:
    """Kill the surviving half of every lover pair whose partner is dead, until nothing changes.

    Each productive pass kills at least one distinct player, so the pass count is
    bounded by the number of known players.
    """
    known = set(ctx.player_roles)
    for a, b in ctx.lover_pairs:
        known.update((a, b))
    for iteration in range(len(known) + 1):
        changed = False
        for a, b in ctx.lover_pairs:
            a_dead, b_dead = ctx.is_dead(a), ctx.is_dead(b)
            survivor = b if a_dead and not b_dead else a if b_dead and not a_dead else None
            if survivor:
                ctx.add_death(survivor, SHARED_FATE_CAUSE)
                ctx.notes.append("Lover chain death occurred.")
                changed = True
        if not changed:
            logger.debug("Lover chain stable after %d pass(es)", iteration + 1)
            return


def apply_passive_effects(ctx: ResolutionContext) -> None:
    _apply_grandma_retaliation(ctx)
    apply_lover_chain(ctx)


def apply_investigations(ctx: ResolutionContext) -> None:
    detective_converted = ctx.converted_role == Role.DETECTIVE
    if not ctx.is_blocked(Role.DETECTIVE) and not detective_converted:
        target = ctx.first_target(Role.DETECTIVE)
        target_role = ctx.player_roles.get(target) if target else None
        if target_role is not None:
            ctx.investigations.append(
                Investigation(
                    actor_role=Role.DETECTIVE,
                    target_id=target,
                    result=get_detective_result_for_role(target_role),
                )
            )
    if detective_converted:
        ctx.notes.append("Detective was converted before investigation resolved.")

    if not ctx.is_blocked(Role.CUPID) and ctx.night_number == 1 and not ctx.memory.cupid.used:
        targets = ctx.role_targets.get(Role.CUPID) or []
        lover_a = targets[0] if len(targets) > 0 else None
        lover_b = targets[1] if len(targets) > 1 else None
        if is_actionable_target(lover_a) and is_actionable_target(lover_b) and lover_a != lover_b:
            pair = (lover_a, lover_b)
            ctx.lover_pairs.append(pair)
            ctx.lover_pairs_created.append(pair)
            ctx.memory.cupid.used = True
            ctx.memory.cupid.lover_pair_id = f"{lover_a}|{lover_b}"
            ctx.notes.append("Cupid created a lover pair.")
            # A lover killed tonight takes the new partner along
            apply_lover_chain(ctx)


def apply_post_investigation_changes(night: NightInput, ctx: ResolutionContext) -> None:
    if not ctx.is_blocked(Role.MADE_MAN) and not night.role_memory.made_man.used_recruit:
        target = ctx.first_target(Role.MADE_MAN)
        current_role = ctx.player_roles.get(target) if target and target not in ctx.dead_set else None
        if current_role is not None and current_role not in RECRUIT_INELIGIBLE_ROLES:
            ctx.assignments[current_role] = [
                pid for pid in ctx.assignments.get(current_role, []) if pid != target
            ]
            ctx.assignments[Role.MAFIA] = list(ctx.assignments.get(Role.MAFIA, [])) + [target]
            ctx.recruits.append(target)
            ctx.recruit_details.append(RecruitDetail(player_id=target, from_role=current_role))
            ctx.memory.made_man.used_recruit = True
            ctx.notes.append("Made Man recruited a player to Mafia.")
            logger.debug("Made Man recruited %s from %s", target, current_role.value)

    if ctx.vigilante_fired:
        target = ctx.first_target(Role.VIGILANTE)
        target_role = ctx.player_roles.get(target) if target and target in ctx.deaths else None
        if target_role is not None and get_role_alignment(target_role) == Alignment.TOWN:
            ctx.memory.vigilante.pending_lockout = True
            ctx.notes.append("Vigilante killed a Town player and will be locked out next night.")


def build_outcome(night: NightInput, ctx: ResolutionContext) -> NightOutcome:
    night_deaths = [pid for pid in ctx.deaths if pid not in ctx.dead_set]
    result = NightResult(
        deaths=tuple(night_deaths),
        death_details=tuple(
            DeathDetail(player_id=pid, causes=tuple(ctx.deaths[pid])) for pid in night_deaths
        ),
        saves=_unique(ctx.saves),
        blocked=_unique(ctx.blocked),
        investigations=tuple(ctx.investigations),
        bus_swaps=(BusSwap(a=ctx.swap_a, b=ctx.swap_b),) if ctx.swap_a and ctx.swap_b else (),
        day_immunities=_unique(ctx.day_immunities),
        recruits=_unique(ctx.recruits),
        recruit_details=tuple(ctx.recruit_details),
        lover_pairs_created=tuple(ctx.lover_pairs_created),
        notes=tuple(ctx.notes),
    )
    return NightOutcome(
        next_dead_player_ids=list(_unique(list(night.dead_player_ids) + night_deaths)),
        next_role_assignments=ctx.assignments,
        next_role_memory=ctx.memory,
        next_lover_pairs=ctx.lover_pairs,
        result=result,
    )


def resolve_night(night: NightInput) -> NightOutcome:
    """
    Resolve one night atomically. Out-of-policy submissions are ignored with a note,
    never raised. Identical inputs always give identical outcomes.
    """
    ctx = create_context(night)
    apply_target_modifiers(night, ctx)
    apply_ability_blocks(ctx)
    apply_protection(night, ctx)
    apply_kills(night, ctx)
    apply_passive_effects(ctx)
    apply_investigations(ctx)
    apply_post_investigation_changes(night, ctx)
    outcome = build_outcome(night, ctx)
    logger.info(
        "Night %d resolved: %d death(s), %d save(s), %d blocked, %d recruit(s)",
        night.night_number,
        len(outcome.result.deaths),
        len(outcome.result.saves),
        len(outcome.result.blocked),
        len(outcome.result.recruits),
    )
    return outcome
