"""Wake order and action validation, used while the moderator collects a night's actions."""

from dataclasses import dataclass
from typing import Iterable, Optional

from moderator.catalog import ROLE_DEFINITIONS
from moderator.rules import MagicianChoice, NIGHT_ONE_ONLY_WAKE_ROLES, Role, WAKE_ORDER
from moderator.state import RoleMemory


@dataclass(frozen=True)
class ValidationContext:
    night_number: int
    memory: RoleMemory


@dataclass(frozen=True)
class ValidationResult:
    valid: bool
    reason: Optional[str] = None


VALID = ValidationResult(valid=True)


def _invalid(reason: str) -> ValidationResult:
    return ValidationResult(valid=False, reason=reason)


def build_wake_order(
    roles_in_play: Iterable[Role],
    night_number: int,
    roles_alive: Optional[dict[Role, bool]] = None,
) -> list[Role]:
    """
    Order in which the moderator privately wakes each role tonight.
    Presentation only; resolution order is fixed by phase.
    A role missing from roles_alive is assumed alive.
    """
    in_play = set(roles_in_play)

    def is_alive(role: Role) -> bool:
        return roles_alive is None or roles_alive.get(role, True) is not False

    order: list[Role] = []
    if Role.CUPID in in_play and night_number == 1 and is_alive(Role.CUPID):
        order.append(Role.CUPID)
    for role in WAKE_ORDER:
        if role not in in_play or not is_alive(role):
            continue
        if role in NIGHT_ONE_ONLY_WAKE_ROLES and night_number != 1:
            continue
        order.append(role)
    return order


def validate_action(
    role: Role,
    target_ids: list[str],
    context: ValidationContext,
    choice: Optional[MagicianChoice] = None,
) -> ValidationResult:
    """Decide whether a submission is legal for this role right now. No side effects."""
    schema = ROLE_DEFINITIONS[role].action
    if schema is None:
        return VALID if not target_ids else _invalid("Role has no night action.")

    if len(target_ids) != schema.target_count:
        return _invalid("Invalid target count.")

    if role == Role.MAGICIAN:
        if choice is None:
            return _invalid("Magician must choose Vanishing Act, Escape Trick, or No Action.")
        if choice == MagicianChoice.NONE:
            return VALID

    memory = context.memory

    if role == Role.VIGILANTE:
        if context.night_number == 1:
            return _invalid("Vigilante cannot shoot on Night 1.")
        if memory.vigilante.locked_out:
            return _invalid("Vigilante is locked out after killing Town.")
        if memory.vigilante.used_shot:
            return _invalid("Vigilante already used their shot.")

    if role == Role.DOCTOR:
        last = memory.doctor.last_saved_player_id
        if last and target_ids[0] == last:
            return _invalid("Doctor cannot save the same player twice in a row.")

    if role == Role.LAWYER:
        last = memory.lawyer.last_defended_player_id
        if last and target_ids[0] == last:
            return _invalid("Lawyer cannot defend the same player twice in a row.")

    if role == Role.MAGICIAN:
        if choice == MagicianChoice.KILL and memory.magician.used_kill:
            return _invalid("Magician already used their kill.")
        if choice == MagicianChoice.SAVE and memory.magician.used_save:
            return _invalid("Magician already used their save.")

    if role == Role.CUPID:
        if context.night_number != 1:
            return _invalid("Cupid only acts on Night 1.")
        if memory.cupid.used:
            return _invalid("Cupid has already acted.")

    if role == Role.MADE_MAN and memory.made_man.used_recruit:
        return _invalid("Made Man already used recruit.")

    return VALID
