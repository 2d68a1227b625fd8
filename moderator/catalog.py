"""Static role catalog: alignment, action schema and ability metadata."""

import logging
import re
from dataclasses import dataclass, field
from typing import Optional

from moderator.config import load_settings
from moderator.rules import Alignment, InvestigationVerdict, Role, WAKE_ORDER

logger = logging.getLogger(__name__)


class RoleCatalogError(ValueError):
    """Raised when the role catalog is internally inconsistent."""


@dataclass(frozen=True)
class ActionSchema:
    """What a role submits at night."""

    target_count: int
    allow_self: bool = False
    notes: str = ""


@dataclass(frozen=True)
class Ability:
    name: str
    description: str
    phase: str  # "Night", "Night 1", "Day" or "Any"
    kind: str  # "Active", "Passive" or "Triggered"


@dataclass(frozen=True)
class RoleDefinition:
    role: Role
    alignment: Alignment
    wake_order: Optional[int]
    notes: str
    abilities: tuple[Ability, ...] = field(default_factory=tuple)
    action: Optional[ActionSchema] = None
    night_one_only: bool = False


def _wake(role: Role) -> int:
    return WAKE_ORDER.index(role)


ROLE_DEFINITIONS: dict[Role, RoleDefinition] = {
    Role.CIVILIAN: RoleDefinition(
        role=Role.CIVILIAN,
        alignment=Alignment.TOWN,
        wake_order=None,
        notes="An ordinary townsperson with no night action, relying on discussion and deduction to survive.",
        abilities=(
            Ability("Common Citizen", "No night ability. Wins with the Town by eliminating hostile factions.", "Any", "Passive"),
        ),
    ),
    Role.DETECTIVE: RoleDefinition(
        role=Role.DETECTIVE,
        alignment=Alignment.TOWN,
        wake_order=_wake(Role.DETECTIVE),
        action=ActionSchema(target_count=1),
        notes="An investigator who works the night for clues and quietly tests who can be trusted.",
        abilities=(
            Ability("Investigation", "Choose one player to learn whether they are aligned with the Mafia.", "Night", "Active"),
        ),
    ),
    Role.DOCTOR: RoleDefinition(
        role=Role.DOCTOR,
        alignment=Alignment.TOWN,
        wake_order=_wake(Role.DOCTOR),
        action=ActionSchema(target_count=1, allow_self=True),
        notes="A field medic who can keep someone alive through the night, but has [Limited Resources].",
        abilities=(
            Ability("Medical Protection", "Choose one player to protect from night kills.", "Night", "Active"),
            Ability("Limited Resources", "Cannot protect the same player on consecutive nights.", "Any", "Passive"),
        ),
    ),
    Role.MILLER: RoleDefinition(
        role=Role.MILLER,
        alignment=Alignment.TOWN,
        wake_order=None,
        notes="A loyal town member with a suspicious reputation, often read the wrong way by investigators.",
        abilities=(Ability("False Suspicion", "Appears as Mafia when investigated.", "Any", "Passive"),),
    ),
    Role.CUPID: RoleDefinition(
        role=Role.CUPID,
        alignment=Alignment.TOWN,
        wake_order=-1,
        night_one_only=True,
        action=ActionSchema(target_count=2),
        notes="A matchmaker who ties two players together with [Lover's Bond] on the first night.",
        abilities=(
            Ability("Lover's Bond", "Choose two players to become Lovers.", "Night 1", "Active"),
            Ability("Shared Fate", "If one Lover dies, the other dies immediately.", "Any", "Passive"),
        ),
    ),
    Role.BUS_DRIVER: RoleDefinition(
        role=Role.BUS_DRIVER,
        alignment=Alignment.TOWN,
        wake_order=_wake(Role.BUS_DRIVER),
        action=ActionSchema(target_count=2),
        notes="A chaos agent behind the wheel who can reroute the night by swapping where actions land.",
        abilities=(
            Ability("Route Swap", "Choose two players. All actions targeting one are redirected to the other.", "Night", "Active"),
        ),
    ),
    Role.UNDERCOVER_COP: RoleDefinition(
        role=Role.UNDERCOVER_COP,
        alignment=Alignment.TOWN,
        wake_order=None,
        notes="A town operative embedded with both criminal factions, working in [Deep Cover].",
        abilities=(
            Ability("Deep Cover", "Wakes with both Mafia teams while remaining aligned with the Town.", "Any", "Passive"),
            Ability("Maintain Cover", "Cannot publicly reveal their identity.", "Any", "Passive"),
        ),
    ),
    Role.GRANDMA: RoleDefinition(
        role=Role.GRANDMA,
        alignment=Alignment.TOWN,
        wake_order=_wake(Role.GRANDMA),
        notes="A dangerous homeowner whose late-night visitors may not make it back out.",
        abilities=(
            Ability("Home Defense", "Any player who visits Grandma at night risks being killed in retaliation.", "Any", "Passive"),
            Ability("Stand Your Ground", "If targeted by the Mafia, a Mafia member dies instead.", "Any", "Passive"),
        ),
    ),
    Role.MAGICIAN: RoleDefinition(
        role=Role.MAGICIAN,
        alignment=Alignment.TOWN,
        wake_order=_wake(Role.MAGICIAN),
        action=ActionSchema(target_count=1, notes="One kill and one save per game, at night."),
        notes="A stage magician with two one-time tricks: [Vanishing Act] and [Escape Trick].",
        abilities=(
            Ability("Vanishing Act", "Choose one player to kill.", "Night", "Active"),
            Ability("Escape Trick", "Choose one player to save from a night kill.", "Night", "Active"),
        ),
    ),
    Role.POSTMAN: RoleDefinition(
        role=Role.POSTMAN,
        alignment=Alignment.NEUTRAL,
        wake_order=_wake(Role.POSTMAN),
        notes="A wildcard who can turn a public execution into one final act of revenge.",
        abilities=(
            Ability("Last Laugh", "If the Postman is hung during the day, choose one player to die with them.", "Day", "Triggered"),
        ),
    ),
    Role.VIGILANTE: RoleDefinition(
        role=Role.VIGILANTE,
        alignment=Alignment.TOWN,
        wake_order=_wake(Role.VIGILANTE),
        action=ActionSchema(target_count=1),
        notes="A lone gun with a [Single Shot] who must live with the consequences of a bad shot.",
        abilities=(
            Ability("Single Shot", "Choose one player to kill.", "Night", "Active"),
            Ability("Preparation Time", "Cannot use their ability on Night 1.", "Any", "Passive"),
        ),
    ),
    Role.MAFIA: RoleDefinition(
        role=Role.MAFIA,
        alignment=Alignment.MAFIA,
        wake_order=_wake(Role.MAFIA),
        action=ActionSchema(target_count=1),
        notes="The main Mafia crew, coordinating in the dark to remove one target each night.",
        abilities=(Ability("Mafia Kill", "The Mafia collectively choose one player to kill.", "Night", "Active"),),
    ),
    Role.GODFATHER: RoleDefinition(
        role=Role.GODFATHER,
        alignment=Alignment.MAFIA,
        wake_order=None,
        notes="The head of the Mafia, polished enough to look clean even under investigation.",
        abilities=(Ability("Untouchable Reputation", "Appears innocent when investigated.", "Any", "Passive"),),
    ),
    Role.RIVAL_GODFATHER: RoleDefinition(
        role=Role.RIVAL_GODFATHER,
        alignment=Alignment.RIVAL_MAFIA,
        wake_order=None,
        notes="The rival syndicate boss, calm under pressure and hard to expose through investigation.",
        abilities=(Ability("Untouchable Reputation", "Appears innocent when investigated.", "Any", "Passive"),),
    ),
    Role.LAWYER: RoleDefinition(
        role=Role.LAWYER,
        alignment=Alignment.MAFIA,
        wake_order=_wake(Role.LAWYER),
        action=ActionSchema(target_count=1),
        notes="A silver-tongued defender who can keep one player from being eliminated during the next day.",
        abilities=(
            Ability("Legal Defense", "Choose one player to protect from being voted out the next day.", "Night", "Active"),
        ),
    ),
    Role.MADE_MAN: RoleDefinition(
        role=Role.MADE_MAN,
        alignment=Alignment.MAFIA,
        wake_order=None,
        action=ActionSchema(target_count=1, notes="Recruit once per game."),
        notes="A trusted Mafia lieutenant who can use [Recruitment] once per game.",
        abilities=(
            Ability("Recruitment", "Blackmails one player to join the Mafia once per game.", "Night", "Active"),
        ),
    ),
    Role.BARTENDER: RoleDefinition(
        role=Role.BARTENDER,
        alignment=Alignment.MAFIA,
        wake_order=_wake(Role.BARTENDER),
        action=ActionSchema(target_count=1),
        notes="A smooth bartender who can shut down another player's active ability for the night.",
        abilities=(
            Ability("Strong Drink", "Choose one player. Their active ability is cancelled for that night.", "Night", "Active"),
        ),
    ),
    Role.SERIAL_KILLER: RoleDefinition(
        role=Role.SERIAL_KILLER,
        alignment=Alignment.NEUTRAL,
        wake_order=None,
        action=ActionSchema(target_count=1),
        notes="A lone predator with no allies and no victory except being the [Lone Survivor].",
        abilities=(
            Ability("Night Kill", "Choose one player to kill.", "Night", "Active"),
            Ability("Lone Survivor", "Wins only if they are the last player alive.", "Any", "Passive"),
        ),
    ),
    Role.RIVAL_MAFIA: RoleDefinition(
        role=Role.RIVAL_MAFIA,
        alignment=Alignment.RIVAL_MAFIA,
        wake_order=_wake(Role.RIVAL_MAFIA),
        action=ActionSchema(target_count=1),
        notes="A rival syndicate competing with the Mafia and the Town, striking their own target each night.",
        abilities=(Ability("Rival Kill", "Rival Mafia collectively choose one player to kill.", "Night", "Active"),),
    ),
}

ROLE_TYPES: tuple[Role, ...] = tuple(ROLE_DEFINITIONS)

_BRACKET_REFERENCE = re.compile(r"\[([^\]]+)\]")


def get_role_alignment(role: Role) -> Alignment:
    return ROLE_DEFINITIONS[role].alignment


def get_detective_result_for_role(role: Role) -> InvestigationVerdict:
    """Verdict a Detective receives for a player holding this role."""
    if role in (Role.GODFATHER, Role.RIVAL_GODFATHER):
        return InvestigationVerdict.INNOCENT
    if role in (Role.MILLER, Role.SERIAL_KILLER):
        return InvestigationVerdict.GUILTY
    if get_role_alignment(role) in (Alignment.MAFIA, Alignment.RIVAL_MAFIA):
        return InvestigationVerdict.GUILTY
    return InvestigationVerdict.INNOCENT


def catalog_issues(definitions: dict[Role, RoleDefinition] | None = None) -> list[str]:
    """Return every inconsistency found in the catalog (empty when clean)."""
    definitions = ROLE_DEFINITIONS if definitions is None else definitions
    issues: list[str] = []

    seen: set[Role] = set()
    for role in WAKE_ORDER:
        if role in seen:
            issues.append(f"WAKE_ORDER: duplicate role {role.value}.")
            continue
        seen.add(role)
        if role not in definitions:
            issues.append(f"WAKE_ORDER: unknown role {role.value}.")

    for role, definition in definitions.items():
        if definition.role != role:
            issues.append(f"{role.value}: definition role must match its key.")

        if role == Role.CUPID:
            if definition.wake_order != -1:
                issues.append("Cupid: wake_order must be -1 (Night 1 setup slot).")
            if not definition.night_one_only:
                issues.append("Cupid: must be night_one_only.")
        elif role in WAKE_ORDER:
            expected = WAKE_ORDER.index(role)
            if definition.wake_order != expected:
                issues.append(f"{role.value}: wake_order should equal WAKE_ORDER index {expected}.")
        elif definition.wake_order is not None:
            issues.append(f"{role.value}: wake_order must be None when role is not in WAKE_ORDER.")

        if definition.action is not None and definition.action.target_count < 1:
            issues.append(f"{role.value}: action.target_count must be a positive integer.")

        if not definition.abilities:
            issues.append(f"{role.value}: at least one ability entry is required.")

        names = [a.name for a in definition.abilities]
        for ability in definition.abilities:
            if not ability.name.strip():
                issues.append(f"{role.value}: ability name cannot be empty.")
            if not ability.description.strip():
                issues.append(f"{role.value}: ability '{ability.name}' description cannot be empty.")
            if ability.phase == "Night 1" and ability.kind == "Passive":
                issues.append(f"{role.value}: ability '{ability.name}' should not be marked 'Night 1' + Passive.")
        if len(names) != len(set(names)):
            issues.append(f"{role.value}: duplicate ability names detected.")
        for reference in _BRACKET_REFERENCE.findall(definition.notes):
            if reference.strip() not in names:
                issues.append(
                    f"{role.value}: notes reference [{reference.strip()}] does not match an ability on the same role."
                )

    return issues


def validate_catalog(definitions: dict[Role, RoleDefinition] | None = None) -> None:
    """Raise RoleCatalogError listing every issue, if any."""
    issues = catalog_issues(definitions)
    if issues:
        raise RoleCatalogError("Role catalog validation failed:\n" + "\n".join(issues))


if load_settings().catalog_self_check:
    validate_catalog()
    logger.debug("Role catalog self-check passed (%d roles)", len(ROLE_DEFINITIONS))
