"""Game state types for the night-resolution engine."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, Optional

from moderator.rules import InvestigationVerdict, MagicianChoice, Phase, Role

RoleAssignments = dict[Role, list[str]]
LoverPair = tuple[str, str]


@dataclass(frozen=True)
class Player:
    """A seat at the table."""

    id: str
    name: str


# Per-role memory: only what must survive from one night to the next.


@dataclass
class DoctorMemory:
    last_saved_player_id: Optional[str] = None


@dataclass
class LawyerMemory:
    last_defended_player_id: Optional[str] = None


@dataclass
class CupidMemory:
    used: bool = False
    lover_pair_id: Optional[str] = None


@dataclass
class MagicianMemory:
    used_kill: bool = False
    used_save: bool = False


@dataclass
class PostmanMemory:
    used_delivery: bool = False


@dataclass
class VigilanteMemory:
    used_shot: bool = False
    locked_out: bool = False
    pending_lockout: bool = False  # becomes locked_out when the next night starts


@dataclass
class MadeManMemory:
    used_recruit: bool = False


@dataclass
class RoleMemory:
    """Persistent flags for every role that has any. Other roles keep no memory."""

    doctor: DoctorMemory = field(default_factory=DoctorMemory)
    lawyer: LawyerMemory = field(default_factory=LawyerMemory)
    cupid: CupidMemory = field(default_factory=CupidMemory)
    magician: MagicianMemory = field(default_factory=MagicianMemory)
    postman: PostmanMemory = field(default_factory=PostmanMemory)
    vigilante: VigilanteMemory = field(default_factory=VigilanteMemory)
    made_man: MadeManMemory = field(default_factory=MadeManMemory)


def initial_role_memory() -> RoleMemory:
    """Fresh memory for a new game: every flag false, every target empty."""
    return RoleMemory()


def empty_role_assignments(roles: Iterable[Role] = tuple(Role)) -> RoleAssignments:
    return {role: [] for role in roles}


def build_player_role_map(
    assignments: RoleAssignments,
    players: Optional[Iterable[Player]] = None,
) -> dict[str, Role]:
    """Map player id -> role. Roster players missing from every list count as Civilian."""
    by_player: dict[str, Role] = {}
    for player in players or ():
        by_player[player.id] = Role.CIVILIAN
    for role, ids in assignments.items():
        for player_id in ids:
            if player_id:
                by_player[player_id] = role
    return by_player


def duplicate_assignments(assignments: RoleAssignments) -> list[str]:
    """Player ids listed under more than one role (should always be empty)."""
    seen: set[str] = set()
    dupes: list[str] = []
    for ids in assignments.values():
        for player_id in ids:
            if player_id in seen and player_id not in dupes:
                dupes.append(player_id)
            seen.add(player_id)
    return dupes


@dataclass
class NightAction:
    """One role's submission for the night."""

    target_ids: list[str] = field(default_factory=list)
    choice: Optional[MagicianChoice] = None  # Magician only


NightActions = dict[Role, NightAction]


def empty_night_actions(roles: Iterable[Role] = tuple(Role)) -> NightActions:
    return {role: NightAction() for role in roles}


@dataclass
class NightInput:
    """Everything the resolver reads for one night."""

    night_number: int
    players: list[Player]
    dead_player_ids: list[str] = field(default_factory=list)
    role_assignments: RoleAssignments = field(default_factory=empty_role_assignments)
    night_actions: NightActions = field(default_factory=empty_night_actions)
    role_memory: RoleMemory = field(default_factory=initial_role_memory)
    lover_pairs: list[LoverPair] = field(default_factory=list)


@dataclass(frozen=True)
class DeathDetail:
    player_id: str
    causes: tuple[str, ...]


@dataclass(frozen=True)
class Investigation:
    actor_role: Role
    target_id: str
    result: InvestigationVerdict


@dataclass(frozen=True)
class BusSwap:
    a: str
    b: str


@dataclass(frozen=True)
class RecruitDetail:
    player_id: str
    from_role: Role


@dataclass(frozen=True)
class NightResult:
    """Observable effects of one night. The only artifact narration and audit layers read."""

    deaths: tuple[str, ...] = ()
    death_details: tuple[DeathDetail, ...] = ()
    saves: tuple[str, ...] = ()
    blocked: tuple[Role, ...] = ()
    investigations: tuple[Investigation, ...] = ()
    bus_swaps: tuple[BusSwap, ...] = ()
    day_immunities: tuple[str, ...] = ()
    recruits: tuple[str, ...] = ()
    recruit_details: tuple[RecruitDetail, ...] = ()
    lover_pairs_created: tuple[LoverPair, ...] = ()
    notes: tuple[str, ...] = ()


@dataclass
class NightOutcome:
    """Resolver output: next persistent state plus the night's result."""

    next_dead_player_ids: list[str]
    next_role_assignments: RoleAssignments
    next_role_memory: RoleMemory
    next_lover_pairs: list[LoverPair]
    result: NightResult


class EventKind(str, Enum):
    """Type of timeline event."""

    GAME_START = "game_start"
    NIGHT_START = "night_start"
    NIGHT_RESOLVED = "night_resolved"
    DAY_ELIMINATION = "day_elimination"
    DAY_SKIPPED = "day_skipped"
    ROLLBACK = "rollback"
    GAME_OVER = "game_over"


@dataclass
class Event:
    """A single timeline entry for the moderator."""

    kind: EventKind
    night_number: int
    message: str
    day_number: Optional[int] = None
    player_id: Optional[str] = None
    extra: Optional[dict] = None


@dataclass
class NightSnapshot:
    """Full threaded state captured before a night resolves (for undo)."""

    night_number: int
    dead_player_ids: list[str]
    role_assignments: RoleAssignments
    night_actions: NightActions
    role_memory: RoleMemory
    lover_pairs: list[LoverPair]
    converted_origins: dict[str, Role] = field(default_factory=dict)


@dataclass
class GameState:
    """Full moderator session state, threaded night over night."""

    game_id: str
    players: list[Player] = field(default_factory=list)
    phase: Phase = Phase.SETUP
    night_number: int = 1
    day_number: int = 0
    dead_player_ids: list[str] = field(default_factory=list)
    role_assignments: RoleAssignments = field(default_factory=empty_role_assignments)
    role_memory: RoleMemory = field(default_factory=initial_role_memory)
    lover_pairs: list[LoverPair] = field(default_factory=list)
    night_actions: NightActions = field(default_factory=empty_night_actions)
    converted_origins: dict[str, Role] = field(default_factory=dict)  # recruit id -> role before recruitment
    history: list[NightSnapshot] = field(default_factory=list)
    events: list[Event] = field(default_factory=list)
    last_night_result: Optional[NightResult] = None
    winner: Optional[str] = None

    def get_player(self, player_id: str) -> Optional[Player]:
        """Return player by id or None."""
        for p in self.players:
            if p.id == player_id:
                return p
        return None

    def is_alive(self, player_id: str) -> bool:
        return self.get_player(player_id) is not None and player_id not in self.dead_player_ids

    def get_alive_players(self) -> list[Player]:
        """Return list of alive players."""
        dead = set(self.dead_player_ids)
        return [p for p in self.players if p.id not in dead]

    def role_of(self, player_id: str) -> Optional[Role]:
        if self.get_player(player_id) is None:
            return None
        return build_player_role_map(self.role_assignments, self.players).get(player_id)

    def first_alive_for_role(self, role: Role) -> Optional[str]:
        dead = set(self.dead_player_ids)
        for player_id in self.role_assignments.get(role, []):
            if player_id and player_id not in dead:
                return player_id
        return None
