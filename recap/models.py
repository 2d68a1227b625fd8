"""Pydantic models for the night-result contract and public game views."""

from pydantic import BaseModel, Field, field_validator, model_validator

from moderator.rules import MagicianChoice, Role
from moderator.state import GameState, NightActions, NightAction, NightResult, empty_night_actions

# Validation constants (no magic numbers in validation)
MAX_TARGETS_PER_ACTION = 2


class NightActionSubmission(BaseModel):
    """One role's submission as received from a UI."""

    role: Role
    target_ids: list[str] = Field(default_factory=list, max_length=MAX_TARGETS_PER_ACTION)
    choice: MagicianChoice | None = Field(default=None, description="Magician only: kill, save or none")

    @field_validator("target_ids")
    @classmethod
    def targets_not_blank(cls, v: list[str]) -> list[str]:
        cleaned = [t.strip() for t in v]
        if any(not t for t in cleaned):
            raise ValueError("target ids must be non-empty (use the no-action marker to skip)")
        return cleaned

    @model_validator(mode="after")
    def choice_only_for_magician(self) -> "NightActionSubmission":
        if self.choice is not None and self.role != Role.MAGICIAN:
            raise ValueError(f"choice is only accepted for Magician, not {self.role.value}")
        return self


def submissions_to_night_actions(submissions: list[NightActionSubmission]) -> NightActions:
    """Build a full Night Action Set; roles without a submission get no targets."""
    actions = empty_night_actions()
    seen: set[Role] = set()
    for submission in submissions:
        if submission.role in seen:
            raise ValueError(f"Duplicate submission for {submission.role.value}")
        seen.add(submission.role)
        actions[submission.role] = NightAction(target_ids=list(submission.target_ids), choice=submission.choice)
    return actions


class DeathDetailPublic(BaseModel):
    player_id: str
    causes: list[str]


class InvestigationPublic(BaseModel):
    actor_role: str
    target_id: str
    result: str = Field(..., description="Innocent or Guilty")


class BusSwapPublic(BaseModel):
    a: str
    b: str


class RecruitDetailPublic(BaseModel):
    player_id: str
    from_role: str


class NightResultPublic(BaseModel):
    """Full Night Result, field for field. Narration and audit layers depend on this shape."""

    deaths: list[str] = Field(default_factory=list)
    death_details: list[DeathDetailPublic] = Field(default_factory=list)
    saves: list[str] = Field(default_factory=list)
    blocked: list[str] = Field(default_factory=list)
    investigations: list[InvestigationPublic] = Field(default_factory=list)
    bus_swaps: list[BusSwapPublic] = Field(default_factory=list)
    day_immunities: list[str] = Field(default_factory=list)
    recruits: list[str] = Field(default_factory=list)
    recruit_details: list[RecruitDetailPublic] = Field(default_factory=list)
    lover_pairs_created: list[tuple[str, str]] = Field(default_factory=list)
    notes: list[str] = Field(default_factory=list)


def night_result_to_public(result: NightResult) -> NightResultPublic:
    return NightResultPublic(
        deaths=list(result.deaths),
        death_details=[DeathDetailPublic(player_id=d.player_id, causes=list(d.causes)) for d in result.death_details],
        saves=list(result.saves),
        blocked=[role.value for role in result.blocked],
        investigations=[
            InvestigationPublic(actor_role=i.actor_role.value, target_id=i.target_id, result=i.result.value)
            for i in result.investigations
        ],
        bus_swaps=[BusSwapPublic(a=s.a, b=s.b) for s in result.bus_swaps],
        day_immunities=list(result.day_immunities),
        recruits=list(result.recruits),
        recruit_details=[
            RecruitDetailPublic(player_id=r.player_id, from_role=r.from_role.value) for r in result.recruit_details
        ],
        lover_pairs_created=[tuple(pair) for pair in result.lover_pairs_created],
        notes=list(result.notes),
    )


class DeathPublic(BaseModel):
    """A death as the town hears about it: who, what they were, and how."""

    name: str
    role: str
    causes: list[str]


class NightRecapPublic(BaseModel):
    """What a narration service receives: public facts only, no blocks or investigations."""

    night_number: int
    day_number: int
    deaths: list[DeathPublic] = Field(default_factory=list)
    saves: list[str] = Field(default_factory=list, description="Names of players who survived an attack")


def build_night_recap(state: GameState) -> NightRecapPublic | None:
    """Recap of the most recently resolved night, or None before any night resolves."""
    result = state.last_night_result
    if result is None:
        return None

    def name_of(player_id: str) -> str:
        player = state.get_player(player_id)
        return player.name.strip() if player and player.name.strip() else "Unnamed"

    deaths = []
    for detail in result.death_details:
        role = state.role_of(detail.player_id) or Role.CIVILIAN
        deaths.append(DeathPublic(name=name_of(detail.player_id), role=role.label, causes=list(detail.causes)))
    return NightRecapPublic(
        night_number=state.day_number - 1,
        day_number=state.day_number,
        deaths=deaths,
        saves=[name_of(pid) for pid in result.saves],
    )


class PlayerPublic(BaseModel):
    """Player as shown to the table: role only revealed when dead."""

    id: str
    name: str
    alive: bool
    role: str | None = Field(default=None, description="Only set when not alive (revealed on death)")
    converted_from: str | None = Field(default=None, description="Original role of a recruited player, shown with role")


class EventPublic(BaseModel):
    kind: str
    night_number: int
    day_number: int | None = None
    message: str
    player_id: str | None = None


class GameStatePublic(BaseModel):
    """Public game state; the moderator view sets spectate to see every role."""

    game_id: str
    phase: str
    night_number: int
    day_number: int
    players: list[PlayerPublic]
    events: list[EventPublic]
    winner: str | None = Field(default=None, description="Winner label when the game is over")
    last_night: NightRecapPublic | None = None
    spectate: bool = False


def game_state_to_public(state: GameState, spectate: bool = False) -> GameStatePublic:
    """Build public view from GameState; hide roles of alive players unless spectate."""
    players_public = []
    for p in state.players:
        alive = state.is_alive(p.id)
        role = state.role_of(p.id)
        revealed = spectate or not alive
        role_str = role.value if role is not None and revealed else None
        origin = state.converted_origins.get(p.id)
        converted_from = origin.value if origin is not None and revealed else None
        players_public.append(
            PlayerPublic(id=p.id, name=p.name, alive=alive, role=role_str, converted_from=converted_from)
        )
    events_public = [
        EventPublic(
            kind=e.kind.value,
            night_number=e.night_number,
            day_number=e.day_number,
            message=e.message,
            player_id=e.player_id,
        )
        for e in state.events
    ]
    return GameStatePublic(
        game_id=state.game_id,
        phase=state.phase.value,
        night_number=state.night_number,
        day_number=state.day_number,
        players=players_public,
        events=events_public,
        winner=state.winner,
        last_night=build_night_recap(state),
        spectate=spectate,
    )
