"""Game rules and constants for the night-resolution engine."""

from enum import Enum


class Role(str, Enum):
    """Player roles in the game."""

    CIVILIAN = "Civilian"
    DETECTIVE = "Detective"
    DOCTOR = "Doctor"
    MILLER = "Miller"
    CUPID = "Cupid"
    BUS_DRIVER = "BusDriver"
    UNDERCOVER_COP = "UndercoverCop"
    GRANDMA = "Grandma"
    MAGICIAN = "Magician"
    POSTMAN = "Postman"
    VIGILANTE = "Vigilante"
    MAFIA = "Mafia"
    GODFATHER = "Godfather"
    RIVAL_GODFATHER = "RivalGodfather"
    LAWYER = "Lawyer"
    MADE_MAN = "MadeMan"
    BARTENDER = "Bartender"
    SERIAL_KILLER = "SerialKiller"
    RIVAL_MAFIA = "RivalMafia"

    @property
    def label(self) -> str:
        """Display name with spaces, e.g. 'Made Man'."""
        out = []
        for i, ch in enumerate(self.value):
            if i and ch.isupper() and self.value[i - 1].islower():
                out.append(" ")
            out.append(ch)
        return "".join(out)


class Alignment(str, Enum):
    """Faction a role wins with."""

    TOWN = "Town"
    MAFIA = "Mafia"
    RIVAL_MAFIA = "RivalMafia"
    NEUTRAL = "Neutral"


class Phase(str, Enum):
    """Current moderator phase."""

    SETUP = "setup"
    NIGHT = "night"
    DAY = "day"
    ENDED = "ended"


class MagicianChoice(str, Enum):
    """Mode the Magician picks for the night."""

    KILL = "kill"
    SAVE = "save"
    NONE = "none"


class InvestigationVerdict(str, Enum):
    INNOCENT = "Innocent"
    GUILTY = "Guilty"


class WinLabel(str, Enum):
    SERIAL_KILLER = "Serial Killer wins"
    TOWN = "Town wins"
    MAFIA = "Mafia wins"
    RIVAL_MAFIA = "Rival Mafia wins"


# Marker the UI submits when a role deliberately skips its action
NO_ACTION = "__no_action__"

# Order roles are woken each night (Cupid is prepended on night 1 only)
WAKE_ORDER = (
    Role.BUS_DRIVER,
    Role.MAFIA,
    Role.RIVAL_MAFIA,
    Role.BARTENDER,
    Role.LAWYER,
    Role.VIGILANTE,
    Role.DOCTOR,
    Role.MAGICIAN,
    Role.POSTMAN,
    Role.GRANDMA,
    Role.DETECTIVE,
)

# Woken only on the first night (introductions)
NIGHT_ONE_ONLY_WAKE_ROLES = frozenset({Role.POSTMAN, Role.GRANDMA})

# Resolution phases in execution order
RESOLUTION_ORDER = (
    "TargetModifiers",
    "AbilityBlocks",
    "Protection",
    "Kills",
    "PassiveEffects",
    "Investigations",
)

# Killers processed in the kill phase, in this order
KILLER_ROLES = (Role.MAFIA, Role.RIVAL_MAFIA, Role.SERIAL_KILLER, Role.VIGILANTE)

KILL_CAUSES = {
    Role.MAFIA: "Killed by Mafia (Mafia Kill).",
    Role.RIVAL_MAFIA: "Killed by Rival Mafia (Rival Kill).",
    Role.SERIAL_KILLER: "Killed by Serial Killer (Night Kill).",
    Role.VIGILANTE: "Killed by Vigilante (Single Shot).",
}

MAGICIAN_KILL_CAUSE = "Killed by Magician (Vanishing Act)."
GRANDMA_CAUSE = "Visited Grandma and died to Home Defense retaliation."
SHARED_FATE_CAUSE = "Died from Shared Fate (Lover chain)."

# Roles whose visit to Grandma's house triggers Home Defense
VISITING_ROLES = (
    Role.MAFIA,
    Role.RIVAL_MAFIA,
    Role.SERIAL_KILLER,
    Role.VIGILANTE,
    Role.DETECTIVE,
    Role.DOCTOR,
    Role.LAWYER,
    Role.BARTENDER,
    Role.MAGICIAN,
    Role.MADE_MAN,
    Role.CUPID,
    Role.BUS_DRIVER,
)

# Sacrifice priority when a syndicate visits Grandma: lesser members before the boss
MAFIA_SACRIFICE_ORDER = (Role.MADE_MAN, Role.MAFIA, Role.GODFATHER)
RIVAL_SACRIFICE_ORDER = (Role.RIVAL_MAFIA, Role.RIVAL_GODFATHER)

# Roles the Made Man cannot recruit
RECRUIT_INELIGIBLE_ROLES = frozenset(
    {Role.MAFIA, Role.GODFATHER, Role.RIVAL_GODFATHER, Role.MADE_MAN, Role.UNDERCOVER_COP}
)


def is_actionable_target(target_id) -> bool:
    """True for a real player id (not empty, not the no-action marker)."""
    return bool(target_id and target_id.strip() and target_id != NO_ACTION)
