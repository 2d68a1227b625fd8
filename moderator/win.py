"""Win evaluation: stateless, callable after any night or day elimination."""

from typing import Iterable, Optional

from moderator.catalog import get_role_alignment
from moderator.rules import Alignment, Role, WinLabel
from moderator.state import Player, RoleAssignments, build_player_role_map


def count_alive_by_alignment(
    players: Iterable[Player],
    dead_player_ids: Iterable[str],
    role_assignments: RoleAssignments,
) -> tuple[dict[Alignment, int], int, int]:
    """Return (alive count per alignment, alive serial killers, total alive)."""
    players = list(players)
    dead = set(dead_player_ids)
    role_by_player = build_player_role_map(role_assignments, players)
    counts = {alignment: 0 for alignment in Alignment}
    serial_killers = 0
    alive = 0
    for player in players:
        if player.id in dead:
            continue
        alive += 1
        role = role_by_player[player.id]
        counts[get_role_alignment(role)] += 1
        if role == Role.SERIAL_KILLER:
            serial_killers += 1
    return counts, serial_killers, alive


def evaluate_win_condition(
    players: Iterable[Player],
    dead_player_ids: Iterable[str],
    role_assignments: RoleAssignments,
) -> Optional[str]:
    """Return the winner label ('Town wins', 'Mafia wins', ...) or None if the game goes on."""
    counts, serial_killers, alive = count_alive_by_alignment(players, dead_player_ids, role_assignments)
    mafia = counts[Alignment.MAFIA]
    rival = counts[Alignment.RIVAL_MAFIA]
    others = counts[Alignment.TOWN] + counts[Alignment.NEUTRAL]

    if alive > 0 and serial_killers == alive:
        return WinLabel.SERIAL_KILLER.value
    if mafia == 0 and rival == 0 and serial_killers == 0:
        return WinLabel.TOWN.value
    if mafia > 0 and mafia >= others and rival == 0 and serial_killers == 0:
        return WinLabel.MAFIA.value
    if rival > 0 and rival >= others and mafia == 0 and serial_killers == 0:
        return WinLabel.RIVAL_MAFIA.value
    return None
