"""Unit tests for the night resolver."""

import copy

from moderator.resolver import resolve_night
from moderator.rules import InvestigationVerdict, MagicianChoice, NO_ACTION, Role
from moderator.state import (
    BusSwap,
    Investigation,
    NightAction,
    NightInput,
    Player,
    RecruitDetail,
    empty_night_actions,
    empty_role_assignments,
    initial_role_memory,
)

PLAYERS = [Player(id=f"p{i}", name=f"P{i}") for i in range(1, 7)]


def _assignments(**roles: list[str]):
    out = empty_role_assignments()
    for name, ids in roles.items():
        out[Role[name]] = list(ids)
    return out


def _actions(**targets):
    out = empty_night_actions()
    for name, value in targets.items():
        if isinstance(value, NightAction):
            out[Role[name]] = value
        else:
            out[Role[name]] = NightAction(target_ids=list(value))
    return out


def _make_input(**overrides) -> NightInput:
    base = dict(
        night_number=2,
        players=list(PLAYERS),
        dead_player_ids=[],
        role_assignments=empty_role_assignments(),
        night_actions=empty_night_actions(),
        role_memory=initial_role_memory(),
        lover_pairs=[],
    )
    base.update(overrides)
    return NightInput(**base)


def test_no_op_night_changes_nothing():
    night = _make_input(
        dead_player_ids=["p6"],
        role_assignments=_assignments(MAFIA=["p1"], DOCTOR=["p2"]),
        night_actions=_actions(MAFIA=[NO_ACTION], DOCTOR=[""]),
    )
    out = resolve_night(night)
    assert out.next_dead_player_ids == ["p6"]
    assert out.result.deaths == ()
    assert out.result.death_details == ()
    assert out.next_role_memory == initial_role_memory()


def test_inputs_are_not_mutated():
    night = _make_input(
        role_assignments=_assignments(MADE_MAN=["p1"], DETECTIVE=["p2"], VIGILANTE=["p3"]),
        night_actions=_actions(MADE_MAN=["p2"], VIGILANTE=["p4"]),
        lover_pairs=[("p4", "p5")],
    )
    before = copy.deepcopy(night)
    resolve_night(night)
    assert night == before


def test_resolution_is_deterministic():
    def build():
        return _make_input(
            role_assignments=_assignments(
                MAFIA=["p1"], GRANDMA=["p2"], MADE_MAN=["p3"], SERIAL_KILLER=["p4"], BUS_DRIVER=["p5"]
            ),
            night_actions=_actions(MAFIA=["p2"], SERIAL_KILLER=["p6"], BUS_DRIVER=["p6", "p5"]),
            lover_pairs=[("p5", "p6")],
        )

    assert resolve_night(build()) == resolve_night(build())


def test_bus_driver_redirects_detective():
    night = _make_input(
        night_number=1,
        role_assignments=_assignments(DETECTIVE=["p1"], BUS_DRIVER=["p2"], MILLER=["p4"]),
        night_actions=_actions(DETECTIVE=["p3"], BUS_DRIVER=["p3", "p4"]),
    )
    out = resolve_night(night)
    assert out.result.bus_swaps == (BusSwap(a="p3", b="p4"),)
    assert out.result.investigations == (
        Investigation(actor_role=Role.DETECTIVE, target_id="p4", result=InvestigationVerdict.GUILTY),
    )
    assert "Bus Driver swap was applied." in out.result.notes


def test_bus_driver_with_one_target_swaps_nothing():
    night = _make_input(
        role_assignments=_assignments(MAFIA=["p1"], BUS_DRIVER=["p2"]),
        night_actions=_actions(MAFIA=["p3"], BUS_DRIVER=["p3", NO_ACTION]),
    )
    out = resolve_night(night)
    assert out.result.bus_swaps == ()
    assert out.result.deaths == ("p3",)


def test_bartender_block_on_doctor_lets_kill_through():
    night = _make_input(
        role_assignments=_assignments(BARTENDER=["p1"], DOCTOR=["p2"], MAFIA=["p4"]),
        night_actions=_actions(BARTENDER=["p2"], DOCTOR=["p3"], MAFIA=["p3"]),
    )
    out = resolve_night(night)
    assert "Doctor" in out.result.blocked
    assert "p3" not in out.result.saves
    assert "p3" in out.result.deaths
    assert out.next_role_memory.doctor.last_saved_player_id is None
    assert "Doctor was blocked by Bartender." in out.result.notes


def test_block_is_role_scoped():
    night = _make_input(
        role_assignments=_assignments(BARTENDER=["p1"], SERIAL_KILLER=["p2"], MAFIA=["p3"]),
        night_actions=_actions(BARTENDER=["p2"], SERIAL_KILLER=["p4"], MAFIA=["p5"]),
    )
    out = resolve_night(night)
    assert out.result.blocked == (Role.SERIAL_KILLER,)
    assert out.result.deaths == ("p5",)


def test_doctor_protection_cancels_every_kill_on_target():
    night = _make_input(
        role_assignments=_assignments(DOCTOR=["p1"], MAFIA=["p2"], SERIAL_KILLER=["p3"]),
        night_actions=_actions(DOCTOR=["p4"], MAFIA=["p4"], SERIAL_KILLER=["p4"]),
    )
    out = resolve_night(night)
    assert out.result.deaths == ()
    assert out.result.saves == ("p4",)
    assert out.next_role_memory.doctor.last_saved_player_id == "p4"


def test_lawyer_grants_day_immunity():
    night = _make_input(
        role_assignments=_assignments(LAWYER=["p1"]),
        night_actions=_actions(LAWYER=["p3"]),
    )
    out = resolve_night(night)
    assert out.result.day_immunities == ("p3",)
    assert out.next_role_memory.lawyer.last_defended_player_id == "p3"


def test_lawyer_ignores_dead_target():
    night = _make_input(
        dead_player_ids=["p3"],
        role_assignments=_assignments(LAWYER=["p1"]),
        night_actions=_actions(LAWYER=["p3"]),
    )
    out = resolve_night(night)
    assert out.result.day_immunities == ()
    assert out.next_role_memory.lawyer.last_defended_player_id is None


def test_magician_kill_is_recorded_with_cause():
    night = _make_input(
        role_assignments=_assignments(MAGICIAN=["p1"]),
        night_actions=_actions(MAGICIAN=NightAction(target_ids=["p2"], choice=MagicianChoice.KILL)),
    )
    out = resolve_night(night)
    assert out.result.deaths == ("p2",)
    assert out.result.death_details[0].causes == ("Killed by Magician (Vanishing Act).",)
    assert out.next_role_memory.magician.used_kill is True
    assert out.next_role_memory.magician.used_save is False


def test_doctor_cannot_undo_vanishing_act():
    night = _make_input(
        role_assignments=_assignments(MAGICIAN=["p1"], DOCTOR=["p2"], MAFIA=["p4"]),
        night_actions=_actions(
            MAGICIAN=NightAction(target_ids=["p3"], choice=MagicianChoice.KILL),
            DOCTOR=["p3"],
            MAFIA=["p3"],
        ),
    )
    out = resolve_night(night)
    assert out.result.deaths == ("p3",)
    assert out.result.death_details[0].causes == ("Killed by Magician (Vanishing Act).",)
    assert out.result.saves == ()
    assert out.next_role_memory.magician.used_kill is True


def test_magician_save_protects_target():
    night = _make_input(
        role_assignments=_assignments(MAGICIAN=["p1"], MAFIA=["p2"]),
        night_actions=_actions(
            MAGICIAN=NightAction(target_ids=["p3"], choice=MagicianChoice.SAVE),
            MAFIA=["p3"],
        ),
    )
    out = resolve_night(night)
    assert out.result.deaths == ()
    assert out.result.saves == ("p3",)
    assert out.next_role_memory.magician.used_save is True


def test_magician_without_choice_does_nothing():
    night = _make_input(
        role_assignments=_assignments(MAGICIAN=["p1"]),
        night_actions=_actions(MAGICIAN=["p2"]),
    )
    out = resolve_night(night)
    assert out.result.deaths == ()
    assert out.next_role_memory.magician == initial_role_memory().magician


def test_multiple_killers_collect_every_cause():
    night = _make_input(
        role_assignments=_assignments(MAFIA=["p1"], RIVAL_MAFIA=["p2"]),
        night_actions=_actions(MAFIA=["p3"], RIVAL_MAFIA=["p3"]),
    )
    out = resolve_night(night)
    assert out.result.deaths == ("p3",)
    assert out.result.death_details[0].causes == (
        "Killed by Mafia (Mafia Kill).",
        "Killed by Rival Mafia (Rival Kill).",
    )


def test_already_dead_target_is_not_reported_again():
    night = _make_input(
        dead_player_ids=["p3"],
        role_assignments=_assignments(MAFIA=["p1"]),
        night_actions=_actions(MAFIA=["p3"]),
    )
    out = resolve_night(night)
    assert out.result.deaths == ()
    assert out.next_dead_player_ids == ["p3"]


def test_vigilante_ignored_on_night_one():
    night = _make_input(
        night_number=1,
        role_assignments=_assignments(VIGILANTE=["p1"]),
        night_actions=_actions(VIGILANTE=["p2"]),
    )
    out = resolve_night(night)
    assert out.result.deaths == ()
    assert out.next_role_memory.vigilante.used_shot is False
    assert "Vigilante action was ignored due to role restrictions." in out.result.notes


def test_locked_out_vigilante_is_ignored():
    memory = initial_role_memory()
    memory.vigilante.locked_out = True
    night = _make_input(
        role_assignments=_assignments(VIGILANTE=["p1"]),
        night_actions=_actions(VIGILANTE=["p2"]),
        role_memory=memory,
    )
    out = resolve_night(night)
    assert out.result.deaths == ()
    assert "Vigilante action was ignored due to role restrictions." in out.result.notes


def test_vigilante_killing_town_sets_pending_lockout():
    night = _make_input(
        role_assignments=_assignments(VIGILANTE=["p1"], DOCTOR=["p4"]),
        night_actions=_actions(VIGILANTE=["p2"]),
    )
    out = resolve_night(night)
    assert "p2" in out.result.deaths
    assert out.next_role_memory.vigilante.used_shot is True
    assert out.next_role_memory.vigilante.pending_lockout is True
    assert out.next_role_memory.vigilante.locked_out is False
    assert "Vigilante killed a Town player and will be locked out next night." in out.result.notes


def test_vigilante_killing_mafia_has_no_lockout():
    night = _make_input(
        role_assignments=_assignments(VIGILANTE=["p1"], MAFIA=["p2"]),
        night_actions=_actions(VIGILANTE=["p2"]),
    )
    out = resolve_night(night)
    assert out.result.deaths == ("p2",)
    assert out.next_role_memory.vigilante.used_shot is True
    assert out.next_role_memory.vigilante.pending_lockout is False


def test_spent_vigilante_is_not_blamed_for_mafia_kill():
    memory = initial_role_memory()
    memory.vigilante.used_shot = True
    night = _make_input(
        role_assignments=_assignments(VIGILANTE=["p1"], MAFIA=["p3"]),
        night_actions=_actions(VIGILANTE=["p2"], MAFIA=["p2"]),
        role_memory=memory,
    )
    out = resolve_night(night)
    assert out.result.deaths == ("p2",)
    assert out.next_role_memory.vigilante.pending_lockout is False


def test_grandma_retaliation_sacrifices_made_man_before_godfather():
    night = _make_input(
        role_assignments=_assignments(GRANDMA=["p1"], MAFIA=["p2"], MADE_MAN=["p3"], GODFATHER=["p4"]),
        night_actions=_actions(MAFIA=["p1"]),
    )
    out = resolve_night(night)
    assert "p3" in out.result.deaths
    assert "p4" not in out.result.deaths
    assert "p2" not in out.result.deaths
    assert "Grandma retaliated against the Mafia visit." in out.result.notes


def test_grandma_retaliation_falls_back_to_godfather():
    night = _make_input(
        dead_player_ids=["p2"],
        role_assignments=_assignments(GRANDMA=["p1"], MAFIA=["p2"], GODFATHER=["p4"]),
        night_actions=_actions(MAFIA=["p1"]),
    )
    out = resolve_night(night)
    assert "p4" in out.result.deaths


def test_grandma_retaliation_against_rival_mafia():
    night = _make_input(
        role_assignments=_assignments(GRANDMA=["p1"], RIVAL_MAFIA=["p2"], RIVAL_GODFATHER=["p3"]),
        night_actions=_actions(RIVAL_MAFIA=["p1"]),
    )
    out = resolve_night(night)
    assert "p2" in out.result.deaths
    assert "p3" not in out.result.deaths
    assert "Grandma retaliated against the Rival Mafia visit." in out.result.notes


def test_grandma_kills_visiting_detective():
    night = _make_input(
        role_assignments=_assignments(GRANDMA=["p1"], DETECTIVE=["p2"]),
        night_actions=_actions(DETECTIVE=["p1"]),
    )
    out = resolve_night(night)
    assert out.result.deaths == ("p2",)
    assert out.result.death_details[0].causes == ("Visited Grandma as Detective and died to Home Defense.",)
    assert "Detective died while visiting Grandma." in out.result.notes
    # The Detective still learns something before dawn
    assert out.result.investigations[0].target_id == "p1"


def test_grandma_retaliates_even_when_killed_tonight():
    night = _make_input(
        role_assignments=_assignments(GRANDMA=["p1"], MAFIA=["p2"], SERIAL_KILLER=["p3"]),
        night_actions=_actions(MAFIA=["p1"], SERIAL_KILLER=["p1"]),
    )
    out = resolve_night(night)
    assert set(out.result.deaths) == {"p1", "p2", "p3"}


def test_blocked_visitor_is_spared_by_grandma():
    night = _make_input(
        role_assignments=_assignments(GRANDMA=["p1"], BARTENDER=["p2"], DOCTOR=["p3"]),
        night_actions=_actions(BARTENDER=["p3"], DOCTOR=["p1"]),
    )
    out = resolve_night(night)
    assert out.result.deaths == ()


def test_lover_chain_follows_a_kill():
    night = _make_input(
        role_assignments=_assignments(MAFIA=["p1"]),
        night_actions=_actions(MAFIA=["p2"]),
        lover_pairs=[("p2", "p3")],
    )
    out = resolve_night(night)
    assert sorted(out.result.deaths) == ["p2", "p3"]
    assert "Lover chain death occurred." in out.result.notes
    causes = {d.player_id: d.causes for d in out.result.death_details}
    assert causes["p3"] == ("Died from Shared Fate (Lover chain).",)


def test_lover_chain_is_transitive():
    night = _make_input(
        role_assignments=_assignments(MAFIA=["p1"]),
        night_actions=_actions(MAFIA=["p2"]),
        lover_pairs=[("p4", "p5"), ("p3", "p4"), ("p2", "p3")],
    )
    out = resolve_night(night)
    assert set(out.result.deaths) == {"p2", "p3", "p4", "p5"}


def test_lover_of_previously_dead_player_dies():
    night = _make_input(dead_player_ids=["p2"], lover_pairs=[("p2", "p3")])
    out = resolve_night(night)
    assert out.result.deaths == ("p3",)


def test_cupid_creates_pair_on_night_one():
    night = _make_input(
        night_number=1,
        role_assignments=_assignments(CUPID=["p1"]),
        night_actions=_actions(CUPID=["p2", "p3"]),
    )
    out = resolve_night(night)
    assert out.next_lover_pairs == [("p2", "p3")]
    assert out.result.lover_pairs_created == (("p2", "p3"),)
    assert out.next_role_memory.cupid.used is True
    assert out.next_role_memory.cupid.lover_pair_id == "p2|p3"


def test_cupid_pair_chains_same_night_kill():
    night = _make_input(
        night_number=1,
        role_assignments=_assignments(CUPID=["p1"], MAFIA=["p4"]),
        night_actions=_actions(CUPID=["p2", "p3"], MAFIA=["p2"]),
    )
    out = resolve_night(night)
    assert set(out.result.deaths) == {"p2", "p3"}


def test_cupid_rejects_same_target_twice_and_later_nights():
    same = _make_input(
        night_number=1,
        role_assignments=_assignments(CUPID=["p1"]),
        night_actions=_actions(CUPID=["p2", "p2"]),
    )
    later = _make_input(
        night_number=2,
        role_assignments=_assignments(CUPID=["p1"]),
        night_actions=_actions(CUPID=["p2", "p3"]),
    )
    assert resolve_night(same).next_lover_pairs == []
    assert resolve_night(later).next_lover_pairs == []


def test_detective_verdicts():
    cases = {
        "GODFATHER": InvestigationVerdict.INNOCENT,
        "MILLER": InvestigationVerdict.GUILTY,
        "SERIAL_KILLER": InvestigationVerdict.GUILTY,
        "BARTENDER": InvestigationVerdict.GUILTY,
        "RIVAL_MAFIA": InvestigationVerdict.GUILTY,
        "DOCTOR": InvestigationVerdict.INNOCENT,
        "POSTMAN": InvestigationVerdict.INNOCENT,
    }
    for role_name, expected in cases.items():
        night = _make_input(
            role_assignments=_assignments(DETECTIVE=["p1"], **{role_name: ["p2"]}),
            night_actions=_actions(DETECTIVE=["p2"]),
        )
        (investigation,) = resolve_night(night).result.investigations
        assert investigation.result == expected, role_name


def test_unassigned_player_reads_as_civilian():
    night = _make_input(
        role_assignments=_assignments(DETECTIVE=["p1"]),
        night_actions=_actions(DETECTIVE=["p5"]),
    )
    (investigation,) = resolve_night(night).result.investigations
    assert investigation.result == InvestigationVerdict.INNOCENT


def test_detective_recruited_tonight_gets_no_result():
    night = _make_input(
        role_assignments=_assignments(MADE_MAN=["p1"], DETECTIVE=["p2"]),
        night_actions=_actions(MADE_MAN=["p2"], DETECTIVE=["p3"]),
    )
    out = resolve_night(night)
    assert out.result.investigations == ()
    assert out.result.recruits == ("p2",)
    assert out.result.recruit_details == (RecruitDetail(player_id="p2", from_role=Role.DETECTIVE),)
    assert out.next_role_assignments[Role.DETECTIVE] == []
    assert "p2" in out.next_role_assignments[Role.MAFIA]
    assert out.next_role_memory.made_man.used_recruit is True
    assert "Detective was converted before investigation resolved." in out.result.notes


def test_recruit_skips_ineligible_roles():
    for role_name in ("GODFATHER", "UNDERCOVER_COP", "RIVAL_GODFATHER", "MAFIA"):
        night = _make_input(
            role_assignments=_assignments(MADE_MAN=["p1"], **{role_name: ["p2"]}),
            night_actions=_actions(MADE_MAN=["p2"]),
        )
        out = resolve_night(night)
        assert out.result.recruits == (), role_name
        assert out.next_role_memory.made_man.used_recruit is False


def test_recruit_only_once_per_game():
    memory = initial_role_memory()
    memory.made_man.used_recruit = True
    night = _make_input(
        role_assignments=_assignments(MADE_MAN=["p1"], DOCTOR=["p2"]),
        night_actions=_actions(MADE_MAN=["p2"]),
        role_memory=memory,
    )
    out = resolve_night(night)
    assert out.result.recruits == ()
    assert out.next_role_assignments[Role.DOCTOR] == ["p2"]


def test_recruits_always_land_in_mafia_and_ids_stay_unique():
    night = _make_input(
        role_assignments=_assignments(MADE_MAN=["p1"], MAFIA=["p6"], CIVILIAN=["p3"]),
        night_actions=_actions(MADE_MAN=["p3"]),
    )
    out = resolve_night(night)
    assert out.result.recruits == ("p3",)
    assert set(out.result.recruits) <= set(out.next_role_assignments[Role.MAFIA])
    listed = [pid for ids in out.next_role_assignments.values() for pid in ids]
    assert len(listed) == len(set(listed))


def test_death_details_match_deaths_and_dead_set_grows():
    night = _make_input(
        dead_player_ids=["p6"],
        role_assignments=_assignments(MAFIA=["p1"], SERIAL_KILLER=["p2"], GRANDMA=["p3"]),
        night_actions=_actions(MAFIA=["p3"], SERIAL_KILLER=["p4"]),
        lover_pairs=[("p4", "p5")],
    )
    out = resolve_night(night)
    assert {d.player_id for d in out.result.death_details} == set(out.result.deaths)
    assert set(night.dead_player_ids) <= set(out.next_dead_player_ids)
    assert "p6" not in out.result.deaths
