"""
Candidate Selector Tests

Pure selection rules:
- cross-round exclusion of teams the judge already had
- capacity exclusion
- (judge_count, team_name) ordering
- explicit exclusion set
"""
from types import SimpleNamespace

import pytest

from hackjudge.services.candidate_selector import (
    Candidate,
    all_teams_full,
    find_next_team,
    select_candidate,
)


def team(name, table="A1", division="Open"):
    return SimpleNamespace(name=name, table_name=table, division=division)


def row(judge, team_name, round_number=1):
    return SimpleNamespace(judge_email=judge, team_name=team_name, round=round_number)


TEAMS = [team("Alpha", "A1"), team("Beta", "A2"), team("Gamma", "A3")]


class TestSelectCandidate:

    def test_empty_team_list_returns_none(self):
        assert select_candidate("j@x.com", 1, [], [], 2) is None

    def test_picks_first_by_name_when_counts_tie(self):
        candidate = select_candidate("j@x.com", 1, TEAMS, [], 2)
        assert candidate == Candidate(name="Alpha", table_name="A1", division="Open", judge_count=0)

    def test_prefers_least_judged_team(self):
        assignments = [row("a@x.com", "Alpha"), row("b@x.com", "Beta")]
        candidate = select_candidate("j@x.com", 1, TEAMS, assignments, 2)
        assert candidate.name == "Gamma"
        assert candidate.judge_count == 0

    def test_skips_team_judge_has_in_current_round(self):
        assignments = [row("j@x.com", "Alpha")]
        candidate = select_candidate("j@x.com", 1, TEAMS, assignments, 2)
        assert candidate.name == "Beta"

    def test_skips_team_judge_had_in_earlier_round(self):
        """A judge never sees the same team twice, whatever the round."""
        assignments = [row("j@x.com", "Alpha", round_number=1)]
        candidate = select_candidate("j@x.com", 2, TEAMS, assignments, 2)
        assert candidate.name == "Beta"

    def test_earlier_round_rows_do_not_count_toward_capacity(self):
        assignments = [row("a@x.com", "Alpha", 1), row("b@x.com", "Alpha", 1)]
        candidate = select_candidate("j@x.com", 2, TEAMS, assignments, 2)
        assert candidate.name == "Alpha"
        assert candidate.judge_count == 0

    def test_skips_full_teams(self):
        assignments = [
            row("a@x.com", "Alpha"), row("b@x.com", "Alpha"),
            row("a@x.com", "Beta"),
        ]
        candidate = select_candidate("j@x.com", 1, TEAMS, assignments, 2)
        assert candidate.name == "Gamma"

    def test_all_full_returns_none(self):
        assignments = [row(j, t.name) for t in TEAMS for j in ("a@x.com", "b@x.com")]
        assert select_candidate("j@x.com", 1, TEAMS, assignments, 2) is None

    def test_everything_already_judged_returns_none(self):
        assignments = [row("j@x.com", t.name) for t in TEAMS]
        assert select_candidate("j@x.com", 1, TEAMS, assignments, 2) is None

    def test_exclude_redirects_to_next_team(self):
        candidate = select_candidate("j@x.com", 1, TEAMS, [], 2, exclude={"Alpha"})
        assert candidate.name == "Beta"

    def test_required_of_one(self):
        assignments = [row("a@x.com", "Alpha")]
        candidate = select_candidate("j@x.com", 1, TEAMS, assignments, 1)
        assert candidate.name == "Beta"

    def test_does_not_mutate_inputs(self):
        teams = list(TEAMS)
        assignments = [row("a@x.com", "Alpha")]
        select_candidate("j@x.com", 1, teams, assignments, 2, exclude=["Beta"])
        assert teams == TEAMS
        assert len(assignments) == 1

    def test_missing_table_name_becomes_empty_string(self):
        candidate = select_candidate("j@x.com", 1, [team("Solo", None)], [], 2)
        assert candidate.table_name == ""


class TestAllTeamsFull:

    def test_no_teams_is_vacuously_full(self):
        assert all_teams_full([], {}, 2) is True

    def test_partial(self):
        assert all_teams_full(TEAMS, {"Alpha": 2, "Beta": 2, "Gamma": 1}, 2) is False

    def test_full(self):
        assert all_teams_full(TEAMS, {"Alpha": 2, "Beta": 2, "Gamma": 2}, 2) is True


class TestFindNextTeam:

    @pytest.fixture
    async def seeded(self, seed):
        await seed(teams=["Alpha", "Beta"], judges=["j@x.com", "k@x.com"])

    async def test_loads_from_database(self, seeded, read_factory, next_team):
        await next_team("k@x.com")  # k takes Alpha

        async with read_factory() as db:
            candidate = await find_next_team(db, "j@x.com", 1, 2)
        assert candidate.name == "Beta"
        assert candidate.table_name == "T2"

    async def test_sees_judge_history_from_other_rounds(self, seeded, read_factory, next_team):
        await next_team("j@x.com", round_number=1)  # Alpha in round 1

        async with read_factory() as db:
            candidate = await find_next_team(db, "j@x.com", 2, 2)
        assert candidate.name == "Beta"
