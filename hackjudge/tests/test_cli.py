"""
CLI Test Suite

Parser wiring plus end-to-end commands against a temporary SQLite file.
"""
import json

import pytest

from hackjudge.cli import create_parser, main
from hackjudge.seed_data import judge_email_for, team_name_for


# =============================================================================
# CLI Parser Tests
# =============================================================================

class TestCLIParser:
    """Test CLI argument parsing."""

    def test_db_seed_parsing(self):
        args = create_parser().parse_args(["db", "seed", "--teams", "20", "--judges", "8"])

        assert args.command == "db"
        assert args.db_action == "seed"
        assert args.teams == 20
        assert args.judges == 8

    def test_queue_assign_parsing(self):
        args = create_parser().parse_args(
            ["queue", "assign", "--judge", "a@x.com", "--team", "Team Alpha", "-r", "2"]
        )

        assert args.queue_action == "assign"
        assert args.judge == "a@x.com"
        assert args.team == "Team Alpha"
        assert args.round == 2

    def test_global_options(self):
        args = create_parser().parse_args(
            ["--dry-run", "--database-url", "sqlite+aiosqlite:///x.db", "queue", "stats", "--json"]
        )

        assert args.dry_run is True
        assert args.database_url == "sqlite+aiosqlite:///x.db"
        assert args.json is True
        assert args.round is None

    def test_no_command_prints_help(self, capsys):
        assert main([]) == 1
        assert "usage" in capsys.readouterr().out.lower()


# =============================================================================
# Commands
# =============================================================================

@pytest.fixture
def cli(database_url):
    """Run the CLI against the test database."""
    def _run(*argv):
        return main(["--log-level", "WARNING", "--database-url", database_url, *argv])
    return _run


class TestDbCommands:

    def test_dry_run_seed_writes_nothing(self, cli, capsys, tmp_path):
        assert cli("--dry-run", "db", "seed", "--teams", "3") == 0
        assert "[DRY RUN]" in capsys.readouterr().out
        assert not (tmp_path / "queue.db").exists()

    def test_init(self, cli, tmp_path):
        assert cli("db", "init") == 0
        assert (tmp_path / "queue.db").exists()

    def test_seed_is_idempotent(self, cli, capsys):
        assert cli("db", "seed", "--teams", "3", "--judges", "2") == 0
        assert "Teams created: 3" in capsys.readouterr().out

        assert cli("db", "seed", "--teams", "3", "--judges", "2") == 0
        out = capsys.readouterr().out
        assert "Teams created: 0" in out
        assert "Judges created: 0" in out

    def test_seed_rejects_negative_counts(self, cli):
        assert cli("db", "seed", "--teams", "-1") == 1


class TestQueueCommands:

    @pytest.fixture
    def seeded(self, cli, capsys):
        assert cli("db", "seed", "--teams", "3", "--judges", "3") == 0
        capsys.readouterr()

    def test_stats_json(self, seeded, cli, capsys):
        assert cli("queue", "stats", "--json") == 0

        stats = json.loads(capsys.readouterr().out)
        assert stats["round"] == 1
        assert stats["summary"]["total_teams"] == 3
        assert all(t["judge_count"] == 0 for t in stats["teams"])

    def test_stats_table(self, seeded, cli, capsys):
        assert cli("queue", "stats", "-r", "1") == 0
        out = capsys.readouterr().out
        assert "Queue Statistics: Round 1" in out
        assert team_name_for(0) in out

    def test_assign_then_stats(self, seeded, cli, capsys):
        judge = judge_email_for(0)
        team = team_name_for(0)

        assert cli("queue", "assign", "--judge", judge, "--team", team) == 0
        assert "assigned" in capsys.readouterr().out

        assert cli("queue", "stats", "--json") == 0
        stats = json.loads(capsys.readouterr().out)
        row = next(t for t in stats["teams"] if t["team_name"] == team)
        assert row["judges"] == [judge]

    def test_assign_unknown_team(self, seeded, cli, capsys):
        assert cli("queue", "assign", "--judge", judge_email_for(0), "--team", "Nope") == 1
        assert "Unknown team" in capsys.readouterr().out

    def test_assign_same_team_in_later_round(self, seeded, cli, capsys):
        judge = judge_email_for(0)
        team = team_name_for(0)
        assert cli("queue", "assign", "--judge", judge, "--team", team, "--round", "1") == 0

        assert cli("queue", "assign", "--judge", judge, "--team", team, "--round", "2") == 1
        assert "already_judged" in capsys.readouterr().out

    def test_integrity_clean(self, seeded, cli, capsys):
        assert cli("queue", "assign", "--judge", judge_email_for(0), "--team", team_name_for(0)) == 0

        assert cli("queue", "integrity", "--round", "1") == 0
        assert "No violations" in capsys.readouterr().out


class TestSystemCommands:

    def test_config(self, cli, capsys):
        assert cli("system", "config") == 0
        out = capsys.readouterr().out
        assert "JUDGES_PER_TEAM" in out
        assert "LOCK_STALE_AFTER_SECONDS" in out
