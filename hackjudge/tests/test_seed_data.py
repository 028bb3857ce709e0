"""
Sample Data Tests
"""
from sqlalchemy import func, select

from hackjudge.orm.team import Team
from hackjudge.orm.user import User, UserRole
from hackjudge.seed_data import judge_email_for, seed_sample_data, table_names, team_name_for


class TestNaming:

    def test_table_names(self):
        tables = table_names()
        assert len(tables) == 42
        assert tables[0] == "A1"
        assert tables[-1] == "F7"

    def test_team_names_stay_unique_past_prefix_list(self):
        names = [team_name_for(i) for i in range(45)]
        assert len(set(names)) == 45
        assert names[0] == "Team Alpha"
        assert names[20] == "Team Alpha 2"

    def test_judge_emails(self):
        assert judge_email_for(0) == "alice@judges.example.com"
        assert judge_email_for(10) == "alice2@judges.example.com"


class TestSeedSampleData:

    async def test_seed_and_reseed(self, db):
        created = await seed_sample_data(db, team_count=5, judge_count=3)
        assert created == {"teams": 5, "judges": 3, "event_settings": 1}

        again = await seed_sample_data(db, team_count=6, judge_count=3)
        assert again == {"teams": 1, "judges": 0, "event_settings": 0}

        teams = (await db.execute(select(func.count(Team.id)))).scalar_one()
        judges = (await db.execute(
            select(func.count(User.id)).where(User.role == UserRole.judge)
        )).scalar_one()
        assert teams == 6
        assert judges == 3
