"""
hackjudge/seed_data.py
Sample teams, judges and event settings for local runs and load testing.

Tables are named A1..F7, teams are spread across three divisions and judges
get @judges.example.com addresses.
"""
import logging
from typing import Dict

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from hackjudge.orm.event_settings import EventSettings
from hackjudge.orm.team import Team
from hackjudge.orm.user import User, UserRole

logger = logging.getLogger(__name__)

DIVISIONS = ["Beginner", "Intermediate", "Advanced"]

TEAM_PREFIXES = [
    "Alpha", "Beta", "Gamma", "Delta", "Epsilon",
    "Zeta", "Eta", "Theta", "Iota", "Kappa",
    "Lambda", "Mu", "Nu", "Xi", "Omicron",
    "Pi", "Rho", "Sigma", "Tau", "Upsilon",
]

JUDGE_NAMES = [
    "Alice Johnson", "Bob Smith", "Carol Martinez", "David Chen", "Emma Wilson",
    "Frank Brown", "Grace Lee", "Henry Davis", "Iris Rodriguez", "Jack Thompson",
]


def table_names():
    return [f"{letter}{num}" for letter in "ABCDEF" for num in range(1, 8)]


def team_name_for(index: int) -> str:
    prefix = TEAM_PREFIXES[index % len(TEAM_PREFIXES)]
    cycle = index // len(TEAM_PREFIXES)
    return f"Team {prefix}" if cycle == 0 else f"Team {prefix} {cycle + 1}"


def judge_email_for(index: int) -> str:
    first = JUDGE_NAMES[index % len(JUDGE_NAMES)].split(" ")[0].lower()
    cycle = index // len(JUDGE_NAMES)
    suffix = "" if cycle == 0 else str(cycle + 1)
    return f"{first}{suffix}@judges.example.com"


async def seed_sample_data(
    db: AsyncSession,
    team_count: int = 15,
    judge_count: int = 10,
    admin_email: str = "admin@judges.example.com",
) -> Dict[str, int]:
    """
    Insert sample data, skipping rows that already exist.

    Returns counts of rows created.
    """
    created = {"teams": 0, "judges": 0, "event_settings": 0}
    tables = table_names()

    existing_teams = set((await db.execute(select(Team.name))).scalars().all())
    for i in range(team_count):
        name = team_name_for(i)
        if name in existing_teams:
            continue
        db.add(Team(
            name=name,
            table_name=tables[i % len(tables)],
            division=DIVISIONS[i % len(DIVISIONS)],
        ))
        created["teams"] += 1

    existing_users = set((await db.execute(select(User.email))).scalars().all())
    for i in range(judge_count):
        email = judge_email_for(i)
        if email in existing_users:
            continue
        db.add(User(email=email, name=JUDGE_NAMES[i % len(JUDGE_NAMES)], role=UserRole.judge))
        created["judges"] += 1

    if admin_email and admin_email not in existing_users:
        db.add(User(email=admin_email, name="Event Admin", role=UserRole.admin))

    settings = (await db.execute(select(EventSettings).limit(1))).scalar_one_or_none()
    if settings is None:
        db.add(EventSettings(event_name="Sample Hackathon", current_round=1))
        created["event_settings"] = 1

    await db.commit()
    logger.info(
        f"✓ Seeded {created['teams']} teams, {created['judges']} judges"
    )
    return created
