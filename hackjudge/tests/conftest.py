"""
Shared fixtures for judge queue tests.

Each test gets its own file-backed SQLite database so that concurrent
sessions use separate connections and contend for the real write lock.
"""
from typing import Iterable, List, Optional

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy import select

from hackjudge.database import (
    create_engine_for,
    create_tables,
    get_db,
    get_read_session_factory,
    get_write_session_factory,
    make_session_factory,
    write_engine_for,
)
from hackjudge.orm.assignment import JudgeTeamAssignment
from hackjudge.orm.event_settings import EventSettings
from hackjudge.orm.team import Team
from hackjudge.orm.user import User, UserRole
from hackjudge.services.queue_orchestrator import mark_assignment_completed, request_next_team

FAST_DELAY = 0.002


@pytest.fixture
def database_url(tmp_path) -> str:
    return f"sqlite+aiosqlite:///{tmp_path / 'queue.db'}"


@pytest_asyncio.fixture
async def engine(database_url):
    engine = create_engine_for(database_url, busy_timeout=30)
    await create_tables(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def read_factory(engine):
    return make_session_factory(engine)


@pytest.fixture
def write_factory(engine):
    return make_session_factory(write_engine_for(engine))


@pytest_asyncio.fixture
async def db(read_factory):
    """Plain session. Roll back before reading data written by other sessions."""
    async with read_factory() as session:
        yield session


@pytest.fixture
def seed(read_factory):
    """Insert teams, judges and event settings."""
    async def _seed(
        teams: Iterable[str] = (),
        judges: Iterable[str] = (),
        admins: Iterable[str] = (),
        participants: Iterable[str] = (),
        current_round: int = 1,
        judging_locked: bool = False,
        locked_rounds: Optional[List[int]] = None,
    ):
        async with read_factory() as session:
            for i, name in enumerate(teams):
                session.add(Team(name=name, table_name=f"T{i + 1}", division="Open"))
            for email in judges:
                session.add(User(email=email, name=email.split("@")[0], role=UserRole.judge))
            for email in admins:
                session.add(User(email=email, name=email.split("@")[0], role=UserRole.admin))
            for email in participants:
                session.add(User(email=email, name=email.split("@")[0], role=UserRole.participant))
            session.add(EventSettings(
                event_name="Test Hack",
                current_round=current_round,
                judging_locked=judging_locked,
                locked_rounds=locked_rounds or [],
            ))
            await session.commit()
    return _seed


@pytest.fixture
def fetch_assignments(read_factory):
    """All assignment rows, read in a fresh session."""
    async def _fetch(round_number: Optional[int] = None) -> List[JudgeTeamAssignment]:
        async with read_factory() as session:
            query = select(JudgeTeamAssignment).order_by(JudgeTeamAssignment.id)
            if round_number is not None:
                query = query.where(JudgeTeamAssignment.round == round_number)
            result = await session.execute(query)
            return list(result.scalars().all())
    return _fetch


@pytest.fixture
def next_team(write_factory, read_factory):
    """request_next_team bound to the test database with short backoff."""
    async def _next(judge_email: str, round_number: int = 1, required: int = 2, **kwargs):
        kwargs.setdefault("lock_base_delay", FAST_DELAY)
        return await request_next_team(
            write_factory,
            judge_email,
            round_number,
            required,
            read_session_factory=read_factory,
            **kwargs
        )
    return _next


@pytest.fixture
def finish(write_factory):
    """mark_assignment_completed bound to the test database."""
    async def _finish(judge_email: str, team_name: str, round_number: int = 1):
        return await mark_assignment_completed(
            write_factory, judge_email, team_name, round_number, base_delay=FAST_DELAY
        )
    return _finish


@pytest_asyncio.fixture
async def client(read_factory, write_factory):
    """HTTP client against the app, wired to the test database."""
    from hackjudge.limiter import limiter
    from hackjudge.main import app

    async def override_get_db():
        async with read_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_read_session_factory] = lambda: read_factory
    app.dependency_overrides[get_write_session_factory] = lambda: write_factory
    limiter.reset()

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()
