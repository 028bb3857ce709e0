"""
Shared plumbing for CLI command handlers.
"""
from contextlib import asynccontextmanager
from typing import Optional

from hackjudge.config.settings import Settings
from hackjudge.database import create_engine_for, make_session_factory, write_engine_for


class Command:
    """Base CLI command handler."""

    def __init__(self, dry_run: bool = False, database_url: Optional[str] = None):
        self.dry_run = dry_run
        self.database_url = database_url or Settings.DATABASE_URL

    @asynccontextmanager
    async def engine(self):
        """Engine for the configured database, disposed on exit."""
        engine = create_engine_for(self.database_url)
        try:
            yield engine
        finally:
            await engine.dispose()

    @asynccontextmanager
    async def session_factories(self):
        """(read factory, write factory) over one engine."""
        async with self.engine() as engine:
            yield make_session_factory(engine), make_session_factory(write_engine_for(engine))
