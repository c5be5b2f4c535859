from typing import AsyncIterator

import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncEngine
from sqlmodel.ext.asyncio.session import AsyncSession

from rankingtools.core import db


@pytest_asyncio.fixture
async def engine() -> AsyncIterator[AsyncEngine]:
    engine = db.create_engine_from_settings("sqlite+aiosqlite://")
    await db.init_db(engine)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def session(engine: AsyncEngine) -> AsyncIterator[AsyncSession]:
    async with db.session_factory(engine)() as session:
        yield session
