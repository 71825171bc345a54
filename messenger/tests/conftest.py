import os
from datetime import datetime, timedelta

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

# Configure test environment before the engine module reads settings
os.environ.setdefault('DATABASE_URL', 'sqlite+aiosqlite:///:memory:')

from messenger.database import Base  # noqa: E402
from messenger.models import User, Thread, Participant  # noqa: E402


@pytest_asyncio.fixture
async def db():
    """Fresh in-memory database per test."""
    engine = create_async_engine(
        'sqlite+aiosqlite://',
        poolclass=StaticPool,
        connect_args={'check_same_thread': False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with session_factory() as session:
        yield session

    await engine.dispose()


@pytest_asyncio.fixture
async def users(db):
    rows = [
        User(id=5, first_name='Ada', last_name='Lovelace', email='ada@example.com', user_token='tok-ada'),
        User(id=6, first_name='Grace', last_name='Hopper', email='grace@example.com', user_token='tok-grace'),
        User(id=7, first_name='Alan', last_name='Turing', email='alan@example.com', user_token=None),
    ]
    db.add_all(rows)
    await db.commit()
    return {u.id: u for u in rows}


@pytest_asyncio.fixture
async def thread(db, users):
    thread = Thread(subject='Weekend plans')
    db.add(thread)
    await db.commit()
    return thread


@pytest.fixture
def past():
    """Return a naive UTC timestamp ``minutes`` ago."""
    def _past(minutes):
        return datetime.utcnow() - timedelta(minutes=minutes)
    return _past


@pytest.fixture
def add_participant(db):
    """Insert a participant row directly, bypassing add_participants."""
    async def _add(thread, user_id, last_read=None, removed=False):
        participant = Participant(thread_id=thread.id, user_id=user_id, last_read=last_read)
        if removed:
            participant.soft_delete()
        db.add(participant)
        await db.commit()
        return participant
    return _add
