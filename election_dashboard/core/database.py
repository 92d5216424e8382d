from typing import AsyncIterator

from fastapi import Request
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from election_dashboard.core.config import Settings


def build_engine(config: Settings) -> AsyncEngine:
    """Create the shared connection pool. Called once from the app lifespan."""
    return create_async_engine(
        config.DATABASE_URL, echo=config.DB_ECHO, pool_pre_ping=True
    )


# Talk to the DB through async sessions without refreshes after closed conn to avoid errors in async programming
def build_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)


# Hands every request its own session from the pool stored on app.state
async def get_db(request: Request) -> AsyncIterator[AsyncSession]:
    session_factory = request.app.state.session_factory
    async with session_factory() as session:
        yield session


# All the models are "stored" in the Base class will be processed by the Engine
class Base(DeclarativeBase):
    pass
