import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.pool import StaticPool

from election_dashboard.main import app
from election_dashboard.core import models
from election_dashboard.core.database import Base, get_db
from election_dashboard.ai_feature.llm import LLMError, get_llm

# In-memory database shared by every connection of one engine
TEST_DATABASE_URL = "sqlite+aiosqlite://"


def record(year, state, constituency, candidate, sex, party, votes, position, **extra):
    return {
        "year": year,
        "state_name": state,
        "constituency_name": constituency,
        "candidate": candidate,
        "sex": sex,
        "party": party,
        "votes": votes,
        "position": position,
        "is_winner": 1 if position == 1 else 0,
        **extra,
    }


ELECTION_ROWS = [
    # 2019
    record(2019, "Kerala", "WAYANAD", "Rahul Gandhi", "Male", "INC", 706367, 1, turnout_percentage=80),
    record(2019, "Kerala", "WAYANAD", "P.P. Suneer", "Male", "CPI", 274597, 2, turnout_percentage=80),
    record(2019, "Uttar_Pradesh", "VARANASI", "Narendra Modi", "Male", "BJP", 674664, 1, turnout_percentage=57),
    record(2019, "Uttar_Pradesh", "VARANASI", "Shalini Yadav", "Female", "SP", 195159, 2, turnout_percentage=57),
    record(2019, "Uttar_Pradesh", "AMETHI", "Smriti Irani", "Female", "BJP", 468514, 1, turnout_percentage=54),
    record(2019, "Uttar_Pradesh", "AMETHI", "Rahul Gandhi", "Male", "INC", 413394, 2, turnout_percentage=54),
    record(2019, "West_Bengal", "JADAVPUR", "Mimi Chakraborty", "Female", "AITC", 688472, 1, turnout_percentage=80),
    record(2019, "West_Bengal", "JADAVPUR", "Anupam Hazra", "Male", "BJP", 393233, 2, turnout_percentage=80),
    # 2014
    record(2014, "Uttar_Pradesh", "VARANASI", "Narendra Modi", "Male", "BJP", 581022, 1, turnout_percentage=58),
    record(2014, "Uttar_Pradesh", "VARANASI", "Arvind Kejriwal", "Male", "AAP", 209238, 2, turnout_percentage=58),
    record(2014, "Uttar_Pradesh", "AMETHI", "Rahul Gandhi", "Male", "INC", 408651, 1, turnout_percentage=52),
    record(2014, "Uttar_Pradesh", "AMETHI", "Smriti Irani", "Female", "BJP", 300748, 2, turnout_percentage=52),
]


class FakeLLM:
    """Plays back scripted answers (or raises scripted errors) in order."""

    def __init__(self):
        self.responses = []
        self.prompts = []

    async def generate(self, prompt, timeout=None):
        self.prompts.append(prompt)
        if not self.responses:
            raise LLMError("No scripted response left")
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


# Fresh database for every test
@pytest_asyncio.fixture(scope="function")
async def test_engine():
    engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


# Session with the election table already loaded
@pytest_asyncio.fixture(scope="function")
async def db_session(test_engine):
    session_factory = async_sessionmaker(
        test_engine, class_=AsyncSession, expire_on_commit=False
    )
    async with session_factory() as session:
        session.add_all([models.ElectionRecord(**row) for row in ELECTION_ROWS])
        await session.commit()
        yield session
        await session.rollback()


@pytest_asyncio.fixture(scope="function")
async def fake_llm():
    return FakeLLM()


# Client
@pytest_asyncio.fixture(scope="function")
async def client(db_session: AsyncSession, fake_llm: FakeLLM):
    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_llm] = lambda: fake_llm

    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test"
    ) as ac:
        yield ac

    app.dependency_overrides.clear()
