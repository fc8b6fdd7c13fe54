# ============================================================================
# Test Configuration & Fixtures
# ============================================================================
import pytest
from typing import AsyncGenerator, List
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.pool import NullPool

from app.main import app
from app.core.database import Base, get_db
from app.core.security import create_access_token
from app.models.question import Question, CustomQuestion

# Test database URL (use SQLite for tests)
TEST_DATABASE_URL = "sqlite+aiosqlite:///./test.db"

# NullPool keeps connections from outliving the event loop of a test
test_engine = create_async_engine(
    TEST_DATABASE_URL,
    echo=False,
    poolclass=NullPool,
)

test_session_maker = async_sessionmaker(
    test_engine,
    class_=AsyncSession,
    expire_on_commit=False,
)

USER_ID = "user-1"
OTHER_USER_ID = "user-2"

@pytest.fixture(scope="function")
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """Create a fresh database session for each test"""
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with test_session_maker() as session:
        yield session

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

@pytest.fixture(scope="function")
async def client(db_session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """Create test client with overridden database"""
    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()

@pytest.fixture
def user_id() -> str:
    return USER_ID

@pytest.fixture
def auth_headers() -> dict:
    """Bearer token for USER_ID"""
    return {"Authorization": f"Bearer {create_access_token({'sub': USER_ID})}"}

@pytest.fixture
def other_auth_headers() -> dict:
    return {"Authorization": f"Bearer {create_access_token({'sub': OTHER_USER_ID})}"}

@pytest.fixture
async def sample_questions(db_session: AsyncSession) -> List[Question]:
    """One standard question of each kind, all in the Math category"""
    questions = [
        Question(
            title="Capital",
            content="Which city is the capital of France?",
            type="choice",
            category="Math",
            difficulty="easy",
            options=[
                {"label": "A", "text": "Paris"},
                {"label": "B", "text": "Rome"},
                {"label": "C", "text": "Madrid"},
            ],
            answer="A",
            explanation="Paris is the capital of France.",
        ),
        Question(
            title="Primes",
            content="Which numbers are prime?",
            type="multiple",
            category="Math",
            difficulty="medium",
            options=[
                {"label": "A", "text": "2"},
                {"label": "B", "text": "4"},
                {"label": "C", "text": "5"},
            ],
            answer=["A", "C"],
            explanation="2 and 5 are prime.",
        ),
        Question(
            title="Answer",
            content="What is six times seven?",
            type="fill",
            category="Math",
            difficulty="easy",
            answer="42",
            explanation="",
        ),
        Question(
            title="Earth",
            content="The earth is flat.",
            type="judge",
            category="Science",
            difficulty="easy",
            answer="false",
            explanation="It is roughly a sphere.",
        ),
    ]
    db_session.add_all(questions)
    await db_session.commit()
    return questions

@pytest.fixture
async def sample_custom_question(db_session: AsyncSession) -> CustomQuestion:
    question = CustomQuestion(
        user_id=USER_ID,
        type="multiple_choice",
        content="Pick the even numbers",
        options=["1", "2", "3", "4"],
        answer="B|D",
        explanation="2 and 4 are even.",
        subject="Numbers",
    )
    db_session.add(question)
    await db_session.commit()
    return question
