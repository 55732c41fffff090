"""Pytest configuration and fixtures."""
import os
import time
import uuid
from pathlib import Path

import pytest
from alembic import command
from alembic.config import Config as AlembicConfig
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker

# Ensure the application uses a dedicated SQLite database during tests
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///./test.db"
# Never call the OpenAI API from tests; daily poll tests inject a generator
os.environ["DAILY_POLL_ENABLED"] = "false"
os.environ["OPENAI_API_KEY"] = ""

from cardsurvey.config import get_settings
from cardsurvey.models.base import SurveyPrivacy, SurveyStatus, SurveyType


BASE_DIR = Path(__file__).resolve().parent.parent
TEST_DB_PATH = BASE_DIR / "test.db"
settings = get_settings()

TEST_PASSWORD = "TestPassword123"


def _remove_test_db():
    if not TEST_DB_PATH.exists():
        return
    try:
        TEST_DB_PATH.unlink()
    except PermissionError:
        # On Windows, if file is in use, wait and retry
        time.sleep(0.1)
        try:
            TEST_DB_PATH.unlink()
        except PermissionError:
            pass  # Migrations run against whatever is left


@pytest.fixture(scope="session", autouse=True)
def apply_migrations():
    """Apply database migrations against the test database."""
    _remove_test_db()

    alembic_cfg = AlembicConfig(str(BASE_DIR / "alembic.ini"))
    alembic_cfg.set_main_option("sqlalchemy.url", settings.database_url)
    command.upgrade(alembic_cfg, "head")

    yield

    _remove_test_db()


@pytest.fixture
async def test_engine():
    """Create test database engine using the same database as migrations."""
    engine = create_async_engine(settings.database_url, echo=False, pool_pre_ping=True)

    yield engine

    await engine.dispose()


@pytest.fixture
async def db_session(test_engine):
    """Create test database session."""
    async_session = async_sessionmaker(
        test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

    async with async_session() as session:
        yield session
        await session.rollback()
        await session.close()


@pytest.fixture
async def test_app(test_engine):
    """Create test app with database override."""
    from cardsurvey.main import app
    from cardsurvey.database import get_db

    async def override_get_db():
        async_session = async_sessionmaker(
            test_engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )
        async with async_session() as session:
            try:
                yield session
            finally:
                await session.close()

    app.dependency_overrides[get_db] = override_get_db
    yield app
    app.dependency_overrides.clear()


@pytest.fixture
async def user_factory(db_session):
    """Factory for creating test users with default credentials."""
    from cardsurvey.services import UserService

    user_service = UserService(db_session)

    async def _create_user(
        email: str | None = None,
        password: str = TEST_PASSWORD,
        display_name: str | None = None,
    ):
        # Use UUID to ensure unique emails across all tests
        unique_id = uuid.uuid4().hex[:8]
        return await user_service.register_user(
            email=email or f"user{unique_id}@example.com",
            password=password,
            display_name=display_name or f"User {unique_id}",
        )

    return _create_user


@pytest.fixture
def card_payload():
    """Build a single-card creation payload."""
    from cardsurvey.schemas.survey import QuestionIn, SurveyCreate

    def _payload(
        question: str = "Which season do you like best?",
        options: list[str] | None = None,
        **overrides,
    ) -> SurveyCreate:
        data = {
            "survey_type": SurveyType.SINGLE_CARD,
            "title": "",
            "questions": [QuestionIn(text=question, options=options or ["Yes", "No", "Maybe"])],
        }
        data.update(overrides)
        return SurveyCreate(**data)

    return _payload


@pytest.fixture
async def active_card(db_session, user_factory, card_payload):
    """An Active public single card with options Yes/No/Maybe, plus its creator."""
    from cardsurvey.services import SurveyService

    creator = await user_factory()
    survey = await SurveyService(db_session).create_survey(
        creator, card_payload(), status=SurveyStatus.ACTIVE
    )
    assert survey.privacy == SurveyPrivacy.PUBLIC.value
    return survey, creator
