# ============================================================================
# Test Configuration & Fixtures
# ============================================================================
import pytest
from typing import AsyncGenerator
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession
from unittest.mock import AsyncMock, MagicMock

from learnquest.main import app
from learnquest.core.database import Base, get_db, build_engine, build_session_maker
from learnquest.core.security import create_access_token
from learnquest.models.user import User
from learnquest.models.course import Course, CourseSection, Lesson
from learnquest.models.practice import PracticeProblem, Difficulty, SubmissionStatus
from learnquest.models.content import Content, ContentType
from learnquest.models.achievement import Achievement
from learnquest.schemas.progress import JudgeVerdict

@pytest.fixture(scope="function")
async def db_engine(tmp_path):
    """Fresh SQLite database file for each test"""
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()

@pytest.fixture(scope="function")
async def db_session(db_engine) -> AsyncGenerator[AsyncSession, None]:
    """Create a fresh database session for each test"""
    async with build_session_maker(db_engine)() as session:
        yield session

@pytest.fixture
def make_user(db_session: AsyncSession):
    """Factory for persisted users"""
    counter = {"n": 0}

    async def _make(display_name: str = None) -> User:
        counter["n"] += 1
        n = counter["n"]
        user = User(
            email=f"learner{n}@example.com",
            display_name=display_name or f"Learner {n}",
        )
        db_session.add(user)
        await db_session.commit()
        return user

    return _make

@pytest.fixture
async def user(make_user) -> User:
    return await make_user("Tatenda")

@pytest.fixture
async def course(db_session: AsyncSession) -> Course:
    """Two sections: 'Basics' with two lessons, 'Wrap-up' with one"""
    course = Course(title="Python Foundations", slug="python-foundations", difficulty="EASY")
    db_session.add(course)
    await db_session.flush()

    basics = CourseSection(course_id=course.id, title="Basics", order_index=0)
    wrap_up = CourseSection(course_id=course.id, title="Wrap-up", order_index=1)
    db_session.add_all([basics, wrap_up])
    await db_session.flush()

    db_session.add_all([
        Lesson(section_id=basics.id, title="Variables", order_index=0),
        Lesson(section_id=basics.id, title="Loops", order_index=1),
        Lesson(section_id=wrap_up.id, title="Project", order_index=0),
    ])
    await db_session.commit()
    return course

@pytest.fixture
async def lessons(db_session: AsyncSession, course: Course):
    """Lessons of `course` in course order"""
    from sqlalchemy import select
    result = await db_session.execute(
        select(Lesson)
        .join(CourseSection, Lesson.section_id == CourseSection.id)
        .where(CourseSection.course_id == course.id)
        .order_by(CourseSection.order_index, Lesson.order_index)
    )
    return result.scalars().all()

@pytest.fixture
def make_problem(db_session: AsyncSession):
    async def _make(slug: str = "two-sum", difficulty: Difficulty = Difficulty.EASY) -> PracticeProblem:
        problem = PracticeProblem(
            title=slug.replace("-", " ").title(),
            slug=slug,
            difficulty=difficulty,
            test_cases=[{"input": "1 2", "expected": "3"}],
        )
        db_session.add(problem)
        await db_session.commit()
        return problem

    return _make

@pytest.fixture
def make_content(db_session: AsyncSession):
    async def _make(slug: str = "intro-to-python", content_type: ContentType = ContentType.ARTICLE, **kwargs) -> Content:
        content = Content(
            title=slug.replace("-", " ").title(),
            slug=slug,
            content_type=content_type,
            **kwargs,
        )
        db_session.add(content)
        await db_session.commit()
        return content

    return _make

@pytest.fixture
def make_achievement(db_session: AsyncSession):
    async def _make(slug: str, condition: dict, xp_reward: int = 0, **kwargs) -> Achievement:
        achievement = Achievement(
            slug=slug,
            name=slug.replace("-", " ").title(),
            condition=condition,
            xp_reward=xp_reward,
            **kwargs,
        )
        db_session.add(achievement)
        await db_session.commit()
        return achievement

    return _make

def verdict(passed: int, total: int = 3) -> JudgeVerdict:
    return JudgeVerdict(
        status=SubmissionStatus.from_counts(passed, total),
        passed_tests=passed,
        total_tests=total,
    )

@pytest.fixture
def mock_judge():
    """Mock judge client; tests set `judge.judge.return_value`"""
    judge = MagicMock()
    judge.judge = AsyncMock(return_value=verdict(3))
    judge.close = AsyncMock()
    return judge

@pytest.fixture
def mock_cache():
    """Mock Redis cache that always misses"""
    cache = MagicMock()
    cache.key = lambda *parts: ":".join(["learnquest", *[str(p) for p in parts]])
    cache.get_json = AsyncMock(return_value=None)
    cache.set_json = AsyncMock()
    cache.delete = AsyncMock()
    cache.delete_matching = AsyncMock(return_value=0)
    return cache

@pytest.fixture(scope="function")
async def client(db_session: AsyncSession, mock_judge) -> AsyncGenerator[AsyncClient, None]:
    """Create test client with overridden database"""
    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.state.cache = None
    app.state.judge = mock_judge

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()

@pytest.fixture
def auth_headers(user: User):
    token = create_access_token({"sub": str(user.id)})
    return {"Authorization": f"Bearer {token}"}
