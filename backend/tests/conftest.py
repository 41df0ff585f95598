"""
Skilltori - Test Configuration and Fixtures
"""
import os
from datetime import datetime, timedelta
from typing import AsyncGenerator
import pytest
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.pool import NullPool
from faker import Faker

# Set testing environment
os.environ['TESTING'] = 'true'
os.environ['ENVIRONMENT'] = 'test'
os.environ['DATABASE_URL'] = 'sqlite+aiosqlite:///./test.db'
os.environ['SECRET_KEY'] = 'test-secret-key-for-testing-only'
os.environ['JWT_SECRET_KEY'] = 'test-jwt-secret-key-for-testing'
os.environ['BCRYPT_ROUNDS'] = '4'
os.environ['RATE_LIMIT_ENABLED'] = 'false'
os.environ['EMAIL_MIN_INTERVAL_SECONDS'] = '0'
os.environ['SMTP_PASS'] = ''
os.environ['SITE_URL'] = 'http://skilltori.test'
os.environ['CRON_SECRET'] = 'cron-secret'

from app.main import app
from app.core.database import Base, get_db
from app.core.security import get_password_hash, create_access_token
from app.models import (
    User, UserRole, Workshop, WorkshopCategory, WorkshopStatus, Course, CourseType,
)
from mocks.fakes import FakeGateway

fake = Faker()

TEST_PASSWORD = 'testpassword123'

# Test database setup
TEST_DATABASE_URL = 'sqlite+aiosqlite:///./test.db'
test_engine = create_async_engine(TEST_DATABASE_URL, echo=False, poolclass=NullPool)
TestSessionLocal = async_sessionmaker(
    bind=test_engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False
)


@pytest.fixture(scope='function')
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """Create a fresh database session for each test"""
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with TestSessionLocal() as session:
        yield session
        await session.rollback()

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest.fixture
async def client(db_session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """Create test client with database override"""
    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url='http://test') as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
def gateway(monkeypatch) -> FakeGateway:
    """Replace the bKash client behind the shared payment service"""
    from app.services.payment_service import payment_service

    fake_gateway = FakeGateway()
    monkeypatch.setattr(payment_service, 'gateway', fake_gateway)
    return fake_gateway


async def make_user(db: AsyncSession, role: UserRole = UserRole.STUDENT, **fields) -> User:
    user = User(
        email=fields.pop('email', fake.unique.email()),
        hashed_password=get_password_hash(fields.pop('password', TEST_PASSWORD)),
        name=fields.pop('name', fake.name()),
        phone=fields.pop('phone', '+8801711000000'),
        role=role,
        is_active=True,
        is_verified=fields.pop('is_verified', True),
        **fields
    )
    db.add(user)
    await db.commit()
    await db.refresh(user)
    return user


async def make_workshop(db: AsyncSession, **fields) -> Workshop:
    start = datetime.utcnow() + timedelta(days=7)
    workshop = Workshop(
        title=fields.pop('title', 'Research Methodology'),
        slug=fields.pop('slug', f"workshop-{fake.unique.random_int(1000, 999999)}"),
        speaker_name=fields.pop('speaker_name', fake.name()),
        category=fields.pop('category', WorkshopCategory.OTHER),
        status=fields.pop('status', WorkshopStatus.PUBLISHED),
        price_regular=fields.pop('price_regular', 200),
        start_time=fields.pop('start_time', start),
        end_time=fields.pop('end_time', start + timedelta(hours=2)),
        **fields
    )
    db.add(workshop)
    await db.commit()
    await db.refresh(workshop)
    return workshop


async def make_course(db: AsyncSession, **fields) -> Course:
    course = Course(
        title=fields.pop('title', 'Data Analysis with Python'),
        slug=fields.pop('slug', f"course-{fake.unique.random_int(1000, 999999)}"),
        type=fields.pop('type', CourseType.RECORDED),
        duration=fields.pop('duration', '8 weeks'),
        price_regular=fields.pop('price_regular', 1500),
        **fields
    )
    db.add(course)
    await db.commit()
    await db.refresh(course)
    return course


def bearer(user: User) -> dict:
    token = create_access_token({'sub': str(user.id), 'email': user.email})
    return {'Authorization': f'Bearer {token}'}


@pytest.fixture
async def test_user(db_session: AsyncSession) -> User:
    """Create a test user"""
    return await make_user(db_session)


@pytest.fixture
async def admin_user(db_session: AsyncSession) -> User:
    """Create an admin test user"""
    return await make_user(db_session, role=UserRole.ADMIN)


@pytest.fixture
def auth_headers(test_user: User) -> dict:
    """Generate authentication headers for test user"""
    return bearer(test_user)


@pytest.fixture
def admin_auth_headers(admin_user: User) -> dict:
    """Generate authentication headers for admin user"""
    return bearer(admin_user)


@pytest.fixture
async def workshop(db_session: AsyncSession) -> Workshop:
    """Paid workshop: regular 200, offer 150, no earlybird"""
    return await make_workshop(db_session, price_regular=200, price_offer=150)


@pytest.fixture
async def free_workshop(db_session: AsyncSession) -> Workshop:
    return await make_workshop(db_session, price_regular=0)


@pytest.fixture
async def academic_workshop(db_session: AsyncSession) -> Workshop:
    return await make_workshop(db_session, category=WorkshopCategory.ACADEMIC, price_regular=300)


@pytest.fixture
async def course(db_session: AsyncSession) -> Course:
    return await make_course(db_session, price_regular=1500, price_offer=999)
