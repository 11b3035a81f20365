import os
import tempfile

os.environ.setdefault("APP_ENV", "development")
os.environ.setdefault("DB_TYPE", "sqlite")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("JWT_ACCESS_SECRET_KEY", "test-secret-key")
os.environ.setdefault("PDF_OUTPUT_DIR", tempfile.mkdtemp(prefix="quotation-pdfs-"))

import pytest
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.core.db import Base, get_db
from app.core.security import hash_password, create_access_token
from app.models.users.user_models import User
from app.models.enums.access_type import AccessType
from app.schemas.quotations.quotation_schemas import QuotationCreate
from app.scripts.seed_features import seed_access_control
from app.utils.get_user import CallerContext

PASSWORD = "s3cret-pass"

# username -> (role, access_type, department, company)
USERS = {
    "admin@acme.io": ("admin", AccessType.internal, "Management", None),
    "manager@acme.io": ("manager", AccessType.internal, "Sales", None),
    "sales@acme.io": ("sales", AccessType.internal, "Sales", None),
    "engineer@acme.io": ("sales_engineer", AccessType.internal, "Engineering", None),
    "buyer@client.io": ("ext_manager", AccessType.external, None, "Client Co"),
    "viewer@client.io": ("ext_client", AccessType.external, None, "Client Co"),
    "buyer@other.io": ("ext_manager", AccessType.external, None, "Other Co"),
}


@pytest.fixture(scope="session")
def password_hash():
    return hash_password(PASSWORD)


@pytest.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(
        bind=engine,
        class_=AsyncSession,
        autoflush=False,
        expire_on_commit=False,
    )


@pytest.fixture
async def users(session_factory, password_hash):
    async with session_factory() as session:
        await seed_access_control(session)

        created = {}
        for username, (role, access_type, department, company) in USERS.items():
            user = User(
                username=username,
                password_hash=password_hash,
                role=role,
                access_type=access_type,
                department=department,
                company=company,
                is_active=True,
                token_version=0,
            )
            session.add(user)
            created[username] = user
        await session.commit()
        return created


@pytest.fixture
async def db(session_factory, users):
    async with session_factory() as session:
        yield session


@pytest.fixture
def callers(users):
    return {name: CallerContext.from_user(u) for name, u in users.items()}


@pytest.fixture
def admin(callers):
    return callers["admin@acme.io"]


@pytest.fixture
def manager(callers):
    return callers["manager@acme.io"]


@pytest.fixture
def sales(callers):
    return callers["sales@acme.io"]


@pytest.fixture
def engineer(callers):
    return callers["engineer@acme.io"]


@pytest.fixture
def client_buyer(callers):
    return callers["buyer@client.io"]


@pytest.fixture
def client_viewer(callers):
    return callers["viewer@client.io"]


@pytest.fixture
def other_buyer(callers):
    return callers["buyer@other.io"]


def quotation_payload(**overrides) -> QuotationCreate:
    data = {
        "company": "Client Co",
        "my_company": "Acme Ltd",
        "project": "HQ fit-out",
        "title": "Lighting package",
        "currency": "USD",
        "discount_type": "percentage",
        "discount_value": "10",
        "tax_rate": "8",
        "items": [{"system": "LED", "description": "Panel", "unit": "pcs", "qty": "2", "amount": "100"}],
        "terms": ["Delivery in 4 weeks", "Prices valid 30 days"],
    }
    data.update(overrides)
    return QuotationCreate(**data)


@pytest.fixture
def make_payload():
    return quotation_payload


def auth_headers(username: str) -> dict:
    token = create_access_token(subject=username, token_version=0)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
async def api(session_factory, users):
    from main import app

    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()


@pytest.fixture
def headers():
    return auth_headers


@pytest.fixture
def password():
    return PASSWORD
