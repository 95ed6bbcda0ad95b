import pytest_asyncio
from decimal import Decimal
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel
from sqlmodel.ext.asyncio.session import AsyncSession
from config import ApplicationConfig
from src.adapter.services.notification_service import LoggingNotificationService
from src.depends import get_order_snapshot_provider, get_review_notifier, get_session
from src.domain import CompanyAccount, PortalUser, Store, UserStatus

TEST_SHOP_DOMAIN = "acme-wholesale.myshopify.com"
TEST_WEBHOOK_SECRET = "test-webhook-secret"


class TestConfig(ApplicationConfig):
    __test__ = False

    AUTH_DISABLED = False
    SHOPIFY_API_SECRET = TEST_WEBHOOK_SECRET
    ENABLE_SENTRY = 0
    ENABLE_LOGGING_MIDDLEWARE = False
    DB_CREATE_TABLES = False
    API_PREFIX = ""


@pytest_asyncio.fixture(scope="function")
async def engine():
    """In-memory SQLite database shared by every connection of one test"""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        echo=False,
        future=True,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(engine):
    """Create a new database session for each test"""
    Session = sessionmaker(engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)
    async with Session() as session:
        yield session


@pytest_asyncio.fixture
async def seeded(db_session):
    """
    One store, one company (limit 1000) and two approved portal users:
    "buyer" without a personal limit and "capped" with limit 200 / used 150.

    Returns plain ids: a rollback inside a request expires loaded rows.
    """
    store = Store(shop_domain=TEST_SHOP_DOMAIN, access_token="shpat_test")
    db_session.add(store)
    await db_session.flush()

    company = CompanyAccount(
        shop_id=store.id,
        shopify_company_id="gid://shopify/Company/1",
        name="Acme Wholesale",
        credit_limit=Decimal("1000.00"),
    )
    db_session.add(company)
    await db_session.flush()

    buyer = PortalUser(
        shop_id=store.id,
        company_id=company.id,
        shopify_customer_id="gid://shopify/Customer/42",
        email="buyer@acme.test",
        first_name="Bea",
        last_name="Buyer",
        status=UserStatus.APPROVED,
    )
    capped = PortalUser(
        shop_id=store.id,
        company_id=company.id,
        shopify_customer_id="gid://shopify/Customer/43",
        email="capped@acme.test",
        status=UserStatus.APPROVED,
        user_credit_limit=Decimal("200.00"),
        user_credit_used=Decimal("150.00"),
    )
    pending = PortalUser(
        shop_id=store.id,
        company_id=company.id,
        shopify_customer_id="gid://shopify/Customer/44",
        email="pending@acme.test",
        status=UserStatus.PENDING,
    )
    db_session.add_all([buyer, capped, pending])
    await db_session.commit()

    return {
        "shop_id": store.id,
        "company_id": company.id,
        "buyer_id": buyer.id,
        "capped_id": capped.id,
        "pending_id": pending.id,
    }


@pytest_asyncio.fixture
async def client(db_session):
    """Create test client with database session override"""
    from src.api.app import create_app

    app = create_app(TestConfig)

    # Override the session dependency to use test session
    async def override_get_session():
        yield db_session

    app.dependency_overrides[get_session] = override_get_session
    app.dependency_overrides[get_review_notifier] = lambda: LoggingNotificationService()
    app.dependency_overrides[get_order_snapshot_provider] = lambda: None

    # Use ASGITransport for httpx AsyncClient
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
