"""Service test fixtures — async DB, seeded catalog/accounts, FastAPI test client.

Invariants:
    - Every test gets a fresh SQLite database file under tmp_path
    - get_db and get_session_scope overridden to use the test DB
    - Each engine fixture gets its own AccountLockRegistry

Design Decisions:
    - File-backed SQLite, not :memory:: every session gets its own connection,
      so the purchase engine's unit of work is isolated from the seeding session
    - State assertions read through a fresh session (ledger_state), never the
      seeding session's identity map
"""

from datetime import datetime, timezone

import pytest
from sqlalchemy import select
from sqlalchemy.ext.asyncio import (
    AsyncSession, create_async_engine, async_sessionmaker,
)
from httpx import ASGITransport, AsyncClient

from credit_ledger.db.base import Base
from credit_ledger.infrastructure.account_locks import AccountLockRegistry
from credit_ledger.infrastructure.database import (
    DatabaseSessionManager, get_db, get_session_scope,
)
import credit_ledger.infrastructure.database as db_module
from credit_ledger.main import app
from credit_ledger.models.account import Account
from credit_ledger.models.auth_session import AuthSession
from credit_ledger.models.item import Item
from credit_ledger.models.ledger_transaction import LedgerTransaction
from credit_ledger.models.ownership import Ownership
from credit_ledger.services.purchase_engine import PurchaseEngine

ALICE_TOKEN = "alice-session-token-0001"
BOB_TOKEN = "bob-session-token-0002"


def _utc(year, month, day):
    return datetime(year, month, day, tzinfo=timezone.utc)


CATALOG = [
    dict(id=1, title="Algebra Basics", price=40, subject="Math",
         level="Beginner", published=True, published_at=_utc(2026, 1, 1),
         file_ref="files/algebra-basics.pdf"),
    dict(id=2, title="Geometry Workbook", price=30, subject="Math",
         level="Intermediate", published=True, published_at=_utc(2026, 3, 1)),
    dict(id=3, title="Intro to Chemistry", price=50, subject="Science",
         level="Beginner", published=True, published_at=_utc(2026, 2, 1)),
    dict(id=4, title="Physics Problems", price=60, subject="Science",
         level="Advanced", published=True, published_at=_utc(2026, 4, 1)),
    dict(id=5, title="Calculus Draft", price=20, subject="Math",
         level="Beginner", published=False, published_at=None),
    dict(id=6, title="World History", price=25, subject="History",
         level="Intermediate", published=True, published_at=_utc(2026, 5, 1)),
]


@pytest.fixture
async def test_engine(tmp_path):
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'ledger.db'}", echo=False,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
async def test_session_factory(test_engine):
    return async_sessionmaker(
        test_engine, class_=AsyncSession, expire_on_commit=False,
    )


@pytest.fixture
async def test_db(test_session_factory):
    async with test_session_factory() as session:
        yield session


@pytest.fixture
async def catalog(test_db):
    test_db.add_all([Item(**row) for row in CATALOG])
    await test_db.commit()
    return CATALOG


@pytest.fixture
def make_account(test_db):
    """Create an account, optionally with a session credential."""
    async def _make(
        balance: int = 0,
        sid: str | None = None,
        username: str | None = None,
        last_active_at: datetime | None = None,
    ) -> Account:
        account = Account(username=username, balance=balance)
        test_db.add(account)
        await test_db.flush()
        if sid is not None:
            test_db.add(AuthSession(
                sid=sid,
                account_id=account.id,
                last_active_at=last_active_at or datetime.now(timezone.utc),
            ))
        await test_db.commit()
        return account
    return _make


@pytest.fixture
async def alice(catalog, make_account):
    return await make_account(balance=100, sid=ALICE_TOKEN, username="alice")


@pytest.fixture
async def bob(catalog, make_account):
    return await make_account(balance=100, sid=BOB_TOKEN, username="bob")


@pytest.fixture
def purchase_engine(test_session_factory):
    return PurchaseEngine(test_session_factory, locks=AccountLockRegistry())


@pytest.fixture
def ledger_state(test_session_factory):
    """Read balance, owned item ids and transactions through a fresh session."""
    async def _read(account_id: int) -> dict:
        async with test_session_factory() as db:
            balance = (await db.execute(
                select(Account.balance).where(Account.id == account_id),
            )).scalar_one()
            owned = (await db.execute(
                select(Ownership.item_id).where(Ownership.account_id == account_id),
            )).scalars().all()
            txns = (await db.execute(
                select(LedgerTransaction)
                .where(LedgerTransaction.account_id == account_id)
                .order_by(LedgerTransaction.id),
            )).scalars().all()
        return {"balance": balance, "owned": set(owned), "transactions": list(txns)}
    return _read


@pytest.fixture
async def client(test_engine, test_session_factory):
    """FastAPI test client with DB dependencies overridden."""
    async def override_get_db():
        async with test_session_factory() as session:
            yield session

    def override_get_session_scope():
        return test_session_factory

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_session_scope] = override_get_session_scope

    # Patch db_manager for the readiness check
    original_manager = db_module.db_manager
    fake_manager = DatabaseSessionManager.__new__(DatabaseSessionManager)
    fake_manager.engine = test_engine
    fake_manager._session_factory = test_session_factory
    db_module.db_manager = fake_manager

    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test",
    ) as c:
        yield c

    app.dependency_overrides.clear()
    db_module.db_manager = original_manager


@pytest.fixture
def auth_headers():
    def _headers(token: str = ALICE_TOKEN) -> dict[str, str]:
        return {"Authorization": f"Bearer {token}"}
    return _headers
