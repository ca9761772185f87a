import os

# config is read at import time
os.environ.setdefault("JWT_SECRET", "test-secret")
os.environ["DB_TYPE"] = "sqlite"
os.environ.setdefault("LOG_LEVEL", "WARNING")

from datetime import timedelta
from decimal import Decimal

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import NullPool

from app.core.db import Base, enable_sqlite_foreign_keys, get_db
from app.core.security import create_access_token, hash_password
from app.models.coupon_models import Coupon, CouponType
from app.models.product_models import Category, Product, stock_status_for
from app.models.user_models import User
from app.utils.dates import utcnow
from main import app


@pytest_asyncio.fixture
async def engine(tmp_path):
    """A file-backed database per test; NullPool gives every session its own connection."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}", poolclass=NullPool)
    event.listen(engine.sync_engine, "connect", enable_sqlite_foreign_keys)
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


@pytest_asyncio.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def client(session_factory):
    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


# --------------------------
# Users
# --------------------------
async def _make_user(db, username, role, password="secret123"):
    user = User(username=username, password_hash=hash_password(password), role=role)
    db.add(user)
    await db.commit()
    await db.refresh(user)
    return user


@pytest_asyncio.fixture
async def admin(db):
    return await _make_user(db, "admin", "admin")


@pytest_asyncio.fixture
async def stock_clerk(db):
    return await _make_user(db, "clerk", "inventory")


@pytest_asyncio.fixture
async def customer(db):
    return await _make_user(db, "alice", "customer")


@pytest_asyncio.fixture
async def other_customer(db):
    return await _make_user(db, "bob", "customer")


def auth_headers(user):
    token = create_access_token(
        {"sub": user.username, "user_id": user.id, "role": user.role},
        token_version=user.token_version,
    )
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def admin_headers(admin):
    return auth_headers(admin)


@pytest.fixture
def clerk_headers(stock_clerk):
    return auth_headers(stock_clerk)


@pytest.fixture
def customer_headers(customer):
    return auth_headers(customer)


# --------------------------
# Catalogue
# --------------------------
@pytest_asyncio.fixture
async def category(db):
    category = Category(name="Bread")
    db.add(category)
    await db.commit()
    return category


@pytest_asyncio.fixture
async def make_product(db):
    async def _make(name="Sourdough", stock=10, reserved=0, track=True, backorder=False, category_id=None):
        product = Product(
            name=name,
            price=4.5,
            stock=stock,
            reserved_stock=reserved,
            stock_status=stock_status_for(stock),
            track_inventory=track,
            allow_backorder=backorder,
            category_id=category_id,
        )
        db.add(product)
        await db.commit()
        return product
    return _make


@pytest_asyncio.fixture
async def make_coupon(db):
    async def _make(code="SAVE20", **overrides):
        fields = dict(
            code=code,
            type=CouponType.percentage,
            value=Decimal("20"),
            min_purchase=Decimal("0"),
            used_count=0,
            valid_from=utcnow() - timedelta(days=1),
            valid_until=utcnow() + timedelta(days=30),
            is_active=True,
            applicable_products=[],
            applicable_categories=[],
            allowed_users=[],
            usages=[],
        )
        fields.update(overrides)
        coupon = Coupon(**fields)
        db.add(coupon)
        await db.commit()
        return coupon
    return _make
