import os

# Settings are read at import time, so they must be in place before the app loads
os.environ["ENVIRONMENT"] = "test"
os.environ["DATABASE_URL"] = ""
os.environ["ADMIN_SECRET"] = "test-admin-secret"
os.environ["JWT_SECRET_KEY"] = "test-jwt-secret"

from datetime import datetime, timedelta

import pytest
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker

from config import get_db
from main import app
from models import (
    Base,
    Account,
    RetailerProfile,
    ShopProfile,
    Category,
    Product,
    ProductFilter,
    PhoneOtp,
    Role,
    KycStatus,
    ApprovalStatus
)
from routers.auth.helpers import auth_helpers
from routers.products.helpers import calculate_price_after_gst
from utils.storage import storage_helpers

@pytest.fixture
async def engine(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'tradelink.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
def uploads(monkeypatch):
    """Replaces Supabase uploads; records (filename, folder) for each call"""
    calls = []

    async def fake_upload(file, folder, allowed_types=None):
        calls.append((file.filename, folder))
        return f"https://cdn.test/{folder}/{file.filename}"

    monkeypatch.setattr(storage_helpers, "upload_file", fake_upload)
    return calls


@pytest.fixture
def outbox(monkeypatch):
    """Captures SMS and e-mail instead of calling Twilio / SMTP"""
    sent = {"sms": [], "email": []}

    def fake_sms(to_phone_number, body):
        sent["sms"].append((to_phone_number, body))
        return True

    def fake_email(to_email, subject, body_html):
        sent["email"].append((to_email, subject))
        return True

    monkeypatch.setattr("routers.otp.otp.send_sms", fake_sms)
    monkeypatch.setattr("routers.orders.orders.send_sms", fake_sms)
    monkeypatch.setattr("routers.orders.orders.send_email", fake_email)
    return sent


@pytest.fixture
async def client(session_factory, uploads, outbox):
    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers():
    def _headers(account: Account) -> dict:
        return {"Authorization": f"Bearer {auth_helpers.create_access_token(account)}"}
    return _headers


@pytest.fixture
def admin_headers():
    return {"X-Admin-Secret": "test-admin-secret"}


@pytest.fixture
def make_otp(session_factory):
    async def _make(phone_number, otp="123456", age_seconds=0):
        async with session_factory() as session:
            session.add(PhoneOtp(
                phone_number=phone_number,
                otp=otp,
                issued_at=datetime.utcnow() - timedelta(seconds=age_seconds)
            ))
            await session.commit()
        return otp
    return _make


@pytest.fixture
def make_retailer(session_factory):
    async def _make(phone_number="9000000001", name="Asha Stores", email=None, is_active=True):
        async with session_factory() as session:
            account = Account(
                name=name,
                phone_number=phone_number,
                email=email or f"{phone_number}@shops.example.com",
                role=Role.RETAILER.value,
                is_phone_verified=True,
                is_active=is_active
            )
            session.add(account)
            await session.flush()
            session.add(RetailerProfile(
                retailer_id=account.id,
                name=name,
                phone_number=phone_number,
                address="12 Market Road, Pune"
            ))
            await session.commit()
            return account
    return _make


@pytest.fixture
def make_wholesaler(session_factory):
    async def _make(
        phone_number="9800000001",
        name="Ravi Kumar",
        kyc_status=KycStatus.COMPLETED.value,
        verified=True,
        is_active=True,
        has_shop_detail=True,
        **profile_fields
    ):
        async with session_factory() as session:
            account = Account(
                name=name,
                phone_number=phone_number,
                role=Role.WHOLESALER.value,
                is_phone_verified=True,
                is_active=is_active,
                has_shop_detail=has_shop_detail
            )
            session.add(account)
            await session.flush()
            session.add(ShopProfile(
                wholesaler_id=account.id,
                phone_number=phone_number,
                full_name=name,
                kyc_status=kyc_status,
                is_wholesaler_verified=verified,
                **profile_fields
            ))
            await session.commit()
            return account
    return _make


@pytest.fixture
def make_category(session_factory):
    async def _make(name="Fruits", description="Fresh fruit"):
        async with session_factory() as session:
            category = Category(name=name, description=description)
            session.add(category)
            await session.commit()
            return category
    return _make


@pytest.fixture
def make_product(session_factory):
    async def _make(
        wholesaler,
        product_name="Mango",
        category_name="Fruits",
        price_before_gst=100.0,
        gst_category="exempted",
        gst_percent=0.0,
        stock=10,
        minimum_required=2,
        last_price_update=None,
        approval_status=ApprovalStatus.PENDING.value,
        filters=()
    ):
        async with session_factory() as session:
            product = Product(
                wholesaler_id=wholesaler.id,
                product_name=product_name,
                category_name=category_name,
                product_description=f"{product_name} from the market",
                product_image=f"https://cdn.test/{product_name}.png",
                price_before_gst=price_before_gst,
                gst_category=gst_category,
                gst_percent=gst_percent,
                price_after_gst=calculate_price_after_gst(price_before_gst, gst_category, gst_percent),
                price_unit="per kg",
                last_price_update=last_price_update or datetime.utcnow(),
                stock=stock,
                minimum_required=minimum_required,
                approval_status=approval_status,
                filters=[
                    ProductFilter(position=position, key=key, value=value)
                    for position, (key, value) in enumerate(filters)
                ]
            )
            session.add(product)
            await session.commit()
            return product
    return _make
