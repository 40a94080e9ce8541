"""
Pytest configuration and fixtures for the checkout engine tests.
"""
import os

# srodowisko testowe ustawiane przed importem modulow aplikacji
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["CELERY_TASK_ALWAYS_EAGER"] = "true"
os.environ["CELERY_BROKER_URL"] = "memory://"
os.environ["CELERY_RESULT_BACKEND"] = "cache+memory://"

from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import List

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

from checkout_engine.api import create_app
from checkout_engine.api.deps import get_lock_service, get_notification_service
from checkout_engine.data.database import Base, get_db, init_db, make_engine
from checkout_engine.data.models import CouponModel, DiscountType, ProductModel
from checkout_engine.services.cart_service import CartService
from checkout_engine.services.catalog_reader import CatalogReader
from checkout_engine.services.checkout_service import CheckoutService
from checkout_engine.services.coupon_service import CouponService
from checkout_engine.services.lock_service import LockService
from checkout_engine.services.order_service import OrderService
from checkout_engine.services.usage_ledger import UsageLedger

from .fakes import InMemoryRedis, RecordingNotifier


@pytest.fixture
def engine(tmp_path):
    engine = make_engine(f"sqlite:///{tmp_path / 'checkout.db'}")
    init_db(engine)
    yield engine
    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, expire_on_commit=True)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def redis_client() -> InMemoryRedis:
    return InMemoryRedis()


@pytest.fixture
def lock_service(redis_client) -> LockService:
    return LockService(client=redis_client)


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def catalog(db) -> CatalogReader:
    return CatalogReader(db)


@pytest.fixture
def ledger(db) -> UsageLedger:
    return UsageLedger(db)


@pytest.fixture
def coupon_service(db, ledger) -> CouponService:
    return CouponService(db, ledger=ledger)


@pytest.fixture
def cart_service(db, catalog, coupon_service, lock_service) -> CartService:
    return CartService(
        db=db,
        catalog=catalog,
        coupon_service=coupon_service,
        lock_service=lock_service,
    )


@pytest.fixture
def checkout_service(db, catalog, cart_service, lock_service, ledger, notifier) -> CheckoutService:
    return CheckoutService(
        db=db,
        catalog=catalog,
        cart_service=cart_service,
        lock_service=lock_service,
        ledger=ledger,
        notification_service=notifier,
    )


@pytest.fixture
def order_service(db) -> OrderService:
    return OrderService(db)


@pytest.fixture
def make_product(db):
    def _make(name: str = "Keyboard", price: str = "100.00", stock: int = 10) -> ProductModel:
        product = ProductModel(name=name, price=Decimal(price), stock=stock)
        db.add(product)
        db.commit()
        return product

    return _make


@pytest.fixture
def make_coupon(db):
    def _make(
        code: str = "SAVE10",
        products: List[ProductModel] = (),
        discount_type: DiscountType = DiscountType.PERCENTAGE,
        value: str = "10",
        minimum_amount: str | None = None,
        usage_limit: int | None = None,
        usage_limit_per_user: int | None = None,
        current_usage_count: int = 0,
        is_active: bool = True,
        starts_in: timedelta = timedelta(days=-1),
        ends_in: timedelta = timedelta(days=30),
    ) -> CouponModel:
        now = datetime.now(timezone.utc)
        coupon = CouponModel(
            code=code,
            name=f"{code} coupon",
            discount_type=discount_type,
            value=Decimal(value),
            minimum_amount=Decimal(minimum_amount) if minimum_amount is not None else None,
            start_date=now + starts_in,
            end_date=now + ends_in,
            usage_limit=usage_limit,
            usage_limit_per_user=usage_limit_per_user,
            current_usage_count=current_usage_count,
            is_active=is_active,
            created_by=99,
        )
        coupon.products = list(products)
        db.add(coupon)
        db.commit()
        return coupon

    return _make


@pytest.fixture
def client(session_factory, lock_service, notifier):
    app = create_app()

    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_lock_service] = lambda: lock_service
    app.dependency_overrides[get_notification_service] = lambda: notifier

    with TestClient(app) as test_client:
        yield test_client
