# checkout_engine/api/deps.py
from functools import lru_cache

from fastapi import Depends, Header, HTTPException
from sqlalchemy.orm import Session

from checkout_engine.data.database import get_db
from checkout_engine.services.cart_service import CartService
from checkout_engine.services.catalog_reader import CatalogReader
from checkout_engine.services.checkout_service import CheckoutService
from checkout_engine.services.coupon_service import CouponService
from checkout_engine.services.lock_service import LockService
from checkout_engine.services.notification_service import NotificationService
from checkout_engine.services.order_service import OrderService


def get_current_user_id(x_user_id: int | None = Header(None)) -> int:
    # tozsamosc ustawia gateway po uwierzytelnieniu, tu tylko odczyt
    if x_user_id is None:
        raise HTTPException(status_code=401, detail="Missing authenticated user")
    return x_user_id


@lru_cache
def get_lock_service() -> LockService:
    return LockService()


def get_notification_service() -> NotificationService:
    return NotificationService()


def get_coupon_service(db: Session = Depends(get_db)) -> CouponService:
    return CouponService(db)


def get_cart_service(
    db: Session = Depends(get_db),
    lock_service: LockService = Depends(get_lock_service),
) -> CartService:
    return CartService(
        db=db,
        catalog=CatalogReader(db),
        coupon_service=CouponService(db),
        lock_service=lock_service,
    )


def get_checkout_service(
    db: Session = Depends(get_db),
    cart_service: CartService = Depends(get_cart_service),
    lock_service: LockService = Depends(get_lock_service),
    notification_service: NotificationService = Depends(get_notification_service),
) -> CheckoutService:
    return CheckoutService(
        db=db,
        catalog=cart_service.catalog,
        cart_service=cart_service,
        lock_service=lock_service,
        notification_service=notification_service,
    )


def get_order_service(db: Session = Depends(get_db)) -> OrderService:
    return OrderService(db)
