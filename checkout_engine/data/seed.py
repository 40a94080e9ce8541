# checkout_engine/data/seed.py
from datetime import datetime, timezone, timedelta
from decimal import Decimal

from checkout_engine.data.database import SessionLocal, init_db
from checkout_engine.data.models import CouponModel, DiscountType, ProductModel

PRODUCTS = [
    {"id": 1, "name": "Keyboard", "price": Decimal("199.99"), "stock": 25},
    {"id": 2, "name": "Mouse", "price": Decimal("49.50"), "stock": 100},
    {"id": 3, "name": "Monitor", "price": Decimal("899.00"), "stock": 5},
]


def seed():
    init_db()
    db = SessionLocal()
    try:
        # tylko jesli baza jest pusta
        if db.query(ProductModel).first():
            return

        products = [ProductModel(**p) for p in PRODUCTS]
        db.add_all(products)

        now = datetime.now(timezone.utc)
        coupon = CouponModel(
            code="SAVE10",
            name="10% off keyboards",
            discount_type=DiscountType.PERCENTAGE,
            value=Decimal("10"),
            start_date=now,
            end_date=now + timedelta(days=30),
            usage_limit=50,
            usage_limit_per_user=2,
            created_by=1,
        )
        coupon.products = [products[0]]
        db.add(coupon)
        db.commit()
    finally:
        db.close()


if __name__ == "__main__":
    seed()
