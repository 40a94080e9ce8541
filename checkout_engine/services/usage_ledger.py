# checkout_engine/services/usage_ledger.py
from decimal import Decimal

from sqlalchemy import select, func
from sqlalchemy.orm import Session

from checkout_engine.data.models.coupon_usage import CouponUsageModel
from checkout_engine.domain.pricing import money
from checkout_engine.utils.logging import get_logger

logger = get_logger(__name__)


class UsageLedger:
    """
    Ledger uzyc kuponow - tylko dopisywanie.
    record() wola wylacznie checkout, w ramach swojej transakcji (bez commita).
    """

    def __init__(self, db: Session):
        self.db = db

    def record(
        self,
        coupon_id: int,
        user_id: int,
        quantity_used: int,
        discount_amount: Decimal,
        order_id: int,
    ) -> CouponUsageModel:
        usage = CouponUsageModel(
            coupon_id=coupon_id,
            user_id=user_id,
            quantity_used=quantity_used,
            discount_amount=money(discount_amount),
            order_id=order_id,
        )
        self.db.add(usage)
        self.db.flush()

        logger.info(
            f"Coupon {coupon_id} used by user {user_id}: "
            f"qty={quantity_used} discount={usage.discount_amount} order={order_id}"
        )
        return usage

    def count_for_user(self, coupon_id: int, user_id: int) -> int:
        # jedno zamowienie to jedno uzycie, nawet gdy kupon objal kilka pozycji;
        # wpisy bez zamowienia liczone pojedynczo
        per_order = func.coalesce(CouponUsageModel.order_id, -CouponUsageModel.id)
        return self.db.scalar(
            select(func.count(func.distinct(per_order))).where(
                CouponUsageModel.coupon_id == coupon_id,
                CouponUsageModel.user_id == user_id,
            )
        ) or 0

    def quantity_for_coupon(self, coupon_id: int) -> int:
        return self.db.scalar(
            select(func.coalesce(func.sum(CouponUsageModel.quantity_used), 0)).where(
                CouponUsageModel.coupon_id == coupon_id
            )
        ) or 0

    def usages_for_order(self, order_id: int) -> list[CouponUsageModel]:
        return list(
            self.db.execute(
                select(CouponUsageModel)
                .where(CouponUsageModel.order_id == order_id)
                .order_by(CouponUsageModel.id)
            ).scalars()
        )
