# checkout_engine/repos/coupon_repo.py
from datetime import datetime

from sqlalchemy import select, update, or_
from sqlalchemy.orm import Session

from checkout_engine.data.models.coupon import CouponModel


class CouponRepo:
    def __init__(self, db: Session):
        self.db = db

    def get_coupon(self, coupon_id: int) -> CouponModel | None:
        return self.db.get(CouponModel, coupon_id)

    def get_by_code(self, code: str) -> CouponModel | None:
        return self.db.execute(
            select(CouponModel).where(CouponModel.code == code)
        ).scalar_one_or_none()

    def lock_by_codes(self, codes) -> list[CouponModel]:
        # SELECT ... FOR UPDATE w kolejnosci id, jak przy produktach
        return list(
            self.db.execute(
                select(CouponModel)
                .where(CouponModel.code.in_(sorted(set(codes))))
                .order_by(CouponModel.id)
                .with_for_update()
                .execution_options(populate_existing=True)
            ).scalars()
        )

    def list_by_creator(self, created_by: int) -> list[CouponModel]:
        return list(
            self.db.execute(
                select(CouponModel)
                .where(CouponModel.created_by == created_by)
                .order_by(CouponModel.id)
            ).scalars()
        )

    def add(self, coupon: CouponModel) -> CouponModel:
        self.db.add(coupon)
        self.db.flush()
        return coupon

    def delete(self, coupon: CouponModel):
        self.db.delete(coupon)
        self.db.flush()

    def try_increment_usage(self, coupon_id: int, quantity: int) -> int:
        """
        Atomowy warunkowy update licznika:
        UPDATE coupons SET current_usage_count = current_usage_count + :q
        WHERE id = :id AND (usage_limit IS NULL OR current_usage_count + :q <= usage_limit)

        Zwraca rowcount, 0 oznacza przekroczony limit.
        """
        result = self.db.execute(
            update(CouponModel)
            .where(
                CouponModel.id == coupon_id,
                or_(
                    CouponModel.usage_limit.is_(None),
                    CouponModel.current_usage_count + quantity <= CouponModel.usage_limit,
                ),
            )
            .values(current_usage_count=CouponModel.current_usage_count + quantity)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount

    def deactivate_expired(self, now: datetime) -> int:
        result = self.db.execute(
            update(CouponModel)
            .where(CouponModel.is_active.is_(True), CouponModel.end_date < now)
            .values(is_active=False)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount

    def commit(self):
        self.db.commit()

    def rollback(self):
        self.db.rollback()
