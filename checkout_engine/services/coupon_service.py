# checkout_engine/services/coupon_service.py
"""
Coupon evaluator i administracja kuponami.

validate() jest czysto odczytowe - licznik uzyc rosnie dopiero przy checkoucie,
wiec dwie rownolegle walidacje moga obie przejsc na tej samej puli.
"""
import enum
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from checkout_engine.data.models.coupon import CouponModel
from checkout_engine.data.models.product import ProductModel
from checkout_engine.domain.errors import NotFound, Unauthorized, ValidationFailure
from checkout_engine.domain.pricing import ZERO, money, compute_discount
from checkout_engine.domain.schemas import CouponIn
from checkout_engine.repos.coupon_repo import CouponRepo
from checkout_engine.services.usage_ledger import UsageLedger
from checkout_engine.utils.logging import get_logger

logger = get_logger(__name__)


class CouponRejection(str, enum.Enum):
    NOT_FOUND = "NOT_FOUND"
    INACTIVE = "INACTIVE"
    EXPIRED = "EXPIRED"
    LIMIT_EXCEEDED = "LIMIT_EXCEEDED"
    NOT_APPLICABLE = "NOT_APPLICABLE"
    BELOW_MINIMUM = "BELOW_MINIMUM"


@dataclass(frozen=True)
class CouponValidation:
    valid: bool
    message: str
    discount_amount: Decimal = ZERO
    final_total: Decimal = ZERO
    reason: Optional[CouponRejection] = None
    coupon_id: Optional[int] = None
    remaining: Optional[int] = None
    minimum_amount: Optional[Decimal] = None

    @classmethod
    def rejected(cls, reason: CouponRejection, message: str, **extra) -> "CouponValidation":
        return cls(valid=False, message=message, reason=reason, **extra)

    def details(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"reason": self.reason.value if self.reason else None}
        if self.remaining is not None:
            out["remaining"] = self.remaining
        if self.minimum_amount is not None:
            out["minimum_amount"] = str(self.minimum_amount)
        return out


def as_utc(value: datetime) -> datetime:
    # sqlite zwraca naive datetime, traktujemy jako UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def normalize_code(code: Optional[str]) -> Optional[str]:
    if code is None:
        return None
    code = code.strip()
    return code or None


class CouponService:
    def __init__(self, db: Session, ledger: UsageLedger | None = None):
        self.db = db
        self.repo = CouponRepo(db)
        self.ledger = ledger or UsageLedger(db)

    #query - walidacja bez efektow ubocznych
    def validate(
        self,
        code: str,
        product_id: int,
        quantity: int,
        original_unit_price,
        user_id: int | None = None,
        now: datetime | None = None,
    ) -> CouponValidation:
        if quantity <= 0:
            raise ValidationFailure("Quantity must be greater than 0", code="INVALID_QUANTITY")

        code = normalize_code(code) or ""
        coupon = self.repo.get_by_code(code)

        if coupon is None:
            return CouponValidation.rejected(CouponRejection.NOT_FOUND, "Coupon not found.")

        if not coupon.is_active:
            return CouponValidation.rejected(
                CouponRejection.INACTIVE, "Coupon is not active.", coupon_id=coupon.id
            )

        now = now or datetime.now(timezone.utc)
        if now < as_utc(coupon.start_date) or now > as_utc(coupon.end_date):
            return CouponValidation.rejected(
                CouponRejection.EXPIRED, "Coupon is expired.", coupon_id=coupon.id
            )

        if coupon.usage_limit is not None and coupon.current_usage_count + quantity > coupon.usage_limit:
            remaining = max(0, coupon.usage_limit - coupon.current_usage_count)
            return CouponValidation.rejected(
                CouponRejection.LIMIT_EXCEEDED,
                f"Coupon usage limit exceeded. Remaining: {remaining}",
                coupon_id=coupon.id,
                remaining=remaining,
            )

        if user_id is not None and coupon.usage_limit_per_user is not None:
            used = self.ledger.count_for_user(coupon.id, user_id)
            if used >= coupon.usage_limit_per_user:
                return CouponValidation.rejected(
                    CouponRejection.LIMIT_EXCEEDED,
                    "Coupon usage limit per user exceeded. Remaining: 0",
                    coupon_id=coupon.id,
                    remaining=0,
                )

        if product_id not in coupon.product_ids:
            return CouponValidation.rejected(
                CouponRejection.NOT_APPLICABLE,
                "Coupon not applicable to this product.",
                coupon_id=coupon.id,
            )

        total = money(Decimal(str(original_unit_price)) * quantity)
        if coupon.minimum_amount is not None and total < coupon.minimum_amount:
            minimum = money(coupon.minimum_amount)
            return CouponValidation.rejected(
                CouponRejection.BELOW_MINIMUM,
                f"Minimum amount required: {minimum:.2f}",
                coupon_id=coupon.id,
                minimum_amount=minimum,
            )

        discount = compute_discount(coupon.discount_type, coupon.value, total, quantity)
        final_total = max(ZERO, total - discount)

        return CouponValidation(
            valid=True,
            message="Coupon is valid.",
            discount_amount=discount,
            final_total=money(final_total),
            coupon_id=coupon.id,
        )

    #commands - administracja
    def create_coupon(self, payload: CouponIn, created_by: int) -> CouponModel:
        code = normalize_code(payload.code)
        if self.repo.get_by_code(code):
            raise ValidationFailure("Coupon code already exists.", code="DUPLICATE_COUPON_CODE")

        self._check_window(payload)
        products = self._load_products(payload.product_ids)

        coupon = CouponModel(
            code=code,
            name=payload.name,
            description=payload.description,
            discount_type=payload.discount_type,
            value=payload.value,
            minimum_amount=payload.minimum_amount,
            start_date=payload.start_date,
            end_date=payload.end_date,
            usage_limit=payload.usage_limit,
            usage_limit_per_user=payload.usage_limit_per_user,
            current_usage_count=0,
            is_active=payload.is_active,
            created_by=created_by,
        )
        coupon.products = products
        self.repo.add(coupon)
        self.repo.commit()

        logger.info(f"Coupon {coupon.code} created by user {created_by}")
        return coupon

    def list_coupons(self, created_by: int) -> List[CouponModel]:
        return self.repo.list_by_creator(created_by)

    def update_coupon(self, coupon_id: int, payload: CouponIn, actor_id: int) -> CouponModel:
        coupon = self._owned_coupon(coupon_id, actor_id)

        code = normalize_code(payload.code)
        clash = self.repo.get_by_code(code)
        if clash is not None and clash.id != coupon.id:
            raise ValidationFailure("Coupon code already exists.", code="DUPLICATE_COUPON_CODE")

        self._check_window(payload)
        products = self._load_products(payload.product_ids)

        coupon.code = code
        coupon.name = payload.name
        coupon.description = payload.description
        coupon.discount_type = payload.discount_type
        coupon.value = payload.value
        coupon.minimum_amount = payload.minimum_amount
        coupon.start_date = payload.start_date
        coupon.end_date = payload.end_date
        coupon.usage_limit = payload.usage_limit
        coupon.usage_limit_per_user = payload.usage_limit_per_user
        coupon.is_active = payload.is_active
        coupon.products = products
        self.repo.commit()

        logger.info(f"Coupon {coupon.id} updated")
        return coupon

    def delete_coupon(self, coupon_id: int, actor_id: int) -> None:
        coupon = self._owned_coupon(coupon_id, actor_id)

        if self.ledger.quantity_for_coupon(coupon.id) > 0:
            raise ValidationFailure(
                "Coupon has recorded usage and cannot be deleted; deactivate it instead.",
                code="COUPON_IN_USE",
            )

        self.repo.delete(coupon)
        self.repo.commit()
        logger.info(f"Coupon {coupon_id} deleted")

    def deactivate_expired(self, now: datetime | None = None) -> int:
        now = now or datetime.now(timezone.utc)
        count = self.repo.deactivate_expired(now)
        self.repo.commit()
        if count:
            logger.info(f"Deactivated {count} expired coupons")
        return count

    def _owned_coupon(self, coupon_id: int, actor_id: int) -> CouponModel:
        # kuponem zarzadza tylko jego autor
        coupon = self.repo.get_coupon(coupon_id)
        if coupon is None:
            raise NotFound("coupon", coupon_id)
        if coupon.created_by != actor_id:
            raise Unauthorized(
                "Only the coupon creator can modify it",
                details={"actor_id": actor_id, "coupon_id": coupon_id},
            )
        return coupon

    def _check_window(self, payload: CouponIn):
        if as_utc(payload.end_date) <= as_utc(payload.start_date):
            raise ValidationFailure("Coupon end date must be after its start date.", code="INVALID_WINDOW")

    def _load_products(self, product_ids: List[int]) -> List[ProductModel]:
        ids = sorted(set(product_ids))
        products = list(
            self.db.execute(select(ProductModel).where(ProductModel.id.in_(ids))).scalars()
        )
        missing = set(ids) - {p.id for p in products}
        if missing:
            raise NotFound("product", sorted(missing)[0])
        return products
