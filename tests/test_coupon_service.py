from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from checkout_engine.data.models import DiscountType
from checkout_engine.domain.errors import NotFound, Unauthorized, ValidationFailure
from checkout_engine.domain.schemas import CouponIn
from checkout_engine.services.coupon_service import CouponRejection


def test_percentage_coupon_discounts_line_total(make_product, make_coupon, coupon_service):
    product = make_product(price="100.00")
    make_coupon("SAVE10", products=[product])

    result = coupon_service.validate("SAVE10", product.id, 2, Decimal("100.00"))

    assert result.valid
    assert result.reason is None
    assert result.discount_amount == Decimal("20.00")
    assert result.final_total == Decimal("180.00")


def test_fixed_amount_is_applied_per_unit(make_product, make_coupon, coupon_service):
    product = make_product(price="100.00")
    make_coupon("FLAT15", products=[product], discount_type=DiscountType.FIXED_AMOUNT, value="15")

    result = coupon_service.validate("FLAT15", product.id, 3, Decimal("100.00"))

    assert result.discount_amount == Decimal("45.00")
    assert result.final_total == Decimal("255.00")


def test_final_total_never_goes_below_zero(make_product, make_coupon, coupon_service):
    product = make_product(price="5.00")
    make_coupon("BIG", products=[product], discount_type=DiscountType.FIXED_AMOUNT, value="20")

    result = coupon_service.validate("BIG", product.id, 2, Decimal("5.00"))

    assert result.valid
    assert result.discount_amount == Decimal("40.00")
    assert result.final_total == Decimal("0.00")


def test_unknown_code(make_product, coupon_service):
    product = make_product()

    result = coupon_service.validate("NOPE", product.id, 1, Decimal("100.00"))

    assert not result.valid
    assert result.reason == CouponRejection.NOT_FOUND


def test_inactive_is_reported_before_expired(make_product, make_coupon, coupon_service):
    product = make_product()
    make_coupon("OLD", products=[product], is_active=False, ends_in=timedelta(days=-1))

    result = coupon_service.validate("OLD", product.id, 1, Decimal("100.00"))

    assert result.reason == CouponRejection.INACTIVE


@pytest.mark.parametrize(
    "starts_in,ends_in",
    [
        (timedelta(days=-10), timedelta(days=-1)),
        (timedelta(days=1), timedelta(days=10)),
    ],
)
def test_outside_validity_window_is_expired(make_product, make_coupon, coupon_service, starts_in, ends_in):
    product = make_product()
    make_coupon("WINDOW", products=[product], starts_in=starts_in, ends_in=ends_in)

    result = coupon_service.validate("WINDOW", product.id, 1, Decimal("100.00"))

    assert result.reason == CouponRejection.EXPIRED


def test_usage_limit_counts_requested_quantity_and_reports_remaining(make_product, make_coupon, coupon_service):
    product = make_product()
    make_coupon("LIMITED", products=[product], usage_limit=5, current_usage_count=3)

    assert coupon_service.validate("LIMITED", product.id, 2, Decimal("100.00")).valid

    result = coupon_service.validate("LIMITED", product.id, 3, Decimal("100.00"))
    assert result.reason == CouponRejection.LIMIT_EXCEEDED
    assert result.remaining == 2
    assert "Remaining: 2" in result.message


def test_coupon_must_be_linked_to_product(make_product, make_coupon, coupon_service):
    keyboard = make_product("Keyboard")
    mouse = make_product("Mouse")
    make_coupon("KEYS", products=[keyboard])

    result = coupon_service.validate("KEYS", mouse.id, 1, Decimal("100.00"))

    assert result.reason == CouponRejection.NOT_APPLICABLE


def test_minimum_amount_uses_original_line_total(make_product, make_coupon, coupon_service):
    product = make_product(price="100.00")
    make_coupon("MIN250", products=[product], minimum_amount="250")

    result = coupon_service.validate("MIN250", product.id, 2, Decimal("100.00"))
    assert result.reason == CouponRejection.BELOW_MINIMUM
    assert result.minimum_amount == Decimal("250.00")

    assert coupon_service.validate("MIN250", product.id, 3, Decimal("100.00")).valid


def test_validation_has_no_side_effects(db, make_product, make_coupon, coupon_service):
    product = make_product()
    coupon = make_coupon("SAVE10", products=[product], usage_limit=10)

    for _ in range(3):
        coupon_service.validate("SAVE10", product.id, 4, Decimal("100.00"))

    db.refresh(coupon)
    assert coupon.current_usage_count == 0


def test_per_user_limit_checked_against_ledger(db, make_product, make_coupon, coupon_service, ledger):
    product = make_product()
    coupon = make_coupon("ONCE", products=[product], usage_limit_per_user=1)
    ledger.record(coupon.id, user_id=7, quantity_used=1, discount_amount=Decimal("10"), order_id=None)
    db.commit()

    assert coupon_service.validate("ONCE", product.id, 1, Decimal("100.00"), user_id=8).valid

    result = coupon_service.validate("ONCE", product.id, 1, Decimal("100.00"), user_id=7)
    assert result.reason == CouponRejection.LIMIT_EXCEEDED
    assert result.remaining == 0


def test_non_positive_quantity_is_rejected(make_product, make_coupon, coupon_service):
    product = make_product()
    make_coupon("SAVE10", products=[product])

    with pytest.raises(ValidationFailure):
        coupon_service.validate("SAVE10", product.id, 0, Decimal("100.00"))


def _coupon_in(product_ids, **overrides):
    now = datetime.now(timezone.utc)
    data = dict(
        code="NEW10",
        name="New",
        discount_type=DiscountType.PERCENTAGE,
        value=Decimal("10"),
        start_date=now - timedelta(days=1),
        end_date=now + timedelta(days=1),
        product_ids=product_ids,
    )
    data.update(overrides)
    return CouponIn(**data)


def test_create_update_and_list_coupons(make_product, coupon_service):
    keyboard = make_product("Keyboard")
    mouse = make_product("Mouse")

    coupon = coupon_service.create_coupon(_coupon_in([keyboard.id]), created_by=5)
    assert coupon.product_ids == [keyboard.id]
    assert coupon.current_usage_count == 0

    with pytest.raises(ValidationFailure):
        coupon_service.create_coupon(_coupon_in([keyboard.id]), created_by=5)

    updated = coupon_service.update_coupon(coupon.id, _coupon_in([mouse.id], name="Renamed"), actor_id=5)
    assert updated.name == "Renamed"
    assert updated.product_ids == [mouse.id]

    assert [c.id for c in coupon_service.list_coupons(5)] == [coupon.id]
    assert coupon_service.list_coupons(6) == []


def test_only_creator_can_update_or_delete_coupon(make_product, coupon_service):
    product = make_product()
    coupon = coupon_service.create_coupon(_coupon_in([product.id]), created_by=5)

    with pytest.raises(Unauthorized):
        coupon_service.update_coupon(coupon.id, _coupon_in([product.id], name="Hijacked"), actor_id=6)
    with pytest.raises(Unauthorized):
        coupon_service.delete_coupon(coupon.id, actor_id=6)

    assert coupon_service.repo.get_coupon(coupon.id).name == "New"


def test_create_coupon_rejects_unknown_product_and_bad_window(make_product, coupon_service):
    product = make_product()
    now = datetime.now(timezone.utc)

    with pytest.raises(NotFound):
        coupon_service.create_coupon(_coupon_in([product.id, 999]), created_by=1)

    with pytest.raises(ValidationFailure):
        coupon_service.create_coupon(
            _coupon_in([product.id], start_date=now, end_date=now - timedelta(hours=1)),
            created_by=1,
        )


def test_coupon_with_usage_cannot_be_deleted(db, make_product, make_coupon, coupon_service, ledger):
    product = make_product()
    used = make_coupon("USED", products=[product])
    unused = make_coupon("UNUSED", products=[product])
    ledger.record(used.id, user_id=1, quantity_used=1, discount_amount=Decimal("10"), order_id=None)
    db.commit()

    with pytest.raises(ValidationFailure):
        coupon_service.delete_coupon(used.id, actor_id=99)

    coupon_service.delete_coupon(unused.id, actor_id=99)
    assert coupon_service.repo.get_by_code("UNUSED") is None

    with pytest.raises(NotFound):
        coupon_service.delete_coupon(unused.id, actor_id=99)


def test_deactivate_expired(db, make_product, make_coupon, coupon_service):
    product = make_product()
    expired = make_coupon("GONE", products=[product], starts_in=timedelta(days=-5), ends_in=timedelta(days=-1))
    live = make_coupon("LIVE", products=[product])

    assert coupon_service.deactivate_expired() == 1

    db.refresh(expired)
    db.refresh(live)
    assert expired.is_active is False
    assert live.is_active is True
