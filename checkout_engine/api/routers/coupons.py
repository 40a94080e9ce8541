# checkout_engine/api/routers/coupons.py
from typing import List

from fastapi import APIRouter, Depends, Response

from checkout_engine.api.deps import get_coupon_service, get_current_user_id
from checkout_engine.domain.schemas import CouponIn, CouponOut, CouponValidateIn, CouponValidateOut
from checkout_engine.services.coupon_service import CouponService

router = APIRouter(prefix="/coupons", tags=["coupons"])


@router.post("/validate", response_model=CouponValidateOut)
def validate_coupon(
    payload: CouponValidateIn,
    actor_id: int = Depends(get_current_user_id),
    svc: CouponService = Depends(get_coupon_service),
):
    # odrzucony kupon to nadal 200, z is_valid=false
    result = svc.validate(
        payload.code,
        payload.product_id,
        payload.quantity,
        payload.original_unit_price,
        user_id=actor_id,
    )
    return CouponValidateOut(
        is_valid=result.valid,
        discount_amount=result.discount_amount,
        final_price=result.final_total,
        message=result.message,
        reason=result.reason.value if result.reason else None,
        remaining=result.remaining,
        minimum_amount=result.minimum_amount,
    )


@router.post("/", response_model=CouponOut, status_code=201)
def create_coupon(
    payload: CouponIn,
    actor_id: int = Depends(get_current_user_id),
    svc: CouponService = Depends(get_coupon_service),
):
    return svc.create_coupon(payload, created_by=actor_id)


@router.get("/mine", response_model=List[CouponOut])
def my_coupons(
    actor_id: int = Depends(get_current_user_id),
    svc: CouponService = Depends(get_coupon_service),
):
    return svc.list_coupons(actor_id)


@router.put("/{coupon_id}", response_model=CouponOut)
def update_coupon(
    coupon_id: int,
    payload: CouponIn,
    actor_id: int = Depends(get_current_user_id),
    svc: CouponService = Depends(get_coupon_service),
):
    return svc.update_coupon(coupon_id, payload, actor_id=actor_id)


@router.delete("/{coupon_id}", status_code=204)
def delete_coupon(
    coupon_id: int,
    actor_id: int = Depends(get_current_user_id),
    svc: CouponService = Depends(get_coupon_service),
):
    svc.delete_coupon(coupon_id, actor_id=actor_id)
    return Response(status_code=204)
