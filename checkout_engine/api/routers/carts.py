#checkout_engine/api/routers/carts.py
from fastapi import APIRouter, Depends, HTTPException, Response

from checkout_engine.api.deps import get_cart_service, get_checkout_service, get_current_user_id
from checkout_engine.domain.schemas import CartOut, CheckoutOut, ItemIn
from checkout_engine.services.cart_service import CartService
from checkout_engine.services.checkout_service import CheckoutService

router = APIRouter(prefix="/carts", tags=["carts"])


@router.get("/{user_id}", response_model=CartOut)
def get_cart(
    user_id: int,
    actor_id: int = Depends(get_current_user_id),
    svc: CartService = Depends(get_cart_service),
):
    cart = svc.get_cart(actor_id, user_id)
    if not cart:
        raise HTTPException(status_code=404, detail="Cart not found")
    return cart


@router.post("/{user_id}/items", response_model=CartOut)
def add_item(
    user_id: int,
    payload: ItemIn,
    actor_id: int = Depends(get_current_user_id),
    svc: CartService = Depends(get_cart_service),
):
    return svc.add_item(
        actor_id=actor_id,
        user_id=user_id,
        product_id=payload.product_id,
        quantity=payload.quantity,
        coupon_code=payload.coupon_code,
    )


@router.delete("/{user_id}/items/{product_id}", response_model=CartOut)
def remove_item(
    user_id: int,
    product_id: int,
    actor_id: int = Depends(get_current_user_id),
    svc: CartService = Depends(get_cart_service),
):
    cart = svc.remove_item(actor_id, user_id, product_id)
    if cart is None:
        return Response(status_code=204)
    return cart


@router.delete("/{user_id}", status_code=204)
def clear_cart(
    user_id: int,
    actor_id: int = Depends(get_current_user_id),
    svc: CartService = Depends(get_cart_service),
):
    svc.clear_cart(actor_id, user_id)
    return Response(status_code=204)


@router.post("/{user_id}/checkout", response_model=CheckoutOut, status_code=201)
def checkout(
    user_id: int,
    actor_id: int = Depends(get_current_user_id),
    svc: CheckoutService = Depends(get_checkout_service),
):
    """
    Zamienia koszyk w zamowienie (atomowo).
    Powiadomienie wysylane asynchronicznie po commicie.
    """
    return svc.create_order_from_cart(actor_id, user_id)
