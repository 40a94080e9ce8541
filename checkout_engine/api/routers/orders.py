# checkout_engine/api/routers/orders.py
from typing import List

from fastapi import APIRouter, Depends

from checkout_engine.api.deps import get_current_user_id, get_order_service
from checkout_engine.domain.schemas import OrderOut
from checkout_engine.services.order_service import OrderService

router = APIRouter(prefix="/orders", tags=["orders"])


@router.get("/", response_model=List[OrderOut])
def list_orders(
    actor_id: int = Depends(get_current_user_id),
    svc: OrderService = Depends(get_order_service),
):
    return svc.list_orders(actor_id)


@router.get("/{order_id}", response_model=OrderOut)
def get_order(
    order_id: int,
    actor_id: int = Depends(get_current_user_id),
    svc: OrderService = Depends(get_order_service),
):
    """
    Pobiera szczegóły zamówienia.
    """
    return svc.get_order(actor_id, order_id)
