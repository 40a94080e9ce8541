# checkout_engine/services/order_service.py
from decimal import Decimal
from typing import Any, Dict, List

from sqlalchemy.orm import Session

from checkout_engine.data.models.order import OrderModel
from checkout_engine.domain.errors import NotFound, Unauthorized
from checkout_engine.repos.order_repo import OrderRepo


def serialize_order(order: OrderModel) -> Dict[str, Any]:
    return {
        "id": order.id,
        "user_id": order.user_id,
        "status": order.status,
        "total_price": Decimal(str(order.total_price)),
        "created_at": order.created_at,
        "items": [
            {
                "product_id": i.product_id,
                "quantity": i.quantity,
                "unit_price": Decimal(str(i.unit_price)),
            }
            for i in order.items
        ],
    }


class OrderService:
    """
    Odczyt zamowien (Query). Zamowienia powstaja tylko w CheckoutService
    i po utworzeniu sa niezmienne.
    """

    def __init__(self, db: Session):
        self.db = db
        self.repo = OrderRepo(db)

    def get_order(self, actor_id: int, order_id: int) -> Dict[str, Any]:
        order = self.repo.get_order(order_id)

        if not order:
            raise NotFound("order", order_id)

        if order.user_id != actor_id:
            raise Unauthorized("Access to another user's order is forbidden")

        return serialize_order(order)

    def list_orders(self, actor_id: int) -> List[Dict[str, Any]]:
        return [serialize_order(o) for o in self.repo.list_orders_by_user(actor_id)]
