# checkout_engine/services/checkout_service.py
"""
Checkout - zamiana koszyka na zamowienie w jednej transakcji.

    VALIDATING -> RESERVING_STOCK -> PERSISTING -> RECORDING_COUPON_USAGE
               -> CLEARING_CART -> COMMITTED

Kazdy blad przed COMMITTED konczy sie w ABORTED i pelnym rollbackiem:
stan magazynu, zamowienie, liczniki kuponow, ledger i koszyk wygladaja jak
przed wywolaniem.
"""
import enum
from decimal import Decimal
from typing import Any, Dict, List

from sqlalchemy.orm import Session

from checkout_engine.data.models.cart_item import CartItemModel
from checkout_engine.data.models.order import OrderModel, OrderItemModel
from checkout_engine.domain.errors import (
    CouponRejected,
    EmptyCart,
    EngineError,
    InsufficientStock,
    NotFound,
    TransactionFailure,
)
from checkout_engine.domain.pricing import ZERO, line_total, realized_discount
from checkout_engine.repos.cart_repo import CartRepo
from checkout_engine.repos.coupon_repo import CouponRepo
from checkout_engine.repos.order_repo import OrderRepo
from checkout_engine.services.cart_service import CartService, authorize
from checkout_engine.services.catalog_reader import CatalogReader, ProductSnapshot
from checkout_engine.services.coupon_service import CouponRejection
from checkout_engine.services.lock_service import LockService
from checkout_engine.services.notification_service import NotificationService
from checkout_engine.services.order_service import serialize_order
from checkout_engine.services.usage_ledger import UsageLedger
from checkout_engine.utils.logging import get_logger

logger = get_logger(__name__)


class CheckoutState(str, enum.Enum):
    VALIDATING = "VALIDATING"
    RESERVING_STOCK = "RESERVING_STOCK"
    PERSISTING = "PERSISTING"
    RECORDING_COUPON_USAGE = "RECORDING_COUPON_USAGE"
    CLEARING_CART = "CLEARING_CART"
    COMMITTED = "COMMITTED"
    ABORTED = "ABORTED"


_TRANSITIONS = {
    None: CheckoutState.VALIDATING,
    CheckoutState.VALIDATING: CheckoutState.RESERVING_STOCK,
    CheckoutState.RESERVING_STOCK: CheckoutState.PERSISTING,
    CheckoutState.PERSISTING: CheckoutState.RECORDING_COUPON_USAGE,
    CheckoutState.RECORDING_COUPON_USAGE: CheckoutState.CLEARING_CART,
    CheckoutState.CLEARING_CART: CheckoutState.COMMITTED,
}


class CheckoutTransaction:
    """
    Transakcja z jednym punktem commita.
    Wyjscie z bloku `with` bez udanego commit() zawsze robi rollback.
    """

    def __init__(self, db: Session, user_id: int):
        self.db = db
        self.user_id = user_id
        self.state: CheckoutState | None = None
        self.history: List[CheckoutState] = []

    def advance(self, state: CheckoutState):
        expected = _TRANSITIONS.get(self.state)
        if state != expected:
            raise TransactionFailure(
                f"Illegal checkout transition {self.state} -> {state}",
                code="ILLEGAL_TRANSITION",
            )
        self.state = state
        self.history.append(state)
        logger.info(f"Checkout user={self.user_id} state={state.value}")

    def commit(self):
        self.advance(CheckoutState.COMMITTED)
        self.db.commit()

    def __enter__(self) -> "CheckoutTransaction":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if exc_type is None and self.state == CheckoutState.COMMITTED:
            return False

        self.db.rollback()
        failed_at = self.state
        self.state = CheckoutState.ABORTED
        self.history.append(CheckoutState.ABORTED)

        if exc_type is None:
            logger.warning(f"Checkout user={self.user_id} left without commit, rolled back")
            return False

        logger.warning(
            f"Checkout user={self.user_id} aborted in {failed_at.value if failed_at else '-'}: {exc_val!r}"
        )
        if isinstance(exc_val, EngineError):
            return False
        # bledy bazy (SQLAlchemyError) i inne nieoczekiwane -> TransactionFailure
        if isinstance(exc_val, Exception):
            raise TransactionFailure(
                f"Order creation failed: {exc_val}",
                details={"state": failed_at.value if failed_at else None},
            ) from exc_val
        # KeyboardInterrupt, anulowanie itd. - po rollbacku leci dalej
        return False


class CheckoutService:
    def __init__(
        self,
        db: Session,
        catalog: CatalogReader,
        cart_service: CartService,
        lock_service: LockService,
        ledger: UsageLedger | None = None,
        notification_service: NotificationService | None = None,
    ):
        self.db = db
        self.catalog = catalog
        self.cart_service = cart_service
        self.lock_service = lock_service
        self.cart_repo = CartRepo(db)
        self.order_repo = OrderRepo(db)
        self.coupon_repo = CouponRepo(db)
        self.ledger = ledger or UsageLedger(db)
        self.notification_service = notification_service or NotificationService()

    def create_order_from_cart(self, actor_id: int, user_id: int) -> Dict[str, Any]:
        authorize(actor_id, user_id)

        with self.lock_service.cart_lock(user_id):
            cart = self.cart_repo.get_cart_by_user(user_id)
            items = self.cart_repo.get_cart_items(cart.id) if cart else []
            if not items:
                raise EmptyCart(user_id)

            with CheckoutTransaction(self.db, user_id) as tx:
                tx.advance(CheckoutState.VALIDATING)
                products = self._validate_stock(items)

                tx.advance(CheckoutState.RESERVING_STOCK)
                for item in items:
                    self.catalog.decrement_stock(item.product_id, item.quantity)

                tx.advance(CheckoutState.PERSISTING)
                order = self._persist_order(user_id, items)

                tx.advance(CheckoutState.RECORDING_COUPON_USAGE)
                self._record_coupon_usage(user_id, order, items, products)

                tx.advance(CheckoutState.CLEARING_CART)
                self.cart_service.clear_lines(cart)

                tx.commit()

        logger.info(
            f"Order {order.id} created for user {user_id}, "
            f"items={len(order.items)} total={order.total_price}"
        )
        # zamowienie juz zapisane, blad brokera nie moze cofnac odpowiedzi
        try:
            self.notification_service.send_order_notification(user_id, order.id)
        except Exception as e:
            logger.warning(f"Failed to queue notification for order {order.id}: {e}")

        result = serialize_order(order)
        result["order_id"] = order.id
        return result

    def _validate_stock(self, items: List[CartItemModel]) -> Dict[int, ProductSnapshot]:
        # najpierw sprawdzamy WSZYSTKIE pozycje, dopiero potem cokolwiek zmieniamy
        products = self.catalog.lock_products(i.product_id for i in items)

        for item in items:
            product = products.get(item.product_id)
            if product is None:
                raise NotFound("product", item.product_id)
            if item.quantity > product.stock:
                raise InsufficientStock(
                    product.id,
                    requested=item.quantity,
                    available=product.stock,
                    name=product.name,
                )
        return products

    def _persist_order(self, user_id: int, items: List[CartItemModel]) -> OrderModel:
        # ceny z koszyka przepisane 1:1, kuponow juz nie walidujemy
        order_items = [
            OrderItemModel(
                product_id=i.product_id,
                quantity=i.quantity,
                unit_price=Decimal(str(i.unit_price)),
            )
            for i in items
        ]
        total = sum((line_total(oi.unit_price, oi.quantity) for oi in order_items), ZERO)

        order = OrderModel(user_id=user_id, status="PLACED", total_price=total, items=order_items)
        return self.order_repo.add_order(order)

    def _record_coupon_usage(
        self,
        user_id: int,
        order: OrderModel,
        items: List[CartItemModel],
        products: Dict[int, ProductSnapshot],
    ):
        codes = {i.applied_coupon_code for i in items if i.applied_coupon_code}
        if not codes:
            return

        # wszystkie kupony zamowienia blokowane naraz, w kolejnosci id
        coupons = {c.code: c for c in self.coupon_repo.lock_by_codes(codes)}

        # limit per user raz na kupon, zanim zamowienie dopisze cokolwiek do ledgera
        for coupon in coupons.values():
            if coupon.usage_limit_per_user is None:
                continue
            used = self.ledger.count_for_user(coupon.id, user_id)
            if used >= coupon.usage_limit_per_user:
                raise CouponRejected(
                    CouponRejection.LIMIT_EXCEEDED,
                    "Coupon usage limit per user exceeded. Remaining: 0",
                    details={"coupon": coupon.code, "remaining": 0},
                )

        for item in items:
            if not item.applied_coupon_code:
                continue

            coupon = coupons.get(item.applied_coupon_code)
            if coupon is None:
                logger.warning(
                    f"Coupon {item.applied_coupon_code} no longer exists, "
                    f"usage for product {item.product_id} not recorded"
                )
                continue

            # warunkowy update - licznik nie przekroczy limitu nawet przy rownoleglych checkoutach
            if self.coupon_repo.try_increment_usage(coupon.id, item.quantity) == 0:
                self.db.refresh(coupon)
                remaining = max(0, (coupon.usage_limit or 0) - coupon.current_usage_count)
                raise CouponRejected(
                    CouponRejection.LIMIT_EXCEEDED,
                    f"Coupon usage limit exceeded. Remaining: {remaining}",
                    details={"coupon": coupon.code, "remaining": remaining},
                )

            discount = realized_discount(
                products[item.product_id].price, item.unit_price, item.quantity
            )
            self.ledger.record(coupon.id, user_id, item.quantity, discount, order.id)
