from decimal import Decimal
from typing import Dict, Any
from sqlalchemy.orm import Session
from checkout_engine.data.models.cart import CartModel
from checkout_engine.data.models.cart_item import CartItemModel
from checkout_engine.domain.errors import (
    ConcurrencyConflict,
    CouponRejected,
    NotFound,
    Unauthorized,
    ValidationFailure,
)
from checkout_engine.domain.pricing import cart_total, discounted_unit_price, line_total
from checkout_engine.repos.cart_repo import CartRepo
from checkout_engine.services.catalog_reader import CatalogReader, ProductSnapshot
from checkout_engine.services.coupon_service import CouponService, CouponRejection, normalize_code
from checkout_engine.services.lock_service import LockService
from checkout_engine.utils.logging import get_logger

logger = get_logger(__name__)


def authorize(actor_id: int, user_id: int):
    # zanim cokolwiek przeczytamy z bazy
    if actor_id != user_id:
        raise Unauthorized(
            "Access to another user's cart is forbidden",
            details={"actor_id": actor_id, "user_id": user_id},
        )


def serialize_cart(cart: CartModel, items) -> Dict[str, Any]:
    #dict przeksztalcany w jsona
    return {
        "cart_id": cart.id,
        "user_id": cart.user_id,
        "version": cart.version,
        "items": [
            {
                "product_id": i.product_id,
                "quantity": i.quantity,
                "unit_price": Decimal(str(i.unit_price)),
                "applied_coupon_code": i.applied_coupon_code,
                "line_total": line_total(i.unit_price, i.quantity),
            }
            for i in items
        ],
        "total_price": cart_total(items),
    }


class CartService:
    """
    Koszyk uzytkownika, cqrs jak wczesniej:
    commands (add, remove, clear) modyfikuja stan, query (get) tylko odczyt.
    Kazda komenda bierze lock koszyka w redisie i podbija version (optimistic locking).
    """

    def __init__(
        self,
        db: Session,
        catalog: CatalogReader,
        coupon_service: CouponService,
        lock_service: LockService,
    ):
        self.repo = CartRepo(db)
        self.catalog = catalog
        self.coupon_service = coupon_service
        self.lock_service = lock_service

    #query - odczyt
    def get_cart(self, actor_id: int, user_id: int) -> Dict[str, Any] | None:
        authorize(actor_id, user_id)

        cart = self.repo.get_cart_by_user(user_id)
        if not cart:
            return None

        items = self.repo.get_cart_items(cart.id)
        return serialize_cart(cart, items)

    #commands
    def add_item(
        self,
        actor_id: int,
        user_id: int,
        product_id: int,
        quantity: int,
        coupon_code: str | None = None,
    ) -> Dict[str, Any]:
        authorize(actor_id, user_id)

        if quantity <= 0:
            raise ValidationFailure("Quantity must be greater than 0", code="INVALID_QUANTITY")

        coupon_code = normalize_code(coupon_code)

        with self.lock_service.cart_lock(user_id):
            try:
                product = self.catalog.get_product(product_id)
                cart = self.repo.get_cart_by_user(user_id)
                existing_item = self.repo.get_cart_item(cart.id, product_id) if cart else None

                if existing_item:
                    new_quantity = existing_item.quantity + quantity
                    logger.info(
                        f"Produkt {product_id} juz jest w koszyku uzytkownika {user_id}, "
                        f"zwiekszam ilosc z {existing_item.quantity} do {new_quantity}"
                    )
                    if coupon_code:
                        # kupon podany ponownie - przeliczamy cala pozycje, nie tylko przyrost
                        existing_item.unit_price = self._price_with_coupon(
                            coupon_code, product, new_quantity, user_id
                        )
                        existing_item.applied_coupon_code = coupon_code
                    # bez kuponu cena i kupon pozycji zostaja bez zmian
                    existing_item.quantity = new_quantity
                else:
                    unit_price = product.price
                    if coupon_code:
                        unit_price = self._price_with_coupon(coupon_code, product, quantity, user_id)

                    # koszyk tworzony leniwie, dopiero po udanej walidacji
                    if cart is None:
                        cart = self.repo.create_cart(CartModel(user_id=user_id, version=1))
                        logger.info(f"Utworzono koszyk {cart.id} dla uzytkownika {user_id}")

                    logger.info(f"Dodaje produkt {product_id} do koszyka {cart.id}")
                    self.repo.add_cart_item(
                        CartItemModel(
                            cart_id=cart.id,
                            product_id=product_id,
                            quantity=quantity,
                            unit_price=unit_price,
                            applied_coupon_code=coupon_code,
                        )
                    )

                self._bump_version(cart)
                self.repo.commit()
            except Exception as e:
                logger.error(f"Blad podczas dodawania produktu {product_id}: {e}")
                self.repo.rollback()
                raise

        return self.get_cart(actor_id, user_id)

    def remove_item(self, actor_id: int, user_id: int, product_id: int) -> Dict[str, Any] | None:
        authorize(actor_id, user_id)

        with self.lock_service.cart_lock(user_id):
            cart = self.repo.get_cart_by_user(user_id)
            if cart is None:
                return None

            try:
                removed = self.repo.delete_cart_item(cart.id, product_id)
                if removed:
                    logger.info(f"Usunieto produkt {product_id} z koszyka {cart.id}")
                    self._bump_version(cart)
                self.repo.commit()
            except Exception:
                self.repo.rollback()
                raise

        return self.get_cart(actor_id, user_id)

    def clear_cart(self, actor_id: int, user_id: int) -> None:
        authorize(actor_id, user_id)

        with self.lock_service.cart_lock(user_id):
            cart = self.repo.get_cart_by_user(user_id)
            if cart is None:
                return

            try:
                self.clear_lines(cart)
                self.repo.commit()
            except Exception:
                self.repo.rollback()
                raise

    def clear_lines(self, cart: CartModel) -> int:
        """Czysci pozycje bez commita - uzywane tez wewnatrz transakcji checkoutu."""
        removed = self.repo.clear_items(cart.id)
        if removed:
            self._bump_version(cart)
            logger.info(f"Koszyk {cart.id} wyczyszczony ({removed} pozycji)")
        return removed

    def _price_with_coupon(
        self,
        coupon_code: str,
        product: ProductSnapshot,
        quantity: int,
        user_id: int,
    ) -> Decimal:
        result = self.coupon_service.validate(
            coupon_code, product.id, quantity, product.price, user_id=user_id
        )
        if not result.valid:
            logger.info(f"Kupon {coupon_code} odrzucony dla produktu {product.id}: {result.message}")
            if result.reason == CouponRejection.NOT_FOUND:
                raise NotFound("coupon", coupon_code)
            raise CouponRejected(result.reason, result.message, details=result.details())
        return discounted_unit_price(result.final_total, quantity)

    def _bump_version(self, cart: CartModel):
        # Optimistic locking, np update set version 2 where id 1 and version 1
        rowcount = self.repo.update_cart_version(cart_id=cart.id, old_version=cart.version)
        if rowcount == 0:
            raise ConcurrencyConflict(
                "Cart was modified by another operation",
                details={"cart_id": cart.id},
            )
