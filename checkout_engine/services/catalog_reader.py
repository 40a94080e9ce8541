# checkout_engine/services/catalog_reader.py
from dataclasses import dataclass
from decimal import Decimal
from typing import Dict, Iterable

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from checkout_engine.data.models.product import ProductModel
from checkout_engine.domain.errors import NotFound, InsufficientStock
from checkout_engine.utils.logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class ProductSnapshot:
    id: int
    name: str
    price: Decimal
    stock: int

    @classmethod
    def from_model(cls, product: ProductModel) -> "ProductSnapshot":
        return cls(
            id=product.id,
            name=product.name,
            price=Decimal(str(product.price)),
            stock=product.stock,
        )


class CatalogReader:
    """
    Odczyt ceny i stanu produktu.
    Katalog jest w tej samej bazie co zamowienia, wiec dekrementacja stanu
    wchodzi do tej samej transakcji co checkout.
    """

    def __init__(self, db: Session):
        self.db = db

    def get_product(self, product_id: int) -> ProductSnapshot:
        product = self.db.get(ProductModel, product_id)
        if product is None:
            raise NotFound("product", product_id)
        return ProductSnapshot.from_model(product)

    def lock_products(self, product_ids: Iterable[int]) -> Dict[int, ProductSnapshot]:
        # SELECT ... FOR UPDATE, zawsze w tej samej kolejnosci zeby nie bylo deadlockow
        ids = sorted(set(product_ids))
        rows = self.db.execute(
            select(ProductModel)
            .where(ProductModel.id.in_(ids))
            .order_by(ProductModel.id)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalars()
        return {p.id: ProductSnapshot.from_model(p) for p in rows}

    def decrement_stock(self, product_id: int, amount: int) -> None:
        # UPDATE products SET stock = stock - :n WHERE id = :id AND stock >= :n
        result = self.db.execute(
            update(ProductModel)
            .where(ProductModel.id == product_id, ProductModel.stock >= amount)
            .values(stock=ProductModel.stock - amount)
            .execution_options(synchronize_session=False)
        )

        if result.rowcount == 0:
            current = self.db.execute(
                select(ProductModel.stock).where(ProductModel.id == product_id)
            ).scalar_one_or_none()
            if current is None:
                raise NotFound("product", product_id)
            logger.warning(
                f"Conditional stock decrement rejected for product {product_id}: "
                f"requested {amount}, available {current}"
            )
            raise InsufficientStock(product_id, requested=amount, available=current)

        logger.info(f"Stock of product {product_id} decremented by {amount}")
