"""
Hierarchia bledow silnika checkoutu.

    EngineError
    ├── NotFound              (produkt / koszyk / kupon / zamowienie)
    ├── ValidationFailure     (zla ilosc, odrzucony kupon, ...)
    │   └── CouponRejected
    ├── InsufficientStock
    ├── EmptyCart
    ├── TransactionFailure    (rollback na poziomie infrastruktury)
    │   └── ConcurrencyConflict
    └── Unauthorized

Klasy dziedzicza tez po wbudowanych wyjatkach (ValueError, PermissionError, ...)
zeby routery mogly je lapac tak samo jak wczesniej.
"""
from typing import Any, Dict, Optional


class EngineError(Exception):
    default_code: str = "ENGINE_ERROR"

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.code = code or self.default_code
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error": self.__class__.__name__,
            "code": self.code,
            "message": self.message,
            "details": self.details,
        }

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(code={self.code!r}, message={self.message!r})"


class NotFound(EngineError, LookupError):
    default_code = "NOT_FOUND"

    def __init__(self, entity: str, identifier: Any):
        self.entity = entity
        self.identifier = identifier
        super().__init__(
            f"{entity.capitalize()} not found: {identifier}",
            code=f"{entity.upper()}_NOT_FOUND",
            details={"entity": entity, "id": identifier},
        )


class ValidationFailure(EngineError, ValueError):
    default_code = "VALIDATION_FAILURE"


class CouponRejected(ValidationFailure):
    default_code = "COUPON_REJECTED"

    def __init__(self, reason, message: str, details: Optional[Dict[str, Any]] = None):
        self.reason = reason
        super().__init__(message, code=f"COUPON_{reason.value}", details=details)


class InsufficientStock(EngineError):
    default_code = "INSUFFICIENT_STOCK"

    def __init__(self, product_id: int, requested: int, available: int, name: Optional[str] = None):
        self.product_id = product_id
        self.requested = requested
        self.available = available
        label = name or product_id
        super().__init__(
            f"Insufficient stock for product {label} (requested: {requested}, available: {available})",
            details={"product_id": product_id, "requested": requested, "available": available},
        )


class EmptyCart(EngineError):
    default_code = "EMPTY_CART"

    def __init__(self, user_id: int):
        super().__init__("Cart is empty", details={"user_id": user_id})


class TransactionFailure(EngineError, RuntimeError):
    default_code = "TRANSACTION_FAILURE"


class ConcurrencyConflict(TransactionFailure):
    default_code = "CONCURRENCY_CONFLICT"


class Unauthorized(EngineError, PermissionError):
    default_code = "UNAUTHORIZED"
