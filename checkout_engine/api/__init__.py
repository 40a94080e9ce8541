# checkout_engine/api/__init__.py
from fastapi import FastAPI

from checkout_engine.api.errors import register_error_handlers
from checkout_engine.api.routers import carts, coupons, health, orders


def create_app() -> FastAPI:
    app = FastAPI(
        title="Checkout Engine",
        version="1.0.0",
    )

    register_error_handlers(app)

    app.include_router(health.router)
    app.include_router(carts.router)
    app.include_router(orders.router)
    app.include_router(coupons.router)

    return app
