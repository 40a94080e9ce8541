# checkout_engine/tasks/coupons.py
from checkout_engine.celery_worker import celery_app
from checkout_engine.data.database import SessionLocal
from checkout_engine.services.coupon_service import CouponService
from checkout_engine.utils.logging import get_logger

logger = get_logger(__name__)


@celery_app.task(name="checkout_engine.tasks.coupons.deactivate_expired_coupons_task")
def deactivate_expired_coupons_task():
    logger.info("Deactivate expired coupons task started")

    db = SessionLocal()
    try:
        count = CouponService(db).deactivate_expired()
        logger.info(f"Deactivated {count} coupons")
        return count
    finally:
        db.close()
