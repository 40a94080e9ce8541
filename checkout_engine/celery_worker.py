# checkout_engine/celery_worker.py
from celery import Celery

from checkout_engine.utils.settings import (
    CELERY_BROKER_URL,
    CELERY_RESULT_BACKEND,
    CELERY_TASK_ALWAYS_EAGER,
    COUPON_SWEEP_INTERVAL_SECONDS,
)

celery_app = Celery(
    "checkout",
    broker=CELERY_BROKER_URL,
    backend=CELERY_RESULT_BACKEND,
)

# taski musza byc zaimportowane zeby Celery je zarejestrowal
celery_app.conf.imports = (
    "checkout_engine.tasks.coupons",
    "checkout_engine.services.notification_service",
)

celery_app.conf.beat_schedule = {
    "deactivate-expired-coupons": {
        "task": "checkout_engine.tasks.coupons.deactivate_expired_coupons_task",
        "schedule": COUPON_SWEEP_INTERVAL_SECONDS,
    },
}

celery_app.conf.timezone = "UTC"
celery_app.conf.task_always_eager = CELERY_TASK_ALWAYS_EAGER
