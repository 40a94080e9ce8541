# checkout_engine/services/notification_service.py
from checkout_engine.celery_worker import celery_app
from checkout_engine.utils.logging import get_logger

logger = get_logger(__name__)


class NotificationService:
    """
    Powiadomienie o zlozonym zamowieniu.
    Wysylane asynchronicznie przez Celery, dopiero po commicie checkoutu.
    """

    @staticmethod
    def send_order_notification(user_id: int, order_id: int):
        send_order_notification_task.delay(user_id, order_id)


@celery_app.task(name="checkout_engine.services.notification_service.send_order_notification_task")
def send_order_notification_task(user_id: int, order_id: int):
    """
    Celery task - tu bylby email/push do klienta.
    Teraz tylko loguje.
    """
    logger.info(f"[NOTIFICATION] User {user_id}: Order {order_id} has been placed")

    return {"user_id": user_id, "order_id": order_id, "status": "sent"}
