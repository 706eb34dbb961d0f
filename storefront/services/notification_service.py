# storefront/services/notification_service.py
import smtplib
from datetime import date

from storefront.celery_worker import celery_app
from storefront.data.database import SessionLocal
from storefront.data.models.order import OrderModel
from storefront.data.models.user import UserModel
from storefront.services import mail_service
from storefront.tasks.analytics import rollup_daily_stats_task
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


class NotificationService:
    """
    Fire-and-forget side effects of the order workflow.
    Everything goes through Celery; a broker that is down never fails the
    request that triggered the side effect.
    """

    def send_order_confirmation(self, order_id: int) -> None:
        self._enqueue(send_order_confirmation_task, order_id)

    def send_order_status_update(self, order_id: int, comment: str | None = None) -> None:
        self._enqueue(send_order_status_task, order_id, comment)

    def refresh_daily_stats(self, day: date) -> None:
        self._enqueue(rollup_daily_stats_task, day.isoformat())

    @staticmethod
    def _enqueue(task, *args) -> None:
        try:
            task.delay(*args)
        except Exception as e:
            logger.warning(f"Could not enqueue {task.name}{args}: {e}")


def _load(order_id: int):
    db = SessionLocal()
    try:
        order = db.get(OrderModel, order_id)
        user = db.get(UserModel, order.user_id) if order else None
        return order, user
    finally:
        db.close()


@celery_app.task(
    name="storefront.services.notification_service.send_order_confirmation_task",
    autoretry_for=(smtplib.SMTPException, OSError),
    retry_backoff=5,
    retry_jitter=False,
    max_retries=3,
)
def send_order_confirmation_task(order_id: int):
    order, user = _load(order_id)
    if not order or not user:
        logger.warning(f"[NOTIFICATION] order {order_id} or its owner is gone, nothing to send")
        return {"order_id": order_id, "status": "skipped"}

    sent = mail_service.send_email(mail_service.build_order_confirmation(order, user))
    logger.info(f"[NOTIFICATION] confirmation for order {order.order_number} -> {user.email}")
    return {"order_id": order_id, "status": "sent" if sent else "logged"}


@celery_app.task(
    name="storefront.services.notification_service.send_order_status_task",
    autoretry_for=(smtplib.SMTPException, OSError),
    retry_backoff=5,
    retry_jitter=False,
    max_retries=3,
)
def send_order_status_task(order_id: int, comment: str | None = None):
    order, user = _load(order_id)
    if not order or not user:
        logger.warning(f"[NOTIFICATION] order {order_id} or its owner is gone, nothing to send")
        return {"order_id": order_id, "status": "skipped"}

    sent = mail_service.send_email(mail_service.build_status_update(order, user, comment))
    return {"order_id": order_id, "status": "sent" if sent else "logged"}
