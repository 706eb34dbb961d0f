# storefront/tasks/expire.py
from storefront.celery_worker import celery_app
from storefront.data.database import SessionLocal
from storefront.repos.cart_repo import CartRepo
from storefront.utils.timeutils import utcnow
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


@celery_app.task(name="storefront.tasks.expire.expire_carts_task")
def expire_carts_task():
    logger.info("Expire carts task started")

    db = SessionLocal()
    try:
        repo = CartRepo(db)
        removed = repo.delete_expired(utcnow())
        repo.commit()
        logger.info(f"Removed {removed} expired carts")
        return removed
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()
