# storefront/celery_worker.py
from celery import Celery
from celery.schedules import crontab

from storefront.utils.settings import CELERY_BROKER_URL, CELERY_RESULT_BACKEND

celery_app = Celery(
    "storefront",
    broker=CELERY_BROKER_URL,
    backend=CELERY_RESULT_BACKEND,
)

# tasks have to be imported explicitly or the worker will not register them
celery_app.conf.imports = (
    "storefront.tasks.expire",
    "storefront.tasks.analytics",
    "storefront.services.notification_service",
)

celery_app.conf.beat_schedule = {
    "expire-carts-hourly": {
        "task": "storefront.tasks.expire.expire_carts_task",
        "schedule": 3600.0,
    },
    "daily-stats-rollup": {
        "task": "storefront.tasks.analytics.rollup_daily_stats_task",
        "schedule": crontab(hour=0, minute=15),
    },
}

celery_app.conf.timezone = "UTC"
# failed tasks stay in the result backend as FAILURE
celery_app.conf.task_acks_late = True
celery_app.conf.result_expires = 7 * 24 * 3600
