# app/tasks/celery_app.py
from celery import Celery
from app.core.config import settings
from app.db.redis import redis_url

celery_app = Celery(
    "worker",
    broker=redis_url(),
    backend=redis_url(),
    include=["app.tasks.maintenance"],
)

celery_app.conf.task_routes = {
    "app.tasks.maintenance.*": {"queue": "maintenance"},
}

celery_app.conf.beat_schedule = {
    "cleanup-expired-verifications": {
        "task": "app.tasks.maintenance.cleanup_expired_verifications",
        "schedule": 15 * 60,
    },
    "fail-stale-processing-orders": {
        "task": "app.tasks.maintenance.fail_stale_processing_orders",
        "schedule": max(60, settings.PAYMENT_PROCESSING_STALE_SECONDS // 2),
    },
}

celery_app.conf.timezone = 'UTC'
