from celery import Celery
from celery.schedules import crontab

from assethealth.core.config import settings


celery_app = Celery(
    "asset_health",
    broker=settings.broker_url,
    backend=settings.CELERY_RESULT_BACKEND or None,
)

celery_app.conf.update(
    task_acks_late=True,
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    worker_prefetch_multiplier=1,
    timezone="UTC",
    include=["assethealth.health_scoring.tasks"],
)

# Celery Beat schedule for the daily recalculation
celery_app.conf.beat_schedule = {
    "asset-health-daily": {
        "task": "asset_health.daily_recalculation",
        "schedule": crontab(hour=settings.DAILY_RUN_HOUR, minute=settings.DAILY_RUN_MINUTE),
    },
}
