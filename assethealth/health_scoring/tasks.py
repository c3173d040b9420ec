import logging

import redis
from celery import shared_task

from assethealth.core.config import settings
from .celery_app import celery_app  # noqa: F401
from .daily_run import run_daily_recalculation

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)

RUN_LOCK_NAME = "asset_health:daily_run"


def get_run_lock():
    """Redis lock guarding against overlapping daily runs, or None when disabled."""
    if not settings.RUN_LOCK_ENABLED:
        return None
    client = redis.Redis.from_url(settings.REDIS_URL)
    return client.lock(RUN_LOCK_NAME, timeout=settings.RUN_LOCK_TIMEOUT_SECONDS)


@shared_task(name="asset_health.daily_recalculation")
def daily_recalculation_task() -> dict:
    """Recalculate every active asset's health score and send tenant alerts."""
    return run_daily_recalculation(run_lock=get_run_lock())
