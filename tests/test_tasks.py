from assethealth.core.config import settings
from assethealth.health_scoring import tasks
from assethealth.health_scoring.celery_app import celery_app


def test_beat_schedule_runs_daily_task():
    entry = celery_app.conf.beat_schedule["asset-health-daily"]
    assert entry["task"] == "asset_health.daily_recalculation"
    assert entry["schedule"].hour == {settings.DAILY_RUN_HOUR}
    assert entry["schedule"].minute == {settings.DAILY_RUN_MINUTE}


def test_task_runs_without_lock_by_default(monkeypatch):
    calls = []
    monkeypatch.setattr(settings, "RUN_LOCK_ENABLED", False)
    monkeypatch.setattr(tasks, "run_daily_recalculation", lambda run_lock=None: calls.append(run_lock) or {"success": True})

    assert tasks.daily_recalculation_task() == {"success": True}
    assert calls == [None]


def test_task_uses_redis_lock_when_enabled(monkeypatch):
    class FakeRedis:
        def lock(self, name, timeout=None):
            return ("lock", name, timeout)

    calls = []
    monkeypatch.setattr(settings, "RUN_LOCK_ENABLED", True)
    monkeypatch.setattr(tasks.redis.Redis, "from_url", classmethod(lambda cls, url: FakeRedis()))
    monkeypatch.setattr(tasks, "run_daily_recalculation", lambda run_lock=None: calls.append(run_lock) or {"success": True})

    tasks.daily_recalculation_task()

    assert calls == [("lock", "asset_health:daily_run", settings.RUN_LOCK_TIMEOUT_SECONDS)]
