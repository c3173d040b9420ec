"""
Daily asset health recalculation.

Fetches every active asset across all tenants, recalculates health scores in
fixed-size batches (concurrent within a batch, sequential across batches; a
timed-out asset keeps its worker slot until its thread exits and never writes),
then alerts tenants whose assets fell into the high or critical tiers.
"""

import logging
import threading
import time
from concurrent.futures import ThreadPoolExecutor, wait
from typing import Any, Callable, Dict, List, Optional, Sequence

from redis.exceptions import LockError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from assethealth.alerts.aggregator import CriticalAsset, collect_critical_assets, group_by_tenant
from assethealth.alerts.dispatcher import CriticalAssetAlertDispatcher, TenantAlertResult
from assethealth.alerts.notifiers import Notifier, get_notifier
from assethealth.core.config import settings
from assethealth.core.exceptions import CalculationCancelledError, RosterFetchError
from assethealth.db.session import SessionLocal
from . import repository
from .metrics import (
    asset_health_calculations_failed_total,
    asset_health_calculations_success_total,
    asset_health_last_run_duration_ms,
    asset_health_runs_total,
)
from .schemas import AssetFailure, AssetOutcome, AssetSuccess, RiskLevel, RosterEntry
from .services import AssetHealthService, Clock, utc_now

logger = logging.getLogger(__name__)


def chunk(items: Sequence[RosterEntry], size: int) -> List[Sequence[RosterEntry]]:
    return [items[i:i + size] for i in range(0, len(items), size)]


def build_run_report(
    outcomes: Sequence[AssetOutcome],
    critical_assets: Sequence[CriticalAsset],
    alerts: Sequence[TenantAlertResult],
    execution_time_ms: int,
) -> Dict[str, Any]:
    successful = sum(1 for o in outcomes if o.success)
    return {
        "success": True,
        "summary": {
            "total_processed": len(outcomes),
            "successful": successful,
            "failed": len(outcomes) - successful,
            "critical_assets": sum(1 for a in critical_assets if a.risk_level == RiskLevel.CRITICAL.value),
            "high_risk_assets": sum(1 for a in critical_assets if a.risk_level == RiskLevel.HIGH.value),
            "execution_time_ms": execution_time_ms,
        },
        "critical_assets": [a.to_dict() for a in critical_assets],
        "alerts": [a.to_dict() for a in alerts],
    }


class _WriteGate:
    """Decides, once, whether a calculation may write or has been timed out."""

    def __init__(self):
        self._lock = threading.Lock()
        self._state: Optional[str] = None

    def open(self) -> bool:
        with self._lock:
            if self._state == "cancelled":
                return False
            self._state = "writing"
            return True

    def cancel(self) -> bool:
        """False when the write already started and must be waited for."""
        with self._lock:
            if self._state == "writing":
                return False
            self._state = "cancelled"
            return True


class DailyHealthRun:
    def __init__(
        self,
        session_factory: Callable[[], Session] = SessionLocal,
        notifier: Optional[Notifier] = None,
        batch_size: Optional[int] = None,
        asset_timeout: Optional[float] = None,
        clock: Clock = utc_now,
    ):
        self.session_factory = session_factory
        self.notifier = notifier or get_notifier()
        self.batch_size = batch_size or settings.BATCH_SIZE
        self.asset_timeout = asset_timeout or settings.ASSET_TIMEOUT_SECONDS
        self.clock = clock
        # Live calculation threads across the whole run, including ones abandoned by a timeout
        self._slots = threading.BoundedSemaphore(self.batch_size)

    def execute(self) -> Dict[str, Any]:
        start = time.monotonic()
        logger.info("🚀 [AssetHealthRun] Starting daily asset health recalculation...")

        try:
            roster = self.fetch_roster()
        except RosterFetchError as e:
            logger.error(f"❌ [AssetHealthRun] Failed to fetch assets: {e}")
            return {"error": str(e)}

        if not roster:
            logger.info("[AssetHealthRun] No active assets found")
            report = build_run_report([], [], [], self._elapsed_ms(start))
            report["message"] = "No active assets to process"
            self._record_run(report)
            return report

        logger.info(f"[AssetHealthRun] Found {len(roster)} active assets to process")
        outcomes = self.process_roster(roster)

        critical_assets = collect_critical_assets(outcomes)
        dispatcher = CriticalAssetAlertDispatcher(self.session_factory, self.notifier)
        alerts = dispatcher.dispatch(group_by_tenant(outcomes))

        report = build_run_report(outcomes, critical_assets, alerts, self._elapsed_ms(start))
        self._record_run(report)

        s = report["summary"]
        logger.info(
            f"🎉 [AssetHealthRun] Daily health recalculation complete: processed={s['total_processed']}, "
            f"successful={s['successful']}, failed={s['failed']}, critical={s['critical_assets']}, "
            f"high_risk={s['high_risk_assets']}, execution_time={s['execution_time_ms']}ms"
        )
        return report

    def fetch_roster(self) -> List[RosterEntry]:
        db = self.session_factory()
        try:
            return repository.get_active_roster(db)
        except SQLAlchemyError as e:
            raise RosterFetchError(f"Failed to fetch assets: {e}") from e
        finally:
            db.close()

    def process_roster(self, roster: Sequence[RosterEntry]) -> List[AssetOutcome]:
        outcomes: List[AssetOutcome] = []
        batches = chunk(roster, self.batch_size)
        for index, batch in enumerate(batches, start=1):
            outcomes.extend(self._process_batch(batch))
            logger.info(f"[AssetHealthRun] Processed batch {index}/{len(batches)}")
        return outcomes

    def _process_batch(self, batch: Sequence[RosterEntry]) -> List[AssetOutcome]:
        executor = ThreadPoolExecutor(max_workers=len(batch), thread_name_prefix="asset-health")
        deadline = time.monotonic() + self.asset_timeout
        started = []
        outcomes: Dict[str, AssetOutcome] = {}
        try:
            for entry in batch:
                # Blocks while workers abandoned by an earlier batch are still running
                if not self._slots.acquire(timeout=max(0.0, deadline - time.monotonic())):
                    outcomes[entry.id] = self._timed_out(entry, "No free worker")
                    continue
                gate = _WriteGate()
                try:
                    future = executor.submit(self._calculate_one, entry, gate)
                except BaseException:
                    self._slots.release()
                    raise
                started.append((future, entry, gate))
            done, _ = wait([f for f, _, _ in started], timeout=max(0.0, deadline - time.monotonic()))
        finally:
            executor.shutdown(wait=False, cancel_futures=True)

        for future, entry, gate in started:
            if future.cancelled():
                # Dropped from the queue before a worker took it
                self._slots.release()
                outcomes[entry.id] = self._timed_out(entry, "Timed out")
            elif future in done:
                outcomes[entry.id] = future.result()
            elif gate.cancel():
                outcomes[entry.id] = self._timed_out(entry, "Timed out")
            else:
                # The upsert is already in flight; its result stands
                outcomes[entry.id] = future.result()
        return [outcomes[entry.id] for entry in batch]

    def _timed_out(self, entry: RosterEntry, reason: str) -> AssetFailure:
        logger.error(f"⏱️ [AssetHealthRun] Health calculation for asset {entry.id} timed out")
        asset_health_calculations_failed_total.inc()
        return AssetFailure(
            asset_id=entry.id,
            asset_name=entry.name,
            tenant_id=entry.tenant_id,
            error=f"{reason} after {self.asset_timeout}s",
        )

    def _calculate_one(self, entry: RosterEntry, gate: _WriteGate) -> AssetOutcome:
        try:
            return self._calculate(entry, gate)
        finally:
            self._slots.release()

    def _calculate(self, entry: RosterEntry, gate: _WriteGate) -> AssetOutcome:
        db = self.session_factory()
        try:
            repository.set_statement_timeout(db, self.asset_timeout)
            result = AssetHealthService(db, clock=self.clock, write_gate=gate.open).calculate(
                entry.id, entry.tenant_id
            )
        except CalculationCancelledError:
            logger.warning(f"⚠️ [AssetHealthRun] Discarded late result for timed-out asset {entry.id}")
            return AssetFailure(
                asset_id=entry.id,
                asset_name=entry.name,
                tenant_id=entry.tenant_id,
                error="Cancelled after timeout",
            )
        except Exception as e:
            logger.error(f"❌ [AssetHealthRun] Failed to calculate health for asset {entry.id}: {e}")
            asset_health_calculations_failed_total.inc()
            return AssetFailure(
                asset_id=entry.id,
                asset_name=entry.name,
                tenant_id=entry.tenant_id,
                error=str(e) or e.__class__.__name__,
            )
        finally:
            db.close()

        asset_health_calculations_success_total.inc()
        return AssetSuccess(
            asset_id=entry.id,
            asset_name=entry.name,
            tenant_id=entry.tenant_id,
            score=result.score,
            risk_level=result.risk_level,
        )

    @staticmethod
    def _elapsed_ms(start: float) -> int:
        return int((time.monotonic() - start) * 1000)

    @staticmethod
    def _record_run(report: Dict[str, Any]) -> None:
        asset_health_runs_total.inc()
        asset_health_last_run_duration_ms.set(report["summary"]["execution_time_ms"])


def run_daily_recalculation(run_lock=None, **kwargs) -> Dict[str, Any]:
    """Entry point for the scheduler.

    run_lock is any object with acquire(blocking=False)/release(), such as a
    redis Lock. When it is already held the run is skipped.
    """
    if run_lock is not None and not run_lock.acquire(blocking=False):
        logger.warning("⚠️ [AssetHealthRun] Another asset health run is in progress - skipping")
        return {"success": True, "skipped": True, "message": "Another asset health run is in progress"}
    try:
        return DailyHealthRun(**kwargs).execute()
    finally:
        if run_lock is not None:
            try:
                run_lock.release()
            except LockError as e:
                # Lock expired during a long run; the report is still valid
                logger.warning(f"⚠️ [AssetHealthRun] Could not release run lock: {e}")
