from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Optional, Tuple

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from assethealth.core.config import settings
from assethealth.core.exceptions import AssetNotFoundError, CalculationCancelledError, DatastoreError
from . import repository
from .engine import compute_health_score
from .models import AssetFailurePrediction
from .predictions import build_failure_prediction, should_predict
from .schemas import AssetRecord, HealthScoreResult

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]

# Called just before the upsert; returning False abandons the write
WriteGate = Callable[[], bool]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class CalculationResult:
    asset: AssetRecord
    score: HealthScoreResult
    prediction: Optional[AssetFailurePrediction] = None


class AssetHealthService:
    """Calculates and persists the health score of a single asset."""

    def __init__(
        self,
        db: Session,
        clock: Clock = utc_now,
        history_limit: Optional[int] = None,
        write_gate: Optional[WriteGate] = None,
    ):
        self.db = db
        self.clock = clock
        self.history_limit = history_limit or settings.MAINTENANCE_HISTORY_LIMIT
        self.write_gate = write_gate

    def calculate(self, asset_id: str, tenant_id: str) -> HealthScoreResult:
        """Compute and upsert the asset's score.

        Raises AssetNotFoundError when the asset is gone (deleted or wrong
        tenant) and DatastoreError for any read/write failure.
        """
        asset, result = self._compute_and_store(asset_id, tenant_id)
        return result

    def calculate_with_prediction(self, asset_id: str, tenant_id: str) -> CalculationResult:
        asset, result = self._compute_and_store(asset_id, tenant_id)
        prediction = None
        if should_predict(result.risk_level):
            values = build_failure_prediction(result, asset.purchase_cost, result.last_calculated_at)
            try:
                prediction = repository.insert_failure_prediction(self.db, values)
            except SQLAlchemyError as e:
                self.db.rollback()
                raise DatastoreError(f"Failed to save failure prediction: {e}") from e
        return CalculationResult(asset=asset, score=result, prediction=prediction)

    def _compute_and_store(self, asset_id: str, tenant_id: str) -> Tuple[AssetRecord, HealthScoreResult]:
        now = self.clock()
        try:
            asset = repository.get_asset(self.db, asset_id, tenant_id)
            if asset is None:
                raise AssetNotFoundError(asset_id)
            history = repository.get_maintenance_history(self.db, asset_id, tenant_id, limit=self.history_limit)
            schedules = repository.get_active_schedules(self.db, asset_id, tenant_id)
        except SQLAlchemyError as e:
            raise DatastoreError(f"Failed to load asset data: {e}") from e

        result = compute_health_score(asset, history, schedules, now)

        if self.write_gate is not None and not self.write_gate():
            raise CalculationCancelledError(asset_id)

        try:
            repository.upsert_health_score(self.db, result)
        except SQLAlchemyError as e:
            self.db.rollback()
            raise DatastoreError(f"Failed to save health score: {e}") from e

        logger.info(
            f"[AssetHealth] Asset {asset_id}: score={result.score}, risk={result.risk_level.value}, "
            f"trend={result.trend.value}"
        )
        return asset, result
