import logging
from typing import Any, Callable, Dict

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from assethealth.alerts.notifiers import Notifier
from assethealth.api.deps import (
    get_alert_notifier,
    get_db,
    get_session_factory,
    verify_api_key_dependency,
)
from assethealth.core.config import settings
from assethealth.core.exceptions import AssetNotFoundError, DatastoreError
from .daily_run import DailyHealthRun
from .schemas import CalculateRequest, CalculateResponse
from .services import AssetHealthService

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix=settings.API_PREFIX,
    tags=["asset-health-internal"],
    dependencies=[Depends(verify_api_key_dependency)],
)


@router.post("/calculate", response_model=CalculateResponse)
def calculate_asset_health(payload: CalculateRequest, db: Session = Depends(get_db)):
    logger.info(f"[AssetHealth] Calculating health for asset {payload.asset_id}")
    svc = AssetHealthService(db)
    try:
        calc = svc.calculate_with_prediction(payload.asset_id, payload.tenant_id)
    except AssetNotFoundError:
        raise HTTPException(status_code=404, detail="Asset not found")
    except DatastoreError as e:
        logger.error(f"❌ [AssetHealth] calculate error for asset {payload.asset_id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to save health score")

    result = calc.score
    return CalculateResponse(
        score=result.score,
        risk_level=result.risk_level,
        trend=result.trend,
        failure_probability=result.failure_probability,
        days_until_predicted_failure=result.days_until_predicted_failure,
    )


@router.post("/daily-run")
def trigger_daily_run(
    session_factory: Callable[[], Session] = Depends(get_session_factory),
    notifier: Notifier = Depends(get_alert_notifier),
) -> Dict[str, Any]:
    report = DailyHealthRun(session_factory=session_factory, notifier=notifier).execute()
    if "error" in report:
        return JSONResponse(status_code=500, content=report)
    return report
