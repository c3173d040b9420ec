"""Failure prediction records raised for high and critical assets.

Only the on-demand calculation path writes predictions; the daily run keeps
to the health score row alone.
"""

from datetime import datetime, timedelta
from typing import Any, Dict, Optional

from .engine import MODEL_VERSION, round_half_up
from .schemas import HealthScoreResult, RiskLevel

DEFAULT_PREDICTION_HORIZON_DAYS = 90

REPAIR_COST_MULTIPLIERS = {
    RiskLevel.CRITICAL: 0.4,
    RiskLevel.HIGH: 0.25,
    RiskLevel.MEDIUM: 0.15,
    RiskLevel.LOW: 0.05,
}

COST_IF_IGNORED_MULTIPLIERS = {
    RiskLevel.CRITICAL: 1.2,
    RiskLevel.HIGH: 0.8,
    RiskLevel.MEDIUM: 0.4,
    RiskLevel.LOW: 0.1,
}


def should_predict(risk_level: RiskLevel) -> bool:
    return risk_level in (RiskLevel.HIGH, RiskLevel.CRITICAL)


def determine_failure_type(condition: float, age: float, maintenance: float) -> str:
    if condition < 40:
        return "component_degradation"
    if age < 40:
        return "end_of_life"
    if maintenance < 50:
        return "maintenance_neglect"
    return "wear_and_tear"


def generate_recommendation(risk_level: RiskLevel, condition: float, maintenance: float) -> str:
    if risk_level == RiskLevel.CRITICAL:
        return "Immediate inspection required. Schedule emergency maintenance or consider replacement."
    if condition < 50:
        return "Asset condition deteriorating. Schedule comprehensive maintenance soon."
    if maintenance < 60:
        return "Maintenance schedule overdue. Complete pending maintenance tasks."
    return "Monitor closely. Schedule preventive maintenance within the next month."


def estimate_repair_cost(purchase_cost: Optional[float], risk_level: RiskLevel) -> Optional[int]:
    if not purchase_cost:
        return None
    return round_half_up(purchase_cost * REPAIR_COST_MULTIPLIERS[risk_level])


def estimate_cost_if_ignored(purchase_cost: Optional[float], risk_level: RiskLevel) -> Optional[int]:
    if not purchase_cost:
        return None
    return round_half_up(purchase_cost * COST_IF_IGNORED_MULTIPLIERS[risk_level])


def build_failure_prediction(
    result: HealthScoreResult,
    purchase_cost: Optional[float],
    now: datetime,
) -> Dict[str, Any]:
    horizon = result.days_until_predicted_failure or DEFAULT_PREDICTION_HORIZON_DAYS
    return {
        "asset_id": result.asset_id,
        "tenant_id": result.tenant_id,
        "predicted_failure_type": determine_failure_type(
            result.condition_factor, result.age_factor, result.maintenance_compliance_pct
        ),
        "predicted_date": (now + timedelta(days=horizon)).date(),
        "confidence_pct": round_half_up((100 - result.score) * 0.8 + 20),
        "severity": result.risk_level.value,
        "status": "active",
        "recommended_action": generate_recommendation(
            result.risk_level, result.condition_factor, result.maintenance_compliance_pct
        ),
        "model_inputs": {k: v.model_dump() for k, v in result.contributing_factors.items()},
        "prediction_model_version": MODEL_VERSION,
        "priority": 1 if result.risk_level == RiskLevel.CRITICAL else 2,
        "estimated_repair_cost": estimate_repair_cost(purchase_cost, result.risk_level),
        "cost_if_ignored": estimate_cost_if_ignored(purchase_cost, result.risk_level),
    }
