"""Factor calculators and the composite health score.

Everything here is a pure function of the asset record, its maintenance
history and its active schedules, so the scoring model can be unit-tested
without a database.
"""

import math
from datetime import date, datetime, time, timedelta, timezone
from typing import Dict, List, Optional, Sequence

from .schemas import (
    AssetRecord,
    FactorContribution,
    HealthScoreResult,
    MaintenanceRecord,
    MaintenanceScheduleRecord,
    RiskLevel,
    Trend,
)

MODEL_VERSION = "1.0.0"

WEIGHTS: Dict[str, float] = {
    "age": 0.25,
    "condition": 0.30,
    "maintenance": 0.20,
    "usage": 0.15,
    "environment": 0.10,
}

CONDITION_SCORES: Dict[str, int] = {
    "excellent": 100,
    "good": 80,
    "fair": 60,
    "poor": 30,
    "critical": 10,
}
CONDITION_DEFAULT = 70

CRITICALITY_SCORES: Dict[str, int] = {
    "low": 100,
    "medium": 85,
    "high": 70,
    "critical": 55,
}
CRITICALITY_DEFAULT = CRITICALITY_SCORES["medium"]

# Upper bounds (exclusive), checked lowest first
RISK_THRESHOLDS = (
    (40, RiskLevel.CRITICAL),
    (55, RiskLevel.HIGH),
    (70, RiskLevel.MEDIUM),
)

DAYS_PER_YEAR = 365.25
SECONDS_PER_DAY = 24 * 60 * 60
TREND_WINDOW = 5
TREND_DELTA = 5


def round_half_up(value: float) -> int:
    """Round .5 away from zero for positive values (Python's round() is banker's)."""
    return int(math.floor(value + 0.5))


def as_utc_datetime(value: date) -> datetime:
    """Dates are treated as UTC midnight; naive datetimes are assumed UTC."""
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    return datetime.combine(value, time.min, tzinfo=timezone.utc)


def add_years(start: datetime, years: float) -> datetime:
    whole = int(years)
    try:
        shifted = start.replace(year=start.year + whole)
    except ValueError:
        # Feb 29 shifted into a non-leap year
        shifted = start.replace(year=start.year + whole, month=3, day=1)
    return shifted + timedelta(days=(years - whole) * DAYS_PER_YEAR)


# --- Factors ---

def age_factor(
    installation_date: Optional[date],
    expected_lifespan_years: Optional[float],
    now: datetime,
) -> float:
    if not installation_date or not expected_lifespan_years:
        return 100.0
    age_seconds = (now - as_utc_datetime(installation_date)).total_seconds()
    age_years = age_seconds / (DAYS_PER_YEAR * SECONDS_PER_DAY)
    age_ratio = age_years / expected_lifespan_years
    return max(0.0, min(100.0, 100 - age_ratio * 80))


def condition_factor(condition_rating: Optional[str]) -> float:
    if not condition_rating:
        return float(CONDITION_DEFAULT)
    return float(CONDITION_SCORES.get(condition_rating, CONDITION_DEFAULT))


def maintenance_compliance(
    schedules: Sequence[MaintenanceScheduleRecord],
    now: datetime,
) -> float:
    active = [s for s in schedules if s.is_active]
    if not active:
        return 100.0
    overdue = sum(
        1 for s in active
        if s.next_due is not None and as_utc_datetime(s.next_due) < now
    )
    return max(0.0, 100 - (overdue / len(active)) * 50)


def usage_factor(history: Sequence[MaintenanceRecord]) -> float:
    if not history:
        return 100.0
    unplanned = sum(1 for m in history if m.was_unplanned)
    return max(20.0, 100 - (unplanned / len(history)) * 60)


def environment_factor(criticality_level: Optional[str]) -> float:
    if not criticality_level:
        return float(CRITICALITY_DEFAULT)
    return float(CRITICALITY_SCORES.get(criticality_level, CRITICALITY_DEFAULT))


# --- Composite ---

def contributing_factors(factors: Dict[str, float]) -> Dict[str, FactorContribution]:
    return {
        name: FactorContribution(
            value=factors[name],
            weight=weight,
            contribution=factors[name] * weight,
        )
        for name, weight in WEIGHTS.items()
    }


def composite_score(factors: Dict[str, float]) -> int:
    total = sum(factors[name] * weight for name, weight in WEIGHTS.items())
    return round_half_up(total)


def classify_risk(score: int) -> RiskLevel:
    for upper, level in RISK_THRESHOLDS:
        if score < upper:
            return level
    return RiskLevel.LOW


def failure_probability(score: int) -> float:
    return max(0, min(100, 100 - score)) / 100


def predict_days_until_failure(
    installation_date: Optional[date],
    expected_lifespan_years: Optional[float],
    score: int,
    now: datetime,
) -> Optional[int]:
    """Remaining calendar lifespan, shortened in proportion to the health score.

    Returns None when either input is missing.
    """
    if not installation_date or not expected_lifespan_years:
        return None
    end_of_life = add_years(as_utc_datetime(installation_date), expected_lifespan_years)
    days_remaining = max(0.0, (end_of_life - now).total_seconds() / SECONDS_PER_DAY)
    return round_half_up(days_remaining * (score / 100))


def determine_trend(history: Sequence[MaintenanceRecord]) -> Trend:
    """Compare the two most recent post-maintenance conditions with the two oldest
    in the last five assessed records. History must be newest first."""
    conditions: List[int] = [
        CONDITION_SCORES.get(m.condition_after, CONDITION_DEFAULT)
        for m in history
        if m.condition_after
    ][:TREND_WINDOW]
    if len(conditions) < 2:
        return Trend.STABLE

    avg_recent = sum(conditions[:2]) / 2
    avg_older = sum(conditions[-2:]) / 2
    if avg_recent > avg_older + TREND_DELTA:
        return Trend.IMPROVING
    if avg_recent < avg_older - TREND_DELTA:
        return Trend.DECLINING
    return Trend.STABLE


def compute_health_score(
    asset: AssetRecord,
    history: Sequence[MaintenanceRecord],
    schedules: Sequence[MaintenanceScheduleRecord],
    now: datetime,
) -> HealthScoreResult:
    factors = {
        "age": age_factor(asset.installation_date, asset.expected_lifespan_years, now),
        "condition": condition_factor(asset.condition_rating),
        "maintenance": maintenance_compliance(schedules, now),
        "usage": usage_factor(history),
        "environment": environment_factor(asset.criticality_level),
    }
    score = composite_score(factors)

    return HealthScoreResult(
        asset_id=asset.id,
        tenant_id=asset.tenant_id,
        score=score,
        risk_level=classify_risk(score),
        age_factor=factors["age"],
        condition_factor=factors["condition"],
        usage_factor=factors["usage"],
        environment_factor=factors["environment"],
        maintenance_compliance_pct=factors["maintenance"],
        failure_probability=failure_probability(score),
        days_until_predicted_failure=predict_days_until_failure(
            asset.installation_date, asset.expected_lifespan_years, score, now
        ),
        trend=determine_trend(history),
        contributing_factors=contributing_factors(factors),
        last_calculated_at=now,
        calculation_model_version=MODEL_VERSION,
    )
