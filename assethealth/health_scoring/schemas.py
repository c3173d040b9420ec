from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class RiskLevel(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class Trend(str, Enum):
    IMPROVING = "improving"
    STABLE = "stable"
    DECLINING = "declining"


# --- Datastore records (validated at the boundary) ---

class RosterEntry(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    tenant_id: str


class AssetRecord(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    tenant_id: str
    name: str
    installation_date: Optional[date] = None
    warranty_expiry_date: Optional[date] = None
    condition_rating: Optional[str] = None
    criticality_level: Optional[str] = None
    expected_lifespan_years: Optional[float] = None
    current_book_value: Optional[float] = None
    purchase_cost: Optional[float] = None
    status: str


class MaintenanceRecord(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    performed_date: date
    maintenance_type: str
    was_unplanned: Optional[bool] = False
    condition_after: Optional[str] = None


class MaintenanceScheduleRecord(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    next_due: Optional[date] = None
    last_performed: Optional[date] = None
    is_active: bool = True


class Recipient(BaseModel):
    user_id: str
    email: Optional[str] = None
    full_name: Optional[str] = None


# --- Computed score ---

class FactorContribution(BaseModel):
    value: float
    weight: float
    contribution: float


class HealthScoreResult(BaseModel):
    asset_id: str
    tenant_id: str
    score: int = Field(..., ge=0, le=100)
    risk_level: RiskLevel
    age_factor: float
    condition_factor: float
    usage_factor: float
    environment_factor: float
    maintenance_compliance_pct: float
    failure_probability: float = Field(..., ge=0.0, le=1.0)
    days_until_predicted_failure: Optional[int] = None
    trend: Trend
    contributing_factors: Dict[str, FactorContribution]
    last_calculated_at: datetime
    calculation_model_version: str

    def to_row(self) -> Dict[str, Any]:
        """Column values for the asset_health_scores upsert."""
        row = self.model_dump(mode="python")
        row["risk_level"] = self.risk_level.value
        row["trend"] = self.trend.value
        row["updated_at"] = self.last_calculated_at
        return row


# --- API payloads ---

class CalculateRequest(BaseModel):
    asset_id: str = Field(..., min_length=1)
    tenant_id: str = Field(..., min_length=1)


class CalculateResponse(BaseModel):
    success: bool = True
    score: int
    risk_level: RiskLevel
    trend: Trend
    failure_probability: float
    days_until_predicted_failure: Optional[int] = None


# --- Batch outcomes ---

@dataclass(frozen=True)
class AssetSuccess:
    asset_id: str
    asset_name: str
    tenant_id: str
    score: int
    risk_level: RiskLevel
    success: bool = True


@dataclass(frozen=True)
class AssetFailure:
    asset_id: str
    asset_name: str
    tenant_id: str
    error: str
    success: bool = False


AssetOutcome = Union[AssetSuccess, AssetFailure]
