import uuid

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.dialects.postgresql import JSONB

from assethealth.db.base import Base

JSONType = JSON().with_variant(JSONB(), "postgresql")


def _uuid() -> str:
    return str(uuid.uuid4())


# --- Tables owned by the asset register (read-only here) ---

class Asset(Base):
    __tablename__ = "hsse_assets"

    id = Column(String(36), primary_key=True, default=_uuid)
    tenant_id = Column(String(36), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    installation_date = Column(Date, nullable=True)
    warranty_expiry_date = Column(Date, nullable=True)
    condition_rating = Column(String(32), nullable=True)  # excellent | good | fair | poor | critical
    criticality_level = Column(String(32), nullable=True)  # low | medium | high | critical
    expected_lifespan_years = Column(Float, nullable=True)
    current_book_value = Column(Float, nullable=True)
    purchase_cost = Column(Float, nullable=True)
    status = Column(String(32), nullable=False, default="active")
    deleted_at = Column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        Index("idx_hsse_assets_status_tenant", "status", "tenant_id"),
    )


class MaintenanceHistory(Base):
    __tablename__ = "asset_maintenance_history"

    id = Column(String(36), primary_key=True, default=_uuid)
    asset_id = Column(String(36), ForeignKey("hsse_assets.id"), nullable=False, index=True)
    tenant_id = Column(String(36), nullable=False, index=True)
    performed_date = Column(Date, nullable=False)
    maintenance_type = Column(String(64), nullable=False)
    was_unplanned = Column(Boolean, nullable=False, default=False)
    condition_after = Column(String(32), nullable=True)
    deleted_at = Column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        Index("idx_maintenance_history_asset_date", "asset_id", "performed_date"),
    )


class MaintenanceSchedule(Base):
    __tablename__ = "asset_maintenance_schedules"

    id = Column(String(36), primary_key=True, default=_uuid)
    asset_id = Column(String(36), ForeignKey("hsse_assets.id"), nullable=False, index=True)
    tenant_id = Column(String(36), nullable=False, index=True)
    next_due = Column(Date, nullable=True)
    last_performed = Column(Date, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    deleted_at = Column(DateTime(timezone=True), nullable=True)


class Profile(Base):
    __tablename__ = "profiles"

    id = Column(String(36), primary_key=True, default=_uuid)
    email = Column(String(255), nullable=True)
    full_name = Column(String(255), nullable=True)


class UserRoleAssignment(Base):
    __tablename__ = "user_role_assignments"

    id = Column(String(36), primary_key=True, default=_uuid)
    user_id = Column(String(36), ForeignKey("profiles.id"), nullable=False, index=True)
    tenant_id = Column(String(36), nullable=False, index=True)
    role_code = Column(String(64), nullable=False)


# --- Tables written by the health engine ---

class AssetHealthScore(Base):
    __tablename__ = "asset_health_scores"

    id = Column(String(36), primary_key=True, default=_uuid)
    asset_id = Column(String(36), ForeignKey("hsse_assets.id"), nullable=False)
    tenant_id = Column(String(36), nullable=False, index=True)

    score = Column(Integer, nullable=False)
    risk_level = Column(String(16), nullable=False, index=True)
    age_factor = Column(Float, nullable=False)
    condition_factor = Column(Float, nullable=False)
    usage_factor = Column(Float, nullable=False)
    environment_factor = Column(Float, nullable=False)
    maintenance_compliance_pct = Column(Float, nullable=False)
    failure_probability = Column(Float, nullable=False)
    days_until_predicted_failure = Column(Integer, nullable=True)
    trend = Column(String(16), nullable=False)
    contributing_factors = Column(JSONType, nullable=False)  # per-factor value/weight/contribution

    last_calculated_at = Column(DateTime(timezone=True), nullable=False)
    calculation_model_version = Column(String(16), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    __table_args__ = (
        UniqueConstraint("asset_id", name="uq_asset_health_scores_asset_id"),
    )


class AssetFailurePrediction(Base):
    __tablename__ = "asset_failure_predictions"

    id = Column(String(36), primary_key=True, default=_uuid)
    asset_id = Column(String(36), ForeignKey("hsse_assets.id"), nullable=False, index=True)
    tenant_id = Column(String(36), nullable=False, index=True)
    predicted_failure_type = Column(String(64), nullable=False)
    predicted_date = Column(Date, nullable=False)
    confidence_pct = Column(Integer, nullable=False)
    severity = Column(String(16), nullable=False)
    status = Column(String(16), nullable=False, default="active")
    recommended_action = Column(Text, nullable=False)
    model_inputs = Column(JSONType, nullable=False)
    prediction_model_version = Column(String(16), nullable=False)
    priority = Column(Integer, nullable=False)
    estimated_repair_cost = Column(Float, nullable=True)
    cost_if_ignored = Column(Float, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
