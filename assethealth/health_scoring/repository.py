from typing import Any, Dict, List, Optional, Sequence

from sqlalchemy import select, text
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.orm import Session

from .models import (
    Asset,
    AssetFailurePrediction,
    AssetHealthScore,
    MaintenanceHistory,
    MaintenanceSchedule,
    Profile,
    UserRoleAssignment,
)
from .schemas import (
    AssetRecord,
    HealthScoreResult,
    MaintenanceRecord,
    MaintenanceScheduleRecord,
    Recipient,
    RosterEntry,
)

ACTIVE_STATUS = "active"


def set_statement_timeout(db: Session, seconds: float) -> None:
    """Bound every statement in the current transaction (Postgres only).

    SET LOCAL lasts until the upsert commits, so the pooled connection goes
    back without the limit.
    """
    if db.get_bind().dialect.name != "postgresql":
        return
    db.execute(text(f"SET LOCAL statement_timeout = {int(seconds * 1000)}"))


def get_active_roster(db: Session) -> List[RosterEntry]:
    stmt = (
        select(Asset.id, Asset.name, Asset.tenant_id)
        .where(Asset.status == ACTIVE_STATUS)
        .where(Asset.deleted_at.is_(None))
        .order_by(Asset.tenant_id, Asset.id)
    )
    return [RosterEntry.model_validate(row) for row in db.execute(stmt)]


def get_asset(db: Session, asset_id: str, tenant_id: str) -> Optional[AssetRecord]:
    asset = (
        db.query(Asset)
        .filter(
            Asset.id == asset_id,
            Asset.tenant_id == tenant_id,
            Asset.deleted_at.is_(None),
        )
        .first()
    )
    return AssetRecord.model_validate(asset) if asset else None


def get_maintenance_history(
    db: Session, asset_id: str, tenant_id: str, limit: int = 20
) -> List[MaintenanceRecord]:
    stmt = (
        select(MaintenanceHistory)
        .where(MaintenanceHistory.asset_id == asset_id)
        .where(MaintenanceHistory.tenant_id == tenant_id)
        .where(MaintenanceHistory.deleted_at.is_(None))
        .order_by(MaintenanceHistory.performed_date.desc())
        .limit(limit)
    )
    return [MaintenanceRecord.model_validate(r) for r in db.execute(stmt).scalars()]


def get_active_schedules(db: Session, asset_id: str, tenant_id: str) -> List[MaintenanceScheduleRecord]:
    stmt = (
        select(MaintenanceSchedule)
        .where(MaintenanceSchedule.asset_id == asset_id)
        .where(MaintenanceSchedule.tenant_id == tenant_id)
        .where(MaintenanceSchedule.is_active == True)
        .where(MaintenanceSchedule.deleted_at.is_(None))
    )
    return [MaintenanceScheduleRecord.model_validate(s) for s in db.execute(stmt).scalars()]


def _insert_for(db: Session):
    dialect = db.get_bind().dialect.name
    if dialect == "postgresql":
        return postgresql.insert
    if dialect == "sqlite":
        return sqlite.insert
    raise NotImplementedError(f"Upsert not supported for dialect {dialect!r}")


def upsert_health_score(db: Session, result: HealthScoreResult) -> None:
    """Insert or replace the single health score row for an asset."""
    values = result.to_row()
    insert = _insert_for(db)
    stmt = insert(AssetHealthScore).values(**values)
    stmt = stmt.on_conflict_do_update(
        index_elements=[AssetHealthScore.asset_id],
        set_={k: v for k, v in values.items() if k != "asset_id"},
    )
    db.execute(stmt)
    db.commit()


def insert_failure_prediction(db: Session, values: Dict[str, Any]) -> AssetFailurePrediction:
    prediction = AssetFailurePrediction(**values)
    db.add(prediction)
    db.commit()
    db.refresh(prediction)
    return prediction


def get_alert_recipients(db: Session, tenant_id: str, roles: Sequence[str]) -> List[Recipient]:
    stmt = (
        select(UserRoleAssignment.user_id, Profile.email, Profile.full_name)
        .join(Profile, Profile.id == UserRoleAssignment.user_id)
        .where(UserRoleAssignment.tenant_id == tenant_id)
        .where(UserRoleAssignment.role_code.in_(list(roles)))
        .distinct()
    )
    return [
        Recipient(user_id=row.user_id, email=row.email, full_name=row.full_name)
        for row in db.execute(stmt)
    ]
