"""
Shared builders for the asset health test suite.

Rows are committed straight away so worker threads see them through their own
sessions.
"""

import uuid
from datetime import date, datetime, timezone
from typing import List, Optional

from assethealth.alerts.notifiers import AlertEvent
from assethealth.health_scoring.models import (
    Asset,
    MaintenanceHistory,
    MaintenanceSchedule,
    Profile,
    UserRoleAssignment,
)

NOW = datetime(2026, 1, 15, 12, 0, tzinfo=timezone.utc)
TENANT_A = "tenant-a"
TENANT_B = "tenant-b"


class RecordingNotifier:
    def __init__(self, fail_for: Optional[set] = None):
        self.events: List[AlertEvent] = []
        self.fail_for = fail_for or set()

    def send(self, event: AlertEvent) -> None:
        if event.tenant_id in self.fail_for:
            raise ConnectionError("notification service unavailable")
        self.events.append(event)


def add_asset(db, tenant_id: str = TENANT_A, **kwargs) -> Asset:
    values = {
        "id": str(uuid.uuid4()),
        "tenant_id": tenant_id,
        "name": "Fire pump",
        "condition_rating": "good",
        "criticality_level": "medium",
        "status": "active",
    }
    values.update(kwargs)
    asset = Asset(**values)
    db.add(asset)
    db.commit()
    return asset


def add_history(db, asset: Asset, performed_date: date, **kwargs) -> MaintenanceHistory:
    values = {
        "asset_id": asset.id,
        "tenant_id": asset.tenant_id,
        "performed_date": performed_date,
        "maintenance_type": "preventive",
        "was_unplanned": False,
    }
    values.update(kwargs)
    record = MaintenanceHistory(**values)
    db.add(record)
    db.commit()
    return record


def add_schedule(db, asset: Asset, **kwargs) -> MaintenanceSchedule:
    values = {"asset_id": asset.id, "tenant_id": asset.tenant_id, "is_active": True}
    values.update(kwargs)
    schedule = MaintenanceSchedule(**values)
    db.add(schedule)
    db.commit()
    return schedule


def add_manager(db, tenant_id: str = TENANT_A, role_code: str = "hsse_manager", email: Optional[str] = None) -> Profile:
    profile = Profile(id=str(uuid.uuid4()), email=email or f"{uuid.uuid4().hex[:8]}@example.com", full_name="Site Manager")
    db.add(profile)
    db.add(UserRoleAssignment(user_id=profile.id, tenant_id=tenant_id, role_code=role_code))
    db.commit()
    return profile


def add_critical_asset(db, tenant_id: str = TENANT_A, **kwargs) -> Asset:
    """An asset that scores 25 (critical) at NOW."""
    values = {
        "name": "Corroded boiler",
        "condition_rating": "critical",
        "criticality_level": "critical",
        "installation_date": date(2000, 1, 1),
        "expected_lifespan_years": 10,
    }
    values.update(kwargs)
    asset = add_asset(db, tenant_id=tenant_id, **values)
    add_schedule(db, asset, next_due=date(2025, 12, 1))
    add_history(db, asset, date(2025, 11, 1), was_unplanned=True, maintenance_type="corrective")
    return asset
