from datetime import date, timedelta, timezone
from unittest.mock import MagicMock

import pytest
from sqlalchemy.exc import SQLAlchemyError

from assethealth.core.exceptions import (
    AssetNotFoundError,
    CalculationCancelledError,
    DatastoreError,
    NotFoundError,
)
from assethealth.health_scoring import repository
from assethealth.health_scoring.models import AssetFailurePrediction, AssetHealthScore
from assethealth.health_scoring.schemas import RiskLevel, Trend
from assethealth.health_scoring.services import AssetHealthService

from helpers import NOW, TENANT_A, TENANT_B, add_asset, add_critical_asset, add_history, add_schedule


def stored_scores(session_factory):
    session = session_factory()
    try:
        return session.query(AssetHealthScore).all()
    finally:
        session.close()


def row_values(row: AssetHealthScore) -> dict:
    skip = {"id", "last_calculated_at", "updated_at", "created_at"}
    return {c.name: getattr(row, c.name) for c in AssetHealthScore.__table__.columns if c.name not in skip}


def test_calculate_persists_score(db, session_factory, clock):
    asset = add_asset(db, condition_rating="excellent", criticality_level="low")

    result = AssetHealthService(db, clock=clock).calculate(asset.id, TENANT_A)

    assert result.score == 100
    assert result.risk_level == RiskLevel.LOW
    rows = stored_scores(session_factory)
    assert len(rows) == 1
    assert rows[0].asset_id == asset.id
    assert rows[0].tenant_id == TENANT_A
    assert rows[0].score == 100
    assert rows[0].risk_level == "low"
    assert rows[0].trend == "stable"
    assert rows[0].calculation_model_version == "1.0.0"
    assert rows[0].contributing_factors["condition"]["value"] == 100.0


def test_missing_asset_raises_not_found(db, clock):
    with pytest.raises(AssetNotFoundError) as exc:
        AssetHealthService(db, clock=clock).calculate("no-such-asset", TENANT_A)
    assert str(exc.value) == "Asset not found"
    assert isinstance(exc.value, NotFoundError)


def test_asset_in_other_tenant_is_not_found(db, clock):
    asset = add_asset(db, tenant_id=TENANT_B)
    with pytest.raises(AssetNotFoundError):
        AssetHealthService(db, clock=clock).calculate(asset.id, TENANT_A)


def test_soft_deleted_asset_is_not_found(db, clock):
    asset = add_asset(db, deleted_at=NOW - timedelta(days=1))
    with pytest.raises(AssetNotFoundError):
        AssetHealthService(db, clock=clock).calculate(asset.id, TENANT_A)


def test_recalculation_replaces_the_single_row(db, session_factory):
    asset = add_asset(db)
    AssetHealthService(db, clock=lambda: NOW).calculate(asset.id, TENANT_A)

    add_schedule(db, asset, next_due=date(2025, 12, 1))
    later = NOW + timedelta(hours=1)
    AssetHealthService(db, clock=lambda: later).calculate(asset.id, TENANT_A)

    rows = stored_scores(session_factory)
    assert len(rows) == 1
    assert rows[0].maintenance_compliance_pct == 50.0
    assert rows[0].last_calculated_at.replace(tzinfo=timezone.utc) == later


def test_unchanged_data_produces_identical_rows(db, session_factory):
    asset = add_asset(db, installation_date=date(2020, 3, 1), expected_lifespan_years=15)
    add_history(db, asset, date(2025, 6, 1), condition_after="good")
    add_history(db, asset, date(2025, 9, 1), condition_after="fair", was_unplanned=True)

    AssetHealthService(db, clock=lambda: NOW).calculate(asset.id, TENANT_A)
    first = row_values(stored_scores(session_factory)[0])
    AssetHealthService(db, clock=lambda: NOW).calculate(asset.id, TENANT_A)
    second = row_values(stored_scores(session_factory)[0])

    assert first == second


def test_only_twenty_most_recent_records_count(db, clock):
    asset = add_asset(db)
    # Five old unplanned repairs fall outside the window
    for i in range(5):
        add_history(db, asset, date(2020, 1, 1 + i), was_unplanned=True)
    for i in range(20):
        add_history(db, asset, date(2025, 1, 1) + timedelta(days=i))

    result = AssetHealthService(db, clock=clock).calculate(asset.id, TENANT_A)

    assert result.usage_factor == 100.0


def test_history_is_newest_first(db):
    asset = add_asset(db)
    add_history(db, asset, date(2024, 1, 1), condition_after="poor")
    add_history(db, asset, date(2025, 1, 1), condition_after="excellent")

    records = repository.get_maintenance_history(db, asset.id, TENANT_A)

    assert [r.performed_date for r in records] == [date(2025, 1, 1), date(2024, 1, 1)]


def test_trend_from_stored_history(db, clock):
    asset = add_asset(db)
    add_history(db, asset, date(2024, 1, 1), condition_after="poor")
    add_history(db, asset, date(2024, 6, 1), condition_after="poor")
    add_history(db, asset, date(2025, 1, 1), condition_after="excellent")
    add_history(db, asset, date(2025, 6, 1), condition_after="good")

    result = AssetHealthService(db, clock=clock).calculate(asset.id, TENANT_A)

    assert result.trend == Trend.IMPROVING


def test_deleted_history_is_ignored(db, clock):
    asset = add_asset(db)
    add_history(db, asset, date(2025, 1, 1), was_unplanned=True, deleted_at=NOW)

    result = AssetHealthService(db, clock=clock).calculate(asset.id, TENANT_A)

    assert result.usage_factor == 100.0


def test_inactive_and_deleted_schedules_are_ignored(db, clock):
    asset = add_asset(db)
    add_schedule(db, asset, next_due=date(2025, 1, 1), is_active=False)
    add_schedule(db, asset, next_due=date(2025, 1, 1), deleted_at=NOW)
    add_schedule(db, asset, next_due=date(2026, 6, 1))

    result = AssetHealthService(db, clock=clock).calculate(asset.id, TENANT_A)

    assert result.maintenance_compliance_pct == 100.0


def test_closed_write_gate_skips_the_upsert(db, session_factory, clock):
    asset = add_asset(db)
    asked = []

    def gate():
        asked.append(True)
        return False

    with pytest.raises(CalculationCancelledError):
        AssetHealthService(db, clock=clock, write_gate=gate).calculate(asset.id, TENANT_A)

    assert asked == [True]
    assert stored_scores(session_factory) == []


def test_open_write_gate_lets_the_upsert_through(db, session_factory, clock):
    asset = add_asset(db)

    AssetHealthService(db, clock=clock, write_gate=lambda: True).calculate(asset.id, TENANT_A)

    assert len(stored_scores(session_factory)) == 1


def test_statement_timeout_is_postgres_only(db):
    repository.set_statement_timeout(db, 30)
    assert not db.in_transaction()


def test_statement_timeout_on_postgres():
    session = MagicMock()
    session.get_bind.return_value.dialect.name = "postgresql"

    repository.set_statement_timeout(session, 2.5)

    (statement,), _ = session.execute.call_args
    assert str(statement) == "SET LOCAL statement_timeout = 2500"


def test_write_failure_raises_datastore_error(db, clock, monkeypatch):
    asset = add_asset(db)

    def fail(*args, **kwargs):
        raise SQLAlchemyError("disk full")

    monkeypatch.setattr(repository, "upsert_health_score", fail)

    with pytest.raises(DatastoreError, match="disk full"):
        AssetHealthService(db, clock=clock).calculate(asset.id, TENANT_A)


def test_read_failure_raises_datastore_error(db, clock, monkeypatch):
    def fail(*args, **kwargs):
        raise SQLAlchemyError("connection reset")

    monkeypatch.setattr(repository, "get_asset", fail)

    with pytest.raises(DatastoreError, match="connection reset"):
        AssetHealthService(db, clock=clock).calculate("asset-1", TENANT_A)


class TestFailurePredictions:
    def test_critical_asset_gets_a_prediction(self, db, clock):
        asset = add_critical_asset(db, purchase_cost=10000)

        calc = AssetHealthService(db, clock=clock).calculate_with_prediction(asset.id, TENANT_A)

        assert calc.score.risk_level == RiskLevel.CRITICAL
        prediction = calc.prediction
        assert prediction is not None
        assert prediction.asset_id == asset.id
        assert prediction.severity == "critical"
        assert prediction.priority == 1
        assert prediction.predicted_failure_type == "component_degradation"
        assert prediction.estimated_repair_cost == 4000
        assert prediction.cost_if_ignored == 12000
        assert db.query(AssetFailurePrediction).count() == 1

    def test_low_risk_asset_gets_none(self, db, clock):
        asset = add_asset(db, condition_rating="excellent")

        calc = AssetHealthService(db, clock=clock).calculate_with_prediction(asset.id, TENANT_A)

        assert calc.prediction is None
        assert db.query(AssetFailurePrediction).count() == 0

    def test_plain_calculate_never_predicts(self, db, clock):
        asset = add_critical_asset(db)

        AssetHealthService(db, clock=clock).calculate(asset.id, TENANT_A)

        assert db.query(AssetFailurePrediction).count() == 0
