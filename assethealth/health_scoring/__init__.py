"""Asset health scoring package.

This module contains:
- SQLAlchemy models for the asset register tables read here and the score
  and prediction tables written here
- Pydantic records validating datastore rows at the boundary
- A small, pure engine for the five factors and the composite score
- Services that calculate and persist one asset, and the daily batch run

Endpoints in this package are internal-only.
"""

from .models import (
    Asset,
    AssetFailurePrediction,
    AssetHealthScore,
    MaintenanceHistory,
    MaintenanceSchedule,
)
