from dataclasses import asdict, dataclass
from typing import Any, Dict, List, Sequence

from assethealth.health_scoring.schemas import AssetOutcome, AssetSuccess, RiskLevel

ALERT_RISK_LEVELS = (RiskLevel.CRITICAL, RiskLevel.HIGH)


@dataclass(frozen=True)
class CriticalAsset:
    id: str
    name: str
    score: int
    risk_level: str
    tenant_id: str

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def collect_critical_assets(outcomes: Sequence[AssetOutcome]) -> List[CriticalAsset]:
    """Successful outcomes in the high or critical tier, in outcome order."""
    return [
        CriticalAsset(
            id=o.asset_id,
            name=o.asset_name,
            score=o.score,
            risk_level=o.risk_level.value,
            tenant_id=o.tenant_id,
        )
        for o in outcomes
        if isinstance(o, AssetSuccess) and o.risk_level in ALERT_RISK_LEVELS
    ]


def group_by_tenant(outcomes: Sequence[AssetOutcome]) -> Dict[str, List[CriticalAsset]]:
    grouped: Dict[str, List[CriticalAsset]] = {}
    for asset in collect_critical_assets(outcomes):
        grouped.setdefault(asset.tenant_id, []).append(asset)
    return grouped
