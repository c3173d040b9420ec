import logging
from dataclasses import asdict, dataclass
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Sequence

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from assethealth.core.config import settings
from assethealth.core.exceptions import AlertDispatchError
from assethealth.health_scoring import repository
from assethealth.health_scoring.metrics import (
    asset_health_alerts_failed_total,
    asset_health_alerts_sent_total,
)
from assethealth.health_scoring.schemas import Recipient
from .aggregator import CriticalAsset
from .notifiers import AlertEvent, Notifier

logger = logging.getLogger(__name__)


class AlertStatus(str, Enum):
    SENT = "sent"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass
class TenantAlertResult:
    tenant_id: str
    status: AlertStatus
    recipients: int = 0
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        d = asdict(self)
        d["status"] = self.status.value
        return d


def build_alert_title(assets: Sequence[CriticalAsset]) -> str:
    critical = sum(1 for a in assets if a.risk_level == "critical")
    high = sum(1 for a in assets if a.risk_level == "high")
    return f"⚠️ Asset Health Alert: {critical} Critical, {high} High Risk"


def build_alert_body(assets: Sequence[CriticalAsset], max_listed: int = 10) -> str:
    lines = "\n".join(
        f"• {a.name} (Score: {a.score}, Risk: {a.risk_level})" for a in assets[:max_listed]
    )
    body = f"Daily health check identified at-risk assets:\n\n{lines}"
    if len(assets) > max_listed:
        body += f"\n...and {len(assets) - max_listed} more"
    return body


class CriticalAssetAlertDispatcher:
    """Sends one alert per tenant that has high or critical assets.

    Delivery is best effort: a failure for one tenant is reported in that
    tenant's result and never stops the remaining tenants.
    """

    def __init__(
        self,
        session_factory: Callable[[], Session],
        notifier: Notifier,
        recipient_roles: Optional[Sequence[str]] = None,
        max_listed: Optional[int] = None,
    ):
        self.session_factory = session_factory
        self.notifier = notifier
        self.recipient_roles = list(recipient_roles or settings.ALERT_RECIPIENT_ROLES)
        self.max_listed = max_listed or settings.ALERT_MAX_LISTED_ASSETS

    def dispatch(self, by_tenant: Dict[str, List[CriticalAsset]]) -> List[TenantAlertResult]:
        results: List[TenantAlertResult] = []
        for tenant_id, assets in by_tenant.items():
            if not assets:
                continue
            try:
                results.append(self._dispatch_tenant(tenant_id, assets))
            except AlertDispatchError as e:
                logger.error(f"❌ [AssetAlerts] Failed to send critical asset alert for tenant {tenant_id}: {e}")
                asset_health_alerts_failed_total.inc()
                results.append(TenantAlertResult(tenant_id=tenant_id, status=AlertStatus.FAILED, error=str(e)))
        return results

    def resolve_recipients(self, tenant_id: str) -> List[Recipient]:
        db = self.session_factory()
        try:
            return repository.get_alert_recipients(db, tenant_id, self.recipient_roles)
        except SQLAlchemyError as e:
            raise AlertDispatchError(tenant_id, f"Recipient lookup failed: {e}") from e
        finally:
            db.close()

    def _dispatch_tenant(self, tenant_id: str, assets: List[CriticalAsset]) -> TenantAlertResult:
        recipients = self.resolve_recipients(tenant_id)
        if not recipients:
            logger.info(f"[AssetAlerts] No managers found for tenant {tenant_id}")
            return TenantAlertResult(tenant_id=tenant_id, status=AlertStatus.SKIPPED)

        event = AlertEvent(
            tenant_id=tenant_id,
            title=build_alert_title(assets),
            body=build_alert_body(assets, self.max_listed),
            recipients=recipients,
        )
        try:
            self.notifier.send(event)
        except Exception as e:
            raise AlertDispatchError(tenant_id, f"Alert delivery failed: {e}") from e

        asset_health_alerts_sent_total.inc()
        logger.info(f"📣 [AssetAlerts] Alert sent for tenant {tenant_id} to {len(recipients)} recipients")
        return TenantAlertResult(tenant_id=tenant_id, status=AlertStatus.SENT, recipients=len(recipients))
