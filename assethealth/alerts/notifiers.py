import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Protocol

import requests

from assethealth.core.config import settings
from assethealth.health_scoring.schemas import Recipient

logger = logging.getLogger(__name__)


@dataclass
class AlertEvent:
    tenant_id: str
    title: str
    body: str
    recipients: List[Recipient] = field(default_factory=list)

    def to_payload(self) -> Dict[str, Any]:
        return {
            "tenant_id": self.tenant_id,
            "title": self.title,
            "body": self.body,
            "recipients": [r.model_dump() for r in self.recipients],
        }


class Notifier(Protocol):
    def send(self, event: AlertEvent) -> None:
        ...


class LoggingNotifier:
    """Writes the alert to the log instead of delivering it."""

    def send(self, event: AlertEvent) -> None:
        logger.info(f"[AssetAlerts] Alert for tenant {event.tenant_id}: {event.title}")
        logger.info(f"[AssetAlerts] Would send {len(event.recipients)} notifications for tenant {event.tenant_id}")
        logger.info(f"[AssetAlerts] Alert content: {event.body}")


class HttpNotifier:
    """POSTs alert events to the notification service."""

    def __init__(self, base_url: str, timeout: int = 10, api_key: Optional[str] = None):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.api_key = api_key

    def _headers(self) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["X-API-Key"] = self.api_key
        return headers

    def send(self, event: AlertEvent) -> None:
        url = f"{self.base_url}/api/v1/notifications/asset-health-alerts"
        r = requests.post(url, json=event.to_payload(), headers=self._headers(), timeout=self.timeout)
        r.raise_for_status()


def get_notifier() -> Notifier:
    if settings.NOTIFICATION_SERVICE_URL:
        api_key = settings.VALID_API_KEYS[0] if settings.VALID_API_KEYS else None
        return HttpNotifier(
            settings.NOTIFICATION_SERVICE_URL,
            timeout=settings.NOTIFICATION_TIMEOUT_SECONDS,
            api_key=api_key,
        )
    return LoggingNotifier()
