"""Critical asset aggregation and per-tenant alert dispatch."""

from .aggregator import CriticalAsset, collect_critical_assets, group_by_tenant
from .dispatcher import AlertStatus, CriticalAssetAlertDispatcher, TenantAlertResult
from .notifiers import AlertEvent, HttpNotifier, LoggingNotifier, Notifier, get_notifier
