from prometheus_client import Counter, Gauge


asset_health_runs_total = Counter(
    "asset_health_runs_total",
    "Total daily asset health runs completed",
)

asset_health_calculations_success_total = Counter(
    "asset_health_calculations_success_total",
    "Total successful asset health calculations",
)

asset_health_calculations_failed_total = Counter(
    "asset_health_calculations_failed_total",
    "Total failed asset health calculations",
)

asset_health_alerts_sent_total = Counter(
    "asset_health_alerts_sent_total",
    "Total tenant alerts handed to the notifier",
)

asset_health_alerts_failed_total = Counter(
    "asset_health_alerts_failed_total",
    "Total tenant alerts that failed recipient lookup or delivery",
)

asset_health_last_run_duration_ms = Gauge(
    "asset_health_last_run_duration_ms",
    "Wall-clock duration of the most recent daily run in milliseconds",
)
