"""Prometheus metrics for monitoring engine runs, over-cap rates, and scenario commits"""

from prometheus_client import Counter, Histogram

# Engine metrics
forecast_counter = Counter(
    "setaside_forecast_total",
    "Total funding forecasts computed",
    ["mode"],  # live | scenario
)

over_cap_counter = Counter(
    "setaside_over_cap_total",
    "Forecasts whose total recommendation exceeded the per-cycle cap",
    ["mode"],
)

stale_obligation_counter = Counter(
    "setaside_stale_obligations_total",
    "Obligations surfaced as stale (no resolvable next occurrence)",
    ["reason"],  # one_off_past_due | schedule_exhausted | ended | no_schedule
)

escalation_fold_counter = Counter(
    "setaside_escalation_folds_total",
    "One-time escalation rules folded into base amounts",
)

# Scenario commits
scenario_commit_conflict_counter = Counter(
    "setaside_scenario_commit_conflicts_total",
    "What-if commits rejected by an optimistic check",
)

# Service health
request_duration_histogram = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency",
    ["method", "endpoint", "status"],
)


def record_forecast(mode: str, over_cap: bool, stale_reasons: list) -> None:
    """Record one engine run"""
    forecast_counter.labels(mode=mode).inc()
    if over_cap:
        over_cap_counter.labels(mode=mode).inc()
    for reason in stale_reasons:
        stale_obligation_counter.labels(reason=reason).inc()
