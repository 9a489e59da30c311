# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Prometheus metrics: single source of truth for all metric objects.
Imported by services and middleware. Never instantiated in controllers.
"""

from prometheus_client import Counter, Gauge, Histogram

# ── HTTP Metrics (used by middleware) ──
REQUEST_COUNT = Counter(
    "roster_requests_total",
    "Total HTTP requests to the roster service",
    ["method", "endpoint", "status"],
)
REQUEST_LATENCY = Histogram(
    "roster_request_duration_seconds",
    "Request latency in seconds",
    ["method", "endpoint"],
)
HTTP_ERRORS = Counter(
    "roster_http_errors_total",
    "Total HTTP error responses",
    ["method", "endpoint", "status"],
)

# ── Signup Metrics (updated by service layer only) ──
CLAIMS_TOTAL = Counter(
    "roster_claims_total",
    "Committed role claims",
    ["role"],
)
RELEASES_TOTAL = Counter(
    "roster_releases_total",
    "Committed role releases",
    ["role"],
)
REJECTIONS_TOTAL = Counter(
    "roster_rejections_total",
    "Claim/release requests rejected by the state machine",
    ["reason"],
)
REHYDRATIONS_TOTAL = Counter(
    "roster_rehydrations_total",
    "Events rebuilt from their announcement",
    ["outcome"],
)
ACTIVE_EVENTS = Gauge(
    "roster_active_events",
    "Signup events currently held in memory",
)

# ── Side-effect Metrics ──
LEDGER_SYNC_FAILURES = Counter(
    "roster_ledger_sync_failures_total",
    "Ledger writes that failed after a committed transition",
    ["operation"],
)
CONTROL_UPDATE_FAILURES = Counter(
    "roster_control_update_failures_total",
    "Failed attempts to update announcement controls",
)
NOTIFICATIONS_ARMED = Counter(
    "roster_notifications_armed_total",
    "Group-formed notifications armed",
)
NOTIFICATIONS_CANCELLED = Counter(
    "roster_notifications_cancelled_total",
    "Pending group-formed notifications cancelled by a release",
)
NOTIFICATIONS_SENT = Counter(
    "roster_notifications_sent_total",
    "Group-formed notifications posted",
    ["status"],
)
PENDING_NOTIFICATIONS = Gauge(
    "roster_pending_notifications",
    "Group-formed notifications waiting out the debounce window",
)
