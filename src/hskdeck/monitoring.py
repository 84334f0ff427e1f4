"""Monitoring configuration for the deck."""
from prometheus_client import Counter, Histogram, start_http_server

# Vocabulary metrics
vocabulary_loads = Counter(
    "hskdeck_vocabulary_loads_total",
    "Vocabulary load attempts",
    ["result"],
)

# Session metrics
sessions_started = Counter(
    "hskdeck_sessions_started_total",
    "Total number of study sessions started",
    ["mode"],
)

nothing_to_do = Counter(
    "hskdeck_nothing_to_do_total",
    "Session starts that were ignored because there was nothing to study",
    ["operation"],
)

answers_submitted = Counter(
    "hskdeck_answers_submitted_total",
    "Total number of graded quiz answers",
    ["result"],
)

# Error metrics
error_count = Counter(
    "hskdeck_errors_total",
    "Total number of errors encountered",
    ["error_type"],
)

persistence_errors = Counter(
    "hskdeck_persistence_errors_total",
    "Failed reads and writes of the persisted state",
    ["operation"],
)

# Performance metrics
request_duration = Histogram(
    "hskdeck_request_duration_seconds",
    "Duration of bot requests in seconds",
    ["handler"],
    buckets=[0.1, 0.5, 1.0, 2.0, 5.0],
)


def start_monitoring(port: int = 9090) -> None:
    """Start the Prometheus metrics server."""
    start_http_server(port)
