"""Prometheus metrics for mailbridge.

Defines and exposes operational metrics for monitoring the passcode bridge
and the batch reports.
"""

from prometheus_client import Counter, Histogram

# Passcode bridge metrics
passcode_requests_total = Counter(
    "mailbridge_passcode_requests_total",
    "Total /code resolutions",
    ["provider", "outcome"]  # outcome: found|not_found|error
)

passcode_resolve_seconds = Histogram(
    "mailbridge_passcode_resolve_seconds",
    "Time spent resolving a passcode in seconds",
    ["provider"],
    buckets=[0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0]
)

messages_scanned_total = Counter(
    "mailbridge_messages_scanned_total",
    "Total candidate messages inspected",
    ["provider"]
)

# Report metrics
report_rows_total = Counter(
    "mailbridge_report_rows_total",
    "Total report rows exported",
    ["report"]  # report: lottery|orders|shipping
)
