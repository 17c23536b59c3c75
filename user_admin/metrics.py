"""Prometheus counters for account workflows."""

from __future__ import annotations

from prometheus_client import Counter

REGISTRATIONS = Counter(
    "user_admin_registrations_total",
    "Registration attempts by outcome.",
    ["outcome"],
)
LOGINS = Counter(
    "user_admin_logins_total",
    "Login attempts by outcome.",
    ["outcome"],
)
GATE_REJECTIONS = Counter(
    "user_admin_gate_rejections_total",
    "Protected requests rejected by the access gate.",
    ["reason"],
)
BULK_ROWS = Counter(
    "user_admin_bulk_rows_total",
    "Accounts changed by bulk administration operations.",
    ["operation"],
)
