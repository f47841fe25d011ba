"""Business-rule helpers: expiry badges and DVIR defect triage."""

from .expiry import days_until, expiry_badge, is_expired, within_alert_window
from .dvir import determine_severity, determine_priority, is_critical_defect

__all__ = [
    "days_until",
    "expiry_badge",
    "is_expired",
    "within_alert_window",
    "determine_severity",
    "determine_priority",
    "is_critical_defect",
]
