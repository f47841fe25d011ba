"""
Expiry Badges

Buckets dated documents (CDLs, medical cards, insurance certificates,
permits) into OK / Expiring / Expired for dashboards and alerts.
"""

from datetime import date, datetime
from typing import Optional, Union

from ..config import settings
from ..models.enums import ExpiryBadge

DateLike = Union[date, datetime, str, None]


def _as_date(value: DateLike) -> Optional[date]:
    """Coerce a date, datetime or ISO string into a date."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value)[:10])


def days_until(expiration: DateLike, today: Optional[date] = None) -> Optional[int]:
    """
    Whole days from today until the expiration date.

    Args:
        expiration: Expiration date (date, datetime or ISO string)
        today: Reference date, defaults to the current UTC date

    Returns:
        Days remaining (0 on the expiration day, negative after), or None
    """
    expires_on = _as_date(expiration)
    if expires_on is None:
        return None
    today = today or datetime.utcnow().date()
    return (expires_on - today).days


def expiry_badge(
    expiration: DateLike,
    today: Optional[date] = None,
    expiring_within: Optional[int] = None,
) -> Optional[ExpiryBadge]:
    """
    Bucket an expiration date.

    Expired at zero days or fewer, Expiring within the warning window,
    OK beyond it. No date means no badge.
    """
    days = days_until(expiration, today=today)
    if days is None:
        return None

    window = settings.EXPIRING_SOON_DAYS if expiring_within is None else expiring_within
    if days <= 0:
        return ExpiryBadge.EXPIRED
    if days <= window:
        return ExpiryBadge.EXPIRING
    return ExpiryBadge.OK


def within_alert_window(
    expiration: DateLike,
    upcoming_days: int,
    today: Optional[date] = None,
) -> bool:
    """True when the date is already past or falls within the next N days."""
    days = days_until(expiration, today=today)
    return days is not None and days <= upcoming_days


def is_expired(expiration: DateLike, today: Optional[date] = None) -> bool:
    """Expiration date strictly before today."""
    days = days_until(expiration, today=today)
    return days is not None and days < 0
