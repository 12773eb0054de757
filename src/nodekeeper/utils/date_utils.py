import re
from datetime import datetime, timedelta, timezone

_DURATION_PATTERN = re.compile(r"^(\d+)([smh])$")
_UNITS = {"s": "seconds", "m": "minutes", "h": "hours"}


def parse_duration(value: str) -> timedelta:
    """
    Parses a duration string like '20s', '5m' or '24h' into a timedelta.

    Raises:
        ValueError: If the string does not match '<number><s|m|h>'.
    """
    match = _DURATION_PATTERN.match(str(value).strip().lower())
    if not match:
        raise ValueError(f"Invalid duration format: '{value}'. Use 's', 'm', or 'h'.")
    return timedelta(**{_UNITS[match.group(2)]: int(match.group(1))})


def to_iso_z(dt: datetime) -> str:
    """
    Converts a datetime to the RFC 3339 form Kubernetes stores (second
    precision, 'Z' suffix). Naive datetimes are taken to be UTC.
    """
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc).replace(microsecond=0).isoformat().replace("+00:00", "Z")
