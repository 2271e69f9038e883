"""
Cutoff calculation for retention policies.

Only fixed-length units are supported. MONTH and YEAR have no fixed length,
so they are rejected instead of being approximated as a number of days.
"""

from datetime import datetime, timedelta, timezone

from .retention_errors import InvalidAmount, UnsupportedGranularity
from .retention_models import Granularity, RetentionPolicy

# to_timestamp() pattern matching format_cutoff()
CUTOFF_PATTERN = "yyyy-MM-dd:HH:mm:ss"

_UNIT_DELTAS = {
    Granularity.DAY: lambda amount: timedelta(days=amount),
    Granularity.HOUR: lambda amount: timedelta(hours=amount),
}


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def compute_cutoff(policy: RetentionPolicy, now: datetime) -> datetime:
    """
    Oldest timestamp that must survive under `policy`, relative to `now`.

    Args:
        policy: Validated retention policy.
        now: Timezone-aware current time.

    Returns:
        Cutoff as an aware UTC datetime.

    Raises:
        UnsupportedGranularity: granularity is MONTH, YEAR or NONE.
        InvalidAmount: amount reaches past the representable datetime range.
    """
    if now.tzinfo is None:
        raise ValueError("now must be timezone-aware")

    delta_for = _UNIT_DELTAS.get(policy.granularity)
    if delta_for is None:
        raise UnsupportedGranularity(policy.granularity)

    try:
        return now.astimezone(timezone.utc) - delta_for(policy.amount)
    except OverflowError:
        raise InvalidAmount(policy.amount)


def format_cutoff(cutoff: datetime) -> str:
    """Render a cutoff as yyyy-MM-dd:HH:mm:ss in UTC."""
    if cutoff.tzinfo is not None:
        cutoff = cutoff.astimezone(timezone.utc)
    # %Y is not zero-padded below year 1000 on every platform
    return f"{cutoff.year:04d}-{cutoff:%m-%d:%H:%M:%S}"
