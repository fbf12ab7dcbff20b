from collections import Counter
from datetime import datetime, timezone
from decimal import Decimal, ROUND_HALF_UP

from .types import RatingSummary

_ONE_DECIMAL = Decimal("0.1")
_EPOCH = datetime.min.replace(tzinfo=timezone.utc)


def average(ratings):
    """Mean score to one decimal (half-up). 0.0 for no ratings: check the count."""
    ratings = list(ratings)
    if not ratings:
        return 0.0
    mean = Decimal(sum(r.score for r in ratings)) / Decimal(len(ratings))
    return float(mean.quantize(_ONE_DECIMAL, rounding=ROUND_HALF_UP))


def histogram(ratings):
    return dict(Counter(r.score for r in ratings))


def summarize(ratings):
    ratings = list(ratings)
    return RatingSummary(count=len(ratings), average=average(ratings), histogram=histogram(ratings))


def _sort_key(rating):
    ts = rating.created_at
    if ts is None:
        return _EPOCH
    # SQLite hands back naive datetimes
    return ts if ts.tzinfo else ts.replace(tzinfo=timezone.utc)


def latest_first(ratings):
    return sorted(ratings, key=_sort_key, reverse=True)
