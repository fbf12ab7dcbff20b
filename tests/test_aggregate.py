from datetime import datetime, timedelta, timezone

from cliprate.services.aggregate import average, histogram, latest_first, summarize
from cliprate.services.types import RatingRecord

T0 = datetime(2026, 10, 19, 12, 0, tzinfo=timezone.utc)


def _ratings(*scores):
    return [
        RatingRecord(id=i, author_id=100 + i, item_id=1, score=s, comment=None, created_at=T0 + timedelta(minutes=i))
        for i, s in enumerate(scores, start=1)
    ]


def test_average_rounds_to_one_decimal():
    assert average(_ratings(7, 9, 10)) == 8.7


def test_average_rounds_half_up():
    # 8.25 -> 8.3 (banker's rounding would give 8.2)
    assert average(_ratings(8, 8, 8, 9)) == 8.3


def test_empty_set_is_told_apart_by_count():
    empty = summarize([])
    one = summarize(_ratings(5))
    assert empty.count == 0 and empty.average == 0.0
    assert one.count == 1 and one.average == 5.0


def test_histogram_only_lists_present_scores():
    assert histogram(_ratings(3, 3, 10)) == {3: 2, 10: 1}
    assert summarize(_ratings(3, 3, 10)).to_dict()["histogram"] == {"3": 2, "10": 1}


def test_latest_first_handles_naive_timestamps():
    rs = _ratings(1, 2, 3)
    rs[0].created_at = rs[0].created_at.replace(tzinfo=None) + timedelta(hours=1)
    assert [r.score for r in latest_first(rs)] == [1, 3, 2]
