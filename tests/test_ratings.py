import asyncio
from datetime import datetime, timedelta, timezone

import pytest

from cliprate.errors import (
    CommentTooLong, InvalidScore, ItemNotFound, RecordStoreError, RatingWriteFailed, SelfRatingForbidden,
)
from cliprate.services.ratings import RatingStore

T0 = datetime(2026, 10, 19, 9, 0, tzinfo=timezone.utc)


class Ticker:
    def __init__(self):
        self.t = T0

    def __call__(self):
        self.t = self.t + timedelta(seconds=1)
        return self.t


@pytest.fixture
def item(records):
    records.add("users", email="a@x.io", name="Author", country="FR")
    return records.add("items", author_id=1, blob_path="1/1.webm", created_at=T0)


@pytest.fixture
def store(records):
    return RatingStore(records, now=Ticker())


def test_rate_twice_keeps_one_rating_with_original_identity(store, item):
    async def run():
        first = await store.rate(2, item["id"], 4, "meh")
        second = await store.rate(2, item["id"], 9, "grew on me")
        return first, second, await store.ratings_for(item["id"])

    first, second, all_ratings = asyncio.run(run())
    assert len(all_ratings) == 1
    assert second.id == first.id
    assert second.created_at == first.created_at
    assert (second.score, second.comment) == (9, "grew on me")
    assert second.updated_at > first.updated_at


def test_unrate_then_rate_gives_single_entry(store, item):
    async def run():
        await store.rate(2, item["id"], 6)
        removed = await store.unrate(2, item["id"])
        again = await store.unrate(2, item["id"])
        await store.rate(2, item["id"], 8)
        return removed, again, await store.ratings_for(item["id"])

    removed, again, ratings = asyncio.run(run())
    assert removed is True
    assert again is False
    assert [r.score for r in ratings] == [8]


@pytest.mark.parametrize("score", [0, 11, -3, 5.5, "7", None, True])
def test_invalid_scores_rejected(store, item, score):
    with pytest.raises(InvalidScore):
        asyncio.run(store.rate(2, item["id"], score))


def test_comment_limit_is_fifty_characters(store, item):
    rating = asyncio.run(store.rate(2, item["id"], 5, "x" * 50))
    assert rating.comment == "x" * 50
    with pytest.raises(CommentTooLong):
        asyncio.run(store.rate(2, item["id"], 5, "x" * 51))


def test_blank_comment_is_stored_as_none(store, item):
    assert asyncio.run(store.rate(2, item["id"], 5, "   ")).comment is None


@pytest.mark.parametrize("comment", [" " + "x" * 50, "x" * 50 + " ", " " * 51])
def test_comment_length_counts_surrounding_whitespace(store, item, comment):
    with pytest.raises(CommentTooLong):
        asyncio.run(store.rate(2, item["id"], 5, comment))


def test_comment_is_stripped_after_length_check(store, item):
    assert asyncio.run(store.rate(2, item["id"], 5, " " + "x" * 48 + " ")).comment == "x" * 48


def test_cannot_rate_own_item(store, item):
    with pytest.raises(SelfRatingForbidden):
        asyncio.run(store.rate(1, item["id"], 10))


def test_self_rating_allowed_when_guard_disabled(records, item):
    store = RatingStore(records, forbid_self_rating=False)
    assert asyncio.run(store.rate(1, item["id"], 10)).score == 10


def test_unknown_item(store):
    with pytest.raises(ItemNotFound):
        asyncio.run(store.rate(2, 404, 5))


def test_store_failure_is_rating_write_failed(store, item, records):
    records.fail[("insert", "ratings")] = RecordStoreError("db gone")
    with pytest.raises(RatingWriteFailed):
        asyncio.run(store.rate(2, item["id"], 5))


def test_ratings_by_item_groups_and_rating_by(store, records, item):
    other = records.add("items", author_id=1, blob_path="1/2.webm", created_at=T0)

    async def run():
        await store.rate(2, item["id"], 3)
        await store.rate(3, item["id"], 7)
        await store.rate(2, other["id"], 10)
        return await store.ratings_by_item(), await store.rating_by(3, item["id"]), await store.rating_by(3, other["id"])

    grouped, mine, none = asyncio.run(run())
    assert sorted(r.score for r in grouped[item["id"]]) == [3, 7]
    assert [r.score for r in grouped[other["id"]]] == [10]
    assert mine.score == 7
    assert none is None
