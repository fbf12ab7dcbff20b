import logging
from collections import defaultdict

from ..errors import (
    CommentTooLong,
    InvalidScore,
    ItemNotFound,
    RecordConflict,
    RecordStoreError,
    RatingWriteFailed,
    SelfRatingForbidden,
)
from .types import RatingRecord, utc_now

logger = logging.getLogger(__name__)

RATINGS = "ratings"
ITEMS = "items"
MIN_SCORE = 1
MAX_SCORE = 10
DEFAULT_COMMENT_MAX = 50


def validate_score(score):
    # bool is an int subclass; True is not a score
    if isinstance(score, bool) or not isinstance(score, int):
        raise InvalidScore(f"Score must be an integer between {MIN_SCORE} and {MAX_SCORE}", score=score)
    if not MIN_SCORE <= score <= MAX_SCORE:
        raise InvalidScore(f"Score must be between {MIN_SCORE} and {MAX_SCORE}", score=score)
    return score


def clean_comment(comment, max_length=DEFAULT_COMMENT_MAX):
    """Raises CommentTooLong when the raw text is past ``max_length``, then strips; blank becomes None."""
    if comment is None:
        return None
    comment = str(comment)
    if len(comment) > max_length:
        raise CommentTooLong(f"Comment is limited to {max_length} characters", length=len(comment))
    return comment.strip() or None


class RatingStore:
    """One rating per (actor, item), kept in the record store's ``ratings`` table."""

    def __init__(self, records, comment_max_length=DEFAULT_COMMENT_MAX, forbid_self_rating=True, now=utc_now):
        self.records = records
        self.comment_max_length = comment_max_length
        self.forbid_self_rating = forbid_self_rating
        self.now = now

    async def _check_item(self, actor_id, item_id):
        try:
            rows = await self.records.query(ITEMS, {"id": item_id}, limit=1)
        except RecordStoreError as e:
            raise RatingWriteFailed(f"Could not load item {item_id}: {e}") from e
        if not rows:
            raise ItemNotFound(f"Item {item_id} does not exist", item_id=item_id)
        if rows[0]["author_id"] == actor_id:
            raise SelfRatingForbidden("You cannot rate your own clip", item_id=item_id)

    async def _existing(self, actor_id, item_id):
        rows = await self.records.query(RATINGS, {"author_id": actor_id, "item_id": item_id}, limit=1)
        return rows[0] if rows else None

    async def rate(self, actor_id, item_id, score, comment=None) -> RatingRecord:
        score = validate_score(score)
        comment = clean_comment(comment, self.comment_max_length)
        if self.forbid_self_rating:
            await self._check_item(actor_id, item_id)

        patch = {"score": score, "comment": comment, "updated_at": self.now()}
        try:
            existing = await self._existing(actor_id, item_id)
            if existing is None:
                try:
                    rec = await self.records.insert(RATINGS, {
                        "author_id": actor_id,
                        "item_id": item_id,
                        "created_at": patch["updated_at"],
                        **patch,
                    })
                    logger.debug("actor %s rated item %s: %s", actor_id, item_id, score)
                    return RatingRecord.from_record(rec)
                except RecordConflict:
                    # inserted concurrently by the same actor; fall through to update
                    existing = await self._existing(actor_id, item_id)
                    if existing is None:
                        raise
            rec = await self.records.update(RATINGS, existing["id"], patch)
        except RecordStoreError as e:
            raise RatingWriteFailed(f"Saving the rating failed: {e}", item_id=item_id) from e
        logger.debug("actor %s re-rated item %s: %s", actor_id, item_id, score)
        return RatingRecord.from_record(rec)

    async def unrate(self, actor_id, item_id) -> bool:
        try:
            existing = await self._existing(actor_id, item_id)
            if existing is None:
                return False
            return await self.records.delete(RATINGS, existing["id"])
        except RecordStoreError as e:
            raise RatingWriteFailed(f"Deleting the rating failed: {e}", item_id=item_id) from e

    async def rating_by(self, actor_id, item_id):
        rec = await self._existing(actor_id, item_id)
        return RatingRecord.from_record(rec) if rec else None

    async def ratings_for(self, item_id):
        rows = await self.records.query(RATINGS, {"item_id": item_id})
        return [RatingRecord.from_record(r) for r in rows]

    async def ratings_by_item(self, item_ids=None):
        """All ratings grouped by item id, in one read."""
        filt = {"item_id": list(item_ids)} if item_ids is not None else None
        grouped = defaultdict(list)
        for r in await self.records.query(RATINGS, filt):
            grouped[r["item_id"]].append(RatingRecord.from_record(r))
        return dict(grouped)
