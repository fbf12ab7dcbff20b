import logging

from ..errors import FeedUnavailable
from .types import FeedEntry

logger = logging.getLogger(__name__)

ITEMS = "items"
USERS = "users"
AUTHOR_FIELDS = ("name", "country")
NEWEST_FIRST = [("created_at", "desc")]
ANONYMOUS = {"name": "Anonymous", "country": None}


class FeedLoader:
    """Every submitted item with its author, newest first.

    Two tiers: a single items-join-users query, and when that fails, a plain
    items read followed by one author lookup per item.
    """

    def __init__(self, records, blobs=None):
        self.records = records
        self.blobs = blobs

    def _entry(self, rec, author):
        author = author or ANONYMOUS
        return FeedEntry(
            id=rec["id"],
            author_id=rec["author_id"],
            blob_path=rec["blob_path"],
            created_at=rec["created_at"],
            author_name=author.get("name") or ANONYMOUS["name"],
            author_country=author.get("country"),
            audio_url=self.blobs.public_url(rec["blob_path"]) if self.blobs else None,
        )

    async def load_joined(self):
        rows = await self.records.query_joined(ITEMS, USERS, AUTHOR_FIELDS, order=NEWEST_FIRST)
        return [self._entry(r, r.get(USERS)) for r in rows]

    async def _author(self, author_id):
        try:
            rows = await self.records.query(USERS, {"id": author_id}, limit=1)
        except Exception:
            logger.exception("author lookup for user %s failed, showing as anonymous", author_id)
            return None
        if not rows:
            logger.warning("author %s has no profile, showing as anonymous", author_id)
            return None
        return {f: rows[0].get(f) for f in AUTHOR_FIELDS}

    async def load_fallback(self):
        try:
            rows = await self.records.query(ITEMS, order=NEWEST_FIRST)
        except Exception as e:
            raise FeedUnavailable(f"Could not load clips: {e}") from e
        entries = []
        for rec in rows:
            entries.append(self._entry(rec, await self._author(rec["author_id"])))
        return entries

    async def load_all(self):
        try:
            return await self.load_joined()
        except Exception:
            logger.warning("joined feed query failed, loading authors one by one", exc_info=True)
        return await self.load_fallback()
