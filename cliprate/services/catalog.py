import logging

from ..errors import ItemNotFound, NotItemAuthor
from .types import ItemRecord

logger = logging.getLogger(__name__)

ITEMS = "items"
RATINGS = "ratings"


class ItemCatalog:
    """An author's own clips: listing and deletion."""

    def __init__(self, records, blobs):
        self.records = records
        self.blobs = blobs

    def public_url(self, path):
        return self.blobs.public_url(path)

    async def get(self, item_id):
        rows = await self.records.query(ITEMS, {"id": item_id}, limit=1)
        if not rows:
            raise ItemNotFound(f"Item {item_id} does not exist", item_id=item_id)
        return ItemRecord.from_record(rows[0])

    async def items_by(self, actor_id):
        rows = await self.records.query(ITEMS, {"author_id": actor_id}, order=[("created_at", "desc")])
        return [ItemRecord.from_record(r) for r in rows]

    async def delete_item(self, actor_id, item_id):
        """Remove ratings, record and blob of one of the actor's items.

        The record goes before the blob; if the blob delete fails the item is
        already invisible and the blob is left for the orphan sweep.
        """
        item = await self.get(item_id)
        if item.author_id != actor_id:
            raise NotItemAuthor("Only the author can delete this clip", item_id=item_id)
        for r in await self.records.query(RATINGS, {"item_id": item_id}):
            await self.records.delete(RATINGS, r["id"])
        await self.records.delete(ITEMS, item_id)
        try:
            await self.blobs.delete([item.blob_path])
        except Exception:
            logger.exception("blob %s of deleted item %s could not be removed", item.blob_path, item_id)
        logger.info("actor %s deleted item %s", actor_id, item_id)
        return item
