import asyncio
import logging
import mimetypes
from uuid import uuid4

from ..errors import MetadataWriteFailed, QuotaExceeded, UploadFailed
from .types import ItemRecord, SubmissionResult, utc_now, utc_today

logger = logging.getLogger(__name__)

ITEMS = "items"
EXTENSIONS = {
    "audio/webm": ".webm",
    "audio/ogg": ".ogg",
    "audio/wav": ".wav",
    "audio/x-wav": ".wav",
    "audio/mpeg": ".mp3",
    "audio/mp4": ".m4a",
}


def extension_for(content_type):
    base = (content_type or "").split(";", 1)[0].strip().lower()
    return EXTENSIONS.get(base) or mimetypes.guess_extension(base) or ".webm"


class SubmissionPipeline:
    """Commit a finished clip: blob first, then the item record, then the quota.

    A failed record write leaves the blob in place for the orphan sweep.
    """

    def __init__(self, blobs, records, quota, timeout=None, today=utc_today, now=utc_now):
        self.blobs = blobs
        self.records = records
        self.quota = quota
        self.timeout = timeout
        self.today = today
        self.now = now

    def blob_path_for(self, actor_id, instant, content_type):
        millis = int(instant.timestamp() * 1000)
        return f"{actor_id}/{millis}-{uuid4().hex[:8]}{extension_for(content_type)}"

    async def submit(self, clip, actor_id) -> SubmissionResult:
        day = self.today()
        if await self.quota.remaining(actor_id, day) <= 0:
            raise QuotaExceeded("No attempts left today, come back tomorrow", actor_id=actor_id)

        instant = self.now()
        path = self.blob_path_for(actor_id, instant, clip.content_type)
        try:
            await asyncio.wait_for(self.blobs.put(path, clip.data, clip.content_type), self.timeout)
        except asyncio.TimeoutError as e:
            raise UploadFailed(f"Upload timed out after {self.timeout}s", path=path) from e
        except Exception as e:
            logger.warning("upload of %s failed: %s", path, e)
            raise UploadFailed(f"Upload failed: {e}", path=path) from e

        try:
            rec = await asyncio.wait_for(
                self.records.insert(ITEMS, {"author_id": actor_id, "blob_path": path, "created_at": instant}),
                self.timeout,
            )
        except asyncio.TimeoutError as e:
            logger.error("item record for %s timed out, blob left orphaned", path)
            raise MetadataWriteFailed(f"Saving the clip metadata timed out after {self.timeout}s", blob_path=path) from e
        except Exception as e:
            logger.error("item record for %s failed, blob left orphaned: %s", path, e)
            raise MetadataWriteFailed(f"Saving the clip metadata failed: {e}", blob_path=path) from e

        item = ItemRecord.from_record(rec)
        try:
            await self.quota.record_success(actor_id, day)
        except QuotaExceeded:
            # a concurrent submission took the last slot after our re-check
            await self._compensate(item)
            raise
        logger.info("actor %s submitted item %s (%s, %d bytes)", actor_id, item.id, path, clip.size)
        return SubmissionResult(item_id=item.id, blob_path=path, item=item)

    async def _compensate(self, item):
        try:
            await self.records.delete(ITEMS, item.id)
            await self.blobs.delete([item.blob_path])
        except Exception:
            logger.exception("rolling back item %s after quota race failed", item.id)
