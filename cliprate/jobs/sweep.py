import asyncio
import logging
from datetime import timedelta, timezone

from flask import current_app

from ..extensions import core
from ..services.types import utc_now

logger = logging.getLogger(__name__)


async def find_orphans(blobs, records, grace_sec, now=None):
    """Blob paths no item references, older than ``grace_sec``.

    The grace period keeps blobs whose item record is still being written
    out of the result.
    """
    now = now or utc_now()
    cutoff = now - timedelta(seconds=grace_sec)
    referenced = {r["blob_path"] for r in await records.query("items")}
    orphans = []
    for path, modified_at in await blobs.list():
        if path in referenced:
            continue
        if modified_at.tzinfo is None:
            modified_at = modified_at.replace(tzinfo=timezone.utc)
        if modified_at <= cutoff:
            orphans.append(path)
    return orphans


async def _sweep(blobs, records, grace_sec):
    orphans = await find_orphans(blobs, records, grace_sec)
    if orphans:
        await blobs.delete(orphans)
    return orphans


def sweep_orphan_blobs(grace_sec=None):
    """rq job: delete blobs left behind by failed submissions."""
    if grace_sec is None:
        grace_sec = current_app.config.get("ORPHAN_GRACE_SEC", 3600)
    deleted = asyncio.run(_sweep(core.blobs, core.records, grace_sec))
    if deleted:
        current_app.logger.info("orphan sweep removed %d blobs: %s", len(deleted), ", ".join(deleted))
    else:
        current_app.logger.info("orphan sweep: nothing to remove")
    return deleted
