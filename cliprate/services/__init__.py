from dataclasses import dataclass

from .catalog import ItemCatalog
from .feed import FeedLoader
from .quota import QuotaTracker
from .ratings import RatingStore
from .records import SqlRecordStore
from .recording import DEFAULT_MAX_SECONDS, RecordingSession
from .storage import LocalBlobStore, build_blob_store
from .submission import SubmissionPipeline


@dataclass
class Services:
    blobs: object
    records: object
    quota: QuotaTracker
    pipeline: SubmissionPipeline
    ratings: RatingStore
    feed: FeedLoader
    catalog: ItemCatalog
    max_seconds: int = DEFAULT_MAX_SECONDS

    def new_session(self, actor_id, device, **kwargs):
        """A RecordingSession for ``actor_id`` wired to this app's quota and pipeline."""
        kwargs.setdefault("max_seconds", self.max_seconds)
        return RecordingSession(actor_id, device, self.quota, self.pipeline, **kwargs)


def build_services(app, blobs=None, records=None):
    cfg = app.config
    if blobs is None:
        if cfg.get("STORAGE_BACKEND", "local") == "local" and not cfg.get("PUBLIC_MEDIA_URL"):
            # served by the studio blueprint
            blobs = LocalBlobStore(cfg.get("LOCAL_STORAGE_DIR", "./storage"), public_base="/studio/media")
        else:
            blobs = build_blob_store(cfg)
    if records is None:
        records = SqlRecordStore(app)
    quota = QuotaTracker(records, daily_limit=cfg.get("DAILY_ATTEMPT_LIMIT", 3))
    return Services(
        blobs=blobs,
        records=records,
        quota=quota,
        pipeline=SubmissionPipeline(blobs, records, quota, timeout=cfg.get("NETWORK_TIMEOUT_SEC")),
        ratings=RatingStore(
            records,
            comment_max_length=cfg.get("COMMENT_MAX_LENGTH", 50),
            forbid_self_rating=cfg.get("FORBID_SELF_RATING", True),
        ),
        feed=FeedLoader(records, blobs),
        catalog=ItemCatalog(records, blobs),
        max_seconds=cfg.get("RECORDING_MAX_SECONDS", DEFAULT_MAX_SECONDS),
    )
