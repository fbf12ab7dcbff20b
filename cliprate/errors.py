"""Error kinds surfaced by the submission and rating engine.

Every error carries a short ``kind`` (used by the HTTP layer) and a human
readable message. Underlying driver errors are chained with ``raise ... from``.
"""


class ClipRateError(Exception):
    kind = "error"

    def __init__(self, message=None, **context):
        super().__init__(message or self.__class__.__name__)
        self.context = context

    @property
    def message(self):
        return str(self)


class InvalidTransition(ClipRateError):
    kind = "invalid_transition"


class QuotaExceeded(ClipRateError):
    kind = "quota_exceeded"


class DeviceUnavailable(ClipRateError):
    kind = "device_unavailable"


class UploadFailed(ClipRateError):
    kind = "upload_failed"


class MetadataWriteFailed(ClipRateError):
    kind = "metadata_write_failed"

    def __init__(self, message=None, blob_path=None, **context):
        super().__init__(message, blob_path=blob_path, **context)
        # the blob at this path now has no record pointing at it
        self.blob_path = blob_path


class InvalidScore(ClipRateError):
    kind = "invalid_score"


class CommentTooLong(ClipRateError):
    kind = "comment_too_long"


class SelfRatingForbidden(ClipRateError):
    kind = "self_rating_forbidden"


class ItemNotFound(ClipRateError):
    kind = "item_not_found"


class NotItemAuthor(ClipRateError):
    kind = "not_item_author"


class RatingWriteFailed(ClipRateError):
    kind = "rating_write_failed"


class FeedUnavailable(ClipRateError):
    kind = "feed_unavailable"


# record store errors

class RecordStoreError(ClipRateError):
    kind = "record_store_error"


class RecordConflict(RecordStoreError):
    """Unique constraint violated or an update precondition did not hold."""
    kind = "record_conflict"


class RecordNotFound(RecordStoreError):
    kind = "record_not_found"


class BlobStoreError(ClipRateError):
    kind = "blob_store_error"
