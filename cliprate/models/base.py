from datetime import datetime, timezone
from ..extensions import db


def utcnow():
    return datetime.now(timezone.utc)


class TimestampMixin:
    created_at = db.Column(db.DateTime(timezone=True), default=utcnow, server_default=db.func.now(), nullable=False)


class RecordMixin:
    """Plain-dict view of a row, the shape the record store hands out."""

    def to_dict(self):
        return {c.name: getattr(self, c.name) for c in self.__table__.columns}
