from ..extensions import db
from .base import TimestampMixin, RecordMixin, utcnow

class Rating(db.Model, TimestampMixin, RecordMixin):
    __tablename__ = "ratings"
    __table_args__ = (
        db.UniqueConstraint("author_id", "item_id", name="uq_ratings_author_item"),
        db.CheckConstraint("score >= 1 AND score <= 10", name="ck_ratings_score_range"),
    )
    id = db.Column(db.Integer, primary_key=True)
    author_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    item_id = db.Column(db.Integer, db.ForeignKey("items.id", ondelete="CASCADE"), nullable=False, index=True)
    score = db.Column(db.SmallInteger, nullable=False)
    comment = db.Column(db.String(50))
    updated_at = db.Column(db.DateTime(timezone=True), default=utcnow, onupdate=utcnow)
