from ..extensions import db
from .base import RecordMixin

class QuotaRecord(db.Model, RecordMixin):
    """Successful submissions of one actor on one (UTC) calendar day."""
    __tablename__ = "quota_records"
    __table_args__ = (
        db.UniqueConstraint("actor_id", "date", name="uq_quota_actor_date"),
        db.CheckConstraint("used_attempts >= 0", name="ck_quota_used_non_negative"),
    )
    id = db.Column(db.Integer, primary_key=True)
    actor_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    date = db.Column(db.Date, nullable=False)
    used_attempts = db.Column(db.Integer, nullable=False, default=0)
