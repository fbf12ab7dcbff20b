from ..extensions import db
from .base import TimestampMixin, RecordMixin

class Item(db.Model, TimestampMixin, RecordMixin):
    """A submitted clip: the blob lives in the blob store under ``blob_path``."""
    __tablename__ = "items"
    id = db.Column(db.Integer, primary_key=True)
    author_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    blob_path = db.Column(db.String(512), nullable=False, unique=True)
