from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import Dict, Optional


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def utc_today() -> date:
    # calendar day boundaries follow UTC
    return utc_now().date()


@dataclass(frozen=True)
class Actor:
    id: int


@dataclass
class ItemRecord:
    id: int
    author_id: int
    blob_path: str
    created_at: datetime

    @classmethod
    def from_record(cls, rec: dict) -> "ItemRecord":
        return cls(id=rec["id"], author_id=rec["author_id"], blob_path=rec["blob_path"], created_at=rec["created_at"])


@dataclass
class RatingRecord:
    id: int
    author_id: int
    item_id: int
    score: int
    comment: Optional[str]
    created_at: datetime
    updated_at: Optional[datetime] = None

    @classmethod
    def from_record(cls, rec: dict) -> "RatingRecord":
        return cls(
            id=rec["id"],
            author_id=rec["author_id"],
            item_id=rec["item_id"],
            score=rec["score"],
            comment=rec.get("comment"),
            created_at=rec["created_at"],
            updated_at=rec.get("updated_at"),
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "author_id": self.author_id,
            "item_id": self.item_id,
            "score": self.score,
            "comment": self.comment,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }


@dataclass
class SubmissionResult:
    item_id: int
    blob_path: str
    item: ItemRecord


@dataclass
class RatingSummary:
    count: int
    average: float
    histogram: Dict[int, int] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "count": self.count,
            "average": self.average,
            "histogram": {str(k): v for k, v in sorted(self.histogram.items())},
        }


@dataclass
class FeedEntry:
    id: int
    author_id: int
    blob_path: str
    created_at: datetime
    author_name: str
    author_country: Optional[str]
    audio_url: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "author_id": self.author_id,
            "blob_path": self.blob_path,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "author_name": self.author_name,
            "author_country": self.author_country,
            "audio_url": self.audio_url,
        }
