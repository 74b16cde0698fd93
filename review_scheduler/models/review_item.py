"""Review item models for the review scheduler."""

import json
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Literal, Optional

from pydantic import AliasChoices, BaseModel, Field, field_validator


ItemType = Literal["vocab", "grammar_pattern", "sentence", "pronunciation"]

UserLevel = Literal["A0", "A1", "A2", "B1", "B2", "C1", "C2"]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(dt: datetime) -> datetime:
    """Aware UTC datetime; naive values are taken to be UTC already."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def to_iso(dt: datetime) -> str:
    """UTC ISO string with fixed microsecond precision so string order is time order."""
    return as_utc(dt).isoformat(timespec="microseconds")


def from_iso(value: str) -> datetime:
    return as_utc(datetime.fromisoformat(value))


def _validate_content(v: Dict[str, Any]) -> Dict[str, Any]:
    if not v:
        raise ValueError("Content cannot be empty")
    if not all(isinstance(key, str) and key.strip() for key in v):
        raise ValueError("Content keys must be non-empty strings")
    return v


class CreateItemRequest(BaseModel):
    """Request model for creating a review item directly."""

    item_type: ItemType = Field(..., description="Kind of practice unit")
    content: Dict[str, Any] = Field(..., description="Question/answer/context payload")
    priority: int = Field(default=0, description="Higher values are reviewed first")
    requires_spoken: bool = Field(default=False, description="Answer must be spoken")

    @field_validator("content")
    @classmethod
    def validate_content(cls, v: Dict[str, Any]) -> Dict[str, Any]:
        """Validate content is a non-empty mapping."""
        return _validate_content(v)


class DetectedError(BaseModel):
    """An error found by the upstream evaluation of a learner's utterance."""

    type: str = Field(..., min_length=1, description="Upstream error type, e.g. pronunciation")
    token: str = Field(..., min_length=1, description="What the learner produced")
    correction: str = Field(
        default="",
        validation_alias=AliasChoices("correction", "expected"),
        description="Expected form",
    )
    explanation: str = Field(default="", description="Why the token is wrong")
    context: Optional[str] = Field(None, description="Surrounding utterance")
    position: Optional[int] = Field(None, ge=0, description="Token offset in the transcript")


class CreateItemFromErrorRequest(BaseModel):
    """Request model for creating a review item from a detected error."""

    source_evaluation_id: str = Field(..., min_length=1)
    error: DetectedError
    user_level: UserLevel = "A1"


class ReviewItemResponse(BaseModel):
    """Response model for a review item."""

    item_id: str
    user_id: str
    item_type: str
    content: Dict[str, Any]
    ease_factor: float
    interval_days: float
    due_at: datetime
    failure_count: int
    review_count: int
    priority: int
    requires_spoken: bool
    explanation: Optional[str] = None
    source_evaluation_id: Optional[str] = None
    last_reviewed_at: Optional[datetime] = None
    created_at: datetime
    updated_at: Optional[datetime] = None


class ReviewItem(BaseModel):
    """Review item domain model: one row per learner per practice unit."""

    item_id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    user_id: str
    item_type: ItemType
    content: Dict[str, Any]
    ease_factor: float = 2.5
    interval_days: float = 1.0
    due_at: datetime
    failure_count: int = Field(default=0, ge=0)
    review_count: int = Field(default=0, ge=0)
    priority: int = 0
    requires_spoken: bool = False
    explanation: Optional[str] = None
    source_evaluation_id: Optional[str] = None
    last_reviewed_at: Optional[datetime] = None
    review_history: List[dict] = Field(default_factory=list)
    # Optimistic lock counter, bumped on every write
    version: int = 0
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: Optional[datetime] = None

    def is_due(self, now: datetime) -> bool:
        return as_utc(self.due_at) <= as_utc(now)

    def to_response(self) -> ReviewItemResponse:
        """Convert to API response model."""
        return ReviewItemResponse(
            item_id=self.item_id,
            user_id=self.user_id,
            item_type=self.item_type,
            content=self.content,
            ease_factor=self.ease_factor,
            interval_days=self.interval_days,
            due_at=self.due_at,
            failure_count=self.failure_count,
            review_count=self.review_count,
            priority=self.priority,
            requires_spoken=self.requires_spoken,
            explanation=self.explanation,
            source_evaluation_id=self.source_evaluation_id,
            last_reviewed_at=self.last_reviewed_at,
            created_at=self.created_at,
            updated_at=self.updated_at,
        )

    def to_dynamodb_item(self) -> dict:
        """Convert to DynamoDB item."""
        item = {
            "user_id": self.user_id,
            "item_id": self.item_id,
            "item_type": self.item_type,
            "content": json.dumps(self.content, ensure_ascii=False),
            # DynamoDB doesn't support float directly
            "ease_factor": str(self.ease_factor),
            "interval_days": str(self.interval_days),
            "due_at": to_iso(self.due_at),
            "failure_count": self.failure_count,
            "review_count": self.review_count,
            "priority": self.priority,
            "requires_spoken": self.requires_spoken,
            "review_history": self.review_history,
            "version": self.version,
            "created_at": to_iso(self.created_at),
        }
        if self.explanation is not None:
            item["explanation"] = self.explanation
        if self.source_evaluation_id:
            item["source_evaluation_id"] = self.source_evaluation_id
        if self.last_reviewed_at:
            item["last_reviewed_at"] = to_iso(self.last_reviewed_at)
        if self.updated_at:
            item["updated_at"] = to_iso(self.updated_at)
        return item

    @classmethod
    def from_dynamodb_item(cls, item: dict) -> "ReviewItem":
        """Create ReviewItem from DynamoDB item."""
        return cls(
            item_id=item["item_id"],
            user_id=item["user_id"],
            item_type=item["item_type"],
            content=json.loads(item["content"]) if item.get("content") else {},
            ease_factor=float(item.get("ease_factor", 2.5)),
            interval_days=float(item.get("interval_days", 1)),
            due_at=from_iso(item["due_at"]),
            failure_count=int(item.get("failure_count", 0)),
            review_count=int(item.get("review_count", 0)),
            priority=int(item.get("priority", 0)),
            requires_spoken=bool(item.get("requires_spoken", False)),
            explanation=item.get("explanation"),
            source_evaluation_id=item.get("source_evaluation_id"),
            last_reviewed_at=from_iso(item["last_reviewed_at"]) if item.get("last_reviewed_at") else None,
            review_history=item.get("review_history", []),
            version=int(item.get("version", 0)),
            created_at=from_iso(item["created_at"]),
            updated_at=from_iso(item["updated_at"]) if item.get("updated_at") else None,
        )
