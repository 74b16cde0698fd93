"""Review models for the review scheduler."""

from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, Field

from .review_item import ReviewItemResponse


class ReviewRequest(BaseModel):
    """Request model for submitting a review response."""

    item_id: str = Field(..., min_length=1, description="Reviewed item")
    judgment: Literal["again", "hard", "good"] = Field(..., description="Recall quality")
    score: Optional[float] = Field(
        None,
        allow_inf_nan=False,
        description="Optional 0-100 score; overrides judgment when present",
    )


class ReviewResponse(BaseModel):
    """Response model for a completed review."""

    item_id: str
    judgment: str
    next_due: datetime
    failure_count: int
    show_explanation: bool
    explanation: Optional[str] = None
    ease_factor: float
    interval_days: float
    review_count: int
    reviewed_at: datetime


class QueueResponse(BaseModel):
    """Response model for the review queue."""

    items: List[ReviewItemResponse]
    total_due: int
    next_due_at: Optional[datetime] = None
