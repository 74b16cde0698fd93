"""Due-item queue ordering."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Iterable, List, Optional

from ..models.review_item import ReviewItem, as_utc
from .config import DEFAULT_CONFIG, SrsConfig


@dataclass
class QueueResult:
    """Items to review now plus when the next one becomes due."""

    items: List[ReviewItem] = field(default_factory=list)
    next_due_at: Optional[datetime] = None
    total_due: int = 0


def queue_sort_key(item: ReviewItem):
    """Most failures first, then highest priority, then longest overdue."""
    return (-item.failure_count, -item.priority, item.due_at)


def build_queue(
    items: Iterable[ReviewItem],
    now: datetime,
    config: SrsConfig = DEFAULT_CONFIG,
) -> QueueResult:
    """Select, order and cap due items.

    Args:
        items: Items owned by a single learner, due or not.
        now: Reference time; items with due_at <= now are due.
        config: Scheduling tunables (daily_review_cap).

    Returns:
        QueueResult whose next_due_at is the earliest due_at strictly after
        now, regardless of the cap.
    """
    now = as_utc(now)
    due: List[ReviewItem] = []
    next_due_at: Optional[datetime] = None

    for item in items:
        if item.is_due(now):
            due.append(item)
        elif next_due_at is None or item.due_at < next_due_at:
            next_due_at = item.due_at

    due.sort(key=queue_sort_key)

    return QueueResult(
        items=due[: config.daily_review_cap],
        next_due_at=next_due_at,
        total_due=len(due),
    )
