"""Review service: due queue and review responses."""

import math
from datetime import datetime, timezone
from typing import Optional

from aws_lambda_powertools import Logger

from ..models.review import QueueResponse, ReviewResponse
from ..models.review_item import as_utc
from .config import SrsConfig
from .explanations import maybe_generate_explanation
from .item_service import ItemService
from .queue import build_queue
from .srs import (
    VALID_JUDGMENTS,
    ReviewHistoryEntry,
    add_review_history,
    calculate_next_review,
    evaluate_judgment,
    next_failure_count,
)

logger = Logger()


class ReviewServiceError(Exception):
    """Base exception for review service errors."""

    pass


class InvalidJudgmentError(ReviewServiceError):
    """Raised when judgment is missing or unknown."""

    pass


class InvalidScoreError(ReviewServiceError):
    """Raised when the score is not a number."""

    pass


class ReviewService:
    """Service for the review queue and SRS state transitions."""

    def __init__(
        self,
        item_service: Optional[ItemService] = None,
        config: Optional[SrsConfig] = None,
    ):
        """Initialize ReviewService.

        Args:
            item_service: ItemService instance used as the item store.
            config: Scheduling tunables. Defaults to the item service's config.
        """
        self.item_service = item_service or ItemService(config=config)
        self.config = config or self.item_service.config

    def get_queue(self, user_id: str, now: Optional[datetime] = None) -> QueueResponse:
        """Get the items due for review, most urgent first.

        Args:
            user_id: The owner's ID.
            now: Reference time, defaults to current UTC time.

        Returns:
            QueueResponse with at most daily_review_cap items and the due time
            of the next item that is not yet due.
        """
        now = as_utc(now) if now is not None else datetime.now(timezone.utc)

        candidates = self.item_service.get_due_items(user_id, before=now)
        next_item = self.item_service.get_next_due_item(user_id, after=now)
        if next_item is not None:
            candidates.append(next_item)

        queue = build_queue(candidates, now, self.config)
        logger.info(
            f"Built queue for user_id {user_id}: {len(queue.items)} of {queue.total_due} due items"
        )

        return QueueResponse(
            items=[item.to_response() for item in queue.items],
            total_due=queue.total_due,
            next_due_at=queue.next_due_at,
        )

    def submit_response(
        self,
        user_id: str,
        item_id: str,
        judgment: str,
        score: Optional[float] = None,
        now: Optional[datetime] = None,
    ) -> ReviewResponse:
        """Apply a review response to an item.

        The score, when given, overrides the judgment. Failure count, ease,
        interval, due time, review count, history and (on first crossing of
        the failure threshold) the explanation are written in one conditional
        update against the version that was read.

        Args:
            user_id: The owner's ID.
            item_id: The reviewed item's ID.
            judgment: again, hard or good.
            score: Optional 0-100 score.
            now: Review time, defaults to current UTC time.

        Returns:
            ReviewResponse with the next due time and explanation state.

        Raises:
            InvalidJudgmentError: If judgment is missing or unknown.
            InvalidScoreError: If score is NaN.
            ItemNotFoundError: If the user owns no item with that id.
            ConcurrentUpdateError: If another response won the race.
            ItemPersistenceError: If the store read or write fails.
        """
        if judgment not in VALID_JUDGMENTS:
            raise InvalidJudgmentError(f"Judgment must be one of {', '.join(VALID_JUDGMENTS)}, got {judgment!r}")
        if score is not None and math.isnan(score):
            raise InvalidScoreError("Score must be a number, got NaN")

        now = as_utc(now) if now is not None else datetime.now(timezone.utc)

        item = self.item_service.get_item(user_id, item_id)
        expected_version = item.version

        effective = evaluate_judgment(judgment, score, self.config)
        failure_count = next_failure_count(item.failure_count, effective)
        result = calculate_next_review(
            interval_days=item.interval_days,
            ease_factor=item.ease_factor,
            judgment=effective,
            failure_count=failure_count,
            now=now,
            config=self.config,
        )
        new_explanation = maybe_generate_explanation(
            item.item_type,
            item.content,
            failure_count,
            item.explanation,
            self.config,
        )

        history = add_review_history(
            item.review_history,
            ReviewHistoryEntry(
                reviewed_at=now,
                judgment=judgment,
                effective_judgment=effective,
                score=score,
                ease_factor_before=item.ease_factor,
                ease_factor_after=result.ease_factor,
                interval_before=item.interval_days,
                interval_after=result.interval_days,
            ),
            max_entries=self.config.max_history_entries,
        )

        item.ease_factor = result.ease_factor
        item.interval_days = result.interval_days
        item.due_at = result.due_at
        item.failure_count = failure_count
        item.review_count += 1
        item.review_history = history
        item.last_reviewed_at = now
        item.updated_at = now
        if new_explanation is not None:
            item.explanation = new_explanation

        self.item_service.save_review(
            item,
            expected_version=expected_version,
            write_explanation=new_explanation is not None,
        )

        if new_explanation is not None:
            logger.info(f"Generated explanation for item {item_id} after {failure_count} failures")
        logger.info(
            f"Review submitted for item {item_id} by user_id {user_id}: "
            f"{judgment} -> {effective}, failure_count={failure_count}"
        )

        show_explanation = (
            item.explanation is not None and failure_count >= self.config.failure_threshold
        )

        return ReviewResponse(
            item_id=item_id,
            judgment=effective,
            next_due=result.due_at,
            failure_count=failure_count,
            show_explanation=show_explanation,
            explanation=item.explanation if show_explanation else None,
            ease_factor=result.ease_factor,
            interval_days=result.interval_days,
            review_count=item.review_count,
            reviewed_at=now,
        )
