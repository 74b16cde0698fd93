"""Spaced repetition scheduling: judgment evaluation and interval/ease updates."""

import math
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import List, Literal, Optional

from aws_lambda_powertools import Logger

from .config import DEFAULT_CONFIG, SrsConfig

logger = Logger()

Judgment = Literal["again", "hard", "good"]

VALID_JUDGMENTS = ("again", "hard", "good")


def evaluate_judgment(
    judgment: Judgment,
    score: Optional[float] = None,
    config: SrsConfig = DEFAULT_CONFIG,
) -> Judgment:
    """Resolve the judgment to apply for a review.

    A supplied score always overrides the explicit judgment:
    below ``fail_score`` is ``again``, below ``pass_score`` is ``hard``,
    anything else is ``good``. Scores outside 0-100 are not clamped.

    Args:
        judgment: Judgment chosen by the learner or the client.
        score: Optional numeric score, 0-100 expected.
        config: Scheduling tunables.

    Returns:
        The effective judgment.

    Raises:
        ValueError: If score is NaN.
    """
    if score is None:
        return judgment

    if math.isnan(score):
        raise ValueError("Score must be a number, got NaN")

    if score < 0 or score > 100:
        logger.warning(f"Score outside 0-100 applied unclamped: {score}")

    if score < config.fail_score:
        return "again"
    if score < config.pass_score:
        return "hard"
    return "good"


def next_failure_count(failure_count: int, judgment: Judgment) -> int:
    """Consecutive failures after a response: +1 on again, reset otherwise."""
    if judgment == "again":
        return failure_count + 1
    return 0


@dataclass
class SrsResult:
    """Result of an interval/ease calculation."""

    ease_factor: float
    interval_days: float
    due_at: datetime


def _clamp(value: float, lower: float, upper: float) -> float:
    return max(lower, min(upper, value))


def _ceil(value: float) -> float:
    # Absorb float noise such as 5 * 1.2 == 6.000000000000001
    return float(math.ceil(round(value, 6)))


def calculate_next_review(
    interval_days: float,
    ease_factor: float,
    judgment: Judgment,
    failure_count: int,
    now: Optional[datetime] = None,
    config: SrsConfig = DEFAULT_CONFIG,
) -> SrsResult:
    """Calculate the next ease factor, interval and due time.

    All formulas use the current (pre-update) interval and ease.

    - again: ease drops by ``again_ease_penalty`` and the interval halves;
      once ``failure_count`` (already incremented) reaches the failure
      threshold the ease drops by ``threshold_ease_penalty`` and the interval
      becomes ``floor(interval * aggressive_interval_factor)``. Either way the
      item is due again after ``again_due_hours``, independent of the stored
      interval.
    - hard: ease drops by ``hard_ease_penalty``,
      interval becomes ``ceil(interval * hard_interval_factor)``.
    - good: ease rises by ``good_ease_bonus``,
      interval becomes ``ceil(interval * old ease)``.

    Ease is kept within [min_ease_factor, max_ease_factor] and the interval
    within [min_interval_days, max_interval_days] on every path.

    Args:
        interval_days: Current interval in days.
        ease_factor: Current ease factor.
        judgment: Effective judgment.
        failure_count: Consecutive failures after this response.
        now: Reference time, defaults to current UTC time.
        config: Scheduling tunables.

    Returns:
        SrsResult with the new ease factor, interval and due time.

    Raises:
        ValueError: If judgment is not again, hard or good.
    """
    if now is None:
        now = datetime.now(timezone.utc)

    if judgment == "again":
        if failure_count >= config.failure_threshold:
            new_ease = ease_factor - config.threshold_ease_penalty
            new_interval = float(math.floor(round(interval_days * config.aggressive_interval_factor, 6)))
        else:
            new_ease = ease_factor - config.again_ease_penalty
            new_interval = interval_days * config.again_interval_factor
        due_at = now + timedelta(hours=config.again_due_hours)
    elif judgment == "hard":
        new_ease = ease_factor - config.hard_ease_penalty
        new_interval = _ceil(interval_days * config.hard_interval_factor)
        due_at = None
    elif judgment == "good":
        new_ease = ease_factor + config.good_ease_bonus
        new_interval = _ceil(interval_days * ease_factor)
        due_at = None
    else:
        raise ValueError(f"Unknown judgment: {judgment}")

    new_ease = round(_clamp(new_ease, config.min_ease_factor, config.max_ease_factor), 2)
    new_interval = _clamp(new_interval, config.min_interval_days, config.max_interval_days)

    if due_at is None:
        due_at = now + timedelta(days=new_interval)

    return SrsResult(
        ease_factor=new_ease,
        interval_days=new_interval,
        due_at=due_at,
    )


@dataclass
class ReviewHistoryEntry:
    """Single entry in review history."""

    reviewed_at: datetime
    judgment: Judgment
    effective_judgment: Judgment
    score: Optional[float]
    ease_factor_before: float
    ease_factor_after: float
    interval_before: float
    interval_after: float


def add_review_history(
    history: Optional[List[dict]],
    entry: ReviewHistoryEntry,
    max_entries: int = DEFAULT_CONFIG.max_history_entries,
) -> List[dict]:
    """
    Add a new entry to review history, maintaining max size.

    Args:
        history: Existing history list or None
        entry: New history entry
        max_entries: Maximum number of entries to keep

    Returns:
        Updated history list with newest entry added
    """
    history = list(history) if history else []

    # Floats as strings for DynamoDB compatibility
    new_entry = {
        "reviewed_at": entry.reviewed_at.isoformat(),
        "judgment": entry.judgment,
        "effective_judgment": entry.effective_judgment,
        "score": str(entry.score) if entry.score is not None else None,
        "ease_factor_before": str(entry.ease_factor_before),
        "ease_factor_after": str(entry.ease_factor_after),
        "interval_before": str(entry.interval_before),
        "interval_after": str(entry.interval_after),
    }

    history.append(new_entry)

    if len(history) > max_entries:
        history = history[-max_entries:]

    return history
