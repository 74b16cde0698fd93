"""Tunable constants for the review scheduler."""

import os
from dataclasses import dataclass, fields, replace
from typing import Optional


@dataclass(frozen=True)
class SrsConfig:
    """Scheduling tunables.

    A single instance is injected into the calculator, queue builder and
    services so tests can exercise boundary values without touching module
    globals.
    """

    initial_ease_factor: float = 2.5
    min_ease_factor: float = 1.3
    max_ease_factor: float = 3.0

    initial_interval_days: float = 1.0
    min_interval_days: float = 0.5
    max_interval_days: float = 365.0

    # Consecutive failures at which the harsher reduction and the explanation kick in
    failure_threshold: int = 2
    daily_review_cap: int = 50

    again_due_hours: float = 6.0
    again_ease_penalty: float = 0.2
    again_interval_factor: float = 0.5
    threshold_ease_penalty: float = 0.3
    aggressive_interval_factor: float = 0.3

    hard_ease_penalty: float = 0.1
    hard_interval_factor: float = 1.2
    good_ease_bonus: float = 0.05

    # score < fail_score -> again, score < pass_score -> hard, else good
    fail_score: float = 60.0
    pass_score: float = 80.0

    error_item_priority: int = 10
    max_history_entries: int = 100

    @classmethod
    def from_env(cls, prefix: str = "SRS_") -> "SrsConfig":
        """Build a config from defaults overridden by environment variables.

        ``SRS_FAILURE_THRESHOLD=3`` overrides ``failure_threshold`` and so on.
        Unset variables keep their defaults.

        Raises:
            ValueError: If a variable is set but cannot be parsed.
        """
        overrides = {}
        for f in fields(cls):
            raw: Optional[str] = os.environ.get(f"{prefix}{f.name.upper()}")
            if raw is None or raw == "":
                continue
            caster = int if isinstance(f.default, int) else float
            try:
                overrides[f.name] = caster(raw)
            except ValueError:
                raise ValueError(f"Invalid value for {prefix}{f.name.upper()}: {raw!r}")
        return replace(cls(), **overrides)


DEFAULT_CONFIG = SrsConfig()
