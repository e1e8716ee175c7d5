"""Engine configuration objects."""

import os
from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class EngineConfig:
    """Constants shared by every layer of the scoring engine."""

    window_days: int = 90
    buy_price_forward_days: int = 5
    default_target_pct: float = 20.0
    judgement_threshold_ratio: float = 0.8  # HitTarget / OnTrack at 80% of target
    min_confidence: float = 0.2  # projections at or below this are not trusted
    cost_of_capital_pct: float = 10.0  # annual hurdle
    days_per_year: float = 365.25
    min_return_pct: float = -100.0
    max_projection_pct: float = 200.0
    min_trend_points: int = 3


@dataclass
class ExecutionConfig:
    """Execution controls for per-stock fan-out."""

    max_workers: Optional[int] = None
    show_progress: bool = False

    def resolved_workers(self) -> int:
        if self.max_workers is not None and int(self.max_workers) > 0:
            return int(self.max_workers)
        return min(8, os.cpu_count() or 4)


DEFAULT_CONFIG = EngineConfig()
