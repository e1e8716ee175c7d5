"""Tiered 90-day projection."""

from .hybrid import (
    PROJECTION_TIERS,
    ProjectionTier,
    TrajectoryTier,
    hybrid_projection,
    project_90_day,
    projection_path,
)

__all__ = [
    "PROJECTION_TIERS",
    "ProjectionTier",
    "TrajectoryTier",
    "hybrid_projection",
    "project_90_day",
    "projection_path",
]
