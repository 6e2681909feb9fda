"""AI package exports."""

from .targeting import (
    Difficulty,
    HuntTargeting,
    RandomTargeting,
    TargetingState,
    TargetingStrategy,
    create_targeting,
)

__all__ = [
    "Difficulty",
    "HuntTargeting",
    "RandomTargeting",
    "TargetingState",
    "TargetingStrategy",
    "create_targeting",
]
