"""One-time habit streak milestones."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, List, MutableSequence, Optional

from app.services.streak_policy import DEFAULT_MILESTONES

MILESTONE_ACTION = "milestone_achieved"


@dataclass(frozen=True)
class MilestoneAchievement:
    milestone_days: int
    message: str


class MilestoneSet:
    """Set-of-ints view over a habit's persisted milestone list."""

    def __init__(self, backing: MutableSequence[int]) -> None:
        self._backing = backing

    def __contains__(self, value: object) -> bool:
        return value in self._backing

    def __iter__(self):
        return iter(self._backing)

    def __len__(self) -> int:
        return len(self._backing)

    def add(self, value: int) -> bool:
        """Insert ``value`` if absent; report whether it was inserted."""
        if value in self._backing:
            return False
        self._backing.append(value)
        return True

    def as_sorted_list(self) -> List[int]:
        return sorted(set(self._backing))


def detect_milestone(
    achieved: MilestoneSet,
    streak_days: int,
    thresholds: Iterable[int] = DEFAULT_MILESTONES,
) -> Optional[MilestoneAchievement]:
    for threshold in sorted(thresholds):
        if streak_days == threshold and achieved.add(threshold):
            return MilestoneAchievement(
                milestone_days=threshold,
                message=f"{threshold}-day streak achieved!",
            )
    return None
