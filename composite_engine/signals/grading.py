"""Score → tier/grade lookup with position-sizing guidance."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class Tier(str, Enum):
    A_PLUS = "A+"
    A = "A"
    B_PLUS = "B+"
    B = "B"
    C = "C"
    D = "D"


@dataclass(frozen=True)
class Grade:
    tier: Tier
    bucket: str  # display bucket: A / B / C
    sizing: str

    @property
    def tradeable(self) -> bool:
        return self.sizing != "skip"


# Ordered best → worst. Lower bounds are inclusive, so a score sitting
# exactly on a breakpoint lands in the better tier.
GRADE_BREAKPOINTS: tuple[tuple[float, Grade], ...] = (
    (90.0, Grade(Tier.A_PLUS, "A", "full size")),
    (80.0, Grade(Tier.A, "A", "full size")),
    (70.0, Grade(Tier.B_PLUS, "B", "reduced size")),
    (60.0, Grade(Tier.B, "B", "half size")),
    (50.0, Grade(Tier.C, "C", "skip")),
)
FLOOR_GRADE = Grade(Tier.D, "C", "skip")


def grade_score(score: float) -> Grade:
    for breakpoint, grade in GRADE_BREAKPOINTS:
        if score >= breakpoint:
            return grade
    return FLOOR_GRADE
