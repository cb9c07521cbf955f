"""Milestone detection: thresholds crossed between two snapshots."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

TOTAL_SPENT = "TOTAL_SPENT"
VISIT_COUNT = "VISIT_COUNT"
POINTS = "POINTS"


@dataclass(frozen=True)
class ProgressSnapshot:
    total_spent: Decimal
    visit_count: int
    points: int

    @classmethod
    def of(cls, customer) -> ProgressSnapshot:
        return cls(
            total_spent=Decimal(customer.total_spent),
            visit_count=customer.visit_count,
            points=customer.points,
        )

    def value(self, kind: str):
        return {
            TOTAL_SPENT: self.total_spent,
            VISIT_COUNT: self.visit_count,
            POINTS: self.points,
        }[kind]


@dataclass(frozen=True)
class Milestone:
    kind: str
    threshold: int
    value: Decimal | int

    def as_dict(self) -> dict:
        return {"type": self.kind, "threshold": self.threshold, "value": self.value}


def detect_milestones(
    before: ProgressSnapshot,
    after: ProgressSnapshot,
    milestones: dict[str, list[int]],
) -> list[Milestone]:
    """Every threshold t with before < t <= after, per kind, in ascending order."""
    reached = []
    for kind in (TOTAL_SPENT, VISIT_COUNT, POINTS):
        old, new = before.value(kind), after.value(kind)
        for threshold in sorted(milestones.get(kind, [])):
            if old < threshold <= new:
                reached.append(Milestone(kind, threshold, new))
    return reached
