from __future__ import annotations

from collections import Counter
from dataclasses import dataclass
from typing import Sequence

from .lottery_domain import LotteryResult, WorkshopResult


def compute_gini_index(values: Sequence[float]) -> float:
    """
    Deterministic Gini index over non-negative values.

    For sorted values x_1..x_n and X = sum(x):
      G = sum_i (2i - n - 1) * x_i / (n * X)    if X > 0
      G = 0                                     if X == 0
    """

    vals = [max(0.0, float(v)) for v in values]
    n = len(vals)
    if n == 0:
        return 0.0
    vals.sort()

    total = sum(vals)
    if total <= 0.0:
        return 0.0

    numerator = 0.0
    for i, x in enumerate(vals, start=1):
        numerator += (2 * i - n - 1) * x
    return numerator / (n * total)


def compute_jain_index(values: Sequence[float]) -> float:
    vals = [max(0.0, float(v)) for v in values]
    total = sum(vals)
    if total <= 0.0:
        return 0.0
    denom = sum(v * v for v in vals)
    if denom <= 0.0:
        return 0.0
    n = len(vals)
    return (total * total) / (n * denom)


@dataclass(frozen=True)
class WorkshopSummary:
    """Counts for one workshop, as shown in reports."""

    workshop_id: str
    capacity: int
    requesters: int
    accepted: int
    wave1: int
    wave2: int
    backfill: int
    waitlisted: int

    @property
    def unfilled_seats(self) -> int:
        return max(0, self.capacity - self.accepted)

    @property
    def fill_rate(self) -> float:
        return self.accepted / self.capacity if self.capacity else 0.0


@dataclass(frozen=True)
class LotterySummary:
    """Run-level aggregates (used for reports and for comparing seeds)."""

    seed: int
    capacity: int
    workshops: tuple[WorkshopSummary, ...]
    total_registrations: int
    eligible_count: int
    disqualified_count: int
    seats_filled: int
    unique_participants: int
    eligible_without_seat: int
    gini_seats: float
    jain_seats: float


def summarize_workshop(result: WorkshopResult, capacity: int) -> WorkshopSummary:
    # Backfilled seats are not part of the lottery pool.
    lottery_entries = sum(1 for a in result.assignments if not a.is_backfill)
    return WorkshopSummary(
        workshop_id=result.workshop_id,
        capacity=capacity,
        requesters=lottery_entries,
        accepted=result.accepted_count,
        wave1=result.wave1_count,
        wave2=result.wave2_count,
        backfill=result.backfill_count,
        waitlisted=result.waitlist_count,
    )


def seats_per_participant(result: LotteryResult) -> list[int]:
    """Accepted lottery seats (waves 1 and 2) per eligible registration, in input order."""

    seats: Counter[str] = Counter()
    for workshop in result.results.values():
        for a in workshop.accepted:
            if not a.is_backfill:
                seats[a.registration.identity_key] += 1
    return [seats.get(key, 0) for key in result.eligible_keys]


def summarize_lottery(result: LotteryResult) -> LotterySummary:
    """
    Pure projection of a LotteryResult.

    Fairness indices are computed over seats per eligible participant,
    including those who won nothing.
    """

    workshops = tuple(
        summarize_workshop(result.results[w], result.capacity) for w in result.workshop_order
    )
    seat_counts = seats_per_participant(result)
    return LotterySummary(
        seed=result.seed,
        capacity=result.capacity,
        workshops=workshops,
        total_registrations=result.total_registrations,
        eligible_count=result.eligible_count,
        disqualified_count=result.disqualified_count,
        seats_filled=sum(w.accepted for w in workshops),
        unique_participants=result.unique_participant_count,
        eligible_without_seat=sum(1 for n in seat_counts if n == 0),
        gini_seats=compute_gini_index(seat_counts),
        jain_seats=compute_jain_index(seat_counts),
    )
