from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Sequence

DEFAULT_CAPACITY = 34
DEFAULT_WORKSHOPS: tuple[str, ...] = ("W1", "W2", "W3")


class LotteryConfigError(ValueError):
    """Raised when a lottery configuration cannot be used for a run."""


def default_seed(today: date) -> int:
    """Encode a calendar date as an integer seed, e.g. 2026-02-02 -> 20260202."""

    return int(today.strftime("%Y%m%d"))


@dataclass(frozen=True)
class LotteryConfig:
    """
    User-controlled parameters that define a lottery run.

    `workshops` is the known catalogue; `workshop_order` is the processing
    order used by both waves. Workshops earlier in the order have first claim
    on contested applicants in wave 1, so the order is a policy choice and is
    kept explicit.
    """

    capacity: int
    seed: int
    workshops: tuple[str, ...] = DEFAULT_WORKSHOPS
    workshop_order: tuple[str, ...] = ()
    sanity_checks: bool = False

    @classmethod
    def create(
        cls,
        *,
        capacity: int,
        seed: int,
        workshops: Sequence[str] = DEFAULT_WORKSHOPS,
        workshop_order: Sequence[str] | None = None,
        sanity_checks: bool = False,
    ) -> LotteryConfig:
        catalogue = tuple(workshops)
        order = tuple(workshop_order) if workshop_order is not None else catalogue
        config = cls(
            capacity=capacity,
            seed=seed,
            workshops=catalogue,
            workshop_order=order,
            sanity_checks=sanity_checks,
        )
        config.validate()
        return config

    def validate(self) -> None:
        if isinstance(self.capacity, bool) or not isinstance(self.capacity, int):
            raise LotteryConfigError(f"capacity must be an integer, got {self.capacity!r}")
        if self.capacity <= 0:
            raise LotteryConfigError(f"capacity must be > 0, got {self.capacity}")
        if isinstance(self.seed, bool) or not isinstance(self.seed, int):
            raise LotteryConfigError(f"seed must be an integer, got {self.seed!r}")
        if not self.workshops:
            raise LotteryConfigError("workshop catalogue must not be empty")
        if len(set(self.workshops)) != len(self.workshops):
            raise LotteryConfigError(f"workshop catalogue has duplicates: {list(self.workshops)}")
        if not self.workshop_order:
            raise LotteryConfigError("workshop order must not be empty")

        unknown = [w for w in self.workshop_order if w not in self.workshops]
        if unknown:
            raise LotteryConfigError(
                f"workshop order contains unknown workshops: {unknown} "
                f"(known: {list(self.workshops)})"
            )
        if len(set(self.workshop_order)) != len(self.workshop_order):
            raise LotteryConfigError(
                f"workshop order lists a workshop more than once: {list(self.workshop_order)}"
            )
        missing = [w for w in self.workshops if w not in self.workshop_order]
        if missing:
            raise LotteryConfigError(f"workshop order is missing workshops: {missing}")
