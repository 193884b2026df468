from __future__ import annotations

import logging
import math
import random
from typing import Sequence

from .lottery_config import LotteryConfig
from .lottery_domain import (
    AssignmentStatus,
    LotteryResult,
    Registration,
    Wave,
    WeightedCandidate,
    WorkshopAssignment,
    WorkshopResult,
)

LOG = logging.getLogger(__name__)


class LotteryInputError(ValueError):
    """Raised when the registrations handed to the engine break its input contract."""


def draw_unit(rng: random.Random) -> float:
    """
    Draw u uniformly from the open interval (0, 1).

    `random.random()` can return exactly 0.0; such draws are rejected and
    redrawn so that log(u) stays finite.
    """

    u = rng.random()
    while u == 0.0:
        LOG.debug("Rejected zero draw, redrawing")
        u = rng.random()
    return u


def candidate_score(weight: int, rng: random.Random) -> float:
    """
    Efraimidis-Spirakis key: log(u) / weight.

    log(u) < 0, so a larger weight pulls the key towards zero and sorting
    keys in descending order yields a weighted sample without replacement.
    """

    if weight <= 0:
        raise ValueError(f"weight must be > 0, got {weight}")
    return math.log(draw_unit(rng)) / weight


class _WorkshopLotteryEngine:
    """
    Application service that runs one lottery.

    Responsibility:
      - Score every (workshop, requester) pair from a single seeded stream.
      - Order each workshop's pool by score.
      - Fill seats in two waves, waitlist the rest, then backfill free seats.

    All state (random stream, claim sets, results) is created in __init__
    and belongs to this instance; build a new engine for every run.
    """

    def __init__(
        self,
        *,
        eligible: Sequence[Registration],
        ineligible: Sequence[Registration],
        config: LotteryConfig,
        enable_backfill: bool = True,
    ) -> None:
        config.validate()
        self._check_inputs(eligible, ineligible)

        self._config = config
        self._eligible = list(eligible)
        self._ineligible = list(ineligible)
        self._enable_backfill = enable_backfill
        self._rng = random.Random(config.seed)

        self._results: dict[str, WorkshopResult] = {
            w: WorkshopResult(workshop_id=w) for w in config.workshop_order
        }
        # Per-workshop seat counts and accepted identity keys, and the global wave-1 claim set.
        self._seats_taken: dict[str, int] = {w: 0 for w in config.workshop_order}
        self._accepted_keys: dict[str, set[str]] = {w: set() for w in config.workshop_order}
        self._claimed: set[str] = set()

    @staticmethod
    def _check_inputs(
        eligible: Sequence[Registration],
        ineligible: Sequence[Registration],
    ) -> None:
        seen: set[str] = set()
        for registration in eligible:
            if not registration.is_eligible:
                raise LotteryInputError(
                    f"Registration {registration.email!r} is marked ineligible but was passed as eligible"
                )
            key = registration.identity_key
            if key in seen:
                raise LotteryInputError(f"Duplicate eligible registration for {key!r}")
            seen.add(key)
        for registration in ineligible:
            if registration.is_eligible:
                raise LotteryInputError(
                    f"Registration {registration.email!r} is marked eligible but was passed as ineligible"
                )

    def run(self) -> LotteryResult:
        """
        Execute the lottery.

        Flow:
          1) Build one scored, ordered pool per workshop (processing order).
          2) Wave 1: at most one seat per person across all workshops.
          3) Wave 2: fill remaining seats from the same pools.
          4) Waitlist every pool member not accepted.
          5) Backfill free seats with ineligible requesters, in input order.
        """
        LOG.info(
            "Running lottery: seed=%s capacity=%s order=%s eligible=%s ineligible=%s",
            self._config.seed,
            self._config.capacity,
            list(self._config.workshop_order),
            len(self._eligible),
            len(self._ineligible),
        )

        pools = self._build_pools()
        self._run_wave_one(pools)
        self._run_wave_two(pools)
        self._run_waitlist(pools)
        self._assert_invariants("waves")
        if self._enable_backfill:
            self._run_backfill()
            self._assert_invariants("backfill")

        self._log_results()

        return LotteryResult(
            seed=self._config.seed,
            capacity=self._config.capacity,
            workshop_order=tuple(self._config.workshop_order),
            results=self._results,
            total_registrations=len(self._eligible) + len(self._ineligible),
            eligible_count=len(self._eligible),
            disqualified_count=len(self._ineligible),
            eligible_keys=tuple(r.identity_key for r in self._eligible),
        )

    # ---- Pool building ---------------------------------------------------

    def _build_pools(self) -> dict[str, list[WeightedCandidate]]:
        """
        Score and order the requesters of each workshop.

        Draws are taken workshop-major, then in input order, so the same
        seed and inputs always consume the stream identically.
        """

        pools: dict[str, list[WeightedCandidate]] = {}
        for workshop_id in self._config.workshop_order:
            candidates: list[WeightedCandidate] = []
            for index, registration in enumerate(self._eligible):
                pref = registration.preference_for(workshop_id)
                if not pref.requested:
                    continue
                candidates.append(
                    WeightedCandidate(
                        registration=registration,
                        workshop_id=workshop_id,
                        weight=pref.weight,
                        score=candidate_score(pref.weight, self._rng),
                        input_index=index,
                    )
                )
            # Stable on input order for equal scores.
            candidates.sort(key=lambda c: (-c.score, c.input_index))
            pools[workshop_id] = candidates
            LOG.info("%s: %s candidates", workshop_id, len(candidates))
        return pools

    # ---- Wave assignment -------------------------------------------------

    def _accept(self, workshop_id: str, registration: Registration, wave: Wave) -> None:
        result = self._results[workshop_id]
        result.assignments.append(
            WorkshopAssignment(
                registration=registration,
                workshop_id=workshop_id,
                status=AssignmentStatus.ACCEPTED,
                wave=wave,
                order=result.next_order(),
                is_backfill=wave is Wave.BACKFILL,
            )
        )
        self._seats_taken[workshop_id] += 1
        self._accepted_keys[workshop_id].add(registration.identity_key)

    def _seats_left(self, workshop_id: str) -> int:
        return self._config.capacity - self._seats_taken[workshop_id]

    def _run_wave_one(self, pools: dict[str, list[WeightedCandidate]]) -> None:
        """Accept only people who have not won a wave-1 seat anywhere yet."""

        for workshop_id in self._config.workshop_order:
            for candidate in pools[workshop_id]:
                if self._seats_left(workshop_id) <= 0:
                    break
                key = candidate.registration.identity_key
                if key in self._claimed:
                    continue
                self._accept(workshop_id, candidate.registration, Wave.FIRST)
                self._claimed.add(key)

    def _run_wave_two(self, pools: dict[str, list[WeightedCandidate]]) -> None:
        """Fill remaining seats; people seated elsewhere may take a second seat."""

        for workshop_id in self._config.workshop_order:
            accepted = self._accepted_keys[workshop_id]
            for candidate in pools[workshop_id]:
                if self._seats_left(workshop_id) <= 0:
                    break
                if candidate.registration.identity_key in accepted:
                    continue
                self._accept(workshop_id, candidate.registration, Wave.SECOND)

    def _run_waitlist(self, pools: dict[str, list[WeightedCandidate]]) -> None:
        for workshop_id in self._config.workshop_order:
            result = self._results[workshop_id]
            accepted = self._accepted_keys[workshop_id]
            for candidate in pools[workshop_id]:
                if candidate.registration.identity_key in accepted:
                    continue
                result.assignments.append(
                    WorkshopAssignment(
                        registration=candidate.registration,
                        workshop_id=workshop_id,
                        status=AssignmentStatus.WAITLISTED,
                        wave=None,
                        order=result.next_order(),
                    )
                )

    # ---- Backfill --------------------------------------------------------

    def _run_backfill(self) -> None:
        """
        Seat ineligible requesters in seats still free after both waves.

        No scoring: ineligible registrations are taken in input order. A free
        seat implies the workshop's pool was exhausted, so its waitlist is
        empty and appended order numbers stay above every earlier one.

        Copies of an email already seated here are skipped. Registrations
        without an email have no identity to compare and are each seated.
        """

        for workshop_id in self._config.workshop_order:
            if self._seats_left(workshop_id) <= 0:
                continue
            accepted = self._accepted_keys[workshop_id]
            filled = 0
            for registration in self._ineligible:
                if self._seats_left(workshop_id) <= 0:
                    break
                if not registration.requested(workshop_id):
                    continue
                key = registration.identity_key
                if key and key in accepted:
                    continue
                self._accept(workshop_id, registration, Wave.BACKFILL)
                filled += 1
            if filled:
                LOG.info("%s: backfilled %s seats with ineligible requesters", workshop_id, filled)

    # ---- Invariants ------------------------------------------------------

    def _assert_invariants(self, stage: str) -> None:
        if not self._config.sanity_checks:
            return
        capacity = self._config.capacity
        claimed: set[str] = set()
        for workshop_id, result in self._results.items():
            if result.accepted_count > capacity:
                raise AssertionError(
                    f"Capacity exceeded for {workshop_id} after {stage}: "
                    f"{result.accepted_count} > {capacity}"
                )
            orders = [a.order for a in result.assignments]
            if orders != list(range(1, len(orders) + 1)):
                raise AssertionError(f"Order numbers not sequential for {workshop_id} after {stage}")
            accepted_orders = [a.order for a in result.accepted]
            waitlisted_orders = [a.order for a in result.waitlisted]
            if accepted_orders and waitlisted_orders and max(accepted_orders) > min(waitlisted_orders):
                raise AssertionError(f"Accepted seat ordered after waitlist for {workshop_id} after {stage}")
            for a in result.accepted:
                if a.wave is not Wave.FIRST:
                    continue
                key = a.registration.identity_key
                if key in claimed:
                    raise AssertionError(f"{key} holds more than one wave-1 seat")
                claimed.add(key)

    def _log_results(self) -> None:
        for workshop_id, result in self._results.items():
            LOG.info(
                "%s: accepted=%s (wave1=%s wave2=%s backfill=%s) waitlist=%s",
                workshop_id,
                result.accepted_count,
                result.wave1_count,
                result.wave2_count,
                result.backfill_count,
                result.waitlist_count,
            )
