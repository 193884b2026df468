from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

UNRANKED_WEIGHT = 1
_WEIGHT_BY_RANK = {1: 5, 2: 2}


def rank_weight(rank: int | None) -> int:
    """
    Map a preference rank to its lottery weight.

    Total over the rank domain: 1 -> 5, 2 -> 2, and every other value
    (3, absent, 0, negative, > 3) collapses to the unranked weight 1.
    """

    if rank is None or isinstance(rank, bool):
        return UNRANKED_WEIGHT
    return _WEIGHT_BY_RANK.get(rank, UNRANKED_WEIGHT)


def normalize_email(email: str | None) -> str:
    """Identity key used for duplicate detection and cross-workshop tracking."""

    return (email or "").strip().lower()


class AssignmentStatus(Enum):
    ACCEPTED = "Accepted"
    WAITLISTED = "Waitlisted"


class Wave(Enum):
    """Which stage produced an accepted seat."""

    FIRST = 1
    SECOND = 2
    BACKFILL = "backfill"


@dataclass(frozen=True)
class RawRegistration:
    """One sign-up row as read from the spreadsheet, before any interpretation."""

    row_number: int
    full_name: str | None = None
    email: str | None = None
    laptop_response: str | None = None
    commit_response: str | None = None
    requested_responses: dict[str, str | None] = field(default_factory=dict)
    rankings_response: str | None = None


@dataclass(frozen=True)
class WorkshopPreference:
    """An applicant's interest in one workshop."""

    requested: bool = False
    rank: int | None = None

    @property
    def weight(self) -> int:
        return rank_weight(self.rank)


_NOT_REQUESTED = WorkshopPreference()


@dataclass(eq=False)
class Registration:
    """
    A validated applicant.

    Eligibility starts true and is cleared by `disqualify()`; only the
    validator mutates it. The engine treats registrations as read-only.
    """

    full_name: str
    email: str
    has_laptop: bool = False
    will_commit: bool = False
    preferences: dict[str, WorkshopPreference] = field(default_factory=dict)
    row_number: int | None = None
    is_eligible: bool = True
    disqualification_reason: str | None = None

    @property
    def identity_key(self) -> str:
        return normalize_email(self.email)

    def preference_for(self, workshop_id: str) -> WorkshopPreference:
        return self.preferences.get(workshop_id, _NOT_REQUESTED)

    def requested(self, workshop_id: str) -> bool:
        return self.preference_for(workshop_id).requested

    def disqualify(self, reason: str) -> None:
        self.is_eligible = False
        self.disqualification_reason = reason


@dataclass(frozen=True)
class WeightedCandidate:
    """
    A registration competing for one workshop.

    `score` is the Efraimidis-Spirakis key log(u) / weight; higher sorts first.
    `input_index` is the registration's position in the input and breaks ties.
    """

    registration: Registration
    workshop_id: str
    weight: int
    score: float
    input_index: int


@dataclass(frozen=True)
class WorkshopAssignment:
    registration: Registration
    workshop_id: str
    status: AssignmentStatus
    wave: Wave | None
    order: int
    is_backfill: bool = False

    @property
    def is_accepted(self) -> bool:
        return self.status is AssignmentStatus.ACCEPTED


@dataclass
class WorkshopResult:
    """
    All assignments of one workshop, in emission order.

    Counts are derived from the list on every access.
    """

    workshop_id: str
    assignments: list[WorkshopAssignment] = field(default_factory=list)

    @property
    def accepted(self) -> list[WorkshopAssignment]:
        return [a for a in self.assignments if a.is_accepted]

    @property
    def waitlisted(self) -> list[WorkshopAssignment]:
        return [a for a in self.assignments if not a.is_accepted]

    @property
    def accepted_count(self) -> int:
        return len(self.accepted)

    @property
    def wave1_count(self) -> int:
        return sum(1 for a in self.accepted if a.wave is Wave.FIRST)

    @property
    def wave2_count(self) -> int:
        return sum(1 for a in self.accepted if a.wave is Wave.SECOND)

    @property
    def backfill_count(self) -> int:
        return sum(1 for a in self.accepted if a.is_backfill)

    @property
    def waitlist_count(self) -> int:
        return len(self.waitlisted)

    def next_order(self) -> int:
        return len(self.assignments) + 1


@dataclass
class LotteryResult:
    """
    Outputs of a run.

    `results` is keyed by workshop id and iterates in processing order.
    Registration counts come from the validator and are passed through.
    `eligible_keys` lists the identity keys that entered the lottery, in
    input order, so seat distributions can include people who won nothing.
    """

    seed: int
    capacity: int
    workshop_order: tuple[str, ...]
    results: dict[str, WorkshopResult]
    total_registrations: int = 0
    eligible_count: int = 0
    disqualified_count: int = 0
    disqualification_reasons: dict[str, int] = field(default_factory=dict)
    eligible_keys: tuple[str, ...] = ()

    def accepted_keys(self, workshop_id: str) -> list[str]:
        return [a.registration.identity_key for a in self.results[workshop_id].accepted]

    @property
    def unique_participant_count(self) -> int:
        keys = {
            a.registration.identity_key
            for result in self.results.values()
            for a in result.accepted
        }
        return len(keys)


@dataclass
class ValidationResult:
    all_registrations: list[Registration] = field(default_factory=list)
    eligible: list[Registration] = field(default_factory=list)
    disqualified: list[Registration] = field(default_factory=list)
    disqualification_reasons: dict[str, int] = field(default_factory=dict)

    @property
    def total_count(self) -> int:
        return len(self.all_registrations)
