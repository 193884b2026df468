from __future__ import annotations

import logging
import re
from collections import Counter
from typing import Sequence

from .lottery_domain import (
    RawRegistration,
    Registration,
    ValidationResult,
    WorkshopPreference,
)

LOG = logging.getLogger(__name__)

_YES_VALUES = frozenset({"yes", "y", "ja", "oui", "sí", "si", "true", "1"})
_WORKSHOP_REF = re.compile(r"workshop\s*(\d+)", re.IGNORECASE)

# Requested but absent from the ranking list.
DEFAULT_UNRANKED_RANK = 3

REASON_MISSING_NAME = "Missing name"
REASON_MISSING_EMAIL = "Missing email"
REASON_NO_LAPTOP = "No laptop"
REASON_NO_COMMIT = "Won't commit to arrive early"
REASON_DUPLICATE = "Duplicate email"


def parse_yes_no(value: str | None) -> bool:
    """
    Interpret a form answer as yes/no.

    Accepts a few localised yes values and any answer starting with "yes"
    ("Yes, I will bring a laptop"); everything else, including blanks, is no.
    """

    if value is None:
        return False
    normalized = str(value).strip().lower()
    if not normalized:
        return False
    return normalized in _YES_VALUES or normalized.startswith("yes")


def workshop_number(workshop_id: str) -> int | None:
    """Return N for ids like "W3"; None when the id carries no number."""

    match = re.search(r"(\d+)$", workshop_id)
    return int(match.group(1)) if match else None


def parse_rankings(field: str | None, workshops: Sequence[str]) -> dict[str, int]:
    """
    Parse a semicolon-separated ranking answer into {workshop_id: rank}.

    Example: "Workshop 2 – AI;Workshop 1 – Secure;Workshop 3 – Pizza"
    -> {"W2": 1, "W1": 2, "W3": 3}. The rank is the 1-based position of the
    segment; the first mention of a workshop wins and unknown segments still
    consume a position.
    """

    ranks: dict[str, int] = {}
    if field is None or not str(field).strip():
        return ranks

    by_number = {workshop_number(w): w for w in workshops if workshop_number(w) is not None}
    segments = [s.strip() for s in str(field).split(";") if s.strip()]
    for position, segment in enumerate(segments, start=1):
        match = _WORKSHOP_REF.search(segment)
        if match is None:
            continue
        workshop_id = by_number.get(int(match.group(1)))
        if workshop_id is not None and workshop_id not in ranks:
            ranks[workshop_id] = position
    return ranks


def build_registration(raw: RawRegistration, workshops: Sequence[str]) -> Registration:
    rankings = parse_rankings(raw.rankings_response, workshops)
    preferences: dict[str, WorkshopPreference] = {}
    for workshop_id in workshops:
        requested = parse_yes_no(raw.requested_responses.get(workshop_id))
        rank = rankings.get(workshop_id, DEFAULT_UNRANKED_RANK) if requested else None
        preferences[workshop_id] = WorkshopPreference(requested=requested, rank=rank)

    return Registration(
        full_name=(raw.full_name or "").strip(),
        email=(raw.email or "").strip(),
        has_laptop=parse_yes_no(raw.laptop_response),
        will_commit=parse_yes_no(raw.commit_response),
        preferences=preferences,
        row_number=raw.row_number,
    )


def _first_failed_requirement(registration: Registration) -> str | None:
    if not registration.full_name:
        return REASON_MISSING_NAME
    if not registration.email:
        return REASON_MISSING_EMAIL
    if not registration.has_laptop:
        return REASON_NO_LAPTOP
    if not registration.will_commit:
        return REASON_NO_COMMIT
    return None


def validate_and_filter(
    raws: Sequence[RawRegistration],
    workshops: Sequence[str],
) -> ValidationResult:
    """
    Convert raw rows to registrations and split them into eligible/disqualified.

    Only the first failing requirement is recorded per registration. After
    that, every still-eligible registration whose email collides with another
    still-eligible one is disqualified, all copies included.
    """

    registrations = [build_registration(raw, workshops) for raw in raws]
    reasons: Counter[str] = Counter()

    for registration in registrations:
        reason = _first_failed_requirement(registration)
        if reason is not None:
            registration.disqualify(reason)
            reasons[reason] += 1

    key_counts = Counter(r.identity_key for r in registrations if r.is_eligible)
    for registration in registrations:
        if registration.is_eligible and key_counts[registration.identity_key] > 1:
            registration.disqualify(REASON_DUPLICATE)
            reasons[REASON_DUPLICATE] += 1

    result = ValidationResult(
        all_registrations=registrations,
        eligible=[r for r in registrations if r.is_eligible],
        disqualified=[r for r in registrations if not r.is_eligible],
        disqualification_reasons=dict(reasons.most_common()),
    )

    LOG.info(
        "Validation: total=%s eligible=%s disqualified=%s",
        result.total_count,
        len(result.eligible),
        len(result.disqualified),
    )
    for reason, count in result.disqualification_reasons.items():
        LOG.info("  %s: %s", reason, count)
    return result
