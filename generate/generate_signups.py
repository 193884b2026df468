#!/usr/bin/env python3
from __future__ import annotations

import argparse
import csv
import random
from dataclasses import dataclass
from pathlib import Path
from typing import Sequence

HEADERS = [
    "ID",
    "Full name",
    "Email address",
    "Will you bring a laptop?",
    "Do you commit to arrive 10 minutes before the start?",
    "Do you want to attend Workshop 1?",
    "Do you want to attend Workshop 2?",
    "Do you want to attend Workshop 3?",
    "Please rank the workshops",
]

WORKSHOP_TITLES = {
    1: "Workshop 1 – Secure Coding Literacy",
    2: "Workshop 2 – AI Architecture Critic",
    3: "Workshop 3 – Build a Pizza Ordering Agent",
}


@dataclass(frozen=True)
class SignupRow:
    row_id: int
    full_name: str
    email: str
    laptop: str
    commit: str
    requested: tuple[str, str, str]
    rankings: str


def _yes_answer(rng: random.Random) -> str:
    # Forms exports mix short and long answers.
    return rng.choice(["Yes", "yes", "Yes, I will bring my laptop"])


def _popularity_order(rng: random.Random, popularity: Sequence[float]) -> list[int]:
    """
    Rank workshops for one person, biased by popularity.

    Keys are u ** (1/w), which orders like the lottery's log(u)/w, so
    popular workshops tend to be ranked first.
    """
    keys = [(rng.random() ** (1.0 / weight), number) for number, weight in enumerate(popularity, start=1)]
    keys.sort(reverse=True)
    return [number for _, number in keys]


def generate_signups(
    n_people: int,
    rng: random.Random,
    *,
    ineligible_share: float,
    duplicate_count: int,
    popularity: Sequence[float],
) -> list[SignupRow]:
    rows: list[SignupRow] = []
    for i in range(1, n_people + 1):
        ranked = _popularity_order(rng, popularity)
        n_requested = rng.choices([1, 2, 3], weights=[3, 4, 3], k=1)[0]
        wanted = set(ranked[:n_requested])
        requested = (
            "Yes" if 1 in wanted else "No",
            "Yes" if 2 in wanted else "No",
            "Yes" if 3 in wanted else "No",
        )
        rank_field = ";".join(WORKSHOP_TITLES[n] for n in ranked if n in wanted)

        laptop = _yes_answer(rng)
        commit = _yes_answer(rng)
        if rng.random() < ineligible_share:
            if rng.random() < 0.5:
                laptop = "No"
            else:
                commit = "No"

        rows.append(
            SignupRow(
                row_id=i,
                full_name=f"Person {i}",
                email=f"person{i}@example.com",
                laptop=laptop,
                commit=commit,
                requested=requested,
                rankings=rank_field,
            )
        )

    # Re-submissions with different casing (both copies get disqualified).
    for j in range(min(duplicate_count, len(rows))):
        original = rows[j]
        rows.append(
            SignupRow(
                row_id=len(rows) + 1,
                full_name=original.full_name,
                email=original.email.upper(),
                laptop=original.laptop,
                commit=original.commit,
                requested=original.requested,
                rankings=original.rankings,
            )
        )
    return rows


def _write_csv(path: Path, rows: Sequence[SignupRow]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", newline="", encoding="utf-8") as f:
        writer = csv.writer(f)
        writer.writerow(HEADERS)
        for r in rows:
            writer.writerow([r.row_id, r.full_name, r.email, r.laptop, r.commit, *r.requested, r.rankings])


def _parse_args() -> argparse.Namespace:
    p = argparse.ArgumentParser(
        description="Generate a synthetic workshop sign-up export (CSV)",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    p.add_argument("--people", type=int, default=120, help="Number of distinct people")
    p.add_argument("--seed", type=int, default=None, help="Seed for reproducibility")
    p.add_argument(
        "--ineligible-share",
        type=float,
        default=0.1,
        help="Share of people answering No to laptop or commitment",
    )
    p.add_argument("--duplicates", type=int, default=2, help="Number of duplicate re-submissions")
    p.add_argument(
        "--popularity",
        default="3,2,1",
        help="Comma-separated relative popularity of workshops 1..3",
    )
    p.add_argument("--out", type=Path, default=Path("samples/signups.csv"))
    return p.parse_args()


def main() -> int:
    args = _parse_args()

    if args.people <= 0:
        raise SystemExit("--people must be > 0")
    if not (0.0 <= args.ineligible_share <= 1.0):
        raise SystemExit("--ineligible-share must be within 0..1")
    if args.duplicates < 0:
        raise SystemExit("--duplicates must be >= 0")
    popularity = [float(x) for x in args.popularity.split(",")]
    if len(popularity) != 3:
        raise SystemExit("--popularity needs exactly 3 values")
    if any(w <= 0 for w in popularity):
        raise SystemExit("--popularity values must be > 0")

    rng = random.Random(args.seed)
    rows = generate_signups(
        args.people,
        rng,
        ineligible_share=args.ineligible_share,
        duplicate_count=args.duplicates,
        popularity=popularity,
    )
    _write_csv(args.out, rows)

    print(f"Done: {args.out} ({len(rows)} rows)")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
