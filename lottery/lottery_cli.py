from __future__ import annotations

import argparse
import logging
from pathlib import Path

from .lottery_api import run_workshop_lottery
from .lottery_config import DEFAULT_CAPACITY, DEFAULT_WORKSHOPS, LotteryConfigError
from .lottery_io import (
    _write_assignments_csv,
    _write_results_workbook,
    _write_summary_csv,
)
from .lottery_metrics import summarize_lottery

LOG = logging.getLogger(__name__)


def _split_ids(raw: str) -> list[str]:
    return [part.strip() for part in raw.split(",") if part.strip()]


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(
        description="Weighted, seeded workshop lottery (two waves + waitlist + backfill)",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    p.add_argument("--input", type=Path, required=True, help="Sign-up export (.xlsx or .csv)")
    p.add_argument(
        "--output",
        type=Path,
        default=Path("WorkshopAssignments.xlsx"),
        help="Excel workbook with a Summary sheet and one sheet per workshop",
    )
    p.add_argument(
        "--out-csv",
        type=Path,
        default=None,
        help="Optional CSV with one row per assignment",
    )
    p.add_argument(
        "--out-summary",
        type=Path,
        default=None,
        help="Optional CSV with per-workshop counts",
    )
    p.add_argument("--capacity", type=int, default=DEFAULT_CAPACITY, help="Seats per workshop")
    p.add_argument(
        "--seed",
        type=int,
        default=None,
        help="Random seed (default: today's date as YYYYMMDD)",
    )
    p.add_argument(
        "--workshops",
        default=",".join(DEFAULT_WORKSHOPS),
        help="Comma-separated workshop ids",
    )
    p.add_argument(
        "--order",
        default=None,
        help="Comma-separated processing order; earlier workshops win contested applicants in wave 1",
    )
    p.add_argument(
        "--no-backfill",
        action="store_true",
        help="Leave seats empty instead of filling them with ineligible requesters",
    )
    p.add_argument(
        "--sanity-checks",
        action="store_true",
        help="Re-verify capacity and ordering invariants after each stage",
    )
    p.add_argument(
        "--log-level",
        default="WARNING",
        choices=["CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"],
        help="Logging verbosity",
    )
    return p.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)

    logging.basicConfig(level=getattr(logging, args.log_level))
    LOG.debug("Starting run with args=%s", args)

    try:
        result = run_workshop_lottery(
            args.input,
            capacity=args.capacity,
            seed=args.seed,
            workshops=_split_ids(args.workshops),
            workshop_order=(_split_ids(args.order) if args.order is not None else None),
            enable_backfill=not args.no_backfill,
            sanity_checks=args.sanity_checks,
        )
    except LotteryConfigError as exc:
        print(f"Invalid configuration: {exc}")
        return 2

    _write_results_workbook(args.output, result=result)
    if args.out_csv is not None:
        _write_assignments_csv(args.out_csv, result=result)
    if args.out_summary is not None:
        _write_summary_csv(args.out_summary, result=result)

    summary = summarize_lottery(result)
    print(f"OK: {args.output} (seed {result.seed}, capacity {result.capacity})")
    print(
        f"Registrations: total={summary.total_registrations} "
        f"eligible={summary.eligible_count} disqualified={summary.disqualified_count}"
    )
    for ws in summary.workshops:
        print(
            f"{ws.workshop_id}: accepted={ws.accepted} (wave1={ws.wave1} wave2={ws.wave2} "
            f"backfill={ws.backfill}) waitlist={ws.waitlisted}"
        )
    print(f"Unique participants: {summary.unique_participants}")
    print(
        f"Seats per eligible participant: GiniSeats={summary.gini_seats:.6f} "
        f"JainSeats={summary.jain_seats:.6f} "
        f"EligibleWithoutSeat={summary.eligible_without_seat}"
    )
    return 0
