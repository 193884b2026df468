from __future__ import annotations

import csv
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Sequence

import pandas as pd
from openpyxl import Workbook
from openpyxl.styles import Font, PatternFill
from openpyxl.utils import get_column_letter

from .lottery_domain import (
    LotteryResult,
    RawRegistration,
    Wave,
    WorkshopAssignment,
)
from .lottery_metrics import summarize_lottery, summarize_workshop
from .lottery_validation import workshop_number

LOG = logging.getLogger(__name__)

FIELD_EMAIL = "Email"
FIELD_NAME = "FullName"
FIELD_LAPTOP = "Laptop"
FIELD_COMMIT = "Commit10Min"
FIELD_RANKINGS = "Rankings"

ASSIGNMENT_HEADERS = [
    "Workshop",
    "Order",
    "Status",
    "Wave",
    "Name",
    "Email",
    "Laptop",
    "Commit10Min",
    "Requested",
    "Rank",
    "Weight",
    "Backfill",
    "Seed",
]

_FILL_BY_KIND = {
    "wave1": PatternFill("solid", fgColor="C6EFCE"),
    "wave2": PatternFill("solid", fgColor="FFF2CC"),
    "backfill": PatternFill("solid", fgColor="FCE4D6"),
    "waitlist": PatternFill("solid", fgColor="D9D9D9"),
}
_HEADER_FILL = PatternFill("solid", fgColor="BDD7EE")


@dataclass(frozen=True)
class _ColumnMatcher:
    field_name: str
    matches: Callable[[str], bool]
    required: bool


def _requested_field(workshop_id: str) -> str:
    return f"Requested{workshop_id}"


def _column_matchers(workshops: Sequence[str]) -> list[_ColumnMatcher]:
    """
    Fuzzy header rules in priority order.

    Email is tried before name because "email address" would otherwise
    match a name rule; the name rule also excludes "email" explicitly.
    """

    matchers = [
        _ColumnMatcher(FIELD_EMAIL, lambda h: "email" in h, required=True),
        _ColumnMatcher(FIELD_NAME, lambda h: "name" in h and "email" not in h, required=True),
        _ColumnMatcher(FIELD_LAPTOP, lambda h: "laptop" in h, required=True),
        _ColumnMatcher(
            FIELD_COMMIT,
            lambda h: any(token in h for token in ("commit", "10 min", "before", "early")),
            required=True,
        ),
    ]
    for workshop_id in workshops:
        number = workshop_number(workshop_id)
        needle = f"workshop {number}" if number is not None else workshop_id.lower()
        matchers.append(
            _ColumnMatcher(
                _requested_field(workshop_id),
                lambda h, needle=needle: needle in h,
                required=False,
            )
        )
    matchers.append(_ColumnMatcher(FIELD_RANKINGS, lambda h: "rank" in h, required=False))
    return matchers


def map_columns(headers: Sequence[str], workshops: Sequence[str]) -> dict[str, str | None]:
    """
    Map logical field names to spreadsheet headers.

    Each header maps to at most one field and the first matching header wins.
    Raises ValueError when a required field has no header.
    """

    matchers = _column_matchers(workshops)
    mapping: dict[str, str | None] = {m.field_name: None for m in matchers}
    for header in headers:
        text = str(header).strip()
        if not text:
            continue
        lowered = text.lower()
        for matcher in matchers:
            if mapping[matcher.field_name] is not None:
                continue
            if matcher.matches(lowered):
                mapping[matcher.field_name] = header
                break

    missing = [m.field_name for m in matchers if m.required and mapping[m.field_name] is None]
    if missing:
        raise ValueError(
            f"Required columns not found: {', '.join(missing)}. "
            "Please verify the file has the expected column headers."
        )

    for field_name, header in mapping.items():
        if header is None:
            LOG.info("Column %s -> not found", field_name)
        else:
            LOG.info("Column %s -> %r", field_name, header)
    return mapping


def _read_frame(path: Path) -> pd.DataFrame:
    suffix = path.suffix.lower()
    if suffix == ".csv":
        # Blank lines are kept so row numbers match the spreadsheet.
        frame = pd.read_csv(path, dtype=str, keep_default_na=False, skip_blank_lines=False)
    elif suffix in {".xlsx", ".xlsm"}:
        frame = pd.read_excel(path, sheet_name=0, dtype=object, engine="openpyxl")
    else:
        raise ValueError(f"Unsupported input format {suffix!r} (expected .csv or .xlsx): {path}")
    return frame.fillna("")


def _cell(row: pd.Series, header: str | None) -> str | None:
    if header is None:
        return None
    value = str(row[header]).strip()
    return value or None


def read_registrations(path: Path, workshops: Sequence[str]) -> list[RawRegistration]:
    """
    Read a sign-up export (first sheet of an .xlsx, or a .csv).

    Row numbers are spreadsheet rows, the header being row 1. Rows with
    neither a name nor an email are skipped.
    """

    if not path.exists():
        raise FileNotFoundError(f"Input file not found: {path}")

    frame = _read_frame(path)
    mapping = map_columns([str(c) for c in frame.columns], workshops)
    frame.columns = [str(c) for c in frame.columns]

    rows: list[RawRegistration] = []
    for offset, (_, row) in enumerate(frame.iterrows()):
        raw = RawRegistration(
            row_number=offset + 2,
            full_name=_cell(row, mapping[FIELD_NAME]),
            email=_cell(row, mapping[FIELD_EMAIL]),
            laptop_response=_cell(row, mapping[FIELD_LAPTOP]),
            commit_response=_cell(row, mapping[FIELD_COMMIT]),
            requested_responses={
                w: _cell(row, mapping[_requested_field(w)]) for w in workshops
            },
            rankings_response=_cell(row, mapping[FIELD_RANKINGS]),
        )
        if raw.email is None and raw.full_name is None:
            continue
        rows.append(raw)

    LOG.info("Extracted %s registrations from %s data rows", len(rows), len(frame))
    return rows


def _ordered_for_report(assignments: Sequence[WorkshopAssignment]) -> list[WorkshopAssignment]:
    accepted = sorted(
        (a for a in assignments if a.is_accepted),
        key=lambda a: a.order,
    )
    waitlisted = sorted(
        (a for a in assignments if not a.is_accepted),
        key=lambda a: a.order,
    )
    return accepted + waitlisted


def _yes_no(flag: bool) -> str:
    return "Yes" if flag else "No"


def _assignment_row(assignment: WorkshopAssignment, seed: int) -> list:
    reg = assignment.registration
    pref = reg.preference_for(assignment.workshop_id)
    return [
        assignment.workshop_id,
        assignment.order,
        assignment.status.value,
        "" if assignment.wave is None else str(assignment.wave.value),
        reg.full_name,
        reg.email,
        _yes_no(reg.has_laptop),
        _yes_no(reg.will_commit),
        _yes_no(pref.requested),
        "" if pref.rank is None else pref.rank,
        pref.weight if pref.requested else 0,
        _yes_no(assignment.is_backfill),
        seed,
    ]


def _write_assignments_csv(path: Path, *, result: LotteryResult) -> None:
    """
    Write one row per assignment, workshops in processing order.
    """

    with path.open("w", newline="", encoding="utf-8") as f:
        writer = csv.writer(f)
        writer.writerow(ASSIGNMENT_HEADERS)
        for workshop_id in result.workshop_order:
            for assignment in _ordered_for_report(result.results[workshop_id].assignments):
                writer.writerow(_assignment_row(assignment, result.seed))


def _write_summary_csv(path: Path, *, result: LotteryResult) -> None:
    """
    Write one row per workshop with the run's seed and capacity.
    """

    with path.open("w", newline="", encoding="utf-8") as f:
        writer = csv.writer(f)
        writer.writerow(
            [
                "seed",
                "capacity",
                "workshop",
                "accepted",
                "wave1",
                "wave2",
                "backfill",
                "waitlisted",
                "unfilled",
                "fill_rate",
            ]
        )
        for workshop_id in result.workshop_order:
            summary = summarize_workshop(result.results[workshop_id], result.capacity)
            writer.writerow(
                [
                    result.seed,
                    result.capacity,
                    workshop_id,
                    summary.accepted,
                    summary.wave1,
                    summary.wave2,
                    summary.backfill,
                    summary.waitlisted,
                    summary.unfilled_seats,
                    f"{summary.fill_rate:.6f}",
                ]
            )


def _row_kind(assignment: WorkshopAssignment) -> str:
    if not assignment.is_accepted:
        return "waitlist"
    if assignment.wave is Wave.FIRST:
        return "wave1"
    if assignment.wave is Wave.SECOND:
        return "wave2"
    return "backfill"


def _autosize(ws, *, min_width: int = 10) -> None:
    for col_idx, column in enumerate(ws.iter_cols(min_row=1, max_row=ws.max_row), start=1):
        longest = max((len(str(c.value)) for c in column if c.value is not None), default=0)
        ws.column_dimensions[get_column_letter(col_idx)].width = max(min_width, longest + 2)


def _write_summary_sheet(ws, result: LotteryResult) -> None:
    ws.title = "Summary"
    ws.cell(row=1, column=1, value="Workshop Lottery Results").font = Font(bold=True, size=16)

    totals = summarize_lottery(result)
    row = 3
    for label, value in (
        ("Random Seed:", result.seed),
        ("Capacity per Workshop:", result.capacity),
        ("Total Registrations:", result.total_registrations),
        ("Eligible:", result.eligible_count),
        ("Disqualified:", result.disqualified_count),
        ("Unique Participants:", totals.unique_participants),
        ("Eligible Without Seat:", totals.eligible_without_seat),
        ("Gini (seats per eligible):", round(totals.gini_seats, 6)),
        ("Jain (seats per eligible):", round(totals.jain_seats, 6)),
    ):
        ws.cell(row=row, column=1, value=label).font = Font(bold=True)
        ws.cell(row=row, column=2, value=value)
        row += 1
    row += 1

    if result.disqualification_reasons:
        ws.cell(row=row, column=1, value="Disqualification Reasons:").font = Font(bold=True)
        row += 1
        for reason, count in sorted(result.disqualification_reasons.items(), key=lambda kv: -kv[1]):
            ws.cell(row=row, column=1, value=f"  {reason}:")
            ws.cell(row=row, column=2, value=count)
            row += 1
        row += 1

    ws.cell(row=row, column=1, value="Results by Workshop:").font = Font(bold=True)
    row += 1
    for col, title in enumerate(("Workshop", "Accepted", "Wave 1", "Wave 2", "Backfill", "Waitlist"), start=1):
        ws.cell(row=row, column=col, value=title).font = Font(bold=True)
    row += 1
    for workshop_id in result.workshop_order:
        summary = summarize_workshop(result.results[workshop_id], result.capacity)
        values = (
            workshop_id,
            summary.accepted,
            summary.wave1,
            summary.wave2,
            summary.backfill,
            summary.waitlisted,
        )
        for col, value in enumerate(values, start=1):
            ws.cell(row=row, column=col, value=value)
        row += 1
    _autosize(ws)


def _write_workshop_sheet(ws, result: LotteryResult, workshop_id: str) -> None:
    headers = ASSIGNMENT_HEADERS[1:]
    for col, title in enumerate(headers, start=1):
        cell = ws.cell(row=1, column=col, value=title)
        cell.font = Font(bold=True)
        cell.fill = _HEADER_FILL
    ws.freeze_panes = "A2"

    for excel_row, assignment in enumerate(
        _ordered_for_report(result.results[workshop_id].assignments), start=2
    ):
        fill = _FILL_BY_KIND[_row_kind(assignment)]
        for col, value in enumerate(_assignment_row(assignment, result.seed)[1:], start=1):
            ws.cell(row=excel_row, column=col, value=value).fill = fill
    _autosize(ws)


def _write_results_workbook(path: Path, *, result: LotteryResult) -> None:
    """
    Write a Summary sheet followed by one sheet per workshop.

    Accepted rows come first in order-number order, then the waitlist; rows
    are shaded by wave (green, yellow), backfill (orange) and waitlist (grey).
    """

    wb = Workbook()
    _write_summary_sheet(wb.active, result)
    for workshop_id in result.workshop_order:
        _write_workshop_sheet(wb.create_sheet(title=workshop_id), result, workshop_id)
    wb.save(path)
