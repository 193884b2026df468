from __future__ import annotations

import logging
from datetime import date
from pathlib import Path
from typing import Mapping, Sequence

from .lottery_config import (
    DEFAULT_CAPACITY,
    DEFAULT_WORKSHOPS,
    LotteryConfig,
    default_seed,
)
from .lottery_domain import LotteryResult, Registration
from .lottery_engine import _WorkshopLotteryEngine
from .lottery_io import read_registrations
from .lottery_validation import validate_and_filter

LOG = logging.getLogger(__name__)


def run_lottery(
    eligible: Sequence[Registration],
    ineligible: Sequence[Registration],
    config: LotteryConfig,
    *,
    disqualification_reasons: Mapping[str, int] | None = None,
    enable_backfill: bool = True,
) -> LotteryResult:
    """
    Public API function: run one lottery over already-validated registrations.

    `eligible` competes in the weighted waves; `ineligible` is only used to
    backfill seats left empty afterwards. Registration counts in the result
    are taken from these inputs and the reason counts are passed through.
    """
    engine = _WorkshopLotteryEngine(
        eligible=eligible,
        ineligible=ineligible,
        config=config,
        enable_backfill=enable_backfill,
    )
    result = engine.run()
    if disqualification_reasons:
        result.disqualification_reasons = dict(disqualification_reasons)
    return result


def run_workshop_lottery(
    input_path: Path,
    *,
    capacity: int = DEFAULT_CAPACITY,
    seed: int | None = None,
    workshops: Sequence[str] = DEFAULT_WORKSHOPS,
    workshop_order: Sequence[str] | None = None,
    enable_backfill: bool = True,
    sanity_checks: bool = False,
    today: date | None = None,
) -> LotteryResult:
    """
    Run the whole workflow for a sign-up export.

    This is a thin orchestration layer:
      - Validates parameters (before touching the file)
      - Loads and validates registrations
      - Runs the lottery

    Without an explicit seed the date (`today`, default: the current date) is
    encoded as YYYYMMDD so the draw can be repeated later the same day or
    with the seed printed in the report.
    """
    if seed is None:
        seed = default_seed(today or date.today())
    config = LotteryConfig.create(
        capacity=capacity,
        seed=seed,
        workshops=workshops,
        workshop_order=workshop_order,
        sanity_checks=sanity_checks,
    )

    LOG.info("Reading registrations from %s", input_path)
    raws = read_registrations(input_path, config.workshops)
    validation = validate_and_filter(raws, config.workshops)
    if validation.disqualified:
        LOG.warning("%s registrations were disqualified", len(validation.disqualified))

    return run_lottery(
        validation.eligible,
        validation.disqualified,
        config,
        disqualification_reasons=validation.disqualification_reasons,
        enable_backfill=enable_backfill,
    )
