#!/usr/bin/env python3
"""
CLI entrypoint wrapper for the workshop lottery.
"""

from __future__ import annotations

from lottery.lottery_api import run_lottery, run_workshop_lottery
from lottery.lottery_cli import main

__all__ = ["run_lottery", "run_workshop_lottery"]


if __name__ == "__main__":
    raise SystemExit(main())
