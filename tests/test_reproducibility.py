import sys
import unittest
from pathlib import Path
from tempfile import TemporaryDirectory

sys.path.append(str(Path(__file__).resolve().parents[1]))

from lottery.lottery_api import run_lottery
from lottery.lottery_config import LotteryConfig
from lottery.lottery_domain import LotteryResult, Registration, WorkshopPreference
from lottery.lottery_io import _write_assignments_csv, _write_summary_csv


def _applicants(n: int) -> list[Registration]:
    people = []
    for i in range(n):
        preferences = {}
        for offset, workshop_id in enumerate(("W1", "W2", "W3")):
            if (i + offset) % 3 != 2:
                preferences[workshop_id] = WorkshopPreference(requested=True, rank=((i + offset) % 3) + 1)
        people.append(
            Registration(
                full_name=f"Person {i}",
                email=f"person{i}@example.com",
                has_laptop=True,
                will_commit=True,
                preferences=preferences,
            )
        )
    return people


def _run(seed: int, n: int = 50, capacity: int = 10) -> LotteryResult:
    config = LotteryConfig.create(capacity=capacity, seed=seed)
    return run_lottery(_applicants(n), [], config)


def _fingerprint(result: LotteryResult) -> list[tuple]:
    return [
        (w, a.registration.identity_key, a.status, a.wave, a.order)
        for w in result.workshop_order
        for a in result.results[w].assignments
    ]


def _run_to_files(workdir: Path, seed: int) -> tuple[str, str]:
    result = _run(seed)
    assignments = workdir / "assignments.csv"
    summary = workdir / "summary.csv"
    _write_assignments_csv(assignments, result=result)
    _write_summary_csv(summary, result=result)
    return assignments.read_text(encoding="utf-8"), summary.read_text(encoding="utf-8")


class TestReproducibility(unittest.TestCase):
    def test_same_seed_gives_identical_assignments(self) -> None:
        self.assertEqual(_fingerprint(_run(42)), _fingerprint(_run(42)))

    def test_same_seed_writes_identical_files(self) -> None:
        with TemporaryDirectory() as d1, TemporaryDirectory() as d2:
            first = _run_to_files(Path(d1), 20260202)
            second = _run_to_files(Path(d2), 20260202)
        self.assertEqual(first, second)

    def test_different_seeds_give_different_draws(self) -> None:
        self.assertNotEqual(_fingerprint(_run(100)), _fingerprint(_run(200)))

    def test_fresh_engine_per_run(self) -> None:
        people = _applicants(30)
        config = LotteryConfig.create(capacity=5, seed=3)
        first = run_lottery(people, [], config)
        second = run_lottery(people, [], config)
        self.assertEqual(_fingerprint(first), _fingerprint(second))


if __name__ == "__main__":
    unittest.main()
