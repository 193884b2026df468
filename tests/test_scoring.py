import math
import random
import sys
import unittest
from pathlib import Path

sys.path.append(str(Path(__file__).resolve().parents[1]))

from lottery.lottery_config import LotteryConfig
from lottery.lottery_domain import Registration, WorkshopPreference
from lottery.lottery_engine import _WorkshopLotteryEngine, candidate_score, draw_unit


class _ScriptedRandom:
    """Returns a fixed sequence of draws, then falls back to a seeded stream."""

    def __init__(self, draws: list[float]) -> None:
        self._draws = list(draws)
        self._fallback = random.Random(0)
        self.calls = 0

    def random(self) -> float:
        self.calls += 1
        if self._draws:
            return self._draws.pop(0)
        return self._fallback.random()


def _reg(name: str, rank: int | None) -> Registration:
    return Registration(
        full_name=name,
        email=f"{name.lower()}@example.com",
        has_laptop=True,
        will_commit=True,
        preferences={"W1": WorkshopPreference(requested=True, rank=rank)},
    )


class TestCandidateScorer(unittest.TestCase):
    def test_zero_draw_is_redrawn(self) -> None:
        rng = _ScriptedRandom([0.0, 0.0, 0.25])
        self.assertEqual(draw_unit(rng), 0.25)
        self.assertEqual(rng.calls, 3)

    def test_score_is_log_over_weight(self) -> None:
        rng = _ScriptedRandom([0.5])
        self.assertAlmostEqual(candidate_score(5, rng), math.log(0.5) / 5, places=12)

    def test_score_after_redraw_is_finite(self) -> None:
        rng = _ScriptedRandom([0.0, 0.5])
        score = candidate_score(2, rng)
        self.assertTrue(math.isfinite(score))
        self.assertAlmostEqual(score, math.log(0.5) / 2, places=12)

    def test_higher_weight_moves_score_towards_zero(self) -> None:
        low = candidate_score(1, _ScriptedRandom([0.3]))
        high = candidate_score(5, _ScriptedRandom([0.3]))
        self.assertLess(low, high)
        self.assertLess(high, 0.0)

    def test_non_positive_weight_rejected(self) -> None:
        with self.assertRaises(ValueError):
            candidate_score(0, random.Random(1))


class TestPoolBuilder(unittest.TestCase):
    def _engine(self, eligible: list[Registration], seed: int = 7) -> _WorkshopLotteryEngine:
        config = LotteryConfig.create(capacity=1, seed=seed, workshops=["W1", "W2"])
        return _WorkshopLotteryEngine(eligible=eligible, ineligible=[], config=config)

    def test_pool_sorted_descending_by_score(self) -> None:
        eligible = [_reg(f"P{i}", (i % 3) + 1) for i in range(20)]
        pools = self._engine(eligible)._build_pools()
        scores = [c.score for c in pools["W1"]]
        self.assertEqual(scores, sorted(scores, reverse=True))
        self.assertEqual(len(pools["W1"]), 20)

    def test_non_requesters_never_in_pool(self) -> None:
        eligible = [_reg("A", 1), _reg("B", 2)]
        pools = self._engine(eligible)._build_pools()
        self.assertEqual(pools["W2"], [])
        self.assertEqual({c.registration.full_name for c in pools["W1"]}, {"A", "B"})

    def test_weights_follow_rank(self) -> None:
        eligible = [_reg("A", 1), _reg("B", 2), _reg("C", None)]
        pools = self._engine(eligible)._build_pools()
        weights = {c.registration.full_name: c.weight for c in pools["W1"]}
        self.assertEqual(weights, {"A": 5, "B": 2, "C": 1})

    def test_draws_follow_input_order(self) -> None:
        eligible = [_reg("A", 1), _reg("B", 1), _reg("C", 1)]
        pools = self._engine(eligible, seed=11)._build_pools()

        rng = random.Random(11)
        expected = {name: math.log(draw_unit(rng)) / 5 for name in ("A", "B", "C")}
        actual = {c.registration.full_name: c.score for c in pools["W1"]}
        self.assertEqual(actual, expected)

    def test_equal_scores_keep_input_order(self) -> None:
        eligible = [_reg("A", 1), _reg("B", 1), _reg("C", 1)]
        engine = self._engine(eligible)
        # Every draw is the same value, so all scores tie.
        engine._rng = _ScriptedRandom([0.5] * 3)
        pools = engine._build_pools()
        self.assertEqual([c.registration.full_name for c in pools["W1"]], ["A", "B", "C"])


if __name__ == "__main__":
    unittest.main()
