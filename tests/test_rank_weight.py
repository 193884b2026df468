import sys
import unittest
from pathlib import Path

sys.path.append(str(Path(__file__).resolve().parents[1]))

from lottery.lottery_domain import Registration, WorkshopPreference, normalize_email, rank_weight


class TestRankWeight(unittest.TestCase):
    def test_ranked_weights(self) -> None:
        self.assertEqual(rank_weight(1), 5)
        self.assertEqual(rank_weight(2), 2)
        self.assertEqual(rank_weight(3), 1)

    def test_absent_rank_is_unranked_weight(self) -> None:
        self.assertEqual(rank_weight(None), 1)

    def test_out_of_range_ranks_collapse_to_one(self) -> None:
        for rank in (0, -1, -5, 4, 10, 999):
            with self.subTest(rank=rank):
                self.assertEqual(rank_weight(rank), 1)

    def test_preference_weight_uses_mapping(self) -> None:
        self.assertEqual(WorkshopPreference(requested=True, rank=1).weight, 5)
        self.assertEqual(WorkshopPreference(requested=True, rank=2).weight, 2)
        self.assertEqual(WorkshopPreference(requested=True, rank=7).weight, 1)
        self.assertEqual(WorkshopPreference(requested=True).weight, 1)


class TestRegistration(unittest.TestCase):
    def test_identity_key_is_case_insensitive(self) -> None:
        reg = Registration(full_name="Ada", email="  Ada.Lovelace@Example.COM ")
        self.assertEqual(reg.identity_key, "ada.lovelace@example.com")
        self.assertEqual(normalize_email(None), "")

    def test_unknown_workshop_is_not_requested(self) -> None:
        reg = Registration(
            full_name="Ada",
            email="ada@example.com",
            preferences={"W1": WorkshopPreference(requested=True, rank=1)},
        )
        self.assertTrue(reg.requested("W1"))
        self.assertFalse(reg.requested("W2"))
        self.assertIsNone(reg.preference_for("W2").rank)

    def test_disqualify(self) -> None:
        reg = Registration(full_name="Ada", email="ada@example.com", has_laptop=True, will_commit=True)
        self.assertTrue(reg.is_eligible)
        reg.disqualify("No laptop")
        self.assertFalse(reg.is_eligible)
        self.assertEqual(reg.disqualification_reason, "No laptop")


if __name__ == "__main__":
    unittest.main()
