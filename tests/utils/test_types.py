from __future__ import annotations

import unittest

from MEDREF.packages.types import (
    coerce_count,
    coerce_duration,
    coerce_flag,
    coerce_label,
    coerce_name_list,
    coerce_percentage,
    parse_count,
)


class SettingCoercionTests(unittest.TestCase):
    # ------------------------------------------------------------------
    def test_parse_count_accepts_plain_positive_numbers(self) -> None:
        self.assertEqual(parse_count(5000), 5000)
        self.assertEqual(parse_count(" 250 "), 250)
        self.assertEqual(parse_count("+7"), 7)
        self.assertEqual(parse_count(12.0), 12)

    # ------------------------------------------------------------------
    def test_parse_count_rejects_signed_partial_and_fractional_values(self) -> None:
        for value in ("-5", "100 terms", "4.5", "", "abc", 0, -3, 2.5, True, None, [4]):
            with self.subTest(value=value):
                self.assertIsNone(parse_count(value))

    # ------------------------------------------------------------------
    def test_coerce_count_falls_back_to_default(self) -> None:
        self.assertEqual(coerce_count("-5", 5000), 5000)
        self.assertEqual(coerce_count("3", 2), 3)

    # ------------------------------------------------------------------
    def test_percentages_are_clamped(self) -> None:
        self.assertEqual(coerce_percentage(150, 85.0), 100.0)
        self.assertEqual(coerce_percentage("-4", 85.0), 0.0)
        self.assertEqual(coerce_percentage("92.5", 85.0), 92.5)
        self.assertEqual(coerce_percentage("nan", 85.0), 85.0)
        self.assertEqual(coerce_percentage(False, 85.0), 85.0)

    # ------------------------------------------------------------------
    def test_durations_respect_minimum(self) -> None:
        self.assertEqual(coerce_duration("1.5", 24.0), 1.5)
        self.assertEqual(coerce_duration(-2, 24.0), 0.0)
        self.assertEqual(coerce_duration(0.01, 10.0, minimum=0.1), 0.1)
        self.assertEqual(coerce_duration("inf", 24.0), 24.0)
        self.assertEqual(coerce_duration(None, 24.0), 24.0)

    # ------------------------------------------------------------------
    def test_flags_and_labels(self) -> None:
        self.assertFalse(coerce_flag("off", True))
        self.assertTrue(coerce_flag("YES", False))
        self.assertTrue(coerce_flag("maybe", True))
        self.assertTrue(coerce_flag(0, True))
        self.assertEqual(coerce_label("  medref/1.0 ", "default"), "medref/1.0")
        self.assertEqual(coerce_label("   ", "default"), "default")
        self.assertEqual(coerce_label(42, "default"), "default")

    # ------------------------------------------------------------------
    def test_name_lists_are_upper_cased_and_deduplicated(self) -> None:
        self.assertEqual(coerce_name_list("bob, Bob, alice", ()), ("BOB", "ALICE"))
        self.assertEqual(coerce_name_list(["jose", 3, " Juan "], ()), ("JOSE", "JUAN"))
        self.assertEqual(coerce_name_list([], ("cade",)), ("CADE",))
        self.assertEqual(coerce_name_list(None, ("Cade", "CADE")), ("CADE",))


if __name__ == "__main__":
    unittest.main()
