import unittest

from analytics_service.models import (
    Activity,
    Continuous,
    Polarity,
    RULES,
    Segmented,
    resolve_rule,
)


class ActivityResolutionTest(unittest.TestCase):
    def test_normalizes_case_and_whitespace(self):
        self.assertIs(Activity.from_identifier("  SQUAT "), Activity.SQUAT)

    def test_substring_match(self):
        self.assertEqual(resolve_rule("bodyweight squats").name, "squat")
        self.assertEqual(resolve_rule("knee pushup").name, "pushup")
        self.assertEqual(resolve_rule("Warrior2 left").name, "warrior2")

    def test_unknown_activity_uses_default(self):
        self.assertEqual(resolve_rule("jumping jacks").name, "default")
        self.assertEqual(resolve_rule("").name, "default")
        self.assertEqual(resolve_rule(None).name, "default")

    def test_first_declared_match_wins(self):
        # "squat" is declared before "lunge"
        self.assertEqual(resolve_rule("lunge to squat combo").name, "squat")
        # "pushup" is declared before "plank"
        self.assertEqual(resolve_rule("plank_pushup").name, "pushup")

    def test_every_activity_has_a_rule(self):
        self.assertEqual(set(RULES), set(Activity))
        for activity, rule in RULES.items():
            self.assertEqual(rule.name, activity.value)
            self.assertIn(rule.primary_metric, rule.metrics)


class SegmentationModeTest(unittest.TestCase):
    def test_hold_rules_are_continuous(self):
        for name in ("plank", "tree", "warrior2"):
            rule = resolve_rule(name)
            self.assertIsInstance(rule.segmentation, Continuous)
            self.assertTrue(rule.is_hold)
            self.assertIs(rule.polarity, Polarity.NONE)
            self.assertIsNone(rule.min_frames_for_rep)

    def test_rep_rules_are_segmented(self):
        rule = resolve_rule("squat")
        self.assertEqual(rule.segmentation, Segmented(min_frames=6, polarity=Polarity.VALLEY))
        self.assertEqual(rule.min_frames_for_rep, 6)
        self.assertFalse(rule.is_hold)

    def test_segmented_rejects_none_polarity(self):
        with self.assertRaises(ValueError):
            Segmented(min_frames=6, polarity=Polarity.NONE)

    def test_to_dict_is_plain_data(self):
        data = resolve_rule("plank").to_dict()
        self.assertEqual(data["polarity"], "none")
        self.assertIsNone(data["min_frames_for_rep"])
        self.assertEqual(data["metrics"]["body"], {"ideal": 180, "tolerance": 12})


if __name__ == "__main__":
    unittest.main()
