from dataclasses import replace

from django.core.exceptions import ImproperlyConfigured
from django.test import SimpleTestCase, override_settings

from calculator.services.compatibility import Severity, evaluate
from calculator.services.policy import (
    DEFAULT_POLICY,
    get_policy,
    policy_from_overrides,
)
from calculator.services.power import recommended_psu_wattage


class TestPolicy(SimpleTestCase):
    def test_defaults(self):
        self.assertIs(policy_from_overrides({}), DEFAULT_POLICY)
        self.assertEqual(DEFAULT_POLICY.safety_margin, 0.25)
        self.assertEqual(DEFAULT_POLICY.psu_step_watts, 50)

    def test_overrides(self):
        policy = policy_from_overrides({"safety_margin": 0.3})
        self.assertEqual(policy.safety_margin, 0.3)
        self.assertEqual(policy.psu_step_watts, 50)

    def test_unknown_key(self):
        with self.assertRaisesMessage(ImproperlyConfigured, "bogus"):
            policy_from_overrides({"bogus": 1})

    def test_not_a_dict(self):
        with self.assertRaises(ImproperlyConfigured):
            policy_from_overrides([("safety_margin", 0.3)])

    @override_settings(BUILDMATE_POLICY={"psu_step_watts": 100})
    def test_settings_override(self):
        self.assertEqual(get_policy().psu_step_watts, 100)
        # 510 * 1.25 = 637.5 -> next 100W step
        self.assertEqual(recommended_psu_wattage(400, 110), 700)

    @override_settings(BUILDMATE_POLICY={"psu_step_watts": 100})
    def test_explicit_policy_wins(self):
        self.assertIs(get_policy(DEFAULT_POLICY), DEFAULT_POLICY)
        self.assertEqual(recommended_psu_wattage(400, 110, DEFAULT_POLICY), 650)

    def test_rule_thresholds_follow_policy(self):
        selection = {
            "cpu": {"data": {"tdp_watts": 65}},
            "gpu": {"data": {"tdp_watts": 220}},
            "psu": {"data": {"wattage": 400}},
        }
        strict = replace(DEFAULT_POLICY, rule_baseline_watts=200)
        severities = [i.severity for i in evaluate(selection, policy=strict).issues]
        self.assertEqual(severities, [Severity.ERROR])

    @override_settings(BUILDMATE_POLICY={"tier_gap_threshold": 4})
    def test_tier_gap_override(self):
        selection = {
            "cpu": {"data": {"cpu_tier": "Budget"}},
            "gpu": {"data": {"gpu_tier": "Flagship"}},
        }
        self.assertEqual(evaluate(selection).issues, ())
        self.assertEqual(len(evaluate(selection, policy=DEFAULT_POLICY).issues), 1)

    def test_cooler_overspec_ratio_override(self):
        selection = {
            "cpu": {"data": {"tdp_watts": 65}},
            "cooler": {"data": {"tdp_rating_watts": 250}},
        }
        relaxed = replace(DEFAULT_POLICY, cooler_overspec_ratio=5)
        self.assertEqual(evaluate(selection, policy=relaxed).issues, ())
        issue = evaluate(selection, policy=DEFAULT_POLICY).issues[0]
        self.assertIn("65W and 115W", issue.fix)
