from django.core.exceptions import ImproperlyConfigured
from django.test import SimpleTestCase, override_settings

from calculator.services.compatibility import RuleRegistry, Severity, evaluate
from calculator.services.field_rules import (
    Operator,
    compare,
    field_rule_from_dict,
    field_rules_from_config,
    get_registry,
)
from calculator.services.rules import DEFAULT_REGISTRY

SPEED_RULE = {
    "id": "ram-board-speed-cap",
    "source_category": "ram",
    "source_field": "ram_speed_mhz",
    "operator": "less_than_or_equal",
    "target_category": "motherboard",
    "target_field": "max_ram_speed_mhz",
    "severity": "warning",
    "message": "RAM Too Fast: the board caps memory speed",
}


def part(name, **data):
    return {"name": name, "data": data}


def issues_for(result, rule_id):
    return [i for i in result.issues if i.rule_id == rule_id]


class TestCompare(SimpleTestCase):
    def test_text_operators(self):
        self.assertTrue(compare(Operator.EQUALS, "AM5", " am5"))
        self.assertTrue(compare(Operator.NOT_EQUALS, "AM5", "AM4"))
        self.assertTrue(compare(Operator.INCLUDES, "AM5", "AM4, AM5"))
        self.assertTrue(compare(Operator.NOT_INCLUDES, "LGA1700", "AM4, AM5"))

    def test_numeric_operators(self):
        self.assertTrue(compare(Operator.LESS_THAN_OR_EQUAL, "320 mm", 330))
        self.assertFalse(compare(Operator.GREATER_THAN, 5, 5))
        self.assertTrue(compare(Operator.GREATER_THAN_OR_EQUAL, 5, 5))


class TestFieldRules(SimpleTestCase):
    def setUp(self):
        self.registry = RuleRegistry([field_rule_from_dict(SPEED_RULE)])

    def test_failing_comparison(self):
        result = evaluate(
            {
                "ram": part("Fast Kit", ram_speed_mhz=7200),
                "motherboard": part("Board", max_ram_speed_mhz=6000),
            },
            registry=self.registry,
        )
        issue = result.issues[0]
        self.assertEqual(issue.type, "RAM Too Fast")
        self.assertEqual(issue.severity, Severity.WARNING)
        self.assertIn("at least 7200MHz", issue.fix)
        self.assertIn("Option 2:", issue.fix)
        self.assertEqual(issue.spec_keys, ("ram_speed_mhz", "max_ram_speed_mhz"))

    def test_passing_comparison_confirms(self):
        result = evaluate(
            {
                "ram": part("Kit", ram_speed_mhz=6000),
                "motherboard": part("Board", max_ram_speed_mhz=6400),
            },
            registry=self.registry,
        )
        self.assertEqual(result.issues, ())
        self.assertEqual(result.confirmations[0].rule_id, "ram-board-speed-cap")

    def test_missing_or_non_numeric_values_skip(self):
        for ram in (part("Kit"), part("Kit", ram_speed_mhz="fast")):
            result = evaluate(
                {"ram": ram, "motherboard": part("Board", max_ram_speed_mhz=6000)},
                registry=self.registry,
            )
            self.assertEqual((result.issues, result.confirmations), ((), ()))

    def test_bad_rows(self):
        with self.assertRaisesMessage(ImproperlyConfigured, "unknown operator"):
            field_rule_from_dict({**SPEED_RULE, "operator": "roughly"})
        with self.assertRaisesMessage(ImproperlyConfigured, "unknown category"):
            field_rule_from_dict({**SPEED_RULE, "target_category": "toaster"})
        with self.assertRaisesMessage(ImproperlyConfigured, "missing"):
            field_rule_from_dict({"id": "x"})
        with self.assertRaisesMessage(ImproperlyConfigured, "warp_factor"):
            RuleRegistry([field_rule_from_dict({**SPEED_RULE, "source_field": "warp_factor"})])

    def test_inactive_rows_are_dropped(self):
        self.assertEqual(field_rules_from_config([{**SPEED_RULE, "active": False}]), [])


class TestRegistryFromSettings(SimpleTestCase):
    def test_default(self):
        self.assertIs(get_registry(), DEFAULT_REGISTRY)

    @override_settings(BUILDMATE_FIELD_RULES=[SPEED_RULE])
    def test_configured_rules_run_last(self):
        registry = get_registry()
        self.assertEqual(registry.rule_ids[-1], "ram-board-speed-cap")
        result = evaluate(
            {
                "ram": part("Fast Kit", ram_speed_mhz=7200),
                "motherboard": part("Board", max_ram_speed_mhz=6000),
            }
        )
        self.assertEqual(len(issues_for(result, "ram-board-speed-cap")), 1)

    @override_settings(BUILDMATE_FIELD_RULES=[{**SPEED_RULE, "id": "ram-speed-downclock"}])
    def test_id_clash_with_builtin(self):
        with self.assertRaises(ImproperlyConfigured):
            get_registry()
