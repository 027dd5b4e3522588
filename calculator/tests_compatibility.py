from django.core.exceptions import ImproperlyConfigured
from django.test import SimpleTestCase

from calculator.services.compatibility import (
    Rule,
    RuleOutcome,
    RuleRegistry,
    Severity,
    ValidationSkipped,
    evaluate,
)
from calculator.services.rules import DEFAULT_REGISTRY, parse_power_connectors
from hardware.specs import PartCategory


def part(name, **data):
    return {"name": name, "data": data}


def rule_ids(result):
    return [issue.rule_id for issue in result.issues]


def issues_for(result, rule_id):
    return [issue for issue in result.issues if issue.rule_id == rule_id]


class TestEngine(SimpleTestCase):
    def test_empty_selection(self):
        result = evaluate({})
        self.assertEqual(result.issues, ())
        self.assertEqual(result.confirmations, ())
        self.assertEqual(
            result.summary(),
            {"total_issues": 0, "errors": 0, "warnings": 0, "info": 0, "can_build": True},
        )

    def test_malformed_selections_do_not_raise(self):
        for selection in (None, [1, 2], {"cpu": "Ryzen"}, {"cpu": {"data": "x"}}):
            self.assertEqual(evaluate(selection).issues, ())

    def test_deterministic(self):
        selection = {
            "cpu": part("A", socket="AM5", tdp_watts=170, cpu_tier="Budget"),
            "motherboard": part("B", socket="LGA1700", memory_type="DDR4"),
            "ram": part("C", speed="DDR5-6000"),
            "gpu": part("D", tdp_watts=450, gpu_tier="Flagship"),
            "psu": part("E", wattage=550),
        }
        first, second = evaluate(selection), evaluate(selection)
        self.assertEqual(first, second)
        self.assertEqual(first.to_dict(), second.to_dict())

    def test_issues_follow_registration_order(self):
        selection = {
            "cpu": part("A", socket="AM5", tdp_watts=170, cpu_tier="Budget"),
            "motherboard": part("B", socket="LGA1700", memory_type="DDR4"),
            "ram": part("C", speed="DDR5-6000"),
            "gpu": part("D", tdp_watts=450, gpu_tier="Flagship"),
            "psu": part("E", wattage=550),
        }
        result = evaluate(selection)
        order = DEFAULT_REGISTRY.rule_ids
        positions = [order.index(r) for r in rule_ids(result)]
        self.assertEqual(positions, sorted(positions))
        self.assertEqual(
            rule_ids(result),
            [
                "cpu-motherboard-socket",
                "ram-motherboard-memory-generation",
                "psu-power-headroom",
                "cpu-gpu-tier-balance",
            ],
        )

    def test_every_issue_is_complete(self):
        selection = {
            "cpu": part("A", socket="AM5", tdp_watts=170),
            "motherboard": part("B", socket="LGA1700", form_factor="E-ATX"),
            "case": part("C", motherboard_form_factors="ATX, Micro-ATX", gpu_max_length_mm=300),
            "gpu": part("D", length_mm=340),
        }
        result = evaluate(selection)
        self.assertTrue(result.issues)
        for issue in result.issues:
            self.assertIn(issue.rule_id, DEFAULT_REGISTRY.rule_ids)
            self.assertIn("Option 1:", issue.fix)
            self.assertIn("Option 2:", issue.fix)
            self.assertTrue(issue.affected_categories)
            self.assertTrue(issue.spec_keys)
            self.assertTrue(issue.explanation)
            self.assertTrue(issue.severity_explanation)
            self.assertTrue(issue.recommendation)

    def test_grouped_records_are_read(self):
        selection = {
            "cpu": {"name": "A", "data": {"compatibility": {"socket": "AM5"}}},
            "motherboard": {"name": "B", "socket": "LGA1700"},
        }
        self.assertEqual(rule_ids(evaluate(selection)), ["cpu-motherboard-socket"])

    def test_skipped_rules_are_omitted(self):
        class Skips(Rule):
            rule_id = "always-skips"
            requires = (PartCategory.CPU,)

            def check(self, parts, policy):
                raise ValidationSkipped("no data")

        result = evaluate({"cpu": part("A")}, registry=RuleRegistry([Skips()]))
        self.assertEqual(result.issues, ())


    def test_failing_rule_is_skipped(self):
        class Broken(Rule):
            rule_id = "broken"
            requires = (PartCategory.CPU,)

            def check(self, parts, policy):
                raise ZeroDivisionError

        class Flags(Rule):
            rule_id = "flags"
            requires = (PartCategory.CPU,)

            def check(self, parts, policy):
                return RuleOutcome(
                    issues=(
                        self.issue("T", Severity.INFO, "m", "e", "f", "s", "r"),
                    )
                )

        registry = RuleRegistry([Broken(), Flags()])
        with self.assertLogs("calculator.services.compatibility", "ERROR"):
            result = evaluate({"cpu": part("A")}, registry=registry)
        self.assertEqual(rule_ids(result), ["flags"])

    def test_flat_top_level_socket_mismatch(self):
        result = evaluate(
            {"cpu": {"socket": "AM5"}, "motherboard": {"socket": "AM4"}}
        )
        self.assertEqual(rule_ids(result), ["cpu-motherboard-socket"])
        self.assertEqual(result.issues[0].severity, Severity.ERROR)
        self.assertFalse(result.summary()["can_build"])


class TestRegistry(SimpleTestCase):
    def test_default_registry_is_valid(self):
        self.assertEqual(len(DEFAULT_REGISTRY), 15)
        DEFAULT_REGISTRY.validate()

    def test_duplicate_rule_id(self):
        class One(Rule):
            rule_id = "dup"

        with self.assertRaises(ImproperlyConfigured):
            RuleRegistry([One(), One()])

    def test_unknown_spec_key(self):
        class Bad(Rule):
            rule_id = "bad"
            spec_keys = ("socket", "flux_capacitor")

        with self.assertRaisesMessage(ImproperlyConfigured, "flux_capacitor"):
            RuleRegistry([Bad()])

    def test_missing_rule_id(self):
        with self.assertRaises(ImproperlyConfigured):
            RuleRegistry([Rule()])


class TestSocketRule(SimpleTestCase):
    def test_mismatch(self):
        result = evaluate(
            {
                "cpu": part("Ryzen 5 7600", socket="AM5"),
                "motherboard": part("Z790 Board", socket="LGA1700"),
            }
        )
        self.assertEqual(len(result.issues), 1)
        issue = result.issues[0]
        self.assertEqual(issue.rule_id, "cpu-motherboard-socket")
        self.assertEqual(issue.severity, Severity.ERROR)
        self.assertEqual(issue.affected_categories, ("cpu", "motherboard"))
        self.assertEqual(issue.spec_keys, ("socket",))
        self.assertIn("AM5", issue.message)
        self.assertIn("LGA1700", issue.message)
        self.assertFalse(result.summary()["can_build"])

    def test_match_ignores_formatting(self):
        result = evaluate(
            {
                "cpu": part("A", socket="Socket AM5"),
                "motherboard": part("B", socket="am5"),
            }
        )
        self.assertEqual(result.issues, ())
        self.assertEqual(
            [c.rule_id for c in result.confirmations], ["cpu-motherboard-socket"]
        )

    def test_missing_socket_skips(self):
        result = evaluate({"cpu": part("A"), "motherboard": part("B", socket="AM5")})
        self.assertEqual(result.issues, ())
        self.assertEqual(result.confirmations, ())


class TestMemoryGenerationRule(SimpleTestCase):
    def check(self, ram, board):
        result = evaluate({"ram": ram, "motherboard": board})
        return issues_for(result, "ram-motherboard-memory-generation"), result

    def test_memory_type_mismatch(self):
        issues, _ = self.check(part("Kit", speed="DDR5-6000"), part("B", memory_type="DDR4"))
        self.assertEqual(len(issues), 1)
        self.assertIn("DDR5", issues[0].message)

    def test_chipset_fallback(self):
        issues, _ = self.check(part("Kit", speed="DDR4-3200"), part("B", chipset="AMD B650E"))
        self.assertEqual(len(issues), 1)
        issues, result = self.check(part("Kit", speed="DDR5-6000"), part("B", chipset="Z790"))
        self.assertEqual(issues, [])
        self.assertIn(
            "ram-motherboard-memory-generation",
            [c.rule_id for c in result.confirmations],
        )

    def test_unknown_generation_skips(self):
        issues, result = self.check(part("Kit", speed="3200"), part("B", memory_type="DDR4"))
        self.assertEqual(issues, [])
        issues, result = self.check(part("Kit", speed="DDR5-6000"), part("B", chipset="TRX50"))
        self.assertEqual(issues, [])


class TestPowerHeadroomRule(SimpleTestCase):
    def build(self, wattage, gpu=None):
        return {
            "cpu": part("CPU", tdp_watts=65),
            "gpu": gpu if gpu is not None else part("GPU", tdp_watts=220),
            "psu": part("PSU", wattage=wattage),
        }

    def test_400w_is_a_warning(self):
        # 65 + 220 + 100 = 385W on a 400W unit
        issues = issues_for(evaluate(self.build(400)), "psu-power-headroom")
        self.assertEqual([i.severity for i in issues], [Severity.WARNING])

    def test_300w_is_an_error(self):
        issues = issues_for(evaluate(self.build(300)), "psu-power-headroom")
        self.assertEqual([i.severity for i in issues], [Severity.ERROR])
        self.assertIn("385W", issues[0].message)
        self.assertIn("psu", issues[0].affected_categories)

    def test_ample_psu_confirms(self):
        result = evaluate(self.build(850))
        self.assertEqual(issues_for(result, "psu-power-headroom"), [])
        self.assertIn("psu-power-headroom", [c.rule_id for c in result.confirmations])

    def test_missing_gpu_tdp_uses_default(self):
        # 65 + 250 + 100 = 415W
        issues = issues_for(
            evaluate(self.build(400, gpu=part("GPU"))), "psu-power-headroom"
        )
        self.assertEqual([i.severity for i in issues], [Severity.ERROR])
        self.assertIn("estimated", issues[0].explanation)

    def test_psu_alone_does_not_run(self):
        self.assertEqual(evaluate({"psu": part("PSU", wattage=100)}).issues, ())

    def test_non_numeric_wattage_skips(self):
        issues = issues_for(evaluate(self.build("lots")), "psu-power-headroom")
        self.assertEqual(issues, [])


class TestClearanceRules(SimpleTestCase):
    def test_gpu_too_long(self):
        result = evaluate(
            {
                "gpu": part("RTX", length_mm=336),
                "case": part("Mini", gpu_max_length_mm=320),
            }
        )
        issue = issues_for(result, "gpu-case-clearance")[0]
        self.assertEqual(issue.severity, Severity.ERROR)
        self.assertIn("by 16mm", issue.message)
        self.assertEqual(issue.spec_keys, ("length_mm", "gpu_max_length_mm"))

    def test_gpu_too_tall(self):
        result = evaluate(
            {
                "gpu": part("RTX", length_mm=300, height_mm=140),
                "case": part("Slim", gpu_max_length_mm=320, gpu_max_height_mm=130),
            }
        )
        issue = issues_for(result, "gpu-case-clearance")[0]
        self.assertIn("height 140mm > 130mm by 10mm", issue.message)
        self.assertNotIn("length", issue.message.split("(")[-1])

    def test_gpu_fits(self):
        result = evaluate(
            {"gpu": part("RTX", length_mm=300), "case": part("Big", gpu_max_length_mm=400)}
        )
        self.assertEqual(result.issues, ())
        self.assertEqual([c.rule_id for c in result.confirmations], ["gpu-case-clearance"])

    def test_cooler_too_tall(self):
        result = evaluate(
            {
                "cooler": part("Tower", height_mm=165),
                "case": part("Mid", cpu_cooler_height_mm=160),
            }
        )
        issue = issues_for(result, "cooler-case-clearance")[0]
        self.assertIn("by 5mm", issue.message)


class TestPowerConnectorRule(SimpleTestCase):
    def test_parse(self):
        self.assertEqual(parse_power_connectors("2x 8-pin"), {"8-pin": 2})
        self.assertEqual(
            parse_power_connectors("8-pin + 6-pin"), {"8-pin": 1, "6-pin": 1}
        )
        self.assertEqual(parse_power_connectors("12VHPWR (16-pin)"), {"12VHPWR": 1})
        self.assertEqual(parse_power_connectors("3 x 8 pin"), {"8-pin": 3})
        self.assertEqual(parse_power_connectors("6+2-pin"), {"8-pin": 1})
        self.assertEqual(parse_power_connectors("2x8-pin"), {"8-pin": 2})
        self.assertEqual(parse_power_connectors("1x16-pin"), {"12VHPWR": 1})
        self.assertEqual(
            parse_power_connectors("2x8-pin + 1x6-pin"), {"8-pin": 2, "6-pin": 1}
        )
        self.assertEqual(parse_power_connectors("None"), {})
        self.assertIsNone(parse_power_connectors("proprietary"))

    def test_missing_8pin(self):
        result = evaluate(
            {
                "gpu": part("GPU", power_connectors="2x 8-pin"),
                "psu": part("PSU", pcie_8pin_count=1),
            }
        )
        issue = issues_for(result, "gpu-psu-power-connectors")[0]
        self.assertEqual(issue.severity, Severity.ERROR)
        self.assertIn("1x 8-pin", issue.message)

    def test_compact_notation_is_checked(self):
        result = evaluate(
            {
                "gpu": part("GPU", power_connectors="2x8-pin"),
                "psu": part("PSU", pcie_8pin_count=1),
            }
        )
        self.assertEqual(rule_ids(result), ["gpu-psu-power-connectors"])

    def test_non_finite_counts_skip(self):
        for bad in (float("nan"), float("inf")):
            result = evaluate(
                {
                    "gpu": part("GPU", power_connectors="16-pin"),
                    "psu": part("PSU", pcie_12vhpwr=bad),
                }
            )
            self.assertEqual(result.issues, ())

    def test_adapters_do_not_count(self):
        result = evaluate(
            {
                "gpu": part("GPU", power_connectors="16-pin"),
                "psu": part("PSU", pcie_8pin_count=4, pcie_12vhpwr=False),
            }
        )
        self.assertEqual(len(issues_for(result, "gpu-psu-power-connectors")), 1)

    def test_native_12vhpwr(self):
        result = evaluate(
            {
                "gpu": part("GPU", power_connectors="12VHPWR"),
                "psu": part("PSU", pcie_12vhpwr=True),
            }
        )
        self.assertEqual(result.issues, ())
        self.assertIn(
            "gpu-psu-power-connectors", [c.rule_id for c in result.confirmations]
        )

    def test_psu_listing_fallback(self):
        result = evaluate(
            {
                "gpu": part("GPU", power_connectors="3x 8-pin"),
                "psu": part("PSU", power_connectors="2x 8-pin"),
            }
        )
        self.assertEqual(len(issues_for(result, "gpu-psu-power-connectors")), 1)

    def test_unknown_supply_skips(self):
        result = evaluate(
            {"gpu": part("GPU", power_connectors="8-pin"), "psu": part("PSU")}
        )
        self.assertEqual(result.issues, ())


class TestFitRules(SimpleTestCase):
    def test_cooler_socket(self):
        result = evaluate(
            {
                "cooler": part("AM Cooler", socket_compatibility="AM4, AM5"),
                "cpu": part("Core i5", socket="LGA1700"),
            }
        )
        issue = issues_for(result, "cooler-cpu-socket")[0]
        self.assertIn("LGA1700", issue.message)

        result = evaluate(
            {
                "cooler": part("Intel Cooler", socket_compatibility="LGA1700/LGA1200"),
                "cpu": part("Core i5", socket="LGA 1700"),
            }
        )
        self.assertEqual(issues_for(result, "cooler-cpu-socket"), [])

    def test_motherboard_form_factor(self):
        result = evaluate(
            {
                "motherboard": part("Big Board", form_factor="E-ATX"),
                "case": part("Mid", motherboard_form_factors="ATX, Micro-ATX, Mini-ITX"),
            }
        )
        self.assertEqual(len(issues_for(result, "motherboard-case-form-factor")), 1)

        result = evaluate(
            {
                "motherboard": part("Small Board", form_factor="mATX"),
                "case": part("Mid", motherboard_form_factors="ATX,mATX,ITX"),
            }
        )
        self.assertEqual(result.issues, ())

    def test_psu_form_factor(self):
        result = evaluate(
            {
                "psu": part("ATX PSU", psu_form_factor_type="ATX"),
                "case": part("SFF", psu_form_factor="SFX"),
            }
        )
        self.assertEqual(len(issues_for(result, "psu-case-form-factor")), 1)


class TestAdvisoryRules(SimpleTestCase):
    def test_ram_downclock(self):
        result = evaluate(
            {
                "ram": part("Fast Kit", ram_speed_mhz=6400),
                "motherboard": part("Board", max_ram_speed_mhz=6000),
            }
        )
        issue = issues_for(result, "ram-speed-downclock")[0]
        self.assertEqual(issue.severity, Severity.WARNING)

    def test_ram_speed_from_designation(self):
        result = evaluate(
            {
                "ram": part("Fast Kit", speed="DDR5-7200"),
                "motherboard": part("Board", max_ram_speed_mhz=6000, memory_type="DDR5"),
            }
        )
        self.assertEqual(rule_ids(result), ["ram-speed-downclock"])

    def test_cooler_tdp(self):
        result = evaluate(
            {"cpu": part("Hot", tdp_watts=170), "cooler": part("Small", tdp_rating_watts=150)}
        )
        self.assertEqual(
            [i.severity for i in issues_for(result, "cooler-tdp-rating")],
            [Severity.WARNING],
        )
        result = evaluate(
            {"cpu": part("Cool", tdp_watts=65), "cooler": part("Huge", tdp_rating_watts=250)}
        )
        self.assertEqual(
            [i.severity for i in issues_for(result, "cooler-tdp-rating")],
            [Severity.INFO],
        )

    def test_tier_balance(self):
        result = evaluate(
            {"cpu": part("A", cpu_tier="Budget"), "gpu": part("B", gpu_tier="Flagship")}
        )
        self.assertEqual(
            [i.severity for i in issues_for(result, "cpu-gpu-tier-balance")],
            [Severity.WARNING],
        )
        result = evaluate(
            {"cpu": part("A", cpu_tier="Flagship"), "gpu": part("B", gpu_tier="Budget")}
        )
        self.assertEqual(
            [i.severity for i in issues_for(result, "cpu-gpu-tier-balance")],
            [Severity.INFO],
        )
        result = evaluate(
            {"cpu": part("A", cpu_tier="Mid-range"), "gpu": part("B", gpu_tier="High-end")}
        )
        self.assertEqual(result.issues, ())

    def test_pcie_generations(self):
        result = evaluate(
            {
                "gpu": part("GPU", pcie_generation="PCIe 5.0"),
                "storage": part("SSD", nvme_pcie_gen="5.0"),
                "motherboard": part("Board", pcie_generation="4.0", nvme_pcie_gen="Gen4"),
            }
        )
        self.assertEqual(
            rule_ids(result),
            ["gpu-motherboard-pcie-generation", "storage-motherboard-pcie-generation"],
        )
        self.assertTrue(all(i.severity == Severity.INFO for i in result.issues))
        self.assertTrue(result.summary()["can_build"])

    def test_ecc(self):
        result = evaluate(
            {"ram": part("ECC Kit", ecc_support=True), "motherboard": part("B", ecc_support=False)}
        )
        self.assertEqual(rule_ids(result), ["ram-motherboard-ecc"])
        result = evaluate({"ram": part("ECC Kit", ecc_support=True), "motherboard": part("B")})
        self.assertEqual(result.issues, ())
