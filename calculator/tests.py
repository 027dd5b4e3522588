import copy

from django.test import SimpleTestCase

from calculator.services import build_calculator
from calculator.services.build_calculator import (
    BUILD_TEMPLATES,
    apply_template,
    get_template,
    normalize_spec_score,
    rank_candidates,
    score_part,
)
from calculator.services.policy import DEFAULT_POLICY
from hardware.specs import PartCategory, get_spec_definition


def part(name, price=None, **data):
    record = {"name": name, "data": data}
    if price is not None:
        record["price"] = price
    return record


def score(key, value):
    return normalize_spec_score(key, value, get_spec_definition(key), DEFAULT_POLICY)


class TestTemplates(SimpleTestCase):
    def test_builtin_templates(self):
        self.assertEqual(
            [t.id for t in BUILD_TEMPLATES],
            [
                "gaming-focused",
                "content-creation",
                "budget-build",
                "performance-first",
                "silent-build",
            ],
        )
        self.assertEqual(get_template("budget-build").budget_max, 1000)
        self.assertIsNone(get_template("nope"))

    def test_priority_keys_are_known(self):
        for template in BUILD_TEMPLATES:
            for priority in template.priorities:
                for key in priority.priority_specs:
                    self.assertIsNotNone(get_spec_definition(key), key)


class TestNormalizeSpecScore(SimpleTestCase):
    def test_numbers(self):
        self.assertEqual(score("cores", 8), 50.0)
        self.assertEqual(score("boost_clock_ghz", 5.5), 100.0)
        self.assertEqual(score("size_gb", 64), 100.0)
        self.assertEqual(score("wattage", 750), 75.0)
        self.assertEqual(score("core_clock_mhz", 3000), 50.0)

    def test_lower_is_better_is_inverted_once(self):
        self.assertEqual(score("tdp_watts", 150), 50.0)
        self.assertEqual(score("tdp_watts", 0), 100.0)
        self.assertEqual(score("tdp_watts", 400), 0.0)

    def test_strings(self):
        self.assertEqual(score("efficiency_rating", "80+ Gold"), 60.0)
        self.assertEqual(score("efficiency_rating", "Titanium"), 100.0)
        self.assertEqual(score("type", "NVMe SSD"), 100.0)
        self.assertEqual(score("efficiency_rating", "Unrated"), 50.0)

    def test_booleans(self):
        self.assertEqual(score("wifi", True), 100.0)
        self.assertEqual(score("wifi", "no"), 0.0)

    def test_unscorable(self):
        self.assertIsNone(score("cores", "many"))
        self.assertIsNone(score("cores", None))


class TestScorePart(SimpleTestCase):
    def setUp(self):
        self.gaming = get_template("gaming-focused")

    def test_mean_of_present_specs(self):
        cpu = part("CPU", cores=8, boost_clock_ghz=5.0)
        self.assertEqual(score_part(cpu, PartCategory.CPU, self.gaming), 75.0)
        only_cores = part("CPU", cores=8)
        self.assertEqual(score_part(only_cores, PartCategory.CPU, self.gaming), 50.0)

    def test_no_specs_or_no_priority(self):
        self.assertEqual(score_part(part("CPU"), PartCategory.CPU, self.gaming), 0.0)
        cooler = part("Cooler", tdp_rating_watts=200)
        self.assertEqual(score_part(cooler, PartCategory.COOLER, self.gaming), 0.0)

    def test_silent_prefers_low_tdp(self):
        silent = get_template("silent-build")
        cool = score_part(part("A", tdp_watts=65), PartCategory.CPU, silent)
        hot = score_part(part("B", tdp_watts=170), PartCategory.CPU, silent)
        self.assertGreater(cool, hot)


class TestRankCandidates(SimpleTestCase):
    def setUp(self):
        self.gaming = get_template("gaming-focused")

    def test_ties_keep_catalog_order(self):
        first, second = part("First", 100, cores=8), part("Second", 100, cores=8)
        ranked = rank_candidates([first, second], PartCategory.CPU, self.gaming)
        self.assertEqual([c["part"]["name"] for c in ranked], ["First", "Second"])

    def test_price_and_score_balance(self):
        cheap = part("Cheap", 100, cores=8)
        pricey = part("Pricey", 300, cores=8)
        strong = part("Strong", 100, cores=16)
        ranked = rank_candidates([pricey, cheap, strong], PartCategory.CPU, self.gaming)
        self.assertEqual(
            [c["part"]["name"] for c in ranked], ["Strong", "Cheap", "Pricey"]
        )

    def test_missing_price_counts_as_zero(self):
        ranked = rank_candidates([part("Free", cores=8)], PartCategory.CPU, self.gaming)
        self.assertEqual(ranked[0]["price"], 0.0)


class TestApplyTemplate(SimpleTestCase):
    def setUp(self):
        self.gaming = get_template("gaming-focused")

    def test_skips_incompatible_top_candidate(self):
        intel = part("Intel Board", 100, socket="LGA1700", pcie_slots=3)
        amd = part("AMD Board", 100, socket="AM5", pcie_slots=2)
        cpu = part("Ryzen", 200, socket="AM5")
        result = apply_template(
            self.gaming, {"motherboard": [intel, amd]}, selection={"cpu": cpu}
        )
        self.assertIs(result.picks[PartCategory.MOTHERBOARD], amd)
        self.assertIs(result.selection[PartCategory.CPU], cpu)
        self.assertNotIn(PartCategory.CPU, result.picks)
        self.assertEqual(result.total_cost, 300)

    def test_falls_back_to_fewest_errors(self):
        first = part("Intel 12th", 100, socket="LGA1700", pcie_slots=3)
        second = part("Intel 10th", 100, socket="LGA1200", pcie_slots=2)
        cpu = part("Ryzen", 200, socket="AM5")
        result = apply_template(
            self.gaming, {"motherboard": [first, second]}, selection={"cpu": cpu}
        )
        self.assertIs(result.picks[PartCategory.MOTHERBOARD], first)

    def test_heavier_categories_are_picked_first(self):
        gpu = part("Big GPU", 900, tdp_watts=450, vram_gb=24)
        small = part("500W", 40, wattage=500)
        big = part("850W", 200, wattage=850)
        result = apply_template(self.gaming, {"gpu": [gpu], "psu": [small, big]})
        # 500W ranks first but cannot carry 450 + 100W
        self.assertIs(result.picks[PartCategory.PSU], big)

    def test_empty_catalog_leaves_categories_unset(self):
        result = apply_template(self.gaming, {})
        self.assertEqual(result.picks, {})
        self.assertEqual(result.selection, {})
        self.assertEqual(result.total_cost, 0)
        self.assertTrue(result.within_budget)

        result = apply_template(self.gaming, {"cpu": [], "gpu": None})
        self.assertEqual(result.picks, {})

    def test_zero_score_candidates_are_eligible(self):
        bare = part("Bare CPU", 100)
        result = apply_template(self.gaming, {"cpu": [bare]})
        self.assertIs(result.picks[PartCategory.CPU], bare)

    def test_budget_verdict(self):
        catalog = {
            "gpu": [part("GPU", 1500, vram_gb=24)],
            "cpu": [part("CPU", 600, cores=16)],
        }
        result = apply_template(self.gaming, catalog)
        self.assertEqual(result.total_cost, 2100)
        self.assertFalse(result.within_budget)

    def test_inputs_are_not_modified(self):
        catalog = {
            "cpu": [part("Ryzen", 200, socket="AM5", cores=6)],
            "motherboard": [part("Board", 150, socket="AM5")],
        }
        selection = {"ram": part("Kit", 90, speed="DDR5-6000")}
        catalog_before = copy.deepcopy(catalog)
        selection_before = copy.deepcopy(selection)
        result = apply_template(self.gaming, catalog, selection=selection)
        self.assertEqual(catalog, catalog_before)
        self.assertEqual(selection, selection_before)
        self.assertEqual(len(result.selection), 3)
        self.assertEqual(set(selection), {"ram"})

    def test_to_dict(self):
        result = build_calculator.apply_template(
            self.gaming, {"cpu": [part("Ryzen", 200, cores=6)]}
        )
        self.assertEqual(
            result.to_dict(),
            {
                "selection": {"cpu": "Ryzen"},
                "picks": {"cpu": "Ryzen"},
                "total_cost": 200,
                "within_budget": True,
            },
        )
