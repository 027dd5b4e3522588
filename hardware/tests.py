import copy
from types import SimpleNamespace

from django.test import SimpleTestCase

from hardware.parts import (
    get_flag,
    get_number,
    get_spec_value,
    normalize_part,
    selection_snapshot,
    to_number,
    validate_part,
    validate_parts,
)
from hardware.specs import (
    SPEC_DICTIONARY,
    PartCategory,
    SpecGroup,
    SpecImportance,
    SpecType,
    format_spec_value,
    get_spec_definition,
    get_specs_by_group,
    get_specs_by_importance,
    get_specs_for_category,
    is_valid_spec_key,
)


class TestSpecDictionary(SimpleTestCase):
    def test_lookup(self):
        definition = get_spec_definition("tdp_watts")
        self.assertEqual(definition.unit, "W")
        self.assertEqual(definition.type, SpecType.NUMBER)
        self.assertEqual(definition.group, SpecGroup.POWER)
        self.assertTrue(definition.applies_to(PartCategory.CPU))
        self.assertFalse(definition.applies_to(PartCategory.RAM))

    def test_unknown_keys(self):
        self.assertIsNone(get_spec_definition("flux_capacitor"))
        self.assertIsNone(get_spec_definition(None))
        self.assertFalse(is_valid_spec_key(42))
        self.assertTrue(is_valid_spec_key("socket"))

    def test_dictionary_is_read_only(self):
        with self.assertRaises(TypeError):
            SPEC_DICTIONARY["socket"] = None

    def test_category_ordering(self):
        keys = [key for key, _d in get_specs_for_category(PartCategory.CPU)]
        # compatibility group first, high importance first, then declaration
        self.assertEqual(keys[:2], ["socket", "generation"])
        perf = [k for k in keys if SPEC_DICTIONARY[k].group == SpecGroup.PERFORMANCE]
        self.assertEqual(
            perf, ["boost_clock_ghz", "base_clock_ghz", "cores", "threads", "cpu_tier"]
        )
        self.assertLess(keys.index("cpu_tier"), keys.index("tdp_watts"))
        self.assertNotIn("wattage", keys)

    def test_group_and_importance_filters(self):
        power = [k for k, _d in get_specs_by_group(SpecGroup.POWER)]
        self.assertIn("wattage", power)
        self.assertNotIn("socket", power)
        high = [k for k, _d in get_specs_by_importance(SpecImportance.HIGH)]
        self.assertIn("socket", high)
        self.assertNotIn("rgb", high)


class TestFormatSpecValue(SimpleTestCase):
    def test_numbers(self):
        self.assertEqual(format_spec_value(65, "W", SpecType.NUMBER), "65 W")
        self.assertEqual(format_spec_value(65.0, "W", SpecType.NUMBER), "65 W")
        self.assertEqual(format_spec_value(3.5, "GHz", SpecType.NUMBER), "3.50 GHz")
        self.assertEqual(format_spec_value(3.456, "GHz", SpecType.NUMBER), "3.46 GHz")
        self.assertEqual(format_spec_value(16, "GB", SpecType.NUMBER), "16 GB")
        self.assertEqual(format_spec_value(8, None, SpecType.NUMBER), "8")

    def test_booleans(self):
        self.assertEqual(format_spec_value(True, None, SpecType.BOOLEAN), "Yes")
        self.assertEqual(format_spec_value(False, None, SpecType.BOOLEAN), "No")

    def test_strings_and_missing(self):
        self.assertEqual(format_spec_value("AM5"), "AM5")
        self.assertEqual(format_spec_value(None, "W", SpecType.NUMBER), "")
        self.assertEqual(format_spec_value("n/a", "W", SpecType.NUMBER), "n/a W")


class TestSpecAccessor(SimpleTestCase):
    def test_grouped_beats_flat_beats_top_level(self):
        part = {
            "tdp_watts": 1,
            "data": {"tdp_watts": 2, "power": {"tdp_watts": 3}},
        }
        self.assertEqual(get_spec_value(part, "tdp_watts"), 3)
        del part["data"]["power"]
        self.assertEqual(get_spec_value(part, "tdp_watts"), 2)
        del part["data"]["tdp_watts"]
        self.assertEqual(get_spec_value(part, "tdp_watts"), 1)

    def test_grouped_clock_wins_over_flat(self):
        cpu = {
            "name": "Ryzen 9",
            "data": {"performance": {"boost_clock_ghz": 5.2}, "boost_clock_ghz": 4.0},
        }
        self.assertEqual(get_spec_value(cpu, "boost_clock_ghz"), 5.2)
        self.assertEqual(get_number(cpu, "boost_clock_ghz"), 5.2)

    def test_stored_none_counts_as_absent(self):
        part = {"data": {"power": {"tdp_watts": None}, "tdp_watts": 2}}
        self.assertEqual(get_spec_value(part, "tdp_watts"), 2)

    def test_attribute_objects(self):
        cpu = SimpleNamespace(socket="AM5", data={"cores": 8})
        self.assertEqual(get_spec_value(cpu, "socket"), "AM5")
        self.assertEqual(get_spec_value(cpu, "cores"), 8)

    def test_malformed_parts_never_raise(self):
        self.assertIsNone(get_spec_value(None, "socket"))
        self.assertIsNone(get_spec_value({"data": "garbage"}, "socket"))
        self.assertIsNone(get_spec_value({"data": {"power": 5}}, "tdp_watts"))
        self.assertIsNone(get_spec_value({"socket": "AM5"}, None))
        self.assertIsNone(get_spec_value(42, "socket"))

    def test_typed_getters(self):
        part = {"data": {"length_mm": "320 mm", "wifi": "yes", "cores": True}}
        self.assertEqual(get_number(part, "length_mm"), 320.0)
        self.assertIs(get_flag(part, "wifi"), True)
        self.assertIsNone(get_number(part, "cores"))

    def test_to_number(self):
        self.assertEqual(to_number("1,000 W"), 1000.0)
        self.assertIsNone(to_number("lots"))
        self.assertIsNone(to_number(float("nan")))
        self.assertIsNone(to_number(True))


class TestIngestion(SimpleTestCase):
    def test_normalize_flattens_and_coerces(self):
        raw = {
            "name": "Ryzen 5 7600",
            "price": "199.99",
            "data": {"power": {"tdp_watts": "65 W"}, "socket": " AM5 ", "cores": "6"},
        }
        before = copy.deepcopy(raw)
        part = normalize_part(raw, PartCategory.CPU)
        self.assertEqual(raw, before)
        self.assertEqual(part["price"], 199.99)
        self.assertEqual(part["category"], "cpu")
        self.assertEqual(part["data"], {"tdp_watts": 65, "socket": "AM5", "cores": 6})

    def test_normalize_keeps_uncoercible_values(self):
        part = normalize_part({"data": {"cores": "eight"}})
        self.assertEqual(part["data"]["cores"], "eight")

    def test_normalize_non_mapping(self):
        self.assertEqual(normalize_part("nope"), {"data": {}})

    def test_validate_reports_unknown_and_mistyped(self):
        part = {
            "name": "Mystery CPU",
            "data": {"socket": "AM5", "cores": "eight", "mystery": 1, "wattage": 500},
        }
        result = validate_part(part, PartCategory.CPU)
        self.assertFalse(result.valid)
        self.assertEqual([e.spec_key for e in result.errors], ["cores"])
        self.assertEqual(result.unknown_specs, ["mystery"])
        warned = {w.spec_key for w in result.warnings}
        self.assertEqual(warned, {"mystery", "wattage"})

    def test_validate_clean_part(self):
        part = normalize_part({"data": {"socket": "AM5", "cores": "8"}})
        self.assertTrue(validate_part(part, PartCategory.CPU).valid)

    def test_validate_parts_summary(self):
        report = validate_parts(
            [
                ({"data": {"socket": "AM5"}}, PartCategory.CPU),
                ({"data": {"wattage": "a lot"}}, PartCategory.PSU),
            ]
        )
        summary = report["summary"]
        self.assertEqual(summary["total"], 2)
        self.assertEqual(summary["valid"], 1)
        self.assertEqual(summary["total_errors"], 1)


class TestSelectionSnapshot(SimpleTestCase):
    def test_drops_unknown_and_empty(self):
        snapshot = selection_snapshot(
            {"cpu": {"data": {}}, "toaster": {}, "gpu": None, "ram": "DDR5"}
        )
        self.assertEqual(list(snapshot), [PartCategory.CPU])

    def test_read_only(self):
        snapshot = selection_snapshot({"cpu": {}})
        with self.assertRaises(TypeError):
            snapshot["gpu"] = {}

    def test_non_mapping_selection(self):
        self.assertEqual(len(selection_snapshot(None)), 0)
        self.assertEqual(len(selection_snapshot([1, 2])), 0)
