import copy

from django.test import SimpleTestCase

from hardware.filters import (
    ActiveFilter,
    FilterType,
    apply_filters,
    filter_summary,
    generate_filters,
)
from hardware.specs import PartCategory


def board(name, **data):
    return {"name": name, "data": data}


BOARDS = [
    board("A", socket="AM5", wifi=True),
    board("B", socket="LGA1700", wifi=False),
    board("C", socket="AM5"),
]

CPUS = [
    board("c4", cores=4, boost_clock_ghz=4.7),
    board("c6", cores=6, boost_clock_ghz=5.2),
    board("c8", cores=8, boost_clock_ghz=4.7),
    board("c12", cores="12"),
    board("c16", cores=16),
    board("c24", cores=24),
]


class TestGenerateFilters(SimpleTestCase):
    def test_only_present_specs_sorted_by_importance(self):
        filters = generate_filters(PartCategory.MOTHERBOARD, BOARDS)
        self.assertEqual([f.spec_key for f in filters], ["socket", "wifi", "name"])
        socket, wifi, _name = filters
        self.assertEqual(socket.type, FilterType.SELECT)
        self.assertEqual([o.value for o in socket.options], ["AM5", "LGA1700"])
        self.assertEqual(wifi.type, FilterType.TOGGLE)
        self.assertIs(wifi.default, False)

    def test_numbers(self):
        filters = {f.spec_key: f for f in generate_filters(PartCategory.CPU, CPUS)}
        cores = filters["cores"]
        self.assertEqual(cores.type, FilterType.RANGE)
        self.assertEqual((cores.min, cores.max, cores.step), (4, 24, 1))

        clocks = filters["boost_clock_ghz"]
        self.assertEqual(clocks.type, FilterType.SELECT)
        self.assertEqual(
            [(o.value, o.label) for o in clocks.options],
            [("4.7", "4.70 GHz"), ("5.2", "5.20 GHz")],
        )

    def test_empty_catalog(self):
        self.assertEqual(generate_filters(PartCategory.CPU, []), [])
        self.assertEqual(generate_filters(PartCategory.CPU, None), [])

    def test_to_dict(self):
        socket = generate_filters(PartCategory.MOTHERBOARD, BOARDS)[0]
        self.assertEqual(
            socket.to_dict()["options"],
            [{"value": "AM5", "label": "AM5"}, {"value": "LGA1700", "label": "LGA1700"}],
        )


class TestApplyFilters(SimpleTestCase):
    def names(self, parts):
        return [p["name"] for p in parts]

    def test_select(self):
        active = [ActiveFilter("socket", FilterType.SELECT, "AM5")]
        self.assertEqual(self.names(apply_filters(BOARDS, active)), ["A", "C"])

    def test_select_text_with_digits_is_not_numeric(self):
        boards = BOARDS + [board("D", socket="SP5")]
        active = [ActiveFilter("socket", FilterType.SELECT, "AM5")]
        self.assertEqual(self.names(apply_filters(boards, active)), ["A", "C"])

    def test_toggle(self):
        on = [ActiveFilter("wifi", FilterType.TOGGLE, True)]
        self.assertEqual(self.names(apply_filters(BOARDS, on)), ["A"])
        off = [ActiveFilter("wifi", FilterType.TOGGLE, False)]
        self.assertEqual(self.names(apply_filters(BOARDS, off)), ["A", "B", "C"])

    def test_range_and_missing_values(self):
        active = [ActiveFilter("cores", FilterType.RANGE, (6, 12))]
        self.assertEqual(self.names(apply_filters(CPUS, active)), ["c6", "c8", "c12"])
        both = active + [ActiveFilter("boost_clock_ghz", FilterType.SELECT, "4.7")]
        self.assertEqual(self.names(apply_filters(CPUS, both)), ["c8"])

    def test_no_filters_and_inputs_untouched(self):
        before = copy.deepcopy(BOARDS)
        self.assertEqual(apply_filters(BOARDS, []), BOARDS)
        apply_filters(BOARDS, [ActiveFilter("socket", FilterType.SELECT, "AM5")])
        self.assertEqual(BOARDS, before)

    def test_summary(self):
        active = [ActiveFilter("socket", FilterType.SELECT, "LGA1700")]
        self.assertEqual(
            filter_summary(BOARDS, active),
            {"total": 3, "filtered": 1, "active_filters": 1},
        )
