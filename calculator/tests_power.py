import json

from django.test import SimpleTestCase

from calculator.services.power import (
    COMPONENT_COLORS,
    PowerStatus,
    calculate_power,
    classify_psu,
    recommended_psu_wattage,
)
from hardware.specs import PartCategory


def part(name, **data):
    return {"name": name, "data": data}


FULL_BUILD = {
    "cpu": part("Ryzen 5 7600", tdp_watts=65),
    "gpu": part("RTX 4070", tdp_watts=220),
    "motherboard": part("B650 Board"),
    "ram": part("32GB Kit", size_gb=32),
    "storage": part("990 Pro", type="NVMe SSD"),
    "case": part("Mid Tower", fan_count=3),
    "psu": part("750W Gold", wattage=750),
}


class TestPsuSizing(SimpleTestCase):
    def test_recommended_rounds_up_to_step(self):
        self.assertEqual(recommended_psu_wattage(400, 110), 650)
        self.assertEqual(recommended_psu_wattage(400, 0), 500)
        self.assertEqual(recommended_psu_wattage(0, 0), 0)

    def test_exact_multiple_is_not_bumped(self):
        # 320 * 1.25 = 400
        self.assertEqual(recommended_psu_wattage(320, 0), 400)

    def test_classify(self):
        self.assertEqual(classify_psu(400, None), PowerStatus.NONE)
        self.assertEqual(classify_psu(400, 0), PowerStatus.NONE)
        self.assertEqual(classify_psu(400, 420), PowerStatus.INSUFFICIENT)
        self.assertEqual(classify_psu(400, 500), PowerStatus.BORDERLINE)
        self.assertEqual(classify_psu(400, 600), PowerStatus.SUFFICIENT)


class TestCalculatePower(SimpleTestCase):
    def test_full_build(self):
        power = calculate_power(FULL_BUILD)
        watts = {str(e.component): e.tdp for e in power.entries}
        self.assertEqual(
            watts,
            {
                "cpu": 65,
                "gpu": 220,
                "motherboard": 50,
                "ram": 10,
                "storage": 8,
                "case": 9,
            },
        )
        self.assertEqual(power.total_tdp, 362)
        self.assertEqual(power.estimated_load, 392)
        self.assertEqual(power.spike_allowance, 110)
        self.assertEqual(power.recommended_psu, 650)
        self.assertEqual(power.headroom, 358)
        self.assertEqual(power.status, PowerStatus.SUFFICIENT)
        self.assertEqual(power.entries[0].display_color, COMPONENT_COLORS[PartCategory.CPU])
        # 65 of 362W
        self.assertEqual(power.entries[0].percentage_of_total, 18.0)

    def test_no_psu(self):
        build = {k: v for k, v in FULL_BUILD.items() if k != "psu"}
        power = calculate_power(build)
        self.assertEqual(power.status, PowerStatus.NONE)
        self.assertIsNone(power.headroom)
        self.assertIsNone(power.utilization)

    def test_defaults_and_unknowns(self):
        power = calculate_power(
            {
                "cpu": part("CPU", tdp_watts="unknown"),
                "ram": part("Kit"),
                "storage": part("Disk", type="HDD"),
                "case": part("Case"),
            }
        )
        watts = {str(e.component): e.tdp for e in power.entries}
        self.assertEqual(watts, {"ram": 5, "storage": 12, "case": 9})
        self.assertEqual(power.spike_allowance, 0)

    def test_legacy_tdp_alias(self):
        power = calculate_power({"gpu": {"name": "Old GPU", "tdp_w": 150}})
        self.assertEqual(power.total_tdp, 150)
        self.assertEqual(power.spike_allowance, 75)

    def test_borderline_psu(self):
        build = dict(FULL_BUILD, psu=part("500W", wattage=500, efficiency_rating="80+ Gold"))
        power = calculate_power(build)
        self.assertEqual(power.status, PowerStatus.BORDERLINE)
        self.assertEqual(power.efficiency_rating, "80+ Gold")

    def test_empty_and_malformed(self):
        for selection in ({}, None, {"cpu": "x"}):
            power = calculate_power(selection)
            self.assertEqual(power.entries, ())
            self.assertEqual(power.estimated_load, 30)

    def test_to_dict_is_json(self):
        payload = json.loads(json.dumps(calculate_power(FULL_BUILD).to_dict()))
        self.assertEqual(payload["status"], "sufficient")
        self.assertEqual(payload["entries"][0]["component"], "cpu")
