import json
import os
import tempfile
from io import StringIO

from django.core.management import call_command
from django.core.management.base import CommandError
from django.test import SimpleTestCase

MISMATCHED_BUILD = {
    "cpu": {"name": "Ryzen 5 7600", "price": 199, "data": {"socket": "AM5", "tdp_watts": 65}},
    "motherboard": {"name": "Z790 Board", "data": {"socket": "LGA1700"}},
    "psu": {"name": "650W", "data": {"wattage": "650 W"}},
    "toaster": {"name": "Not a part"},
}

CATALOG = {
    "cpu": [
        {"name": "Ryzen 5 7600", "price": 199, "data": {"socket": "AM5", "cores": 6}},
        {"name": "Core i5-13400", "price": 189, "data": {"socket": "LGA1700", "cores": 10}},
    ],
    "motherboard": [
        {"name": "B650 Board", "price": 150, "data": {"socket": "AM5", "pcie_slots": 2}},
    ],
}


class CommandTestCase(SimpleTestCase):
    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self.tmp.cleanup)

    def write(self, name, content):
        path = os.path.join(self.tmp.name, name)
        with open(path, "w", encoding="utf-8") as fh:
            if isinstance(content, str):
                fh.write(content)
            else:
                json.dump(content, fh)
        return path

    def run_command(self, *args, **options):
        out, err = StringIO(), StringIO()
        call_command(*args, stdout=out, stderr=err, **options)
        return out.getvalue(), err.getvalue()


class TestCheckBuild(CommandTestCase):
    def test_text_report(self):
        out, err = self.run_command("check_build", self.write("build.json", MISMATCHED_BUILD))
        self.assertIn("CPU Socket Mismatch", out)
        self.assertIn("Option 1:", out)
        self.assertIn("recommended PSU", out)
        self.assertIn("Build has blocking issues", out)
        self.assertIn('Ignoring unknown category "toaster"', err)

    def test_json_report(self):
        out, _err = self.run_command(
            "check_build", self.write("build.json", MISMATCHED_BUILD), format="json"
        )
        payload = json.loads(out)
        self.assertFalse(payload["summary"]["can_build"])
        self.assertEqual(payload["issues"][0]["rule_id"], "cpu-motherboard-socket")
        self.assertEqual(payload["power"]["psu_wattage"], 650)
        self.assertEqual(payload["parts"]["cpu"], "Ryzen 5 7600")

    def test_compatible_build(self):
        build = {
            "cpu": {"name": "A", "data": {"socket": "AM5"}},
            "motherboard": {"name": "B", "data": {"socket": "AM5"}},
        }
        out, _err = self.run_command("check_build", self.write("ok.json", build))
        self.assertIn("Build is compatible", out)
        self.assertIn("A and B both use AM5", out)

    def test_missing_file(self):
        with self.assertRaisesMessage(CommandError, "Cannot read"):
            self.run_command("check_build", os.path.join(self.tmp.name, "nope.json"))

    def test_invalid_json(self):
        with self.assertRaisesMessage(CommandError, "not valid JSON"):
            self.run_command("check_build", self.write("bad.json", "{cpu:"))

    def test_not_an_object(self):
        with self.assertRaisesMessage(CommandError, "JSON dict"):
            self.run_command("check_build", self.write("list.json", [1, 2]))

    def test_health_and_insights(self):
        build = {
            "cpu": {"name": "Quad", "data": {"cores": 4}},
            "gpu": {"name": "Big", "data": {"vram_gb": 16}},
        }
        path = self.write("build.json", build)
        out, _err = self.run_command("check_build", path, use_case="gaming")
        self.assertIn("Health: Needs attention.", out)
        self.assertIn("CPU may limit gaming performance", out)

        out, _err = self.run_command("check_build", path, format="json")
        payload = json.loads(out)
        self.assertEqual(payload["health"]["overall"], "needs_attention")
        self.assertEqual(payload["bottlenecks"]["insights"], [])

    def test_extra_rules_file(self):
        build = {
            "ram": {"name": "Kit", "data": {"ram_speed_mhz": 7200}},
            "motherboard": {"name": "Board", "data": {"max_ram_speed_mhz": 6000}},
        }
        rules = [
            {
                "id": "ram-board-speed-cap",
                "source_category": "ram",
                "source_field": "ram_speed_mhz",
                "operator": "less_than_or_equal",
                "target_category": "motherboard",
                "target_field": "max_ram_speed_mhz",
                "severity": "error",
                "message": "RAM Too Fast: board caps memory speed",
            }
        ]
        out, _err = self.run_command(
            "check_build",
            self.write("build.json", build),
            rules=self.write("rules.json", rules),
            format="json",
        )
        payload = json.loads(out)
        self.assertIn("ram-board-speed-cap", [i["rule_id"] for i in payload["issues"]])
        self.assertFalse(payload["summary"]["can_build"])

    def test_bad_rules_file(self):
        rules = [{"id": "x", "operator": "equals"}]
        with self.assertRaisesMessage(CommandError, "missing"):
            self.run_command(
                "check_build",
                self.write("build.json", {}),
                rules=self.write("rules.json", rules),
            )


class TestApplyTemplateCommand(CommandTestCase):
    def test_picks_compatible_parts(self):
        build = self.write("build.json", {"cpu": CATALOG["cpu"][0]})
        out, _err = self.run_command(
            "apply_template",
            "budget-build",
            self.write("catalog.json", CATALOG),
            build=build,
            format="json",
        )
        payload = json.loads(out)
        self.assertEqual(payload["picks"], {"motherboard": "B650 Board"})
        self.assertEqual(payload["total_cost"], 349)
        self.assertTrue(payload["within_budget"])

    def test_text_output(self):
        out, _err = self.run_command(
            "apply_template", "gaming-focused", self.write("catalog.json", CATALOG)
        )
        self.assertIn("Template: Gaming Focused", out)
        self.assertIn("Within budget", out)

    def test_unknown_template(self):
        with self.assertRaisesMessage(CommandError, "Unknown template"):
            self.run_command(
                "apply_template", "quantum-build", self.write("catalog.json", CATALOG)
            )
