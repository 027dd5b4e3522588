from django.test import SimpleTestCase

from calculator.services.health import HealthRating, analyze_build_health


def part(name, **data):
    return {"name": name, "data": data}


def ratings(health):
    return {c.name: c.rating for c in health.categories}


class TestBuildHealth(SimpleTestCase):
    def test_empty_selection(self):
        health = analyze_build_health({})
        self.assertEqual(
            ratings(health),
            {
                "Compatibility": HealthRating.EXCELLENT,
                "Power Supply": HealthRating.NEEDS_ATTENTION,
                "Performance Balance": HealthRating.NEEDS_ATTENTION,
                "Upgrade Flexibility": HealthRating.GOOD,
            },
        )
        self.assertEqual(health.overall, HealthRating.NEEDS_ATTENTION)
        self.assertIn("needs attention", health.summary)

    def test_balanced_build(self):
        build = {
            "cpu": part("CPU", socket="AM5", tdp_watts=120, cores=8),
            "motherboard": part("Board", socket="AM5"),
            "gpu": part("GPU", tdp_watts=200, vram_gb=12),
            "ram": part("Kit", size_gb=32),
            "psu": part("PSU", wattage=1000),
            "case": part("Case", gpu_max_length_mm=380),
        }
        health = analyze_build_health(build)
        self.assertEqual(
            ratings(health),
            {
                "Compatibility": HealthRating.EXCELLENT,
                "Power Supply": HealthRating.EXCELLENT,
                "Performance Balance": HealthRating.GOOD,
                "Upgrade Flexibility": HealthRating.GOOD,
            },
        )
        self.assertEqual(health.overall, HealthRating.GOOD)
        upgrade = health.categories[3]
        self.assertIn("Socket match (AM5)", upgrade.details[0])

    def test_undersized_psu(self):
        build = {
            "cpu": part("CPU", tdp_watts=120),
            "gpu": part("GPU", tdp_watts=320),
            "psu": part("PSU", wattage=400),
        }
        health = analyze_build_health(build)
        compat, power = health.categories[:2]
        self.assertEqual(compat.rating, HealthRating.NEEDS_ATTENTION)
        self.assertEqual(power.rating, HealthRating.NEEDS_ATTENTION)
        # (470 + 160) * 1.25 rounds up to 800
        self.assertEqual(power.recommendations, ("Select a PSU with at least 800W.",))

    def test_imbalanced_parts(self):
        build = {
            "cpu": part("CPU", cores=4),
            "gpu": part("GPU", vram_gb=16),
            "ram": part("Kit", size_gb=8),
        }
        balance = analyze_build_health(build).categories[2]
        self.assertEqual(balance.rating, HealthRating.ACCEPTABLE)
        self.assertEqual(len(balance.details), 2)

    def test_to_dict(self):
        data = analyze_build_health({}).to_dict()
        self.assertEqual(data["overall"], "needs_attention")
        self.assertEqual(len(data["categories"]), 4)
