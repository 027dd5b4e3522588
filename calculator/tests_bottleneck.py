from django.test import SimpleTestCase

from calculator.services.bottleneck import (
    InsightType,
    Resolution,
    UseCase,
    analyze_bottlenecks,
    cpu_performance_tier,
    gpu_performance_tier,
)


def part(name, **data):
    return {"name": name, "data": data}


class TestTiers(SimpleTestCase):
    def test_gpu(self):
        self.assertEqual(gpu_performance_tier(part("G", vram_gb=16)), "enthusiast")
        self.assertEqual(gpu_performance_tier(part("G", tdp_watts=250)), "high")
        self.assertEqual(gpu_performance_tier(part("G", vram_gb=8)), "mid")
        self.assertEqual(gpu_performance_tier(part("G", vram_gb=4)), "entry")
        self.assertIsNone(gpu_performance_tier(part("G")))
        self.assertIsNone(gpu_performance_tier(None))

    def test_cpu(self):
        self.assertEqual(cpu_performance_tier(part("C", cores=16)), "enthusiast")
        self.assertEqual(cpu_performance_tier(part("C", cores=8, boost_clock_ghz=4.5)), "high")
        self.assertEqual(cpu_performance_tier(part("C", cores=6, boost_clock_ghz=4.0)), "mid")
        self.assertEqual(cpu_performance_tier(part("C", cores=4)), "entry")
        self.assertIsNone(cpu_performance_tier(part("C")))


class TestAnalyzeBottlenecks(SimpleTestCase):
    def test_empty_selection(self):
        analysis = analyze_bottlenecks({}, UseCase.GAMING, Resolution.UHD)
        self.assertEqual(analysis.insights, ())
        self.assertIn("well-balanced", analysis.summary)

    def test_weak_cpu_for_gaming(self):
        build = {"cpu": part("C", cores=4), "gpu": part("G", vram_gb=16)}
        analysis = analyze_bottlenecks(build, UseCase.GAMING)
        self.assertEqual([i.type for i in analysis.insights], [InsightType.BOTTLENECK])
        self.assertEqual(analysis.insights[0].component, "cpu")
        self.assertTrue(analysis.summary.startswith("Found 1 potential bottleneck."))

    def test_balanced_use_case_skips_cpu_gpu(self):
        build = {
            "cpu": part("C", cores=4),
            "gpu": part("G", vram_gb=16),
            "storage": part("Disk", type="HDD"),
        }
        analysis = analyze_bottlenecks(build)
        self.assertEqual([i.type for i in analysis.insights], [InsightType.RECOMMENDATION])
        self.assertEqual(
            analysis.summary, "Found 1 optimization suggestion to improve your build."
        )

    def test_resolution_only_for_gaming(self):
        build = {"gpu": part("G", vram_gb=8)}
        gaming = analyze_bottlenecks(build, "gaming", "4k")
        self.assertEqual(
            [i.message for i in gaming.insights], ["High-end GPU recommended for 4K gaming."]
        )
        self.assertEqual(analyze_bottlenecks(build, "productivity", "4k").insights, ())

    def test_creator_ram(self):
        analysis = analyze_bottlenecks({"ram": part("Kit", size_gb=16)}, UseCase.CREATOR)
        self.assertEqual(analysis.insights[0].type, InsightType.RECOMMENDATION)

    def test_unknown_arguments_fall_back(self):
        build = {"cpu": part("C", cores=4), "gpu": part("G", vram_gb=16)}
        self.assertEqual(analyze_bottlenecks(build, "mining", "8k").insights, ())
