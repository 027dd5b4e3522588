import logging
from dataclasses import dataclass
from typing import List, Optional, Tuple

from django.db import models

from hardware.parts import get_number, get_text, selection_snapshot
from hardware.specs import PartCategory

logger = logging.getLogger(__name__)


class UseCase(models.TextChoices):
    GAMING = "gaming", "Gaming"
    PRODUCTIVITY = "productivity", "Productivity"
    CREATOR = "creator", "Content creation"
    BALANCED = "balanced", "Balanced"


class Resolution(models.TextChoices):
    FHD = "1080p", "1080p"
    QHD = "1440p", "1440p"
    UHD = "4k", "4K"
    UNKNOWN = "unknown", "Unknown"


class InsightType(models.TextChoices):
    BOTTLENECK = "bottleneck", "Bottleneck"
    BALANCE = "balance", "Balance"
    RECOMMENDATION = "recommendation", "Recommendation"


class InsightSeverity(models.TextChoices):
    INFO = "info", "Info"
    SUGGESTION = "suggestion", "Suggestion"


# Performance tiers derived from specs, lowest first.
PERFORMANCE_TIERS = ("entry", "mid", "high", "enthusiast")

# (tier, min vram GB, min TDP W); either threshold qualifies.
GPU_TIER_THRESHOLDS = (
    ("enthusiast", 16, 300),
    ("high", 12, 250),
    ("mid", 8, 150),
)
ENTRY_GPU_VRAM_GB = 4

# (tier, min cores, (cores, min boost GHz) alternative)
CPU_TIER_THRESHOLDS = (
    ("enthusiast", 16, (12, 5.0)),
    ("high", 12, (8, 4.5)),
    ("mid", 8, (6, 4.0)),
)
ENTRY_CPU_CORES = 4

# Tier steps between CPU and GPU before one is said to outclass the other.
TIER_GAP = 1

GAMING_RAM_GB = 16
ROOMY_RAM_GB = 32
WORKSTATION_RAM_GB = 32


@dataclass(frozen=True)
class BottleneckInsight:
    type: str
    message: str
    explanation: str
    severity: str
    component: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "type": str(self.type),
            "component": str(self.component) if self.component else None,
            "message": self.message,
            "explanation": self.explanation,
            "severity": str(self.severity),
        }


@dataclass(frozen=True)
class BottleneckAnalysis:
    insights: Tuple[BottleneckInsight, ...]
    summary: str

    def to_dict(self) -> dict:
        return {"insights": [i.to_dict() for i in self.insights], "summary": self.summary}


def _tdp(part):
    return get_number(part, "tdp_watts") or get_number(part, "tdp_w") or 0


def gpu_performance_tier(gpu) -> Optional[str]:
    """Tier from VRAM or board power; ``None`` when neither says anything."""
    if gpu is None:
        return None
    vram = get_number(gpu, "vram_gb") or 0
    tdp = _tdp(gpu)
    for tier, min_vram, min_tdp in GPU_TIER_THRESHOLDS:
        if vram >= min_vram or tdp >= min_tdp:
            return tier
    if vram >= ENTRY_GPU_VRAM_GB:
        return "entry"
    return None


def cpu_performance_tier(cpu) -> Optional[str]:
    if cpu is None:
        return None
    cores = get_number(cpu, "cores") or 0
    boost = get_number(cpu, "boost_clock_ghz") or 0
    for tier, min_cores, (alt_cores, alt_boost) in CPU_TIER_THRESHOLDS:
        if cores >= min_cores or (cores >= alt_cores and boost >= alt_boost):
            return tier
    if cores >= ENTRY_CPU_CORES:
        return "entry"
    return None


def _insight(type, message, explanation, severity, component=None):
    return BottleneckInsight(
        type=type,
        message=message,
        explanation=explanation,
        severity=severity,
        component=component,
    )


def cpu_gpu_balance(cpu, gpu, use_case) -> List[BottleneckInsight]:
    cpu_tier, gpu_tier = cpu_performance_tier(cpu), gpu_performance_tier(gpu)
    if cpu_tier is None or gpu_tier is None:
        return []
    diff = PERFORMANCE_TIERS.index(cpu_tier) - PERFORMANCE_TIERS.index(gpu_tier)

    if use_case == UseCase.GAMING:
        if diff > TIER_GAP:
            return [
                _insight(
                    InsightType.BOTTLENECK,
                    "CPU may be more powerful than needed for gaming with this GPU.",
                    "In games the GPU does most of the work. A more balanced CPU "
                    "would save money, or a stronger GPU would raise frame rates.",
                    InsightSeverity.SUGGESTION,
                    PartCategory.CPU,
                )
            ]
        if diff < -TIER_GAP:
            return [
                _insight(
                    InsightType.BOTTLENECK,
                    "CPU may limit gaming performance with this GPU.",
                    "The GPU outclasses the CPU. In CPU-heavy games or at lower "
                    "resolutions the CPU becomes the limiting factor.",
                    InsightSeverity.SUGGESTION,
                    PartCategory.CPU,
                )
            ]
        return [
            _insight(
                InsightType.BALANCE,
                "CPU and GPU are well-balanced for gaming.",
                "Neither component is likely to be left significantly underused.",
                InsightSeverity.INFO,
            )
        ]

    if use_case in (UseCase.PRODUCTIVITY, UseCase.CREATOR):
        if diff < -TIER_GAP:
            return [
                _insight(
                    InsightType.BOTTLENECK,
                    "CPU may limit productivity performance.",
                    "Rendering, compiling and data processing lean on the CPU, "
                    "which here is weaker than the GPU.",
                    InsightSeverity.SUGGESTION,
                    PartCategory.CPU,
                )
            ]
        if diff > TIER_GAP:
            return [
                _insight(
                    InsightType.BALANCE,
                    "CPU is well-suited for productivity workloads.",
                    "A CPU stronger than the GPU fits workloads where CPU "
                    "performance matters more.",
                    InsightSeverity.INFO,
                )
            ]
        return [
            _insight(
                InsightType.BALANCE,
                "CPU and GPU are well-balanced for productivity.",
                "The components are well matched for creator workloads.",
                InsightSeverity.INFO,
            )
        ]
    return []


def ram_adequacy(ram, use_case) -> List[BottleneckInsight]:
    if ram is None:
        return []
    size = get_number(ram, "size_gb") or 0

    if use_case == UseCase.GAMING:
        if size < GAMING_RAM_GB:
            return [
                _insight(
                    InsightType.RECOMMENDATION,
                    f"{GAMING_RAM_GB}GB+ RAM recommended for modern gaming.",
                    "Smaller kits can stutter in current titles.",
                    InsightSeverity.SUGGESTION,
                    PartCategory.RAM,
                )
            ]
        if size >= ROOMY_RAM_GB:
            return [
                _insight(
                    InsightType.BALANCE,
                    f"{ROOMY_RAM_GB}GB+ RAM provides excellent headroom.",
                    "Enough memory to multitask while gaming.",
                    InsightSeverity.INFO,
                    PartCategory.RAM,
                )
            ]
        return []

    if use_case in (UseCase.PRODUCTIVITY, UseCase.CREATOR):
        if size < WORKSTATION_RAM_GB:
            return [
                _insight(
                    InsightType.RECOMMENDATION,
                    f"{WORKSTATION_RAM_GB}GB+ RAM recommended for productivity "
                    "and creator workloads.",
                    "Video editing, 3D rendering and large datasets benefit "
                    "significantly from more memory.",
                    InsightSeverity.SUGGESTION,
                    PartCategory.RAM,
                )
            ]
        return [
            _insight(
                InsightType.BALANCE,
                "RAM capacity is well-suited for productivity workloads.",
                "Memory capacity supports creator workloads effectively.",
                InsightSeverity.INFO,
                PartCategory.RAM,
            )
        ]
    return []


def storage_speed(storage) -> List[BottleneckInsight]:
    if storage is None:
        return []
    kind = (get_text(storage, "type") or "").lower()
    interface = (get_text(storage, "interface") or "").lower()
    if "ssd" in kind or "nvme" in kind or "nvme" in interface or "ssd" in interface:
        return [
            _insight(
                InsightType.BALANCE,
                "SSD storage provides excellent performance.",
                "Fast boot times and quick application loading.",
                InsightSeverity.INFO,
                PartCategory.STORAGE,
            )
        ]
    return [
        _insight(
            InsightType.RECOMMENDATION,
            "SSD recommended for better system responsiveness.",
            "Solid-state drives boot and load applications far faster than "
            "hard drives. Consider an SSD for the system drive.",
            InsightSeverity.SUGGESTION,
            PartCategory.STORAGE,
        )
    ]


def resolution_fit(gpu, resolution) -> List[BottleneckInsight]:
    if gpu is None or resolution == Resolution.UNKNOWN:
        return []
    tier = gpu_performance_tier(gpu)
    if resolution == Resolution.UHD and tier not in ("high", "enthusiast"):
        return [
            _insight(
                InsightType.RECOMMENDATION,
                "High-end GPU recommended for 4K gaming.",
                "4K needs substantial GPU power; this card may struggle to "
                "hold smooth frame rates.",
                InsightSeverity.SUGGESTION,
                PartCategory.GPU,
            )
        ]
    if resolution == Resolution.QHD and tier == "entry":
        return [
            _insight(
                InsightType.RECOMMENDATION,
                "Mid-range or better GPU recommended for 1440p gaming.",
                "Demanding titles at 1440p may need reduced settings on this card.",
                InsightSeverity.SUGGESTION,
                PartCategory.GPU,
            )
        ]
    return []


def _summary(insights) -> str:
    bottlenecks = sum(1 for i in insights if i.type == InsightType.BOTTLENECK)
    suggestions = sum(1 for i in insights if i.type == InsightType.RECOMMENDATION)
    if bottlenecks:
        plural = "s" if bottlenecks > 1 else ""
        return (
            f"Found {bottlenecks} potential bottleneck{plural}. Review the "
            "insights below for optimization opportunities."
        )
    if suggestions:
        plural = "s" if suggestions > 1 else ""
        return f"Found {suggestions} optimization suggestion{plural} to improve your build."
    return "Your build is well-balanced. No significant bottlenecks or recommendations at this time."


def analyze_bottlenecks(
    selection, use_case=UseCase.BALANCED, resolution=Resolution.UNKNOWN
) -> BottleneckAnalysis:
    """Spec-derived balance insights for ``selection``.

    Tiers come from cores, clocks, VRAM and TDP rather than benchmark
    scores, so no bottleneck percentage is reported. Unknown ``use_case``
    or ``resolution`` values behave like balanced/unknown.
    """
    parts = selection_snapshot(selection)
    use_case = use_case if use_case in UseCase.values else UseCase.BALANCED
    resolution = resolution if resolution in Resolution.values else Resolution.UNKNOWN
    cpu, gpu = parts.get(PartCategory.CPU), parts.get(PartCategory.GPU)

    insights = []
    insights += cpu_gpu_balance(cpu, gpu, use_case)
    insights += ram_adequacy(parts.get(PartCategory.RAM), use_case)
    insights += storage_speed(parts.get(PartCategory.STORAGE))
    if use_case == UseCase.GAMING:
        insights += resolution_fit(gpu, resolution)

    logger.debug(
        "[DEBUG] Bottlenecks use_case=%s cpu_tier=%s gpu_tier=%s insights=%d",
        use_case,
        cpu_performance_tier(cpu),
        gpu_performance_tier(gpu),
        len(insights),
    )
    return BottleneckAnalysis(tuple(insights), _summary(insights))
