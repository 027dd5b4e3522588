"""Qualitative health report for a part selection.

Four areas are rated (compatibility, power, performance balance and
upgrade flexibility) and the overall rating is the worst of them.
"""
import logging
from dataclasses import dataclass
from typing import Optional, Tuple

from django.db import models

from hardware.parts import get_number, get_text, selection_snapshot
from hardware.specs import PartCategory

from .compatibility import RuleRegistry, evaluate
from .policy import BuildPolicy, get_policy
from .power import calculate_power
from .rules import display_socket, norm

logger = logging.getLogger(__name__)


class HealthRating(models.TextChoices):
    EXCELLENT = "excellent", "Excellent"
    GOOD = "good", "Good"
    ACCEPTABLE = "acceptable", "Acceptable"
    NEEDS_ATTENTION = "needs_attention", "Needs attention"


# Headroom as a share of PSU wattage.
MIN_HEADROOM_PCT = 10
GOOD_HEADROOM_PCT = 20

UPGRADE_HEADROOM_WATTS = 200
LIMITED_HEADROOM_WATTS = 100
ROOMY_CASE_GPU_MM = 360
TIGHT_CASE_GPU_MM = 300

MANY_CORES = 8
FEW_CORES = 6
SMALL_VRAM_GB = 8
LARGE_VRAM_GB = 12
MIN_RAM_GB = 16
ROOMY_RAM_GB = 32

SUMMARIES = {
    HealthRating.EXCELLENT: (
        "Your build looks excellent! All components are well-matched and compatible."
    ),
    HealthRating.GOOD: (
        "Your build is in good shape. Minor optimizations could improve it further."
    ),
    HealthRating.ACCEPTABLE: (
        "Your build will work, but there are some areas that could be improved."
    ),
    HealthRating.NEEDS_ATTENTION: (
        "Your build needs attention. Please review the issues below."
    ),
}


@dataclass(frozen=True)
class HealthCategory:
    name: str
    rating: str
    explanation: str
    details: Tuple[str, ...] = ()
    recommendations: Tuple[str, ...] = ()

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "rating": str(self.rating),
            "explanation": self.explanation,
            "details": list(self.details),
            "recommendations": list(self.recommendations),
        }


@dataclass(frozen=True)
class BuildHealth:
    overall: str
    categories: Tuple[HealthCategory, ...]
    summary: str

    def to_dict(self) -> dict:
        return {
            "overall": str(self.overall),
            "categories": [c.to_dict() for c in self.categories],
            "summary": self.summary,
        }


def compatibility_health(result) -> HealthCategory:
    errors = [i.message for i in result.errors]
    warnings = [i.message for i in result.warnings]
    if errors:
        return HealthCategory(
            "Compatibility",
            HealthRating.NEEDS_ATTENTION,
            "There are compatibility issues that will prevent this build from working.",
            tuple(errors + warnings),
            ("Review compatibility issues and select matching components.",),
        )
    if warnings:
        return HealthCategory(
            "Compatibility",
            HealthRating.ACCEPTABLE,
            "Some components may not work optimally together.",
            tuple(warnings),
            ("Consider adjusting components for better compatibility.",),
        )
    return HealthCategory(
        "Compatibility",
        HealthRating.EXCELLENT,
        "All selected components are compatible with each other.",
    )


def power_health(power) -> HealthCategory:
    if power.psu_wattage is None:
        return HealthCategory(
            "Power Supply",
            HealthRating.NEEDS_ATTENTION,
            "No power supply selected.",
            ("A power supply is required for the build.",),
            ("Select a power supply with adequate wattage for your components.",),
        )

    pct = round(power.headroom / power.psu_wattage * 100)
    details = (
        f"Estimated load: {power.estimated_load:g}W",
        f"PSU capacity: {power.psu_wattage:g}W",
        f"Headroom: {power.headroom:g}W ({pct}%)",
    )
    if power.headroom < 0:
        return HealthCategory(
            "Power Supply",
            HealthRating.NEEDS_ATTENTION,
            f"The power supply ({power.psu_wattage:g}W) is insufficient for the "
            f"estimated load ({power.estimated_load:g}W).",
            details,
            (f"Select a PSU with at least {power.recommended_psu}W.",),
        )
    if pct < MIN_HEADROOM_PCT:
        return HealthCategory(
            "Power Supply",
            HealthRating.ACCEPTABLE,
            f"Power supply provides minimal headroom ({pct}%).",
            details,
            ("Consider a higher wattage PSU for better stability and future upgrades.",),
        )
    if pct < GOOD_HEADROOM_PCT:
        return HealthCategory(
            "Power Supply",
            HealthRating.GOOD,
            f"Power supply provides adequate headroom ({pct}%).",
            details,
        )
    return HealthCategory(
        "Power Supply",
        HealthRating.EXCELLENT,
        f"Power supply provides excellent headroom ({pct}%).",
        details,
    )


def balance_health(parts) -> HealthCategory:
    cpu, gpu = parts.get(PartCategory.CPU), parts.get(PartCategory.GPU)
    if cpu is None or gpu is None:
        return HealthCategory(
            "Performance Balance",
            HealthRating.NEEDS_ATTENTION,
            "Missing core components for performance analysis.",
            ("CPU and GPU are required for performance evaluation.",),
            ("Select both CPU and GPU to evaluate performance balance.",),
        )

    cores = get_number(cpu, "cores") or 0
    vram = get_number(gpu, "vram_gb") or 0
    ram = parts.get(PartCategory.RAM)
    ram_gb = (get_number(ram, "size_gb") or 0) if ram is not None else 0

    details, recommendations = [], []
    rating = HealthRating.GOOD
    if cores >= MANY_CORES and vram < SMALL_VRAM_GB:
        details.append("CPU may be underutilized with lower-end GPU.")
        recommendations.append("Consider a more powerful GPU or a more budget-friendly CPU.")
        rating = HealthRating.ACCEPTABLE
    elif cores < FEW_CORES and vram >= LARGE_VRAM_GB:
        details.append("GPU may be bottlenecked by CPU in CPU-intensive tasks.")
        recommendations.append("Consider a CPU with more cores for better GPU utilization.")
        rating = HealthRating.ACCEPTABLE

    if ram_gb < MIN_RAM_GB:
        details.append(f"{MIN_RAM_GB}GB+ RAM recommended for modern workloads.")
        recommendations.append(f"Consider upgrading to {MIN_RAM_GB}GB or more RAM.")
        rating = HealthRating.ACCEPTABLE
    elif ram_gb >= ROOMY_RAM_GB:
        details.append(f"{ROOMY_RAM_GB}GB+ RAM provides excellent headroom for multitasking.")

    explanation = (
        "Components are well-balanced for their performance tiers."
        if rating == HealthRating.GOOD
        else "Some components may not be optimally matched."
    )
    return HealthCategory(
        "Performance Balance", rating, explanation, tuple(details), tuple(recommendations)
    )


def upgrade_health(parts, power) -> HealthCategory:
    details = []
    rating = HealthRating.GOOD

    cpu, board = parts.get(PartCategory.CPU), parts.get(PartCategory.MOTHERBOARD)
    cpu_socket = get_text(cpu, "socket") if cpu is not None else None
    board_socket = get_text(board, "socket") if board is not None else None
    if cpu_socket and board_socket and norm(cpu_socket) == norm(board_socket):
        details.append(
            f"Socket match ({display_socket(cpu_socket)}) allows future CPU upgrades "
            "within the same platform."
        )

    if power.headroom is not None:
        if power.headroom >= UPGRADE_HEADROOM_WATTS:
            details.append("Generous PSU headroom supports future GPU upgrades.")
        elif 0 <= power.headroom < LIMITED_HEADROOM_WATTS:
            details.append(
                "Limited PSU headroom may require PSU upgrade for future GPU upgrades."
            )
            rating = HealthRating.ACCEPTABLE

    case = parts.get(PartCategory.CASE)
    clearance = get_number(case, "gpu_max_length_mm") if case is not None else None
    if clearance:
        if clearance >= ROOMY_CASE_GPU_MM:
            details.append("Generous case clearance supports most GPU upgrades.")
        elif clearance < TIGHT_CASE_GPU_MM:
            details.append("Tight case clearance may limit future GPU upgrade options.")
            rating = HealthRating.ACCEPTABLE

    explanation = (
        "Build has good flexibility for future upgrades."
        if rating == HealthRating.GOOD
        else "Some components may limit future upgrade options."
    )
    return HealthCategory("Upgrade Flexibility", rating, explanation, tuple(details))


def overall_rating(categories) -> str:
    ratings = [c.rating for c in categories]
    if not ratings or HealthRating.NEEDS_ATTENTION in ratings:
        return HealthRating.NEEDS_ATTENTION
    if HealthRating.ACCEPTABLE in ratings:
        return HealthRating.ACCEPTABLE
    if all(r == HealthRating.EXCELLENT for r in ratings):
        return HealthRating.EXCELLENT
    return HealthRating.GOOD


def analyze_build_health(
    selection,
    registry: Optional[RuleRegistry] = None,
    policy: Optional[BuildPolicy] = None,
) -> BuildHealth:
    """Rate ``selection``. Pure; never raises for partial or malformed input."""
    policy = get_policy(policy)
    parts = selection_snapshot(selection)
    power = calculate_power(parts, policy)

    categories = (
        compatibility_health(evaluate(parts, registry=registry, policy=policy)),
        power_health(power),
        balance_health(parts),
        upgrade_health(parts, power),
    )
    overall = overall_rating(categories)
    logger.debug(
        "[DEBUG] Health overall=%s %s",
        overall,
        ", ".join(f"{c.name}={c.rating}" for c in categories),
    )
    return BuildHealth(overall, categories, SUMMARIES[overall])
