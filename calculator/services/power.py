"""Power budget for a part selection.

Estimates per-component draw, adds a fixed overhead and a transient spike
allowance, and rounds the result up to a purchasable PSU size.
"""
import logging
import math
from dataclasses import dataclass
from typing import Optional, Tuple

from django.db import models

from hardware.parts import get_number, get_text, selection_snapshot
from hardware.specs import PartCategory

from .policy import BuildPolicy, get_policy

logger = logging.getLogger(__name__)


class PowerStatus(models.TextChoices):
    NONE = "none", "No PSU selected"
    INSUFFICIENT = "insufficient", "Insufficient"
    BORDERLINE = "borderline", "Borderline"
    SUFFICIENT = "sufficient", "Sufficient"


COMPONENT_COLORS = {
    PartCategory.CPU: "#3b82f6",
    PartCategory.GPU: "#22c55e",
    PartCategory.MOTHERBOARD: "#f59e0b",
    PartCategory.RAM: "#8b5cf6",
    PartCategory.STORAGE: "#ef4444",
    PartCategory.CASE: "#6b7280",
    PartCategory.PSU: "#06b6d4",
}


@dataclass(frozen=True)
class PowerEntry:
    component: str
    label: str
    tdp: float
    percentage_of_total: float
    display_color: str

    def to_dict(self) -> dict:
        return {
            "component": str(self.component),
            "label": self.label,
            "tdp": self.tdp,
            "percentage_of_total": self.percentage_of_total,
            "display_color": self.display_color,
        }


@dataclass(frozen=True)
class PowerBreakdown:
    entries: Tuple[PowerEntry, ...]
    total_tdp: float
    base_overhead: float
    estimated_load: float
    spike_allowance: float
    recommended_psu: int
    psu_wattage: Optional[float]
    headroom: Optional[float]
    utilization: Optional[float]
    status: str
    efficiency_rating: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "entries": [e.to_dict() for e in self.entries],
            "total_tdp": self.total_tdp,
            "base_overhead": self.base_overhead,
            "estimated_load": self.estimated_load,
            "spike_allowance": self.spike_allowance,
            "recommended_psu": self.recommended_psu,
            "psu_wattage": self.psu_wattage,
            "headroom": self.headroom,
            "utilization": self.utilization,
            "status": str(self.status),
            "efficiency_rating": self.efficiency_rating,
        }


def recommended_psu_wattage(load, spike=0.0, policy: Optional[BuildPolicy] = None) -> int:
    """Round ``(load + spike) * (1 + margin)`` up to the next PSU step.

    >>> recommended_psu_wattage(400, 110)
    650
    """
    policy = get_policy(policy)
    step = policy.psu_step_watts
    target = (load + spike) * (1 + policy.safety_margin)
    # float noise must not push an exact multiple up a step
    return int(math.ceil(round(target / step, 9)) * step)


def classify_psu(load, wattage, policy: Optional[BuildPolicy] = None) -> str:
    policy = get_policy(policy)
    if not wattage or wattage <= 0:
        return PowerStatus.NONE
    utilization = load / wattage
    if utilization > policy.insufficient_utilization:
        return PowerStatus.INSUFFICIENT
    if utilization > policy.borderline_utilization:
        return PowerStatus.BORDERLINE
    return PowerStatus.SUFFICIENT


def _tdp(part):
    for key in ("tdp_watts", "tdp_w"):
        value = get_number(part, key)
        if value:
            return value
    return None


def _storage_watts(part, policy):
    kind = (get_text(part, "type") or "").lower()
    if "ssd" in kind or "nvme" in kind:
        return policy.ssd_watts
    return policy.hdd_watts


def calculate_power(selection, policy: Optional[BuildPolicy] = None) -> PowerBreakdown:
    """Estimate the power budget of ``selection``. Never raises."""
    policy = get_policy(policy)
    parts = selection_snapshot(selection)
    estimates = []

    cpu_tdp = gpu_tdp = 0.0
    for category in (PartCategory.CPU, PartCategory.GPU):
        part = parts.get(category)
        if part is None:
            continue
        tdp = _tdp(part)
        if tdp is None or tdp <= 0:
            continue
        if category == PartCategory.CPU:
            cpu_tdp = tdp
        else:
            gpu_tdp = tdp
        estimates.append((category, tdp))

    if PartCategory.MOTHERBOARD in parts:
        estimates.append((PartCategory.MOTHERBOARD, policy.motherboard_watts))

    if PartCategory.RAM in parts:
        size = get_number(parts[PartCategory.RAM], "size_gb")
        if size is None or size <= 0:
            size = policy.default_ram_gb
        estimates.append((PartCategory.RAM, policy.ram_watts_per_16gb * size / 16))

    if PartCategory.STORAGE in parts:
        estimates.append(
            (PartCategory.STORAGE, _storage_watts(parts[PartCategory.STORAGE], policy))
        )

    if PartCategory.CASE in parts:
        fans = get_number(parts[PartCategory.CASE], "fan_count")
        if fans is None or fans < 0:
            fans = policy.default_case_fans
        estimates.append((PartCategory.CASE, policy.case_fan_watts * fans))

    total_tdp = sum(watts for _c, watts in estimates)
    entries = tuple(
        PowerEntry(
            component=category,
            label=category.label,
            tdp=round(watts, 1),
            percentage_of_total=round(watts / total_tdp * 100, 1) if total_tdp else 0.0,
            display_color=COMPONENT_COLORS[category],
        )
        for category, watts in estimates
    )
    load = total_tdp + policy.base_overhead_watts
    spike = policy.spike_ratio * max(cpu_tdp, gpu_tdp)
    recommended = recommended_psu_wattage(load, spike, policy)

    wattage = efficiency = None
    if PartCategory.PSU in parts:
        efficiency = get_text(parts[PartCategory.PSU], "efficiency_rating")
        wattage = get_number(parts[PartCategory.PSU], "wattage")
        if wattage is not None and wattage <= 0:
            wattage = None
    status = classify_psu(load, wattage, policy)
    headroom = utilization = None
    if wattage:
        headroom = round(wattage - load, 1)
        utilization = round(load / wattage, 4)

    logger.debug(
        "[DEBUG] Power load=%sW spike=%sW recommended=%sW psu=%s status=%s",
        load,
        spike,
        recommended,
        wattage,
        status,
    )
    return PowerBreakdown(
        entries=entries,
        total_tdp=round(total_tdp, 1),
        base_overhead=policy.base_overhead_watts,
        estimated_load=round(load, 1),
        spike_allowance=round(spike, 1),
        recommended_psu=recommended,
        psu_wattage=wattage,
        headroom=headroom,
        utilization=utilization,
        status=status,
        efficiency_rating=efficiency,
    )
