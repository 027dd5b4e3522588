"""Numeric policy shared by the rules, the power budget and the scorer.

Defaults live on ``BuildPolicy``. A deployment can override any of them
with a ``BUILDMATE_POLICY`` dict in Django settings, e.g.::

    BUILDMATE_POLICY = {"safety_margin": 0.3, "psu_step_watts": 100}
"""
from dataclasses import dataclass, fields, replace
from typing import Optional

from django.conf import settings
from django.core.exceptions import ImproperlyConfigured


@dataclass(frozen=True)
class BuildPolicy:
    # PSU headroom rule
    rule_baseline_watts: float = 100.0
    rule_warning_utilization: float = 0.75
    default_cpu_tdp: float = 100.0
    default_gpu_tdp: float = 250.0

    # Power budget
    base_overhead_watts: float = 30.0
    safety_margin: float = 0.25
    psu_step_watts: int = 50
    spike_ratio: float = 0.5
    borderline_utilization: float = 0.75
    insufficient_utilization: float = 0.90
    motherboard_watts: float = 50.0
    ram_watts_per_16gb: float = 5.0
    default_ram_gb: float = 16.0
    ssd_watts: float = 8.0
    hdd_watts: float = 12.0
    case_fan_watts: float = 3.0
    default_case_fans: int = 3

    # Cooler rating rule
    cooler_recommended_margin_watts: float = 20.0
    cooler_overspec_ratio: float = 1.5
    cooler_suggest_span_watts: float = 50.0

    # CPU/GPU tier balance rule
    tier_gap_threshold: int = 2

    # Template scorer
    score_weight: float = 0.7
    price_weight: float = 0.3
    top_candidates: int = 3
    max_cores: float = 16.0
    max_ghz: float = 5.0
    max_mhz: float = 6000.0
    max_capacity: float = 32.0
    max_tdp_watts: float = 300.0
    max_psu_watts: float = 1000.0
    generic_max: float = 10.0


DEFAULT_POLICY = BuildPolicy()

_FIELD_NAMES = {f.name for f in fields(BuildPolicy)}


def policy_from_overrides(overrides) -> BuildPolicy:
    if not overrides:
        return DEFAULT_POLICY
    if not isinstance(overrides, dict):
        raise ImproperlyConfigured("BUILDMATE_POLICY must be a dict.")
    unknown = sorted(set(overrides) - _FIELD_NAMES)
    if unknown:
        raise ImproperlyConfigured(
            "Unknown BUILDMATE_POLICY keys: {}".format(", ".join(unknown))
        )
    return replace(DEFAULT_POLICY, **overrides)


def get_policy(policy: Optional[BuildPolicy] = None) -> BuildPolicy:
    """Return ``policy`` if given, else defaults merged with settings."""
    if policy is not None:
        return policy
    if not settings.configured:
        return DEFAULT_POLICY
    return policy_from_overrides(getattr(settings, "BUILDMATE_POLICY", None))
