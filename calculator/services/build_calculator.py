import logging
from dataclasses import dataclass
from types import MappingProxyType
from typing import Dict, List, Optional, Tuple

from hardware.parts import (
    as_category,
    get_number,
    get_spec_value,
    part_name,
    to_flag,
    to_number,
)
from hardware.specs import PartCategory, SpecType, get_spec_definition

from .compatibility import RuleRegistry, evaluate
from .policy import BuildPolicy, get_policy

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SpecPriority:
    category: str
    priority_specs: Tuple[str, ...]
    weight: int  # 1-10, how much the category matters to the template


@dataclass(frozen=True)
class BuildTemplate:
    id: str
    name: str
    description: str
    use_case: str
    budget_min: float
    budget_max: float
    priorities: Tuple[SpecPriority, ...]

    def priority_for(self, category) -> Optional[SpecPriority]:
        for priority in self.priorities:
            if priority.category == category:
                return priority
        return None


def _p(category, specs, weight):
    return SpecPriority(category, tuple(specs), weight)


BUILD_TEMPLATES = (
    BuildTemplate(
        id="gaming-focused",
        name="Gaming Focused",
        description="Optimized for high frame rates and smooth gaming experience",
        use_case="gaming",
        budget_min=800,
        budget_max=2000,
        priorities=(
            _p(PartCategory.GPU, ["vram_gb", "core_clock_mhz", "boost_clock_mhz"], 10),
            _p(PartCategory.CPU, ["cores", "boost_clock_ghz"], 7),
            _p(PartCategory.RAM, ["size_gb", "ram_speed_mhz"], 6),
            _p(PartCategory.PSU, ["wattage", "efficiency_rating"], 5),
            _p(PartCategory.MOTHERBOARD, ["pcie_slots"], 4),
            _p(PartCategory.STORAGE, ["read_speed_mbps", "type"], 5),
            _p(PartCategory.CASE, ["gpu_max_length_mm"], 3),
        ),
    ),
    BuildTemplate(
        id="content-creation",
        name="Content Creation",
        description="Balanced for rendering, video editing, and creative workflows",
        use_case="content-creation",
        budget_min=1200,
        budget_max=3000,
        priorities=(
            _p(PartCategory.CPU, ["cores", "threads", "boost_clock_ghz"], 10),
            _p(PartCategory.RAM, ["size_gb", "ram_speed_mhz"], 9),
            _p(PartCategory.GPU, ["vram_gb", "core_clock_mhz"], 8),
            _p(PartCategory.STORAGE, ["read_speed_mbps", "write_speed_mbps", "size_gb"], 7),
            _p(PartCategory.MOTHERBOARD, ["m2_slots", "max_ram_speed_mhz"], 5),
            _p(PartCategory.PSU, ["wattage", "efficiency_rating"], 6),
            _p(PartCategory.CASE, ["gpu_max_length_mm"], 3),
        ),
    ),
    BuildTemplate(
        id="budget-build",
        name="Budget Build",
        description="Maximum value for money without compromising essentials",
        use_case="budget",
        budget_min=500,
        budget_max=1000,
        priorities=(
            _p(PartCategory.CPU, ["cores"], 6),
            _p(PartCategory.GPU, ["vram_gb"], 7),
            _p(PartCategory.RAM, ["size_gb"], 5),
            _p(PartCategory.STORAGE, ["size_gb", "type"], 6),
            _p(PartCategory.MOTHERBOARD, ["memory_type"], 4),
            _p(PartCategory.PSU, ["wattage"], 5),
            _p(PartCategory.CASE, ["form_factor"], 3),
        ),
    ),
    BuildTemplate(
        id="performance-first",
        name="Performance First",
        description="No compromises - maximum performance for demanding tasks",
        use_case="performance",
        budget_min=2000,
        budget_max=5000,
        priorities=(
            _p(PartCategory.CPU, ["cores", "threads", "boost_clock_ghz"], 10),
            _p(PartCategory.GPU, ["vram_gb", "core_clock_mhz", "boost_clock_mhz"], 10),
            _p(PartCategory.RAM, ["size_gb", "ram_speed_mhz"], 8),
            _p(PartCategory.STORAGE, ["read_speed_mbps", "write_speed_mbps"], 7),
            _p(PartCategory.PSU, ["wattage", "efficiency_rating"], 6),
            _p(PartCategory.MOTHERBOARD, ["pcie_slots", "m2_slots"], 5),
            _p(PartCategory.CASE, ["gpu_max_length_mm", "fan_count"], 4),
        ),
    ),
    BuildTemplate(
        id="silent-build",
        name="Silent Build",
        description="Quiet operation with efficient cooling and low-noise components",
        use_case="silent",
        budget_min=1000,
        budget_max=2500,
        priorities=(
            _p(PartCategory.CPU, ["tdp_watts"], 8),
            _p(PartCategory.GPU, ["tdp_watts"], 8),
            _p(PartCategory.CASE, ["fan_count"], 7),
            _p(PartCategory.PSU, ["efficiency_rating"], 9),
            _p(PartCategory.MOTHERBOARD, ["wifi", "bluetooth"], 5),
            _p(PartCategory.STORAGE, ["type"], 6),
            _p(PartCategory.RAM, ["size_gb"], 5),
        ),
    ),
)

TEMPLATES_BY_ID = MappingProxyType({t.id: t for t in BUILD_TEMPLATES})


def get_template(template_id) -> Optional[BuildTemplate]:
    return TEMPLATES_BY_ID.get(template_id)


# Preferred string values, best first.
DESIRABLE_VALUES = {
    "type": ("NVMe", "SSD"),
    "memory_type": ("DDR5", "DDR4"),
    "efficiency_rating": ("Titanium", "Platinum", "Gold", "Silver", "Bronze"),
    "modular": ("Full", "Semi", "Yes"),
    "modular_type": ("Full", "Semi"),
}

LOWER_IS_BETTER = ("tdp_watts", "tdp_w")


# --- Scoring ---
def _scale(value, maximum) -> float:
    return max(0.0, min(value / maximum * 100, 100.0))


def normalize_spec_score(key, value, definition, policy: BuildPolicy) -> Optional[float]:
    """Map a raw spec value onto 0-100. ``None`` when it cannot be scored."""
    if value is None or definition is None:
        return None

    if definition.type == SpecType.NUMBER:
        num = to_number(value)
        if num is None:
            return None
        if key in LOWER_IS_BETTER:
            return max(0.0, min(100 - num / policy.max_tdp_watts * 100, 100.0))
        if key in ("cores", "threads"):
            return _scale(num, policy.max_cores)
        if "ghz" in key:
            return _scale(num, policy.max_ghz)
        if "mhz" in key:
            return _scale(num, policy.max_mhz)
        if "gb" in key or "tb" in key:
            return _scale(num, policy.max_capacity)
        if key == "wattage":
            return _scale(num, policy.max_psu_watts)
        return _scale(num, policy.generic_max)

    if definition.type == SpecType.BOOLEAN:
        flag = to_flag(value)
        if flag is None:
            return None
        return 100.0 if flag else 0.0

    values = DESIRABLE_VALUES.get(key, ())
    text = str(value).lower()
    for idx, wanted in enumerate(values):
        if wanted.lower() in text:
            return (len(values) - idx) / len(values) * 100
    return 50.0


def score_part(part, category, template: BuildTemplate, policy=None) -> float:
    """Mean normalized score of the template's priority specs found on ``part``."""
    policy = get_policy(policy)
    priority = template.priority_for(category)
    if priority is None:
        return 0.0
    scores = []
    for key in priority.priority_specs:
        definition = get_spec_definition(key)
        if definition is None or not definition.applies_to(category):
            continue
        score = normalize_spec_score(key, get_spec_value(part, key), definition, policy)
        if score is not None:
            scores.append(score)
    return sum(scores) / len(scores) if scores else 0.0


def part_price(part) -> float:
    price = get_number(part, "price")
    return price if price is not None else 0.0


def rank_candidates(parts, category, template: BuildTemplate, policy=None) -> List[dict]:
    """Order ``parts`` best first by ``score_weight*score - price_weight*price``.

    Ties keep catalog order.
    """
    policy = get_policy(policy)
    scored = []
    for part in parts or ():
        if part is None:
            continue
        score = score_part(part, category, template, policy)
        price = part_price(part)
        scored.append(
            {
                "part": part,
                "score": score,
                "price": price,
                "value": policy.score_weight * score - policy.price_weight * price,
            }
        )
    scored.sort(key=lambda c: c["value"], reverse=True)
    return scored


@dataclass(frozen=True)
class TemplateApplication:
    selection: Dict[str, object]
    picks: Dict[str, object]
    total_cost: float
    within_budget: bool

    def to_dict(self) -> dict:
        return {
            "selection": {str(k): part_name(v, "") for k, v in self.selection.items()},
            "picks": {str(k): part_name(v, "") for k, v in self.picks.items()},
            "total_cost": self.total_cost,
            "within_budget": self.within_budget,
        }


def _error_count(selection, registry, policy) -> int:
    return len(evaluate(selection, registry=registry, policy=policy).errors)


def apply_template(
    template: BuildTemplate,
    catalog,
    selection=None,
    registry: Optional[RuleRegistry] = None,
    policy: Optional[BuildPolicy] = None,
) -> TemplateApplication:
    """Fill the unset categories of ``selection`` from ``catalog``.

    Greedy: categories are visited by template weight (highest first) and
    each pick is fixed before the next category is considered, so the result
    is not globally optimal. For each category the top ranked candidates are
    tried in order and the first that adds no error-severity issue is kept;
    if all of them add errors, the one with the fewest errors wins (ties go
    to the better ranked part).

    ``catalog`` maps category -> list of parts. Categories already in
    ``selection``, and categories with no candidates, are left as they are.
    Neither argument is modified.
    """
    policy = get_policy(policy)
    current = {}
    for key, part in (selection or {}).items():
        category = as_category(key)
        if category is not None and part is not None:
            current[category] = part
    catalog = catalog or {}
    picks = {}

    ordered = sorted(template.priorities, key=lambda p: p.weight, reverse=True)
    for priority in ordered:
        category = as_category(priority.category)
        if category is None or category in current:
            continue
        ranked = rank_candidates(
            catalog.get(category.value) or (), category, template, policy
        )
        if not ranked:
            logger.debug("[DEBUG] %s: no candidates, left unset", category.value)
            continue

        tried = []
        chosen = None
        for rank, candidate in enumerate(ranked[: policy.top_candidates]):
            trial = dict(current)
            trial[category] = candidate["part"]
            errors = _error_count(trial, registry, policy)
            logger.debug(
                "[DEBUG] %s candidate #%d %s: score=%.1f price=%.2f errors=%d",
                category.value,
                rank + 1,
                part_name(candidate["part"], "<unnamed>"),
                candidate["score"],
                candidate["price"],
                errors,
            )
            if errors == 0:
                chosen = candidate["part"]
                break
            tried.append((errors, rank, candidate["part"]))

        if chosen is None:
            errors, rank, chosen = min(tried, key=lambda t: (t[0], t[1]))
            logger.debug(
                "[DEBUG] %s: all candidates conflict, falling back to #%d (%d errors)",
                category.value,
                rank + 1,
                errors,
            )
        current[category] = chosen
        picks[category] = chosen

    total_cost = round(sum(part_price(p) for p in current.values()), 2)
    return TemplateApplication(
        selection=current,
        picks=picks,
        total_cost=total_cost,
        within_budget=total_cost <= template.budget_max,
    )
