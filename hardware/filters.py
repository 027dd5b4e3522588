"""Catalog filters generated from the spec dictionary.

``generate_filters`` inspects the parts actually present in a category and
offers one filter per spec key they carry: a toggle for booleans, a range
for numbers with many distinct values, otherwise a select.
"""
import logging
from dataclasses import dataclass
from typing import List, Optional, Tuple

from django.db import models

from .parts import get_spec_value, to_flag, to_number
from .specs import (
    IMPORTANCE_ORDER,
    SpecType,
    format_spec_value,
    get_specs_for_category,
)

logger = logging.getLogger(__name__)

# More distinct numeric values than this become a range slider.
RANGE_THRESHOLD = 5
# String specs with more options than this get no filter.
MAX_SELECT_OPTIONS = 20

RANGE_STEPS = {"GHz": 0.1, "W": 10}


class FilterType(models.TextChoices):
    RANGE = "range", "Range"
    SELECT = "select", "Select"
    TOGGLE = "toggle", "Toggle"


@dataclass(frozen=True)
class FilterOption:
    value: str
    label: str


@dataclass(frozen=True)
class FilterDefinition:
    spec_key: str
    label: str
    type: str
    category: str
    importance: str
    min: Optional[float] = None
    max: Optional[float] = None
    step: Optional[float] = None
    options: Tuple[FilterOption, ...] = ()
    default: Optional[bool] = None

    def to_dict(self) -> dict:
        data = {
            "spec_key": self.spec_key,
            "label": self.label,
            "type": str(self.type),
            "category": str(self.category),
            "importance": str(self.importance),
        }
        if self.type == FilterType.RANGE:
            data.update(min=self.min, max=self.max, step=self.step)
        elif self.type == FilterType.SELECT:
            data["options"] = [{"value": o.value, "label": o.label} for o in self.options]
        else:
            data["default"] = self.default
        return data


@dataclass(frozen=True)
class ActiveFilter:
    """A filter the user has set.

    ``value`` is ``(low, high)`` or a single number for ranges, a string for
    selects and a bool for toggles.
    """

    spec_key: str
    type: str
    value: object


def _option_text(value) -> str:
    num = to_number(value)
    if num is not None and not isinstance(value, str):
        return str(int(num)) if num.is_integer() else str(num)
    return str(value)


def _distinct(parts, key):
    values = []
    seen = set()
    for part in parts:
        value = get_spec_value(part, key)
        if value is None:
            continue
        try:
            if value in seen:
                continue
            seen.add(value)
        except TypeError:
            # lists and dicts cannot be offered as options
            continue
        values.append(value)
    return values


def generate_filters(category, parts) -> List[FilterDefinition]:
    """Filter definitions for ``category`` built from the values in ``parts``.

    Sorted by importance (high first), then label. Specs no part carries
    produce no filter.
    """
    parts = list(parts or ())
    filters = []
    for key, definition in get_specs_for_category(category):
        values = _distinct(parts, key)
        if not values:
            continue
        base = dict(
            spec_key=key,
            label=definition.label,
            category=category,
            importance=definition.importance,
        )

        if definition.type == SpecType.BOOLEAN:
            filters.append(FilterDefinition(type=FilterType.TOGGLE, default=False, **base))
            continue

        if definition.type == SpecType.NUMBER:
            numbers = sorted({n for n in map(to_number, values) if n is not None})
            if not numbers:
                continue
            if len(numbers) > RANGE_THRESHOLD:
                filters.append(
                    FilterDefinition(
                        type=FilterType.RANGE,
                        min=numbers[0],
                        max=numbers[-1],
                        step=RANGE_STEPS.get(definition.unit, 1),
                        **base,
                    )
                )
            else:
                options = tuple(
                    FilterOption(
                        _option_text(n),
                        format_spec_value(n, definition.unit, SpecType.NUMBER),
                    )
                    for n in numbers
                )
                filters.append(FilterDefinition(type=FilterType.SELECT, options=options, **base))
            continue

        texts = sorted({str(v) for v in values})
        if len(texts) > MAX_SELECT_OPTIONS:
            continue
        options = tuple(FilterOption(t, t) for t in texts)
        filters.append(FilterDefinition(type=FilterType.SELECT, options=options, **base))

    filters.sort(key=lambda f: (IMPORTANCE_ORDER.index(f.importance), f.label.lower()))
    logger.debug("[DEBUG] %d filters for %s from %d parts", len(filters), category, len(parts))
    return filters


def _range_bounds(value):
    if isinstance(value, (list, tuple)) and len(value) == 2:
        low, high = value
    else:
        low = high = value
    return to_number(low), to_number(high)


def matches(part, active: ActiveFilter) -> bool:
    if active.type == FilterType.TOGGLE and not active.value:
        # toggle off shows everything
        return True
    value = get_spec_value(part, active.spec_key)
    if value is None:
        return False

    if active.type == FilterType.RANGE:
        num = to_number(value)
        low, high = _range_bounds(active.value)
        if num is None or low is None or high is None:
            return False
        return low <= num <= high

    if active.type == FilterType.SELECT:
        # numeric only for stored numbers; to_number("AM5") would give 5
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            wanted = to_number(active.value)
            return wanted is not None and wanted == value
        return str(value) == str(active.value)

    if active.type == FilterType.TOGGLE:
        return to_flag(value) == bool(active.value)
    return True


def apply_filters(parts, filters) -> list:
    """Parts matching every active filter, in catalog order.

    A part missing a filtered spec does not match. Inputs are not modified.
    """
    parts = list(parts or ())
    filters = list(filters or ())
    if not filters:
        return parts
    return [part for part in parts if all(matches(part, f) for f in filters)]


def filter_summary(parts, filters) -> dict:
    parts = list(parts or ())
    filters = list(filters or ())
    return {
        "total": len(parts),
        "filtered": len(apply_filters(parts, filters)),
        "active_filters": len(filters),
    }
