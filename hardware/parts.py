"""Part record access and ingestion.

Part records arrive as loosely shaped attribute bags. An attribute may be
stored grouped (``part["data"]["power"]["tdp_watts"]``), flat inside
``data`` (``part["data"]["tdp_watts"]``) or directly on the record
(``part["tdp_watts"]``, the legacy shape). ``get_spec_value`` resolves a key
through a fixed table of lookup strategies; the first hit wins.

``normalize_part`` and ``validate_part`` form the ingestion boundary: they
turn a raw record into a flat, typed ``{"data": {...}}`` record and report
anything the spec dictionary does not recognise.
"""
import logging
import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Dict, List, Optional

from .specs import (
    PartCategory,
    SpecGroup,
    SpecType,
    get_spec_definition,
)

logger = logging.getLogger(__name__)

# Scan order for grouped records; not the display order.
GROUP_SCAN_ORDER = (
    SpecGroup.PERFORMANCE,
    SpecGroup.COMPATIBILITY,
    SpecGroup.POWER,
    SpecGroup.PHYSICAL,
    SpecGroup.MEMORY,
    SpecGroup.CONNECTIVITY,
    SpecGroup.FEATURES,
)

IDENTITY_FIELDS = ("id", "name", "price", "slug", "brand", "model")

TRUE_STRINGS = {"true", "yes", "y", "1"}
FALSE_STRINGS = {"false", "no", "n", "0", "none"}


def _field(obj, name):
    """Read ``name`` from a mapping or a plain attribute object."""
    if isinstance(obj, Mapping):
        return obj.get(name)
    try:
        attrs = vars(obj)
    except TypeError:
        return None
    return attrs.get(name)


def _data(part):
    data = _field(part, "data")
    return data if isinstance(data, Mapping) else None


def _grouped_nested(part, key):
    data = _data(part)
    if data is None:
        return None
    for group in GROUP_SCAN_ORDER:
        bucket = data.get(group.value)
        if isinstance(bucket, Mapping) and bucket.get(key) is not None:
            return bucket.get(key)
    return None


def _flat_nested(part, key):
    data = _data(part)
    if data is None:
        return None
    return data.get(key)


def _flat_top_level(part, key):
    return _field(part, key)


# A stored None falls through to the next strategy, same as a missing key.
LOOKUP_STRATEGIES = (
    ("grouped-nested", _grouped_nested),
    ("flat-nested", _flat_nested),
    ("flat-top-level", _flat_top_level),
)


def get_spec_value(part, key):
    """Return the value stored for ``key`` on ``part`` or ``None``.

    Strategies are tried in ``LOOKUP_STRATEGIES`` order. A value stored as
    ``None`` is treated as absent. Never raises.
    """
    if part is None or not isinstance(key, str):
        return None
    for _name, strategy in LOOKUP_STRATEGIES:
        try:
            value = strategy(part, key)
        except Exception:
            value = None
        if value is not None:
            return value
    return None


# --- Typed getters ---
def clean_number(value) -> str:
    if value is None:
        return ""
    s = str(value).strip().replace(",", "")
    m = re.search(r"[-+]?\d*\.?\d+", s)
    return m.group(0) if m else ""


def to_number(value) -> Optional[float]:
    """Coerce ``value`` to float; strings like ``"320 mm"`` are accepted."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        num = float(value)
    elif isinstance(value, str):
        raw = clean_number(value)
        if raw == "":
            return None
        try:
            num = float(raw)
        except ValueError:
            return None
    else:
        try:
            num = float(value)
        except (TypeError, ValueError):
            return None
    if num != num or num in (float("inf"), float("-inf")):
        return None
    return num


def to_flag(value) -> Optional[bool]:
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return bool(value)
    if isinstance(value, str):
        s = value.strip().lower()
        if s in TRUE_STRINGS:
            return True
        if s in FALSE_STRINGS:
            return False
    return None


def get_number(part, key) -> Optional[float]:
    return to_number(get_spec_value(part, key))


def get_text(part, key) -> Optional[str]:
    value = get_spec_value(part, key)
    if value is None or isinstance(value, (Mapping, list, tuple, set)):
        return None
    text = str(value).strip()
    return text or None


def get_flag(part, key) -> Optional[bool]:
    return to_flag(get_spec_value(part, key))


def part_name(part, default: str) -> str:
    return get_text(part, "name") or default


# --- Ingestion ---
def coerce_value(key, value):
    """Coerce ``value`` to the type declared for ``key``.

    Values that cannot be coerced are returned untouched so validation can
    report them.
    """
    definition = get_spec_definition(key)
    if definition is None or value is None:
        return value
    if definition.type == SpecType.NUMBER:
        if isinstance(value, str):
            num = to_number(value)
            if num is None:
                return value
            return int(num) if num.is_integer() else num
        return value
    if definition.type == SpecType.BOOLEAN:
        flag = to_flag(value)
        return value if flag is None else flag
    if definition.type == SpecType.STRING:
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return str(value)
        if isinstance(value, str):
            return value.strip()
    return value


def _collect_keys(part) -> List[str]:
    keys = []
    data = _data(part)
    if data is not None:
        for group in GROUP_SCAN_ORDER:
            bucket = data.get(group.value)
            if isinstance(bucket, Mapping):
                keys.extend(bucket.keys())
        keys.extend(
            k for k, v in data.items() if not isinstance(v, Mapping)
        )
    return list(dict.fromkeys(k for k in keys if isinstance(k, str)))


def normalize_part(raw, category=None) -> dict:
    """Return a new flat, typed record built from ``raw``.

    Top-level fields other than ``data`` are kept as-is (identity fields
    such as ``name`` and ``price`` are coerced too). Every attribute found in
    ``data`` is resolved with ``get_spec_value`` precedence and coerced to
    its declared type. ``raw`` is never modified.
    """
    if not isinstance(raw, Mapping):
        return {"data": {}}
    top = {k: v for k, v in raw.items() if k != "data"}
    for key in IDENTITY_FIELDS:
        if key in top:
            top[key] = coerce_value(key, top[key])
    data = {}
    for key in _collect_keys(raw):
        data[key] = coerce_value(key, get_spec_value(raw, key))
    if category:
        top.setdefault("category", str(category))
    top["data"] = data
    return top


@dataclass
class ValidationMessage:
    spec_key: str
    message: str
    severity: str


@dataclass
class PartValidation:
    valid: bool = True
    errors: List[ValidationMessage] = field(default_factory=list)
    warnings: List[ValidationMessage] = field(default_factory=list)
    unknown_specs: List[str] = field(default_factory=list)


def _type_error(key, value, definition) -> Optional[ValidationMessage]:
    expected = definition.type
    if expected == SpecType.NUMBER:
        ok = isinstance(value, (int, float)) and not isinstance(value, bool)
        ok = ok and value == value
    elif expected == SpecType.BOOLEAN:
        ok = isinstance(value, bool)
    else:
        ok = isinstance(value, str)
    if ok:
        return None
    return ValidationMessage(
        spec_key=key,
        message=f"Expected {expected}, got {type(value).__name__}",
        severity="error",
    )


def validate_part(part, category) -> PartValidation:
    """Check a part's ``data`` attributes against the spec dictionary."""
    result = PartValidation()
    if not isinstance(part, Mapping) or _data(part) is None:
        return result

    for key in _collect_keys(part):
        definition = get_spec_definition(key)
        value = get_spec_value(part, key)
        if definition is None:
            result.unknown_specs.append(key)
            result.warnings.append(
                ValidationMessage(
                    spec_key=key,
                    message=(
                        f"Unknown spec key: {key}. This spec is not defined "
                        "in the spec dictionary."
                    ),
                    severity="warning",
                )
            )
            continue
        if not definition.applies_to(category):
            result.warnings.append(
                ValidationMessage(
                    spec_key=key,
                    message=f"Spec {key} is not applicable to category {category}",
                    severity="warning",
                )
            )
            continue
        if value is None:
            continue
        error = _type_error(key, value, definition)
        if error:
            result.errors.append(error)

    result.valid = not result.errors
    if result.unknown_specs:
        logger.debug(
            "[DEBUG] %s part %s has unknown specs: %s",
            category,
            part_name(part, "<unnamed>"),
            ", ".join(result.unknown_specs),
        )
    return result


def validate_parts(items) -> Dict[str, object]:
    """Validate ``(part, category)`` pairs and summarise the results."""
    results = []
    unknown = set()
    total_errors = total_warnings = 0
    for part, category in items:
        validation = validate_part(part, category)
        results.append((part, category, validation))
        total_errors += len(validation.errors)
        total_warnings += len(validation.warnings)
        unknown.update(validation.unknown_specs)
    valid = sum(1 for _p, _c, v in results if v.valid)
    return {
        "results": results,
        "summary": {
            "total": len(results),
            "valid": valid,
            "invalid": len(results) - valid,
            "total_errors": total_errors,
            "total_warnings": total_warnings,
            "unique_unknown_specs": sorted(unknown),
        },
    }


def as_category(value) -> Optional[PartCategory]:
    try:
        return PartCategory(value)
    except ValueError:
        return None


def selection_snapshot(selection):
    """Return a read-only ``PartCategory -> part`` view of ``selection``.

    Unknown categories and ``None`` parts are dropped; anything that is not
    a mapping yields an empty snapshot.
    """
    parts = {}
    if isinstance(selection, Mapping):
        for key, part in selection.items():
            category = as_category(key)
            if category is None or part is None:
                continue
            if isinstance(part, (str, bytes, int, float, bool, list, tuple)):
                continue
            parts[category] = part
    return MappingProxyType(parts)
