"""Data-driven rules that compare one spec on each of two parts.

A deployment can add such rules without code through the
``BUILDMATE_FIELD_RULES`` setting, a list of dicts like::

    {
        "id": "cpu-board-socket-strict",
        "source_category": "cpu",
        "source_field": "socket",
        "operator": "equals",
        "target_category": "motherboard",
        "target_field": "socket",
        "severity": "error",
        "message": "Socket mismatch: CPU and motherboard differ",
    }

They run after the built-in rules.
"""
import logging
import operator as op

from django.conf import settings
from django.core.exceptions import ImproperlyConfigured
from django.db import models

from hardware.parts import as_category, get_spec_value, part_name, to_number
from hardware.specs import get_spec_definition

from .compatibility import (
    Rule,
    RuleOutcome,
    RuleRegistry,
    Severity,
    ValidationSkipped,
    fix_options,
)

logger = logging.getLogger(__name__)


class Operator(models.TextChoices):
    EQUALS = "equals", "equals"
    NOT_EQUALS = "not_equals", "does not equal"
    GREATER_THAN = "greater_than", "greater than"
    LESS_THAN = "less_than", "less than"
    GREATER_THAN_OR_EQUAL = "greater_than_or_equal", "at least"
    LESS_THAN_OR_EQUAL = "less_than_or_equal", "at most"
    INCLUDES = "includes", "includes"
    NOT_INCLUDES = "not_includes", "does not include"


NUMERIC_OPERATORS = {
    Operator.GREATER_THAN: op.gt,
    Operator.LESS_THAN: op.lt,
    Operator.GREATER_THAN_OR_EQUAL: op.ge,
    Operator.LESS_THAN_OR_EQUAL: op.le,
}


def _text(value):
    return str(value).strip().lower()


def compare(operator, source, target) -> bool:
    """``source <operator> target``; ``ValidationSkipped`` when not comparable."""
    if operator in NUMERIC_OPERATORS:
        a, b = to_number(source), to_number(target)
        if a is None or b is None:
            raise ValidationSkipped(f"{source!r} / {target!r} are not numeric")
        return NUMERIC_OPERATORS[operator](a, b)
    a, b = _text(source), _text(target)
    if operator == Operator.EQUALS:
        return a == b
    if operator == Operator.NOT_EQUALS:
        return a != b
    if operator == Operator.INCLUDES:
        return a in b or b in a
    if operator == Operator.NOT_INCLUDES:
        return a not in b and b not in a
    raise ValidationSkipped(f"unsupported operator {operator!r}")


def _with_unit(value, key):
    definition = get_spec_definition(key)
    unit = definition.unit if definition else None
    return f"{value}{unit}" if unit else str(value)


class FieldComparisonRule(Rule):
    """Compare ``source_field`` on one part against ``target_field`` on another."""

    def __init__(
        self,
        rule_id,
        source_category,
        source_field,
        operator,
        target_category,
        target_field,
        severity=Severity.ERROR,
        message="",
        description="",
    ):
        self.rule_id = rule_id
        self.source_category = source_category
        self.source_field = source_field
        self.operator = operator
        self.target_category = target_category
        self.target_field = target_field
        self.severity = severity
        self.message = message
        self.description = description
        self.requires = tuple(dict.fromkeys((source_category, target_category)))
        self.spec_keys = tuple(dict.fromkeys((source_field, target_field)))

    def _label(self, key):
        definition = get_spec_definition(key)
        return definition.label if definition else key

    def _fix(self, source, target):
        src_label = self._label(self.source_field)
        tgt_label = self._label(self.target_field)
        src, tgt = self.source_category, self.target_category
        if self.operator == Operator.EQUALS:
            return fix_options(
                f'Select a {tgt} with {tgt_label} matching "{source}"',
                f'Select a {src} with {src_label} matching "{target}"',
            )
        if self.operator == Operator.LESS_THAN_OR_EQUAL:
            return fix_options(
                f"Select a {tgt} with {tgt_label} of at least "
                f"{_with_unit(source, self.source_field)}",
                f"Select a {src} with {src_label} of at most "
                f"{_with_unit(target, self.target_field)}",
            )
        if self.operator == Operator.GREATER_THAN:
            return fix_options(
                f"Select a {tgt} with {tgt_label} below "
                f"{_with_unit(source, self.source_field)}",
                f"Select a {src} with {src_label} above "
                f"{_with_unit(target, self.target_field)}",
            )
        return fix_options(
            f"Select a different {tgt}",
            f"Select a different {src}",
        )

    def check(self, parts, policy):
        source_part = parts[self.source_category]
        target_part = parts[self.target_category]
        source = get_spec_value(source_part, self.source_field)
        target = get_spec_value(target_part, self.target_field)
        if source is None or target is None:
            raise ValidationSkipped("compared value is not set")

        src_label = self._label(self.source_field)
        tgt_label = self._label(self.target_field)
        if compare(self.operator, source, target):
            return RuleOutcome(
                confirmations=(
                    self.confirm(
                        self.message.split(":")[0] or "Compatibility Confirmed",
                        f"{src_label} and {tgt_label} are compatible.",
                        self.description
                        or f"The {self.source_category} and {self.target_category} "
                        "are compatible.",
                    ),
                )
            )

        src_name = part_name(source_part, f"the {self.source_category}")
        tgt_name = part_name(target_part, f"the {self.target_category}")
        explanation = self.description or (
            f"The {src_label} of {src_name} "
            f"({_with_unit(source, self.source_field)}) is incompatible with the "
            f"{tgt_label} of {tgt_name} ({_with_unit(target, self.target_field)})."
        )
        return RuleOutcome(
            issues=(
                self.issue(
                    type=self.message.split(":")[0] or "Compatibility Issue",
                    severity=self.severity,
                    message=self.message
                    or f"{src_label} must be {Operator(self.operator).label} {tgt_label}",
                    explanation=explanation,
                    fix=self._fix(source, target),
                    severity_explanation=(
                        "BLOCKING ERROR: these parts cannot be used together."
                        if self.severity == Severity.ERROR
                        else "Not blocking, but worth reviewing before you buy."
                    ),
                    recommendation=(
                        f"Match {src_label} on the {self.source_category} with "
                        f"{tgt_label} on the {self.target_category}."
                    ),
                ),
            )
        )


def field_rule_from_dict(row) -> FieldComparisonRule:
    if not isinstance(row, dict):
        raise ImproperlyConfigured(f"Field rule must be a dict, got {row!r}")
    missing = [
        k
        for k in ("id", "source_category", "source_field", "operator",
                  "target_category", "target_field")
        if not row.get(k)
    ]
    if missing:
        raise ImproperlyConfigured(
            "Field rule {} is missing: {}".format(row.get("id", "?"), ", ".join(missing))
        )
    categories = [as_category(row["source_category"]), as_category(row["target_category"])]
    if None in categories:
        raise ImproperlyConfigured(f"Field rule {row['id']} names an unknown category")
    if row["operator"] not in Operator.values:
        raise ImproperlyConfigured(
            f"Field rule {row['id']} has unknown operator {row['operator']!r}"
        )
    severity = row.get("severity", Severity.ERROR)
    if severity not in Severity.values:
        raise ImproperlyConfigured(
            f"Field rule {row['id']} has unknown severity {severity!r}"
        )
    return FieldComparisonRule(
        rule_id=row["id"],
        source_category=categories[0],
        source_field=row["source_field"],
        operator=Operator(row["operator"]),
        target_category=categories[1],
        target_field=row["target_field"],
        severity=Severity(severity),
        message=row.get("message", ""),
        description=row.get("description", ""),
    )


def field_rules_from_config(rows):
    """Build rules from dicts; inactive rows (``"active": false``) are dropped."""
    return [
        field_rule_from_dict(row)
        for row in rows or ()
        if not (isinstance(row, dict) and row.get("active") is False)
    ]


def get_registry(extra_rows=None) -> RuleRegistry:
    """Built-in rules followed by configured and ``extra_rows`` field rules."""
    from .rules import DEFAULT_REGISTRY, DEFAULT_RULES

    rows = []
    if settings.configured:
        rows += list(getattr(settings, "BUILDMATE_FIELD_RULES", None) or ())
    rows += list(extra_rows or ())
    if not rows:
        return DEFAULT_REGISTRY
    registry = RuleRegistry(list(DEFAULT_RULES) + field_rules_from_config(rows))
    logger.debug("[DEBUG] Registry with %d field rules", len(registry) - len(DEFAULT_RULES))
    return registry
