"""Compatibility rule engine.

``evaluate`` runs every registered ``Rule`` over a read-only snapshot of a
part selection and concatenates what they emit, in registration order.
Rules are stateless objects; they never see more than the snapshot and the
active ``BuildPolicy``.

Partial builds are the normal case: a rule whose categories are not all
selected is not run at all, and a rule that meets missing or malformed
values raises ``ValidationSkipped``, which the engine swallows. Any other
exception from a rule is logged and the rule is treated as skipped.
"""
import logging
from dataclasses import asdict, dataclass
from typing import Iterable, List, Optional, Tuple

from django.core.exceptions import ImproperlyConfigured
from django.db import models

from hardware.parts import get_spec_value, selection_snapshot, to_number
from hardware.specs import is_valid_spec_key

from .policy import BuildPolicy, get_policy

logger = logging.getLogger(__name__)


class Severity(models.TextChoices):
    ERROR = "error", "Error"
    WARNING = "warning", "Warning"
    INFO = "info", "Info"


SEVERITY_ORDER = {Severity.ERROR: 0, Severity.WARNING: 1, Severity.INFO: 2}


class ValidationSkipped(Exception):
    """A rule lacked usable data and omitted itself."""


@dataclass(frozen=True)
class Issue:
    type: str
    severity: str
    message: str
    explanation: str
    fix: str
    affected_categories: Tuple[str, ...]
    rule_id: str
    spec_keys: Tuple[str, ...]
    severity_explanation: str
    recommendation: str

    @property
    def is_blocking(self) -> bool:
        return self.severity == Severity.ERROR

    def to_dict(self) -> dict:
        data = asdict(self)
        data["severity"] = str(self.severity)
        data["affected_categories"] = [str(c) for c in self.affected_categories]
        data["spec_keys"] = list(self.spec_keys)
        return data


@dataclass(frozen=True)
class Confirmation:
    type: str
    message: str
    explanation: str
    rule_id: str = ""

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class RuleOutcome:
    issues: Tuple[Issue, ...] = ()
    confirmations: Tuple[Confirmation, ...] = ()


@dataclass(frozen=True)
class CompatibilityResult:
    issues: Tuple[Issue, ...] = ()
    confirmations: Tuple[Confirmation, ...] = ()

    @property
    def errors(self) -> List[Issue]:
        return filter_issues_by_severity(self.issues, Severity.ERROR)

    @property
    def warnings(self) -> List[Issue]:
        return filter_issues_by_severity(self.issues, Severity.WARNING)

    @property
    def infos(self) -> List[Issue]:
        return filter_issues_by_severity(self.issues, Severity.INFO)

    @property
    def has_errors(self) -> bool:
        return any(i.is_blocking for i in self.issues)

    def summary(self) -> dict:
        errors = len(self.errors)
        return {
            "total_issues": len(self.issues),
            "errors": errors,
            "warnings": len(self.warnings),
            "info": len(self.infos),
            "can_build": errors == 0,
        }

    def to_dict(self) -> dict:
        return {
            "issues": [i.to_dict() for i in self.issues],
            "confirmations": [c.to_dict() for c in self.confirmations],
        }


def filter_issues_by_severity(issues: Iterable[Issue], severity) -> List[Issue]:
    return [i for i in issues if i.severity == severity]


def fix_options(*options: str) -> str:
    return "\n\n".join(
        f"Option {idx}: {text}" for idx, text in enumerate(options, start=1)
    )


def number_or_skip(part, key) -> Optional[float]:
    """Numeric value of ``key``; ``None`` if unset, skip if non-numeric."""
    raw = get_spec_value(part, key)
    if raw is None:
        return None
    num = to_number(raw)
    if num is None:
        raise ValidationSkipped(f"{key}={raw!r} is not numeric")
    return num


def fmt_num(value: float) -> str:
    return str(int(value)) if float(value).is_integer() else f"{value:.1f}"


class Rule:
    """Base class for a single compatibility check.

    ``requires`` lists categories that must all be selected;
    ``requires_any`` (if set) needs at least one of its categories.
    ``spec_keys`` declares every dictionary key the rule reads.
    """

    rule_id = ""
    requires: Tuple[str, ...] = ()
    requires_any: Tuple[str, ...] = ()
    spec_keys: Tuple[str, ...] = ()

    def applies(self, snapshot) -> bool:
        if not all(c in snapshot for c in self.requires):
            return False
        if self.requires_any and not any(c in snapshot for c in self.requires_any):
            return False
        return True

    def check(self, parts, policy: BuildPolicy) -> RuleOutcome:
        raise NotImplementedError

    def issue(
        self,
        type,
        severity,
        message,
        explanation,
        fix,
        severity_explanation,
        recommendation,
        affected=None,
        spec_keys=None,
    ) -> Issue:
        return Issue(
            type=type,
            severity=severity,
            message=message,
            explanation=explanation,
            fix=fix,
            affected_categories=tuple(affected or self.requires),
            rule_id=self.rule_id,
            spec_keys=tuple(spec_keys or self.spec_keys),
            severity_explanation=severity_explanation,
            recommendation=recommendation,
        )

    def confirm(self, type, message, explanation) -> Confirmation:
        return Confirmation(
            type=type, message=message, explanation=explanation, rule_id=self.rule_id
        )

    def __repr__(self):
        return f"<{self.__class__.__name__} {self.rule_id}>"


class RuleRegistry:
    """Ordered, validated collection of rules.

    Construction fails with ``ImproperlyConfigured`` on a duplicate rule id
    or a rule declaring a key missing from the spec dictionary.
    """

    def __init__(self, rules: Iterable[Rule]):
        self._rules = tuple(rules)
        self.validate()

    def validate(self):
        seen = set()
        for rule in self._rules:
            if not rule.rule_id:
                raise ImproperlyConfigured(f"{rule!r} has no rule_id")
            if rule.rule_id in seen:
                raise ImproperlyConfigured(f"Duplicate rule id: {rule.rule_id}")
            seen.add(rule.rule_id)
            unknown = [k for k in rule.spec_keys if not is_valid_spec_key(k)]
            if unknown:
                raise ImproperlyConfigured(
                    "Rule {} references unknown spec keys: {}".format(
                        rule.rule_id, ", ".join(unknown)
                    )
                )

    def __iter__(self):
        return iter(self._rules)

    def __len__(self):
        return len(self._rules)

    @property
    def rule_ids(self) -> List[str]:
        return [r.rule_id for r in self._rules]


def evaluate(selection, registry: Optional[RuleRegistry] = None, policy=None):
    """Evaluate ``selection`` and return a ``CompatibilityResult``.

    Pure and deterministic: identical selections give identical results in
    identical order. Never raises for missing, partial or malformed input.
    """
    if registry is None:
        from .field_rules import get_registry

        registry = get_registry()
    policy = get_policy(policy)
    snapshot = selection_snapshot(selection)

    issues: List[Issue] = []
    confirmations: List[Confirmation] = []
    for rule in registry:
        if not rule.applies(snapshot):
            continue
        try:
            outcome = rule.check(snapshot, policy)
        except ValidationSkipped as exc:
            logger.debug("[DEBUG] Rule %s skipped: %s", rule.rule_id, exc)
            continue
        except Exception:
            # A faulty rule is dropped from the result, not the whole evaluation.
            logger.exception("Rule %s failed; treating it as skipped", rule.rule_id)
            continue
        if outcome is None:
            continue
        issues.extend(outcome.issues)
        confirmations.extend(outcome.confirmations)

    logger.debug(
        "[DEBUG] Evaluated %d parts: %d issues, %d confirmations",
        len(snapshot),
        len(issues),
        len(confirmations),
    )
    return CompatibilityResult(tuple(issues), tuple(confirmations))
