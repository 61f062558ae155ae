"""Structural validation for redirection rules and rule sets."""

from __future__ import annotations

from collections import defaultdict
from enum import Enum
from typing import Iterable, Sequence

import msgspec
from msgspec import structs

from .exceptions import RuleValidationError
from .models import ANY_ROLE, RedirectionRule, RedirectionTarget

RULES_PATH = "redirectionRules"


class Severity(str, Enum):
    ERROR = "error"
    WARNING = "warning"

    def __str__(self) -> str:  # pragma: no cover - trivial
        return self.value


class FieldIssue(msgspec.Struct, frozen=True):
    path: str
    message: str
    severity: Severity = Severity.ERROR


class ValidationResult(msgspec.Struct, frozen=True):
    """All problems found in a rule or rule set."""

    errors: tuple[FieldIssue, ...] = ()
    warnings: tuple[FieldIssue, ...] = ()

    @property
    def ok(self) -> bool:
        return not self.errors

    @property
    def issues(self) -> tuple[FieldIssue, ...]:
        return self.errors + self.warnings

    def merge(self, other: "ValidationResult") -> "ValidationResult":
        return ValidationResult(errors=self.errors + other.errors, warnings=self.warnings + other.warnings)

    def raise_for_errors(self) -> None:
        if self.errors:
            raise RuleValidationError(self.errors)

    @classmethod
    def from_issues(cls, issues: Iterable[FieldIssue]) -> "ValidationResult":
        errors: list[FieldIssue] = []
        warnings: list[FieldIssue] = []
        for issue in issues:
            (errors if issue.severity is Severity.ERROR else warnings).append(issue)
        return cls(errors=tuple(errors), warnings=tuple(warnings))


def validate_rule(
    rule: RedirectionRule,
    *,
    index: int | None = None,
    roles: Iterable[str] | None = None,
) -> ValidationResult:
    """Check a single rule.

    ``roles`` is the set of known role slugs. When it is given, a rule that
    names an unknown role produces a warning rather than an error because
    roles and rules are saved independently.
    """

    prefix = _rule_path(index)
    issues: list[FieldIssue] = []

    if not rule.auth_page_url.strip():
        issues.append(FieldIssue(f"{prefix}authPageUrl", "Auth page URL is required"))
    elif rule.auth_page_url.endswith("/"):
        issues.append(FieldIssue(f"{prefix}authPageUrl", "Auth page URL must not end with '/'"))

    if not rule.targets:
        issues.append(FieldIssue(f"{prefix}targets", "At least one redirection target is required"))
    for position, target in enumerate(rule.targets):
        issues.extend(_target_issues(target, f"{prefix}targets[{position}]"))

    defaults = sum(1 for target in rule.targets if target.is_default)
    if defaults > 1:
        issues.append(FieldIssue(f"{prefix}targets", "Only one target can be marked as default"))

    if not rule.role_slug.strip():
        issues.append(FieldIssue(f"{prefix}roleSlug", f"Role is required; use '{ANY_ROLE}' to match every role"))
    elif roles is not None and rule.role_slug != ANY_ROLE and rule.role_slug not in set(roles):
        issues.append(
            FieldIssue(
                f"{prefix}roleSlug",
                f"Role '{rule.role_slug}' is not defined for this organization",
                Severity.WARNING,
            )
        )

    return ValidationResult.from_issues(issues)


def validate_rule_set(
    rules: Sequence[RedirectionRule],
    *,
    is_new_organization: bool,
    roles: Iterable[str] | None = None,
) -> ValidationResult:
    """Check every rule plus the set-level constraints.

    New organizations need at least one rule; existing ones may be saved
    with none.
    """

    known_roles = frozenset(roles) if roles is not None else None
    result = ValidationResult()
    if is_new_organization and not rules:
        result = result.merge(
            ValidationResult(errors=(FieldIssue(RULES_PATH, "At least one redirection rule is required"),))
        )
    for index, rule in enumerate(rules):
        result = result.merge(validate_rule(rule, index=index, roles=known_roles))
    return result.merge(ValidationResult(warnings=tuple(_competing_defaults(rules))))


def enforce_single_default(
    rules: Sequence[RedirectionRule],
    environment: str,
    role_slug: str,
    url: str,
) -> tuple[RedirectionRule, ...]:
    """Make ``url`` the only default among rules for ``environment`` and ``role_slug``."""

    updated: list[RedirectionRule] = []
    for rule in rules:
        if rule.environment == environment and rule.role_slug == role_slug:
            targets = tuple(structs.replace(target, is_default=target.url == url) for target in rule.targets)
            rule = structs.replace(rule, targets=targets)
        updated.append(rule)
    return tuple(updated)


def _target_issues(target: RedirectionTarget, path: str) -> list[FieldIssue]:
    if not target.url.strip():
        return [FieldIssue(f"{path}.url", "Redirection URL is required")]
    if target.url.endswith("/"):
        return [FieldIssue(f"{path}.url", "Redirection URL must not end with '/'")]
    return []


def _competing_defaults(rules: Sequence[RedirectionRule]) -> list[FieldIssue]:
    counts: dict[tuple[str, str], int] = defaultdict(int)
    for rule in rules:
        key = (rule.environment or "unknown", rule.role_slug or ANY_ROLE)
        counts[key] += any(target.is_default for target in rule.targets)
    return [
        FieldIssue(
            RULES_PATH,
            f"Multiple default URLs found for {environment}-{role}; only one default is used per environment and role",
            Severity.WARNING,
        )
        for (environment, role), count in counts.items()
        if count > 1
    ]


def _rule_path(index: int | None) -> str:
    if index is None:
        return ""
    return f"{RULES_PATH}[{index}]."


__all__ = [
    "FieldIssue",
    "Severity",
    "ValidationResult",
    "enforce_single_default",
    "validate_rule",
    "validate_rule_set",
]
