"""Waypoint exception types."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Sequence

if TYPE_CHECKING:  # pragma: no cover - imported for typing only
    from .validation import FieldIssue


class WaypointError(Exception):
    """Base error type."""


class RuleValidationError(WaypointError):
    """Raised when a caller asks for a rule set with errors to be rejected."""

    def __init__(self, issues: Sequence["FieldIssue"]) -> None:
        self.issues = tuple(issues)
        summary = "; ".join(f"{issue.path}: {issue.message}" for issue in self.issues)
        super().__init__(summary or "Redirection rules are invalid")

    def to_dict(self) -> dict[str, Any]:
        return {
            "error": {
                "type": "validation",
                "issues": [{"path": issue.path, "message": issue.message} for issue in self.issues],
            }
        }


class LockedRuleError(WaypointError):
    """Raised when deleting a rule that is flagged as locked."""

    def __init__(self, index: int) -> None:
        super().__init__(f"Redirection rule at index {index} is locked")
        self.index = index


class RuleDecodeError(WaypointError, ValueError):
    """Raised when persisted rule JSON cannot be decoded."""


class ConfigError(WaypointError, ValueError):
    """Raised when engine configuration cannot be loaded."""


class RepositoryError(WaypointError):
    """Failure reported by a rule repository."""


class RuleNotFoundError(RepositoryError, LookupError):
    """Raised when no rule set is stored for an organization."""

    def __init__(self, org_id: str) -> None:
        super().__init__(f"No redirection rules stored for organization '{org_id}'")
        self.org_id = org_id


__all__ = [
    "ConfigError",
    "LockedRuleError",
    "RepositoryError",
    "RuleDecodeError",
    "RuleNotFoundError",
    "RuleValidationError",
    "WaypointError",
]
