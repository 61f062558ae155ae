"""Waypoint post-authentication redirection rule engine."""

from .config import DEFAULT_CONFIG, EngineConfig, load_config
from .exceptions import (
    ConfigError,
    LockedRuleError,
    RepositoryError,
    RuleDecodeError,
    RuleNotFoundError,
    RuleValidationError,
    WaypointError,
)
from .handoff import ComputedRedirect, append_token, compute_redirect
from .models import ANY_ROLE, Environment, Organization, RedirectionRule, RedirectionTarget, Role
from .normalization import normalize_origin, origins_equal, origins_overlap
from .provisioning import apply_metadata, derive_auth_server_url, provision_rules, remove_rule
from .repository import InMemoryRuleRepository, RedirectionService, RuleRepository
from .resolution import MatchType, RedirectContext, Resolution, resolve, resolve_redirection
from .serialization import decode_organization, decode_rules, encode_rules
from .validation import FieldIssue, Severity, ValidationResult, enforce_single_default, validate_rule, validate_rule_set

__all__ = [
    "ANY_ROLE",
    "DEFAULT_CONFIG",
    "ComputedRedirect",
    "ConfigError",
    "EngineConfig",
    "Environment",
    "FieldIssue",
    "InMemoryRuleRepository",
    "LockedRuleError",
    "MatchType",
    "Organization",
    "RedirectContext",
    "RedirectionRule",
    "RedirectionService",
    "RedirectionTarget",
    "RepositoryError",
    "Resolution",
    "Role",
    "RuleDecodeError",
    "RuleNotFoundError",
    "RuleRepository",
    "RuleValidationError",
    "Severity",
    "ValidationResult",
    "WaypointError",
    "append_token",
    "apply_metadata",
    "compute_redirect",
    "decode_organization",
    "decode_rules",
    "derive_auth_server_url",
    "encode_rules",
    "enforce_single_default",
    "load_config",
    "normalize_origin",
    "origins_equal",
    "origins_overlap",
    "provision_rules",
    "remove_rule",
    "resolve",
    "resolve_redirection",
    "validate_rule",
    "validate_rule_set",
]
