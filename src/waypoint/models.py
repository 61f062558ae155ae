"""Redirection rule data model shared by every Waypoint component."""

from __future__ import annotations

from enum import Enum

import msgspec
from msgspec import UNSET, UnsetType

ANY_ROLE = "any"


class Environment(str, Enum):
    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"

    def __str__(self) -> str:  # pragma: no cover - trivial
        return self.value


class RedirectionTarget(msgspec.Struct, frozen=True, rename="camel"):
    """A candidate destination URL within a rule."""

    url: str
    is_default: bool = False


class RedirectionRule(msgspec.Struct, frozen=True, rename="camel"):
    """Post-authentication redirection rule for a single auth origin."""

    environment: str
    auth_page_url: str
    role_slug: str = ANY_ROLE
    targets: tuple[RedirectionTarget, ...] = ()
    description: str | UnsetType = UNSET
    locked: bool = False

    @property
    def applies_to_any_role(self) -> bool:
        return self.role_slug == ANY_ROLE

    def default_target(self) -> RedirectionTarget | None:
        """Return the flagged default target, or the first one when none is flagged."""

        for target in self.targets:
            if target.is_default:
                return target
        return self.targets[0] if self.targets else None

    def first_target(self) -> RedirectionTarget | None:
        return self.targets[0] if self.targets else None


class Role(msgspec.Struct, frozen=True, rename="camel", omit_defaults=True):
    slug: str
    name: str | None = None
    is_default: bool = False
    is_system: bool = False
    show_on_signup: bool = False


class Organization(msgspec.Struct, frozen=True, rename="camel", omit_defaults=True):
    """The slice of an organization record the redirection engine cares about."""

    id: str
    website: str | None = None
    auth_server_url: str | None = None
    roles: tuple[Role, ...] = ()
    redirection_rules: tuple[RedirectionRule, ...] = ()

    def role_slugs(self) -> frozenset[str]:
        return frozenset(role.slug for role in self.roles)


__all__ = [
    "ANY_ROLE",
    "Environment",
    "Organization",
    "RedirectionRule",
    "RedirectionTarget",
    "Role",
]
