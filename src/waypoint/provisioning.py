"""Idempotent derivation of default redirection rules from organization metadata."""

from __future__ import annotations

import logging
from typing import Sequence

from msgspec import UNSET, UnsetType, structs

from .config import DEFAULT_CONFIG, EngineConfig
from .exceptions import LockedRuleError
from .models import ANY_ROLE, Environment, Organization, RedirectionRule, RedirectionTarget
from .normalization import has_http_scheme, host_of, normalize_origin
from .observability import log_event

logger = logging.getLogger(__name__)

LOCAL_DEV_DESCRIPTION = "Local development - redirects to profile page after login"
PRODUCTION_DESCRIPTION = "Production - redirects to profile page after login"


def derive_auth_server_url(
    website: str,
    *,
    current: str | None = None,
    previous_website: str | None = None,
    config: EngineConfig = DEFAULT_CONFIG,
) -> str | None:
    """Return the auth server URL to store after ``website`` changes.

    The derived value is ``scheme://auth.<website host>[:port]``, or the
    website origin itself when its host already starts with ``auth.``. It
    only replaces ``current`` when ``current`` is empty or its host is the
    previous website's host, bare or with the ``auth.`` prefix; anything else
    was entered by hand and is returned untouched. Websites that cannot be
    parsed leave ``current`` as it is.
    """

    if not website or not website.strip():
        return current
    origin = normalize_origin(website, default_scheme=config.default_scheme)
    hostname = host_of(origin)
    if hostname is None or not has_http_scheme(origin):
        return current
    prefix = f"{config.auth_subdomain}."
    if hostname.startswith(prefix):
        derived = origin
    else:
        derived = origin.replace(f"//{hostname}", f"//{prefix}{hostname}", 1)
    if not current or not current.strip():
        return derived
    if current.lower() == derived.lower():
        return derived
    previous_host = host_of(previous_website) if previous_website else None
    if previous_host:
        previous_base = previous_host.removeprefix(prefix)
        if host_of(current) in (previous_base, f"{prefix}{previous_base}"):
            return derived
    return current


def provision_rules(
    rules: Sequence[RedirectionRule],
    auth_server_url: str | None,
    *,
    config: EngineConfig = DEFAULT_CONFIG,
) -> tuple[RedirectionRule, ...]:
    """Append the local development and production defaults that are missing.

    Existing rules are never edited, removed or reordered, so calling this
    again on its own output returns an equal tuple.
    """

    existing = tuple(rules)
    if not auth_server_url or not auth_server_url.strip():
        return existing
    auth_origin = normalize_origin(auth_server_url, default_scheme=config.default_scheme)
    if host_of(auth_origin) is None or not has_http_scheme(auth_origin):
        log_event(logger, "redirection.provision_skipped", level=logging.DEBUG, auth_server_url=auth_server_url)
        return existing

    added: list[RedirectionRule] = []
    local_origin = config.local_dev_origin
    local_marker = local_origin.split("://", 1)[-1].lower()
    if not any(local_marker in rule.auth_page_url.lower() for rule in existing):
        added.append(_default_rule(local_origin, Environment.DEVELOPMENT, LOCAL_DEV_DESCRIPTION, config))
    if not any(_contains_either(rule.auth_page_url, auth_origin) for rule in (*existing, *added)):
        added.append(_default_rule(auth_origin, Environment.PRODUCTION, PRODUCTION_DESCRIPTION, config))

    for rule in added:
        log_event(
            logger,
            "redirection.rule_provisioned",
            environment=rule.environment,
            auth_page_url=rule.auth_page_url,
        )
    return existing + tuple(added)


def apply_metadata(
    organization: Organization,
    *,
    website: str | None | UnsetType = UNSET,
    auth_server_url: str | None | UnsetType = UNSET,
    config: EngineConfig = DEFAULT_CONFIG,
) -> Organization:
    """Apply website and auth server edits, then provision rules.

    An explicit ``auth_server_url`` wins over the value derived from
    ``website``. Rules are only provisioned when the effective auth server
    URL changed.
    """

    updated = organization
    if website is not UNSET and website != organization.website:
        derived = organization.auth_server_url
        if website:
            derived = derive_auth_server_url(
                website,
                current=organization.auth_server_url,
                previous_website=organization.website,
                config=config,
            )
        updated = structs.replace(updated, website=website, auth_server_url=derived)
    if auth_server_url is not UNSET:
        updated = structs.replace(updated, auth_server_url=auth_server_url)

    if updated.auth_server_url and updated.auth_server_url != organization.auth_server_url:
        rules = provision_rules(updated.redirection_rules, updated.auth_server_url, config=config)
        if rules != updated.redirection_rules:
            updated = structs.replace(updated, redirection_rules=rules)
    return updated


def remove_rule(rules: Sequence[RedirectionRule], index: int) -> tuple[RedirectionRule, ...]:
    """Return ``rules`` without the rule at ``index`` unless it is locked."""

    existing = tuple(rules)
    if existing[index].locked:
        raise LockedRuleError(index)
    position = index if index >= 0 else len(existing) + index
    return existing[:position] + existing[position + 1 :]


def _default_rule(origin: str, environment: Environment, description: str, config: EngineConfig) -> RedirectionRule:
    return RedirectionRule(
        environment=environment.value,
        auth_page_url=origin,
        role_slug=ANY_ROLE,
        targets=(RedirectionTarget(url=config.fallback_for(origin), is_default=True),),
        description=description,
    )


def _contains_either(auth_page_url: str, origin: str) -> bool:
    if not auth_page_url:
        return False
    stored = auth_page_url.lower()
    candidate = origin.lower()
    return candidate in stored or stored in candidate


__all__ = [
    "LOCAL_DEV_DESCRIPTION",
    "PRODUCTION_DESCRIPTION",
    "apply_metadata",
    "derive_auth_server_url",
    "provision_rules",
    "remove_rule",
]
