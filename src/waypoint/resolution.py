"""Priority-based resolution of the post-authentication redirect URL."""

from __future__ import annotations

import logging
from enum import Enum
from typing import Callable, Collection, Iterable, Sequence

import msgspec

from .config import DEFAULT_CONFIG, EngineConfig
from .models import ANY_ROLE, RedirectionRule, RedirectionTarget
from .normalization import origins_equal, origins_overlap
from .observability import log_event

logger = logging.getLogger(__name__)


class MatchType(str, Enum):
    SPECIFIC_ROLE_DEFAULT = "specific-role-default"
    SPECIFIC_ROLE_FIRST = "specific-role-first"
    ANY_ROLE_DEFAULT = "any-role-default"
    ANY_ROLE_FIRST = "any-role-first"
    FALLBACK = "fallback"

    def __str__(self) -> str:  # pragma: no cover - trivial
        return self.value


class RedirectContext(msgspec.Struct, frozen=True):
    """Where the user authenticated and which role they hold."""

    auth_origin: str
    role_slug: str = ANY_ROLE
    environment: str | None = None


class Resolution(msgspec.Struct, frozen=True):
    url: str
    match_type: MatchType
    rule_index: int | None = None

    @property
    def is_fallback(self) -> bool:
        return self.match_type is MatchType.FALLBACK


_TargetPicker = Callable[[RedirectionRule], RedirectionTarget | None]


def resolve(
    rules: Sequence[RedirectionRule] | None,
    context: RedirectContext,
    *,
    config: EngineConfig = DEFAULT_CONFIG,
    roles: Collection[str] | None = None,
) -> str:
    """Return the URL a user should be sent to after authenticating."""

    return resolve_redirection(rules, context, config=config, roles=roles).url


def resolve_redirection(
    rules: Sequence[RedirectionRule] | None,
    context: RedirectContext,
    *,
    config: EngineConfig = DEFAULT_CONFIG,
    roles: Collection[str] | None = None,
) -> Resolution:
    """Resolve ``context`` against ``rules`` and report which tier matched.

    Tiers, highest precedence first: the context role with its default
    target, the context role with its first target, ``any`` with its default
    target, ``any`` with its first target, then ``<auth origin><fallback
    path>`` with the origin taken as given minus any trailing slash. Within
    a tier the first rule in stored order wins. Rules naming a role outside
    ``roles`` (when given) never match.
    """

    candidates = list(_matching_rules(rules or (), context, config=config, roles=roles))
    specific = [
        (index, rule)
        for index, rule in candidates
        if context.role_slug != ANY_ROLE and rule.role_slug == context.role_slug
    ]
    generic = [(index, rule) for index, rule in candidates if rule.role_slug == ANY_ROLE]
    tiers: tuple[tuple[list[tuple[int, RedirectionRule]], _TargetPicker, MatchType], ...] = (
        (specific, RedirectionRule.default_target, MatchType.SPECIFIC_ROLE_DEFAULT),
        (specific, RedirectionRule.first_target, MatchType.SPECIFIC_ROLE_FIRST),
        (generic, RedirectionRule.default_target, MatchType.ANY_ROLE_DEFAULT),
        (generic, RedirectionRule.first_target, MatchType.ANY_ROLE_FIRST),
    )
    for pool, pick, match_type in tiers:
        for index, rule in pool:
            target = pick(rule)
            if target is not None and target.url.strip():
                resolution = Resolution(url=target.url, match_type=match_type, rule_index=index)
                _log_resolution(context, resolution)
                return resolution

    resolution = Resolution(url=config.fallback_for(context.auth_origin.strip()), match_type=MatchType.FALLBACK)
    _log_resolution(context, resolution)
    return resolution


def _matching_rules(
    rules: Iterable[RedirectionRule],
    context: RedirectContext,
    *,
    config: EngineConfig,
    roles: Collection[str] | None,
) -> Iterable[tuple[int, RedirectionRule]]:
    matches = origins_equal if config.strict_origin_matching else origins_overlap
    environment = (context.environment or "").lower() if config.match_environment else ""
    for index, rule in enumerate(rules):
        if not matches(rule.auth_page_url, context.auth_origin):
            continue
        if environment and rule.environment.lower() != environment:
            continue
        if roles is not None and rule.role_slug != ANY_ROLE and rule.role_slug not in roles:
            continue
        yield index, rule


def _log_resolution(context: RedirectContext, resolution: Resolution) -> None:
    log_event(
        logger,
        "redirection.resolved",
        auth_origin=context.auth_origin,
        role=context.role_slug,
        match_type=resolution.match_type.value,
        rule_index=resolution.rule_index,
        url=resolution.url,
    )


__all__ = ["MatchType", "RedirectContext", "Resolution", "resolve", "resolve_redirection"]
