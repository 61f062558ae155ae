from __future__ import annotations

import json
import logging

import pytest

from tests.support import make_rule, target
from waypoint.config import EngineConfig
from waypoint.models import RedirectionRule
from waypoint.resolution import MatchType, RedirectContext, resolve, resolve_redirection

ORIGIN = "https://auth.acme.com"


def test_empty_rule_set_falls_back_to_profile() -> None:
    context = RedirectContext(auth_origin=ORIGIN, role_slug="admin")
    assert resolve([], context) == "https://auth.acme.com/profile"
    assert resolve(None, context) == "https://auth.acme.com/profile"
    resolution = resolve_redirection([], context)
    assert resolution.match_type is MatchType.FALLBACK
    assert resolution.is_fallback
    assert resolution.rule_index is None


def test_role_specific_rule_beats_any_rule() -> None:
    rules = [
        make_rule(ORIGIN, target("https://app.acme.com/home", True)),
        make_rule(ORIGIN, target("https://admin.acme.com/console", True), role="admin"),
    ]
    admin = resolve_redirection(rules, RedirectContext(auth_origin=ORIGIN, role_slug="admin"))
    assert admin.url == "https://admin.acme.com/console"
    assert admin.match_type is MatchType.SPECIFIC_ROLE_DEFAULT
    assert admin.rule_index == 1

    viewer = resolve_redirection(rules, RedirectContext(auth_origin=ORIGIN, role_slug="viewer"))
    assert viewer.url == "https://app.acme.com/home"
    assert viewer.match_type is MatchType.ANY_ROLE_DEFAULT


def test_default_target_takes_precedence_over_position() -> None:
    rules = [make_rule(ORIGIN, target("A"), target("B", True))]
    assert resolve(rules, RedirectContext(auth_origin=ORIGIN)) == "B"


def test_first_target_is_the_default_when_none_flagged() -> None:
    rules = [make_rule(ORIGIN, "https://app.acme.com/one", "https://app.acme.com/two")]
    resolution = resolve_redirection(rules, RedirectContext(auth_origin=ORIGIN))
    assert resolution.url == "https://app.acme.com/one"
    assert resolution.match_type is MatchType.ANY_ROLE_DEFAULT


def test_empty_default_target_falls_back_to_first_target() -> None:
    rules = [make_rule(ORIGIN, target("https://app.acme.com/first"), target("", True), role="admin")]
    resolution = resolve_redirection(rules, RedirectContext(auth_origin=ORIGIN, role_slug="admin"))
    assert resolution.url == "https://app.acme.com/first"
    assert resolution.match_type is MatchType.SPECIFIC_ROLE_FIRST


def test_empty_any_default_uses_first_target() -> None:
    rules = [make_rule(ORIGIN, target("https://app.acme.com/first"), target("  ", True))]
    resolution = resolve_redirection(rules, RedirectContext(auth_origin=ORIGIN, role_slug="admin"))
    assert resolution.url == "https://app.acme.com/first"
    assert resolution.match_type is MatchType.ANY_ROLE_FIRST


def test_first_matching_rule_in_list_order_wins() -> None:
    rules = [
        make_rule("https://elsewhere.io", target("https://elsewhere.io/home", True)),
        make_rule(ORIGIN, target("https://app.acme.com/first", True)),
        make_rule(ORIGIN, target("https://app.acme.com/second", True)),
    ]
    resolution = resolve_redirection(rules, RedirectContext(auth_origin=ORIGIN))
    assert resolution.url == "https://app.acme.com/first"
    assert resolution.rule_index == 1


def test_rule_without_targets_does_not_block_later_tiers() -> None:
    rules = [
        make_rule(ORIGIN, role="admin"),
        make_rule(ORIGIN, target("https://app.acme.com/home", True)),
    ]
    resolution = resolve_redirection(rules, RedirectContext(auth_origin=ORIGIN, role_slug="admin"))
    assert resolution.url == "https://app.acme.com/home"
    assert resolution.match_type is MatchType.ANY_ROLE_DEFAULT


def test_unmatched_origin_uses_fallback() -> None:
    rules = [make_rule("https://other.io", target("https://other.io/home", True))]
    assert resolve(rules, RedirectContext(auth_origin=ORIGIN)) == "https://auth.acme.com/profile"


def test_scheme_less_rules_match_loosely() -> None:
    rules = [make_rule("auth.acme.com", target("https://app.acme.com/home", True))]
    assert resolve(rules, RedirectContext(auth_origin="https://AUTH.acme.com")) == "https://app.acme.com/home"


def test_strict_origin_matching_rejects_containment() -> None:
    rules = [make_rule("https://auth.acme.com.evil.io", target("https://evil.io/steal", True))]
    context = RedirectContext(auth_origin=ORIGIN)
    assert resolve(rules, context) == "https://evil.io/steal"
    strict = EngineConfig(strict_origin_matching=True)
    assert resolve(rules, context, config=strict) == "https://auth.acme.com/profile"


def test_environment_is_not_part_of_the_match_by_default() -> None:
    rules = [make_rule(ORIGIN, target("https://staging.acme.com", True), environment="staging")]
    context = RedirectContext(auth_origin=ORIGIN, environment="production")
    assert resolve(rules, context) == "https://staging.acme.com"
    config = EngineConfig(match_environment=True)
    assert resolve(rules, context, config=config) == "https://auth.acme.com/profile"
    same_env = RedirectContext(auth_origin=ORIGIN, environment="STAGING")
    assert resolve(rules, same_env, config=config) == "https://staging.acme.com"


def test_unknown_role_slug_is_treated_as_no_match() -> None:
    rules = [
        make_rule(ORIGIN, target("https://app.acme.com/ghost", True), role="ghost"),
        make_rule(ORIGIN, target("https://app.acme.com/home", True)),
    ]
    context = RedirectContext(auth_origin=ORIGIN, role_slug="ghost")
    assert resolve(rules, context) == "https://app.acme.com/ghost"
    assert resolve(rules, context, roles={"admin"}) == "https://app.acme.com/home"


def test_custom_fallback_path() -> None:
    config = EngineConfig(fallback_path="/welcome")
    assert resolve([], RedirectContext(auth_origin=ORIGIN), config=config) == "https://auth.acme.com/welcome"


@pytest.mark.parametrize(
    "rules",
    [
        [],
        [make_rule(ORIGIN)],
        [make_rule(ORIGIN, target("", True), target(""))],
        [make_rule("", target("https://app.acme.com", True))],
        [make_rule("not a url at all", target("https://app.acme.com", True))],
    ],
)
@pytest.mark.parametrize(
    "context",
    [
        RedirectContext(auth_origin=ORIGIN, role_slug="admin"),
        RedirectContext(auth_origin="auth.acme.com/"),
        RedirectContext(auth_origin="https://[::1"),
        RedirectContext(auth_origin=""),
    ],
)
def test_resolution_always_returns_a_url(rules: list[RedirectionRule], context: RedirectContext) -> None:
    url = resolve(rules, context)
    assert isinstance(url, str)
    assert url


def test_fallback_uses_the_auth_origin_as_given() -> None:
    assert resolve([], RedirectContext(auth_origin="https://auth.acme.com/")) == "https://auth.acme.com/profile"
    assert resolve([], RedirectContext(auth_origin="auth.acme.com")) == "auth.acme.com/profile"
    assert resolve([], RedirectContext(auth_origin="HTTPS://Auth.Acme.com")) == "HTTPS://Auth.Acme.com/profile"
    assert resolve([], RedirectContext(auth_origin="")) == "/profile"


def test_resolution_is_logged(caplog: pytest.LogCaptureFixture) -> None:
    caplog.set_level(logging.INFO, logger="waypoint.resolution")
    resolve([], RedirectContext(auth_origin=ORIGIN, role_slug="admin"))
    payloads = [json.loads(record.getMessage()) for record in caplog.records if record.name == "waypoint.resolution"]
    assert payloads == [
        {
            "event": "redirection.resolved",
            "auth_origin": ORIGIN,
            "role": "admin",
            "match_type": "fallback",
            "url": "https://auth.acme.com/profile",
        }
    ]
