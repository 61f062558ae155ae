"""Test support utilities for Waypoint rule tests."""

from __future__ import annotations

from typing import Sequence

from waypoint.exceptions import RepositoryError
from waypoint.models import ANY_ROLE, RedirectionRule, RedirectionTarget


def target(url: str, default: bool = False) -> RedirectionTarget:
    return RedirectionTarget(url=url, is_default=default)


def make_rule(
    auth_page_url: str,
    *targets: RedirectionTarget | str,
    role: str = ANY_ROLE,
    environment: str = "production",
    locked: bool = False,
) -> RedirectionRule:
    built = tuple(item if isinstance(item, RedirectionTarget) else target(item) for item in targets)
    return RedirectionRule(
        environment=environment,
        auth_page_url=auth_page_url,
        role_slug=role,
        targets=built,
        locked=locked,
    )


class FailingRepository:
    """Repository whose every call fails the way a broken backend would."""

    def __init__(self, message: str = "backend unavailable") -> None:
        self.message = message

    async def get(self, org_id: str) -> tuple[RedirectionRule, ...]:
        raise RepositoryError(self.message)

    async def put(self, org_id: str, rules: Sequence[RedirectionRule]) -> None:
        raise RepositoryError(self.message)
