"""Rule storage contract and the service that ties the engine to it."""

from __future__ import annotations

import logging
from typing import Collection, Protocol, Sequence

from msgspec import UNSET, UnsetType, structs

from .config import DEFAULT_CONFIG, EngineConfig
from .exceptions import RuleNotFoundError
from .models import Organization, RedirectionRule
from .observability import log_event
from .provisioning import apply_metadata
from .resolution import RedirectContext, Resolution, resolve_redirection
from .validation import ValidationResult, validate_rule_set

logger = logging.getLogger(__name__)


class RuleRepository(Protocol):
    """Persist and retrieve an organization's ordered rule set."""

    async def get(self, org_id: str) -> tuple[RedirectionRule, ...]: ...

    async def put(self, org_id: str, rules: Sequence[RedirectionRule]) -> None: ...


class InMemoryRuleRepository:
    """Dictionary backed :class:`RuleRepository` used by tests and the CLI."""

    def __init__(self, initial: dict[str, Sequence[RedirectionRule]] | None = None) -> None:
        self._rules: dict[str, tuple[RedirectionRule, ...]] = {
            org_id: tuple(rules) for org_id, rules in (initial or {}).items()
        }
        self.writes = 0

    async def get(self, org_id: str) -> tuple[RedirectionRule, ...]:
        try:
            return self._rules[org_id]
        except KeyError as exc:
            raise RuleNotFoundError(org_id) from exc

    async def put(self, org_id: str, rules: Sequence[RedirectionRule]) -> None:
        self._rules[org_id] = tuple(rules)
        self.writes += 1

    def __contains__(self, org_id: object) -> bool:
        return org_id in self._rules


class RedirectionService:
    """Run provisioning, validation and resolution against a repository.

    Repository failures propagate unchanged; nothing here retries.
    """

    def __init__(self, repository: RuleRepository, *, config: EngineConfig = DEFAULT_CONFIG) -> None:
        self.repository = repository
        self.config = config

    async def update_metadata(
        self,
        organization: Organization,
        *,
        website: str | None | UnsetType = UNSET,
        auth_server_url: str | None | UnsetType = UNSET,
    ) -> Organization:
        """Apply metadata edits and store the provisioned rule set when it changed."""

        current = await self.repository.get(organization.id)
        base = structs.replace(organization, redirection_rules=current)
        updated = apply_metadata(base, website=website, auth_server_url=auth_server_url, config=self.config)
        if updated.redirection_rules != current:
            await self.save_rules(updated, is_new_organization=False)
        return updated

    async def save_rules(
        self,
        organization: Organization,
        *,
        is_new_organization: bool,
    ) -> ValidationResult:
        """Validate ``organization``'s rules and persist them.

        Raises :class:`~waypoint.exceptions.RuleValidationError` without
        writing anything when the set has errors; warnings are returned.
        """

        result = validate_rule_set(
            organization.redirection_rules,
            is_new_organization=is_new_organization,
            roles=organization.role_slugs(),
        )
        result.raise_for_errors()
        await self.repository.put(organization.id, organization.redirection_rules)
        log_event(
            logger,
            "redirection.rules_saved",
            org_id=organization.id,
            rules=len(organization.redirection_rules),
            warnings=len(result.warnings) or None,
        )
        return result

    async def resolve(
        self,
        org_id: str,
        context: RedirectContext,
        *,
        roles: Collection[str] | None = None,
    ) -> Resolution:
        rules = await self.repository.get(org_id)
        return resolve_redirection(rules, context, config=self.config, roles=roles)


__all__ = ["InMemoryRuleRepository", "RedirectionService", "RuleRepository"]
