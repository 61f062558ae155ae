"""JSON codec for persisted redirection rules."""

from __future__ import annotations

from typing import Any, Protocol, Sequence, cast

import msgspec

from .exceptions import RuleDecodeError
from .models import Organization, RedirectionRule


class _JSONModule(Protocol):
    def encode(self, obj: Any) -> bytes: ...

    def decode(self, data: bytes | str, *, type: Any = ...) -> Any: ...


_json = cast(_JSONModule, getattr(msgspec, "json"))

_LEGACY_KEYS = {"env": "environment", "redirectionUrls": "targets"}


def json_encode(value: Any) -> bytes:
    """Serialize ``value`` to JSON bytes using msgspec."""

    return _json.encode(value)


def json_decode(data: bytes | str) -> Any:
    """Deserialize JSON ``data`` into native Python values."""

    return _json.decode(data)


def encode_rules(rules: Sequence[RedirectionRule]) -> bytes:
    """Render ``rules`` in the persisted camelCase shape."""

    return json_encode(list(rules))


def decode_rules(data: bytes | str) -> tuple[RedirectionRule, ...]:
    """Decode a persisted rule array.

    Records written by older consoles use ``env`` and ``redirectionUrls``;
    those keys are accepted alongside the current ones. Targets without a
    ``url`` are kept with an empty url so validation can report them.
    """

    try:
        raw = json_decode(data)
    except msgspec.DecodeError as exc:
        raise RuleDecodeError(f"Malformed rule JSON: {exc}") from exc
    if not isinstance(raw, list):
        raise RuleDecodeError("Persisted redirection rules must be a JSON array")
    try:
        return msgspec.convert([_upgrade_record(item) for item in raw], tuple[RedirectionRule, ...])
    except msgspec.ValidationError as exc:
        raise RuleDecodeError(f"Invalid redirection rule: {exc}") from exc


def decode_organization(data: bytes | str) -> Organization:
    try:
        raw = json_decode(data)
    except msgspec.DecodeError as exc:
        raise RuleDecodeError(f"Malformed organization JSON: {exc}") from exc
    if isinstance(raw, dict) and isinstance(raw.get("redirectionRules"), list):
        raw = dict(raw)
        raw["redirectionRules"] = [_upgrade_record(item) for item in raw["redirectionRules"]]
    try:
        return msgspec.convert(raw, Organization)
    except msgspec.ValidationError as exc:
        raise RuleDecodeError(f"Invalid organization: {exc}") from exc


def _upgrade_record(item: Any) -> Any:
    if not isinstance(item, dict):
        return item
    record = {_LEGACY_KEYS.get(key, key): value for key, value in item.items() if value is not None}
    record.setdefault("environment", "")
    record.setdefault("authPageUrl", "")
    targets = record.get("targets")
    if isinstance(targets, list):
        record["targets"] = [_upgrade_target(target) for target in targets]
    return record


def _upgrade_target(item: Any) -> Any:
    if not isinstance(item, dict):
        return item
    target = {key: value for key, value in item.items() if value is not None}
    target.setdefault("url", "")
    return target


__all__ = ["decode_organization", "decode_rules", "encode_rules", "json_decode", "json_encode"]
