"""Engine configuration objects."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Mapping

import msgspec

from .exceptions import ConfigError

_ENV_PREFIX = "WAYPOINT_"
_TRUTHY = frozenset({"1", "true", "yes", "on"})
_FALSY = frozenset({"0", "false", "no", "off", ""})


class EngineConfig(msgspec.Struct, frozen=True, kw_only=True):
    """Typed configuration for redirection provisioning and resolution."""

    fallback_path: str = "/profile"
    default_scheme: str = "https"
    auth_subdomain: str = "auth"
    local_dev_origin: str = "http://localhost:4001"
    strict_origin_matching: bool = False
    match_environment: bool = False

    def fallback_for(self, auth_origin: str) -> str:
        """Return the URL used when no rule matches ``auth_origin``."""

        if not auth_origin:
            return self.fallback_path
        return f"{auth_origin.rstrip('/')}{self.fallback_path}"

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "EngineConfig":
        """Build a config from ``WAYPOINT_*`` environment variables."""

        source = os.environ if environ is None else environ
        values: dict[str, object] = {}
        for name in cls.__struct_fields__:
            raw = source.get(f"{_ENV_PREFIX}{name.upper()}")
            if raw is None:
                continue
            if isinstance(getattr(DEFAULT_CONFIG, name), bool):
                values[name] = _parse_bool(name, raw)
            else:
                values[name] = raw
        return cls(**values)  # type: ignore[arg-type]


DEFAULT_CONFIG = EngineConfig()


def load_config(path: str | Path) -> EngineConfig:
    """Decode an :class:`EngineConfig` from a JSON file."""

    location = Path(path)
    try:
        data = location.read_bytes()
    except OSError as exc:
        raise ConfigError(f"Cannot read configuration file {location}: {exc}") from exc
    try:
        return msgspec.json.decode(data, type=EngineConfig)
    except (msgspec.DecodeError, msgspec.ValidationError) as exc:
        raise ConfigError(f"Invalid configuration in {location}: {exc}") from exc


def _parse_bool(name: str, raw: str) -> bool:
    value = raw.strip().lower()
    if value in _TRUTHY:
        return True
    if value in _FALSY:
        return False
    raise ConfigError(f"{_ENV_PREFIX}{name.upper()} must be a boolean, got {raw!r}")


__all__ = ["DEFAULT_CONFIG", "EngineConfig", "load_config"]
