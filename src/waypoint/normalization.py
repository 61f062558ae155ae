"""Origin canonicalization for redirection rules."""

from __future__ import annotations

import logging
from urllib.parse import urlsplit

logger = logging.getLogger(__name__)

_SCHEMES = ("http://", "https://")
_DEFAULT_PORTS = {"http": 80, "https": 443}


def has_http_scheme(value: str) -> bool:
    return value.lower().startswith(_SCHEMES)


def normalize_origin(raw: str, *, default_scheme: str = "https") -> str:
    """Return ``scheme://host[:port]`` for ``raw``.

    Values without an ``http``/``https`` scheme are parsed as if
    ``default_scheme`` had been supplied, so ``example.com`` and
    ``https://example.com/`` both become ``https://example.com``. Strings that
    cannot be parsed are returned unchanged.
    """

    candidate = raw.strip()
    if not candidate:
        return raw
    if not has_http_scheme(candidate):
        candidate = f"{default_scheme}://{candidate}"
    try:
        parts = urlsplit(candidate)
        port = parts.port
    except ValueError:
        logger.debug("Leaving unparseable origin %r untouched", raw)
        return raw
    hostname = parts.hostname
    if not hostname:
        logger.debug("Leaving origin without a host %r untouched", raw)
        return raw
    scheme = parts.scheme.lower()
    host = f"[{hostname}]" if ":" in hostname else hostname
    if port is not None and port != _DEFAULT_PORTS.get(scheme):
        return f"{scheme}://{host}:{port}"
    return f"{scheme}://{host}"


def host_of(raw: str) -> str | None:
    """Return the lower-cased hostname of ``raw`` or ``None`` when it has none."""

    candidate = raw.strip()
    if not candidate:
        return None
    if not has_http_scheme(candidate):
        candidate = f"https://{candidate}"
    try:
        return urlsplit(candidate).hostname
    except ValueError:
        return None


def origins_equal(left: str, right: str) -> bool:
    if not left or not right:
        return False
    return normalize_origin(left).lower() == normalize_origin(right).lower()


def origins_overlap(left: str, right: str) -> bool:
    """Loose origin match: equal, or either normalized value contains the other."""

    if not left or not right:
        return False
    first = normalize_origin(left).lower()
    second = normalize_origin(right).lower()
    return first == second or first in second or second in first


__all__ = ["has_http_scheme", "host_of", "normalize_origin", "origins_equal", "origins_overlap"]
