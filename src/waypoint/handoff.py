"""Session token hand-off for resolved redirect URLs."""

from __future__ import annotations

from typing import Collection, Sequence
from urllib.parse import parse_qsl, quote, urlencode, urlsplit, urlunsplit

import msgspec

from .config import DEFAULT_CONFIG, EngineConfig
from .models import RedirectionRule
from .normalization import has_http_scheme
from .resolution import MatchType, RedirectContext, resolve_redirection

TOKEN_PARAM = "token"
EXPIRY_PARAM = "exp"


class ComputedRedirect(msgspec.Struct, frozen=True):
    url: str
    token_url: str
    match_type: MatchType


def append_token(url: str, token: str, expires_at: int | None = None) -> str:
    """Attach ``token`` (and optionally ``exp``) to ``url``'s query string.

    An existing ``token`` parameter is replaced. Relative URLs such as the
    bare ``/profile`` fallback keep their shape.
    """

    if not url or not token:
        return url
    extra = [(TOKEN_PARAM, token)]
    if expires_at:
        extra.append((EXPIRY_PARAM, str(expires_at)))
    try:
        parts = urlsplit(url if has_http_scheme(url) or url.startswith("/") else f"https://{url}")
    except ValueError:
        separator = "&" if "?" in url else "?"
        return f"{url}{separator}{urlencode(extra, quote_via=quote)}"
    query = [
        (key, value)
        for key, value in parse_qsl(parts.query, keep_blank_values=True)
        if key not in (TOKEN_PARAM, EXPIRY_PARAM)
    ]
    query.extend(extra)
    return urlunsplit(parts._replace(query=urlencode(query, quote_via=quote)))


def compute_redirect(
    rules: Sequence[RedirectionRule] | None,
    context: RedirectContext,
    token: str,
    *,
    expires_at: int | None = None,
    config: EngineConfig = DEFAULT_CONFIG,
    roles: Collection[str] | None = None,
) -> ComputedRedirect:
    """Resolve the redirect for ``context`` and attach the session token."""

    resolution = resolve_redirection(rules, context, config=config, roles=roles)
    return ComputedRedirect(
        url=resolution.url,
        token_url=append_token(resolution.url, token, expires_at),
        match_type=resolution.match_type,
    )


__all__ = ["ComputedRedirect", "append_token", "compute_redirect"]
