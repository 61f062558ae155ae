"""Command line utilities for Waypoint."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Sequence

from .config import EngineConfig, load_config
from .exceptions import WaypointError
from .metadata import PROJECT_NAME, VERSION
from .normalization import normalize_origin
from .provisioning import derive_auth_server_url, provision_rules
from .resolution import RedirectContext, resolve_redirection
from .serialization import decode_rules, encode_rules, json_encode
from .validation import validate_rule_set

logger = logging.getLogger(__name__)


def main(argv: Sequence[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(level=getattr(logging, args.log_level.upper()), format="%(levelname)s %(name)s %(message)s")
    try:
        return args.func(args)
    except (WaypointError, OSError) as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 2


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog=PROJECT_NAME, description="Post-authentication redirection rules")
    parser.add_argument("--version", action="version", version=f"{PROJECT_NAME} {VERSION}")
    parser.add_argument("--config", help="JSON file with engine settings; WAYPOINT_* variables are used otherwise")
    parser.add_argument("--log-level", choices=["debug", "info", "warning", "error"], default="warning")
    sub = parser.add_subparsers(dest="command", required=True)

    resolve = sub.add_parser("resolve", help="Resolve the redirect URL for an auth origin and role")
    resolve.add_argument("rules", help="JSON file containing the rule array")
    resolve.add_argument("--origin", required=True, help="Origin the user authenticated from")
    resolve.add_argument("--role", default="any", help="Role slug of the authenticated user")
    resolve.add_argument("--environment", help="Environment tag, used only when environment matching is enabled")
    resolve.add_argument("--details", action="store_true", help="Print the matched tier as JSON")
    resolve.set_defaults(func=_cmd_resolve)

    validate = sub.add_parser("validate", help="Validate a rule array")
    validate.add_argument("rules", help="JSON file containing the rule array")
    validate.add_argument("--new-organization", action="store_true", help="Require at least one rule")
    validate.add_argument("--role", dest="roles", action="append", help="Known role slug; repeat for each role")
    validate.set_defaults(func=_cmd_validate)

    provision = sub.add_parser("provision", help="Add the default rules derived from organization metadata")
    provision.add_argument("rules", help="JSON file containing the rule array; created when missing")
    source = provision.add_mutually_exclusive_group(required=True)
    source.add_argument("--auth-server-url", help="Auth server URL to provision rules for")
    source.add_argument("--website", help="Organization website; the auth server URL is derived from it")
    provision.add_argument("--write", action="store_true", help="Write the result back instead of printing it")
    provision.set_defaults(func=_cmd_provision)

    normalize = sub.add_parser("normalize", help="Print the origin of a URL or domain")
    normalize.add_argument("value")
    normalize.set_defaults(func=_cmd_normalize)

    return parser


def _cmd_resolve(args: argparse.Namespace) -> int:
    config = _load_config(args)
    rules = decode_rules(Path(args.rules).read_bytes())
    context = RedirectContext(auth_origin=args.origin, role_slug=args.role, environment=args.environment)
    resolution = resolve_redirection(rules, context, config=config)
    if args.details:
        print(json_encode(resolution).decode())
    else:
        print(resolution.url)
    return 0


def _cmd_validate(args: argparse.Namespace) -> int:
    rules = decode_rules(Path(args.rules).read_bytes())
    result = validate_rule_set(rules, is_new_organization=args.new_organization, roles=args.roles)
    for issue in result.issues:
        print(f"{issue.severity}: {issue.path}: {issue.message}")
    if result.ok:
        print(f"{len(rules)} rule(s) valid")
        return 0
    return 1


def _cmd_provision(args: argparse.Namespace) -> int:
    config = _load_config(args)
    path = Path(args.rules)
    rules = decode_rules(path.read_bytes()) if path.exists() else ()
    auth_server_url = args.auth_server_url
    if args.website:
        auth_server_url = derive_auth_server_url(args.website, config=config)
        if auth_server_url is None:
            raise SystemExit(f"Cannot derive an auth server URL from {args.website!r}")
        logger.info("Derived auth server URL %s", auth_server_url)
    updated = provision_rules(rules, auth_server_url, config=config)
    rendered = encode_rules(updated)
    if args.write:
        path.write_bytes(rendered + b"\n")
        print(f"wrote {len(updated) - len(rules)} new rule(s) to {path}")
    else:
        print(rendered.decode())
    return 0


def _cmd_normalize(args: argparse.Namespace) -> int:
    print(normalize_origin(args.value))
    return 0


def _load_config(args: argparse.Namespace) -> EngineConfig:
    if args.config:
        return load_config(args.config)
    return EngineConfig.from_env()


__all__ = ["main"]
