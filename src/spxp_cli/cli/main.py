"""Command-line interface for spxp."""

from __future__ import annotations

import argparse
import json
import re
import sys
from importlib.metadata import PackageNotFoundError
from importlib.metadata import version as pkg_version
from typing import Sequence

from spxp_cli.binding import BindingProtocol, binding_state
from spxp_cli.cli.config import CLIConfig, ConfigError, load_cli_config, resolve_identity_context
from spxp_cli.client import SpxpServiceClient
from spxp_cli.discovery import discover
from spxp_cli.documents import PROTOCOL_VERSION, dump_document
from spxp_cli.errors import (
    AlreadyBoundError,
    DiscoveryFailedError,
    IdentityExistsError,
    IdentityNotFoundError,
    LocalIOError,
    NotBoundError,
    PreconditionError,
    RemoteValidationError,
    SigningError,
    SpxpError,
    TransportError,
)
from spxp_cli.mutators import POST_TYPES, PROFILE_FIELDS
from spxp_cli.operations import (
    OperationResult,
    add_friend,
    create_group,
    create_post,
    init_identity,
    remove_friend,
    signed_documents,
    update_profile,
)
from spxp_cli.signing import verify_document_signature
from spxp_cli.store import Identity, IdentityStore

EXIT_SUCCESS = 0
EXIT_VALIDATION_ERROR = 1
EXIT_NETWORK_ERROR = 2
EXIT_LOCAL_ERROR = 3
EXIT_VERIFICATION_FAILED = 4

_SENSITIVE_FIELDS = (
    "access_token",
    "device_token",
    "deviceToken",
    "token",
    "authorization",
)


def _sdk_version() -> str:
    try:
        return pkg_version("spxp-cli")
    except PackageNotFoundError:
        return "0.0.0+local"


def _add_identity_argument(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "-i",
        "--identity",
        default=None,
        help="Local identity to operate on (default from config: 'default')",
    )


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="spxp")
    parser.add_argument(
        "--version",
        action="version",
        version=f"spxp-cli {_sdk_version()}",
    )
    parser.add_argument(
        "--config",
        default=None,
        help="Path to CLI config TOML (default: ~/.spxp/config.toml)",
    )

    sub = parser.add_subparsers(dest="command", required=True)

    version = sub.add_parser("version", help="Show CLI and protocol version")
    version.add_argument("--json", action="store_true", help="Print version details as JSON")

    init = sub.add_parser("init", help="Create a new local identity")
    init.add_argument("name", help="Display name published in the profile")
    init.add_argument("--short-info", default=None, help="Optional one-line profile summary")
    _add_identity_argument(init)
    init.add_argument("--json", action="store_true")

    disc = sub.add_parser("discover", help="Show the SPXP-SPE endpoints offered by a domain")
    disc.add_argument("domain", help="Service provider domain, e.g. spxp.space")
    disc.add_argument("--json", action="store_true")

    bind = sub.add_parser("bind", help="Bind the identity to a hosting service")
    bind.add_argument("domain", help="Service provider domain")
    bind.add_argument(
        "token",
        nargs="?",
        default=None,
        help="Single-use bind token from the provider's registration page",
    )
    _add_identity_argument(bind)
    bind.add_argument("--json", action="store_true")

    status = sub.add_parser("status", help="Show local identity and binding state")
    _add_identity_argument(status)
    status.add_argument("--json", action="store_true")

    profile = sub.add_parser("profile", help="Edit or inspect the profile document")
    profile_sub = profile.add_subparsers(dest="profile_command", required=True)
    profile_set = profile_sub.add_parser(
        "set", help="Set a profile field, or remove it when no value is given"
    )
    profile_set.add_argument("field", choices=PROFILE_FIELDS)
    profile_set.add_argument(
        "value",
        nargs="?",
        default=None,
        help="New value; a file path for profilePhoto, a profile URI for hometown/location",
    )
    _add_identity_argument(profile_set)
    profile_set.add_argument("--json", action="store_true")
    profile_show = profile_sub.add_parser("show", help="Print the local profile document")
    _add_identity_argument(profile_show)

    post = sub.add_parser("post", help="Publish posts")
    post_sub = post.add_subparsers(dest="post_command", required=True)
    post_create = post_sub.add_parser("create", help="Create, sign and publish a post")
    post_create.add_argument("type", choices=POST_TYPES)
    post_create.add_argument("--message", default=None)
    post_create.add_argument("--link", default=None, help="Target URL (web posts)")
    post_create.add_argument(
        "--preview", default=None, help="Preview image file (photo and video posts)"
    )
    post_create.add_argument("--full", default=None, help="Full-size image file (photo posts)")
    post_create.add_argument("--media", default=None, help="Video file (video posts)")
    post_create.add_argument("--place", default=None, help="Profile URI of the place")
    post_create.add_argument(
        "--created-at",
        default=None,
        help="Creation timestamp (ISO 8601); the service assigns one otherwise",
    )
    _add_identity_argument(post_create)
    post_create.add_argument("--json", action="store_true")

    friends = sub.add_parser("friends", help="Manage the friends list")
    friends_sub = friends.add_subparsers(dest="friends_command", required=True)
    friends_add = friends_sub.add_parser("add", help="Add a friend by profile URI")
    friends_add.add_argument("uri")
    _add_identity_argument(friends_add)
    friends_remove = friends_sub.add_parser("remove", help="Remove a friend by profile URI")
    friends_remove.add_argument("uri")
    _add_identity_argument(friends_remove)
    friends_list = friends_sub.add_parser("list", help="List friends")
    _add_identity_argument(friends_list)
    friends_list.add_argument("--json", action="store_true")

    group = sub.add_parser("group", help="Manage private data groups")
    group_sub = group.add_subparsers(dest="group_command", required=True)
    group_create = group_sub.add_parser("create", help="Create a private data group key")
    group_create.add_argument("name")
    _add_identity_argument(group_create)

    verify = sub.add_parser("verify", help="Check the signatures of local documents")
    _add_identity_argument(verify)
    verify.add_argument("--json", action="store_true")

    return parser


def _sanitize_error_text(value: str) -> str:
    redacted = re.sub(r"(?i)(Bearer\s+)(\S+)", r"\1[REDACTED]", value)
    for field in _SENSITIVE_FIELDS:
        redacted = re.sub(
            rf'(?i)("{field}"\s*:\s*")([^"]*)(")',
            r"\1[REDACTED]\3",
            redacted,
        )
        redacted = re.sub(
            rf"(?i)(\b{field}\s*[=:]\s*)([^,\s\"]+)",
            r"\1[REDACTED]",
            redacted,
        )
    return redacted


def _print_error(stderr, prefix: str, message: str, *, code: int) -> int:
    print(f"{prefix}: {_sanitize_error_text(message)}", file=stderr)
    return code


def _print_spxp_error(stderr, exc: SpxpError) -> int:
    if isinstance(exc, (IdentityExistsError, IdentityNotFoundError)):
        return _print_error(stderr, "identity error", str(exc), code=EXIT_VALIDATION_ERROR)
    if isinstance(exc, (AlreadyBoundError, NotBoundError)):
        return _print_error(stderr, "binding error", str(exc), code=EXIT_VALIDATION_ERROR)
    if isinstance(exc, PreconditionError):
        return _print_error(stderr, "input error", str(exc), code=EXIT_VALIDATION_ERROR)
    if isinstance(exc, RemoteValidationError):
        return _print_error(stderr, "profile error", str(exc), code=EXIT_VALIDATION_ERROR)
    if isinstance(exc, DiscoveryFailedError):
        return _print_error(stderr, "discovery error", str(exc), code=EXIT_NETWORK_ERROR)
    if isinstance(exc, TransportError):
        return _print_error(stderr, "service error", str(exc), code=EXIT_NETWORK_ERROR)
    if isinstance(exc, SigningError):
        return _print_error(stderr, "signing error", str(exc), code=EXIT_LOCAL_ERROR)
    if isinstance(exc, LocalIOError):
        return _print_error(stderr, "storage error", str(exc), code=EXIT_LOCAL_ERROR)
    return _print_error(stderr, "error", str(exc), code=EXIT_LOCAL_ERROR)


def _build_client(config: CLIConfig) -> SpxpServiceClient:
    return SpxpServiceClient(timeout=config.timeout, retries=config.retries)


def _build_store(config: CLIConfig) -> IdentityStore:
    return IdentityStore(config.identities_dir)


def _load_identity(args, config: CLIConfig) -> tuple[IdentityStore, Identity]:
    context = resolve_identity_context(config, args.identity)
    store = _build_store(config)
    return store, store.load(context.name)


def _print_publish_outcome(stdout, result: OperationResult, *, what: str) -> None:
    if not result.changed:
        print(f"{what}: unchanged", file=stdout)
        return
    if result.published:
        print(f"{what}: updated and published", file=stdout)
        return
    print(
        f"{what}: updated locally; not published because identity "
        f"'{result.identity.name}' is not bound",
        file=stdout,
    )


def _run_version(*, as_json: bool, stdout) -> int:
    payload = {
        "cli": "spxp-cli",
        "sdk_version": _sdk_version(),
        "protocol_version": PROTOCOL_VERSION,
    }
    if as_json:
        print(json.dumps(payload, sort_keys=True), file=stdout)
    else:
        print(f"spxp-cli {payload['sdk_version']}", file=stdout)
        print(f"protocol: {payload['protocol_version']}", file=stdout)
    return EXIT_SUCCESS


def _run_init(*, args, config: CLIConfig, stdout) -> int:
    context = resolve_identity_context(config, args.identity)
    store = _build_store(config)
    identity = init_identity(
        store,
        context.name,
        display_name=args.name,
        short_info=args.short_info,
    )

    payload = {
        "identity": identity.name,
        "directory": str(identity.context.directory),
        "key_id": identity.public_key.get("kid"),
        "profile": dump_document(identity.profile),
    }
    if args.json:
        print(json.dumps(payload, sort_keys=True), file=stdout)
        return EXIT_SUCCESS

    print(f"identity: {payload['identity']}", file=stdout)
    print(f"directory: {payload['directory']}", file=stdout)
    print(f"name: {identity.profile.name}", file=stdout)
    print(f"key_id: {payload['key_id']}", file=stdout)
    return EXIT_SUCCESS


def _run_discover(*, args, config: CLIConfig, stdout) -> int:
    document = discover(args.domain, client=_build_client(config))
    payload = document.model_dump()
    if args.json:
        print(json.dumps(payload, sort_keys=True), file=stdout)
        return EXIT_SUCCESS
    print(f"start: {document.start}", file=stdout)
    print(f"bind: {document.bind}", file=stdout)
    print(f"managementEndpoint: {document.managementEndpoint}", file=stdout)
    return EXIT_SUCCESS


def _print_step(stdout, *, index: int, total: int, title: str) -> None:
    print(f"[{index}/{total}] {title}", file=stdout)


def _run_bind(*, args, config: CLIConfig, stdout) -> int:
    store, identity = _load_identity(args, config)
    protocol = BindingProtocol(
        client=_build_client(config),
        store=store,
        device_id=config.device_id,
        on_step=None
        if args.json
        else lambda index, total, title: _print_step(
            stdout, index=index, total=total, title=title
        ),
    )
    binding = protocol.run(identity, domain=args.domain, token=args.token)

    if args.json:
        payload = {
            "identity": identity.name,
            "state": binding.state,
            "profileUri": binding.profileUri,
            "managementEndpoint": binding.managementEndpoint,
        }
        print(json.dumps(payload, sort_keys=True), file=stdout)
        return EXIT_SUCCESS
    print(f"bound: {binding.profileUri}", file=stdout)
    return EXIT_SUCCESS


def _run_status(*, args, config: CLIConfig, stdout) -> int:
    _, identity = _load_identity(args, config)
    binding = identity.binding
    payload = {
        "identity": identity.name,
        "name": identity.profile.name,
        "state": binding_state(identity).value,
        "profileUri": binding.profileUri if binding else None,
        "managementEndpoint": binding.managementEndpoint if binding else None,
        "friends": len(identity.friends.data),
    }
    if args.json:
        print(json.dumps(payload, sort_keys=True), file=stdout)
        return EXIT_SUCCESS
    for key in ("identity", "name", "state", "profileUri", "managementEndpoint", "friends"):
        if payload[key] is not None:
            print(f"{key}: {payload[key]}", file=stdout)
    return EXIT_SUCCESS


def _run_profile_set(*, args, config: CLIConfig, stdout) -> int:
    store, identity = _load_identity(args, config)
    result = update_profile(
        store,
        identity,
        args.field,
        args.value,
        client=_build_client(config),
    )
    if args.json:
        payload = {
            "identity": identity.name,
            "field": args.field,
            "changed": result.changed,
            "published": result.published,
        }
        print(json.dumps(payload, sort_keys=True), file=stdout)
        return EXIT_SUCCESS
    _print_publish_outcome(stdout, result, what="profile")
    return EXIT_SUCCESS


def _run_profile_show(*, args, config: CLIConfig, stdout) -> int:
    _, identity = _load_identity(args, config)
    print(json.dumps(dump_document(identity.profile), indent=2, ensure_ascii=False), file=stdout)
    return EXIT_SUCCESS


def _run_post_create(*, args, config: CLIConfig, stdout) -> int:
    _, identity = _load_identity(args, config)
    result = create_post(
        identity,
        args.type,
        client=_build_client(config),
        message=args.message,
        link=args.link,
        preview=args.preview,
        full=args.full,
        media=args.media,
        place=args.place,
        created_at=args.created_at,
    )
    if args.json:
        print(json.dumps(result.document, sort_keys=True), file=stdout)
        return EXIT_SUCCESS
    print(f"post published: {args.type}", file=stdout)
    return EXIT_SUCCESS


def _run_friends_add(*, args, config: CLIConfig, stdout) -> int:
    store, identity = _load_identity(args, config)
    result = add_friend(store, identity, args.uri, client=_build_client(config))
    _print_publish_outcome(stdout, result, what="friends")
    return EXIT_SUCCESS


def _run_friends_remove(*, args, config: CLIConfig, stdout) -> int:
    store, identity = _load_identity(args, config)
    result = remove_friend(store, identity, args.uri, client=_build_client(config))
    _print_publish_outcome(stdout, result, what="friends")
    return EXIT_SUCCESS


def _run_friends_list(*, args, config: CLIConfig, stdout) -> int:
    _, identity = _load_identity(args, config)
    entries = [dump_document(entry) for entry in identity.friends.data]
    if args.json:
        print(json.dumps(entries, sort_keys=True), file=stdout)
        return EXIT_SUCCESS
    for entry in entries:
        print(entry["uri"], file=stdout)
    return EXIT_SUCCESS


def _run_group_create(*, args, config: CLIConfig, stdout) -> int:
    store, identity = _load_identity(args, config)
    group = create_group(store, identity, args.name)
    print(f"group created: {group.name} (key_id: {group.key['kid']})", file=stdout)
    return EXIT_SUCCESS


def _run_verify(*, args, config: CLIConfig, stdout) -> int:
    _, identity = _load_identity(args, config)
    public_key = identity.public_key
    results: dict[str, str] = {}
    for label, document in signed_documents(identity).items():
        if "signature" not in document:
            results[label] = "unsigned"
        elif verify_document_signature(document, public_key):
            results[label] = "valid"
        else:
            results[label] = "invalid"

    if args.json:
        print(json.dumps(results, sort_keys=True), file=stdout)
    else:
        for label, outcome in results.items():
            print(f"{label}: {outcome}", file=stdout)
    if "invalid" in results.values():
        return EXIT_VERIFICATION_FAILED
    return EXIT_SUCCESS


def _dispatch(args, config: CLIConfig, stdout, stderr) -> int:
    if args.command == "init":
        return _run_init(args=args, config=config, stdout=stdout)

    if args.command == "discover":
        return _run_discover(args=args, config=config, stdout=stdout)

    if args.command == "bind":
        return _run_bind(args=args, config=config, stdout=stdout)

    if args.command == "status":
        return _run_status(args=args, config=config, stdout=stdout)

    if args.command == "profile":
        if args.profile_command == "set":
            return _run_profile_set(args=args, config=config, stdout=stdout)
        if args.profile_command == "show":
            return _run_profile_show(args=args, config=config, stdout=stdout)

    if args.command == "post":
        if args.post_command == "create":
            return _run_post_create(args=args, config=config, stdout=stdout)

    if args.command == "friends":
        if args.friends_command == "add":
            return _run_friends_add(args=args, config=config, stdout=stdout)
        if args.friends_command == "remove":
            return _run_friends_remove(args=args, config=config, stdout=stdout)
        if args.friends_command == "list":
            return _run_friends_list(args=args, config=config, stdout=stdout)

    if args.command == "group":
        if args.group_command == "create":
            return _run_group_create(args=args, config=config, stdout=stdout)

    if args.command == "verify":
        return _run_verify(args=args, config=config, stdout=stdout)

    print("unknown command", file=stderr)
    return EXIT_VALIDATION_ERROR


def main(argv: Sequence[str] | None = None, *, stdout=sys.stdout, stderr=sys.stderr) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)

    try:
        config = load_cli_config(args.config)
    except ConfigError as exc:
        return _print_error(stderr, "config error", str(exc), code=EXIT_VALIDATION_ERROR)

    if args.command == "version":
        return _run_version(as_json=args.json, stdout=stdout)

    try:
        return _dispatch(args, config, stdout, stderr)
    except SpxpError as exc:
        return _print_spxp_error(stderr, exc)


if __name__ == "__main__":
    raise SystemExit(main())
