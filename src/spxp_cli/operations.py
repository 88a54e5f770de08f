"""Command-level operations: mutate, sign, persist, then publish when bound."""

from __future__ import annotations

from dataclasses import dataclass

from spxp_cli.client import SpxpServiceClient
from spxp_cli.documents import Group, dump_document
from spxp_cli.errors import NotBoundError, SigningError
from spxp_cli.mutators import (
    MEDIA_FIELDS,
    REFERENCE_FIELDS,
    add_friend as add_friend_entry,
    build_post,
    normalize_created_at,
    remove_friend as remove_friend_entry,
    remove_profile_field,
    resolve_profile_reference,
    set_profile_field,
    sign_friends,
    sign_profile,
    validate_post_arguments,
)
from spxp_cli.publisher import AuthenticatedPublisher
from spxp_cli.signing import Ed25519Signer, Signer, sign_document
from spxp_cli.store import Identity, IdentityStore


@dataclass(frozen=True)
class OperationResult:
    identity: Identity
    published: bool
    changed: bool = True
    document: dict | None = None


def init_identity(
    store: IdentityStore,
    name: str,
    *,
    display_name: str,
    short_info: str | None = None,
) -> Identity:
    return store.create(name, display_name=display_name, short_info=short_info)


def update_profile(
    store: IdentityStore,
    identity: Identity,
    field: str,
    value: str | None = None,
    *,
    client: SpxpServiceClient,
    signer: Signer | None = None,
) -> OperationResult:
    """Set ``field`` to ``value``, or remove it when no value is given."""
    publisher = AuthenticatedPublisher(client, identity, signer)

    if not value:
        if not remove_profile_field(identity.profile, field):
            return OperationResult(identity=identity, published=False, changed=False)
    elif field in MEDIA_FIELDS:
        if not identity.is_bound:
            raise NotBoundError(f"setting {field} requires a bound identity (run `spxp bind`)")
        set_profile_field(identity.profile, field, publisher.upload_media(value))
    elif field in REFERENCE_FIELDS:
        reference = resolve_profile_reference(value, client=client)
        set_profile_field(identity.profile, field, reference)
    else:
        set_profile_field(identity.profile, field, value)

    sign_profile(identity, signer)
    store.persist(identity, "profile")
    if not identity.is_bound:
        return OperationResult(identity=identity, published=False)
    publisher.publish_profile()
    return OperationResult(identity=identity, published=True)


def add_friend(
    store: IdentityStore,
    identity: Identity,
    uri: str,
    *,
    client: SpxpServiceClient,
    signer: Signer | None = None,
) -> OperationResult:
    reference = resolve_profile_reference(uri, client=client)
    add_friend_entry(identity.friends, reference)
    return _save_friends(store, identity, client=client, signer=signer)


def remove_friend(
    store: IdentityStore,
    identity: Identity,
    uri: str,
    *,
    client: SpxpServiceClient,
    signer: Signer | None = None,
) -> OperationResult:
    if not remove_friend_entry(identity.friends, uri):
        return OperationResult(identity=identity, published=False, changed=False)
    return _save_friends(store, identity, client=client, signer=signer)


def _save_friends(
    store: IdentityStore,
    identity: Identity,
    *,
    client: SpxpServiceClient,
    signer: Signer | None,
) -> OperationResult:
    sign_friends(identity, signer)
    store.persist(identity, "friends")
    if not identity.is_bound:
        return OperationResult(identity=identity, published=False)
    AuthenticatedPublisher(client, identity, signer).publish_friends()
    return OperationResult(identity=identity, published=True)


def create_post(
    identity: Identity,
    kind: str,
    *,
    client: SpxpServiceClient,
    signer: Signer | None = None,
    message: str | None = None,
    link: str | None = None,
    preview: str | None = None,
    full: str | None = None,
    media: str | None = None,
    place: str | None = None,
    created_at: str | None = None,
) -> OperationResult:
    """Build, sign and publish one post.

    Media files are uploaded first because the signature has to cover the
    URIs the service hands back.
    """
    if not identity.is_bound:
        raise NotBoundError("posting requires a bound identity (run `spxp bind`)")
    validate_post_arguments(
        kind,
        message=message,
        link=link,
        preview=preview,
        full=full,
        media=media,
    )
    createts = normalize_created_at(created_at) if created_at else None
    place_reference = resolve_profile_reference(place, client=client) if place else None

    publisher = AuthenticatedPublisher(client, identity, signer)
    uploads: dict[str, str] = {}
    if kind == "photo":
        uploads["small"] = publisher.upload_media(preview)
        uploads["full"] = publisher.upload_media(full) if full else uploads["small"]
    elif kind == "video":
        uploads["preview"] = publisher.upload_media(preview)
        uploads["media"] = publisher.upload_media(media)

    post = build_post(
        kind,
        message=message,
        link=link,
        place=place_reference,
        created_at=createts,
        **uploads,
    )
    signed = sign_document(post, identity.signing_keypair, signer)
    publisher.publish_post(signed)
    return OperationResult(identity=identity, published=True, document=signed)


def create_group(
    store: IdentityStore,
    identity: Identity,
    name: str,
    *,
    signer: Signer | None = None,
) -> Group:
    try:
        key = (signer or Ed25519Signer()).generate_keypair("group")
    except Exception as exc:
        raise SigningError(f"failed to generate group key: {exc}") from exc
    group = Group(name=name, key=key)
    store.save_group(identity, group)
    return group


def signed_documents(identity: Identity) -> dict[str, dict]:
    return {
        "profile": dump_document(identity.profile),
        "friends": dump_document(identity.friends),
    }
