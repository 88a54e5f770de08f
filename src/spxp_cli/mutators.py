"""Single-step changes to profile, friends and post documents."""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path

from pydantic import ValidationError

from spxp_cli.client import SpxpServiceClient
from spxp_cli.documents import (
    PROTOCOL_VERSION,
    BindingRecord,
    FriendsList,
    ObjectReference,
    Post,
    Profile,
    RemoteProfile,
    dump_document,
)
from spxp_cli.errors import PreconditionError, RemoteValidationError, TransportError
from spxp_cli.requests import utc_timestamp
from spxp_cli.signing import Signer, sign_document
from spxp_cli.store import Identity

TEXT_FIELDS = (
    "name",
    "shortInfo",
    "about",
    "gender",
    "website",
    "email",
    "birthDayAndMonth",
    "birthYear",
)
REFERENCE_FIELDS = ("hometown", "location")
MEDIA_FIELDS = ("profilePhoto",)
PROFILE_FIELDS = TEXT_FIELDS + MEDIA_FIELDS + REFERENCE_FIELDS
REQUIRED_FIELDS = ("name",)
ENDPOINT_FIELDS = ("friendsEndpoint", "postsEndpoint", "keysEndpoint")
POST_TYPES = ("text", "web", "photo", "video")


def _check_profile_field(field: str) -> None:
    if field not in PROFILE_FIELDS:
        raise PreconditionError(
            f"unknown profile field: {field} (expected one of: {', '.join(PROFILE_FIELDS)})"
        )


def resolve_profile_reference(uri: str, *, client: SpxpServiceClient) -> ObjectReference:
    """Fetch the profile behind ``uri`` and return a reference to it."""
    if not uri.startswith(("https://", "http://")):
        raise RemoteValidationError(f"not a profile URI: {uri}")
    try:
        payload = client.fetch_profile(uri)
    except TransportError as exc:
        raise RemoteValidationError(f"cannot read profile {uri}: {exc}") from exc

    version = payload.get("ver")
    if version != PROTOCOL_VERSION:
        raise RemoteValidationError(
            f"profile {uri} uses unsupported protocol version: {version!r}"
        )
    try:
        remote = RemoteProfile.model_validate(payload)
    except ValidationError as exc:
        raise RemoteValidationError(f"{uri} is not a valid SPXP profile") from exc
    return ObjectReference(uri=uri, publicKey=remote.publicKey)


def set_profile_field(profile: Profile, field: str, value: str | ObjectReference) -> None:
    _check_profile_field(field)
    if field in REFERENCE_FIELDS:
        if not isinstance(value, ObjectReference):
            raise PreconditionError(f"{field} must reference a resolved profile")
    elif not isinstance(value, str) or not value.strip():
        raise PreconditionError(f"{field} must be a non-empty string")
    setattr(profile, field, value)


def remove_profile_field(profile: Profile, field: str) -> bool:
    _check_profile_field(field)
    if field in REQUIRED_FIELDS:
        raise PreconditionError(f"{field} cannot be removed from the profile")
    if getattr(profile, field) is None:
        return False
    setattr(profile, field, None)
    return True


def apply_service_endpoints(profile: Profile, binding: BindingRecord) -> bool:
    changed = False
    for field in ENDPOINT_FIELDS:
        value = getattr(binding, field)
        if value and getattr(profile, field) != value:
            setattr(profile, field, value)
            changed = True
    return changed


def sign_profile(identity: Identity, signer: Signer | None = None) -> None:
    signed = sign_document(dump_document(identity.profile), identity.signing_keypair, signer)
    identity.profile = Profile.model_validate(signed)


def sign_friends(identity: Identity, signer: Signer | None = None) -> None:
    signed = sign_document(dump_document(identity.friends), identity.signing_keypair, signer)
    identity.friends = FriendsList.model_validate(signed)


def add_friend(friends: FriendsList, reference: ObjectReference) -> None:
    remove_friend(friends, reference.uri)
    friends.data.append(reference)


def remove_friend(friends: FriendsList, uri: str) -> bool:
    remaining = [entry for entry in friends.data if entry.uri != uri]
    removed = len(remaining) != len(friends.data)
    friends.data = remaining
    return removed


def normalize_created_at(raw: str) -> str:
    try:
        moment = datetime.fromisoformat(raw.strip().replace("Z", "+00:00"))
    except ValueError as exc:
        raise PreconditionError(f"invalid creation timestamp: {raw}") from exc
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return utc_timestamp(moment)


def validate_post_arguments(
    kind: str,
    *,
    message: str | None = None,
    link: str | None = None,
    preview: str | Path | None = None,
    full: str | Path | None = None,
    media: str | Path | None = None,
) -> None:
    if kind not in POST_TYPES:
        raise PreconditionError(
            f"unknown post type: {kind} (expected one of: {', '.join(POST_TYPES)})"
        )
    if kind == "text" and not message:
        raise PreconditionError("text posts require a message")
    if kind == "web" and not link:
        raise PreconditionError("web posts require a link")
    if kind in ("photo", "video"):
        if not preview:
            raise PreconditionError(f"{kind} posts require a preview file")
        if not Path(preview).is_file():
            raise PreconditionError(f"preview file not found: {preview}")
    if kind == "photo" and full and not Path(full).is_file():
        raise PreconditionError(f"full photo file not found: {full}")
    if kind == "video":
        if not media:
            raise PreconditionError("video posts require a media file")
        if not Path(media).is_file():
            raise PreconditionError(f"media file not found: {media}")


def build_post(
    kind: str,
    *,
    message: str | None = None,
    link: str | None = None,
    small: str | None = None,
    full: str | None = None,
    preview: str | None = None,
    media: str | None = None,
    place: ObjectReference | None = None,
    created_at: str | None = None,
) -> dict:
    post = Post(
        type=kind,
        createts=created_at,
        message=message or None,
        link=link if kind == "web" else None,
        small=small if kind == "photo" else None,
        full=full if kind == "photo" else None,
        preview=preview if kind == "video" else None,
        media=media if kind == "video" else None,
        place=place,
    )
    return dump_document(post)
