"""On-disk identity storage."""

from __future__ import annotations

import json
import os
import re
import shutil
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Literal, Protocol

from pydantic import ValidationError

from spxp_cli.crypto.keys import validate_signing_keypair
from spxp_cli.documents import BindingRecord, FriendsList, Group, Profile, dump_document
from spxp_cli.errors import (
    IdentityExistsError,
    IdentityNotFoundError,
    LocalIOError,
    PreconditionError,
    SigningError,
)
from spxp_cli.signing import Ed25519Signer, Signer

PROFILE_KEYPAIR_FILE = "profile-keypair.json"
PROFILE_PUBLIC_KEY_FILE = "profile-publickey.json"
CONNECTION_KEYPAIR_FILE = "connection-keypair.json"
PROFILE_FILE = "profile.json"
FRIENDS_FILE = "friends.json"
BINDING_FILE = "binding.json"
GROUPS_DIR = "groups"

DocumentKind = Literal["profile", "friends", "binding"]

_DOCUMENT_FILES = {"profile": PROFILE_FILE, "friends": FRIENDS_FILE, "binding": BINDING_FILE}
_NAME_PATTERN = re.compile(r"[A-Za-z0-9][A-Za-z0-9._-]*")


class DocumentStore(Protocol):
    def read(self, path: Path) -> dict: ...

    def write(self, path: Path, document: dict, *, private: bool = False) -> None: ...


def _chmod_owner_only(path: Path) -> None:
    if os.name != "posix":
        return
    path.chmod(0o600)


class JsonFileStore:
    """Reads JSON documents and replaces them atomically on write."""

    def read(self, path: Path) -> dict:
        try:
            payload = json.loads(path.read_text(encoding="utf-8"))
        except Exception as exc:
            raise LocalIOError(f"invalid document file: {path}") from exc
        if not isinstance(payload, dict):
            raise LocalIOError(f"document file must contain a JSON object: {path}")
        return payload

    def write(self, path: Path, document: dict, *, private: bool = False) -> None:
        serialized = json.dumps(document, indent=2, ensure_ascii=False) + "\n"
        try:
            fd, tmp_name = tempfile.mkstemp(
                dir=path.parent, prefix=f".{path.name}.", suffix=".tmp"
            )
        except OSError as exc:
            raise LocalIOError(f"failed to write document file: {path}") from exc
        tmp_path = Path(tmp_name)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(serialized)
            if private:
                _chmod_owner_only(tmp_path)
            os.replace(tmp_path, path)
        except Exception as exc:
            tmp_path.unlink(missing_ok=True)
            raise LocalIOError(f"failed to write document file: {path}") from exc


@dataclass(frozen=True)
class IdentityContext:
    """Selects which local identity a command operates on."""

    name: str
    identities_dir: Path

    @property
    def directory(self) -> Path:
        return self.identities_dir / self.name


@dataclass
class Identity:
    context: IdentityContext
    signing_keypair: dict
    connection_keypair: dict
    profile: Profile
    friends: FriendsList
    binding: BindingRecord | None = None

    @property
    def name(self) -> str:
        return self.context.name

    @property
    def public_key(self) -> dict:
        return dict(self.profile.publicKey)

    @property
    def is_bound(self) -> bool:
        return self.binding is not None and self.binding.state == "bound"


def validate_identity_name(name: str, *, kind: str = "identity") -> str:
    if not _NAME_PATTERN.fullmatch(name or ""):
        raise PreconditionError(
            f"invalid {kind} name: {name!r} (letters, digits, '.', '_' and '-' only)"
        )
    return name


class IdentityStore:
    def __init__(
        self,
        identities_dir: str | Path,
        *,
        documents: DocumentStore | None = None,
        signer: Signer | None = None,
    ) -> None:
        self.identities_dir = Path(identities_dir)
        self.documents = documents or JsonFileStore()
        self.signer = signer or Ed25519Signer()

    def context(self, name: str) -> IdentityContext:
        return IdentityContext(name=validate_identity_name(name), identities_dir=self.identities_dir)

    def exists(self, name: str) -> bool:
        return self.context(name).directory.is_dir()

    def list_identities(self) -> list[str]:
        if not self.identities_dir.is_dir():
            return []
        return sorted(
            entry.name
            for entry in self.identities_dir.iterdir()
            if entry.is_dir() and (entry / PROFILE_FILE).exists()
        )

    def create(self, name: str, *, display_name: str, short_info: str | None = None) -> Identity:
        context = self.context(name)
        if not display_name or not display_name.strip():
            raise PreconditionError("profile name must not be empty")

        directory = context.directory
        try:
            self.identities_dir.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise LocalIOError(
                f"failed to create identities directory: {self.identities_dir}"
            ) from exc
        try:
            directory.mkdir()
        except FileExistsError as exc:
            raise IdentityExistsError(f"identity already exists: {name}") from exc
        except OSError as exc:
            raise LocalIOError(f"failed to create identity directory: {directory}") from exc

        try:
            try:
                signing_keypair = self.signer.generate_keypair("signing")
                connection_keypair = self.signer.generate_keypair("connection")
                public_key = self.signer.public_key(signing_keypair)
            except Exception as exc:
                raise SigningError(f"failed to generate keys: {exc}") from exc

            profile = Profile(name=display_name.strip(), shortInfo=short_info, publicKey=public_key)
            identity = Identity(
                context=context,
                signing_keypair=signing_keypair,
                connection_keypair=connection_keypair,
                profile=profile,
                friends=FriendsList(),
            )
            self.documents.write(directory / PROFILE_KEYPAIR_FILE, signing_keypair, private=True)
            self.documents.write(directory / PROFILE_PUBLIC_KEY_FILE, public_key)
            self.documents.write(
                directory / CONNECTION_KEYPAIR_FILE, connection_keypair, private=True
            )
            self.persist(identity, "profile")
            self.persist(identity, "friends")
        except Exception:
            shutil.rmtree(directory, ignore_errors=True)
            raise
        return identity

    def load(self, name: str) -> Identity:
        context = self.context(name)
        directory = context.directory
        if not directory.is_dir():
            raise IdentityNotFoundError(
                f"identity not found: {name} (run `spxp init` to create it)"
            )

        signing_keypair = self.documents.read(directory / PROFILE_KEYPAIR_FILE)
        if not validate_signing_keypair(signing_keypair):
            raise LocalIOError(f"invalid signing keypair: {directory / PROFILE_KEYPAIR_FILE}")
        connection_keypair = self.documents.read(directory / CONNECTION_KEYPAIR_FILE)

        profile = self._decode(Profile, directory / PROFILE_FILE)
        friends = self._decode(FriendsList, directory / FRIENDS_FILE)
        binding_path = directory / BINDING_FILE
        binding = self._decode(BindingRecord, binding_path) if binding_path.exists() else None

        return Identity(
            context=context,
            signing_keypair=signing_keypair,
            connection_keypair=connection_keypair,
            profile=profile,
            friends=friends,
            binding=binding,
        )

    def persist(self, identity: Identity, which: DocumentKind) -> Path:
        if which == "profile":
            document = dump_document(identity.profile)
        elif which == "friends":
            document = dump_document(identity.friends)
        elif which == "binding":
            if identity.binding is None:
                raise LocalIOError("identity has no binding record to persist")
            document = dump_document(identity.binding)
        else:
            raise ValueError(f"unknown document kind: {which}")

        path = identity.context.directory / _DOCUMENT_FILES[which]
        self.documents.write(path, document, private=which == "binding")
        return path

    def save_group(self, identity: Identity, group: Group) -> Path:
        validate_identity_name(group.name, kind="group")
        groups_dir = identity.context.directory / GROUPS_DIR
        try:
            groups_dir.mkdir(exist_ok=True)
        except OSError as exc:
            raise LocalIOError(f"failed to create groups directory: {groups_dir}") from exc
        path = groups_dir / f"{group.name}.json"
        if path.exists():
            raise PreconditionError(f"group already exists: {group.name}")
        self.documents.write(path, dump_document(group), private=True)
        return path

    def load_groups(self, identity: Identity) -> list[Group]:
        groups_dir = identity.context.directory / GROUPS_DIR
        if not groups_dir.is_dir():
            return []
        return [self._decode(Group, path) for path in sorted(groups_dir.glob("*.json"))]

    def _decode(self, model, path: Path):
        payload = self.documents.read(path)
        try:
            return model.model_validate(payload)
        except ValidationError as exc:
            raise LocalIOError(f"invalid document file: {path}: {exc}") from exc
