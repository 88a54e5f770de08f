"""Canonical signing of SPXP documents."""

from __future__ import annotations

import json
from typing import Protocol

from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PrivateKey

from spxp_cli.crypto.ed25519_verify import verify_with_jwk
from spxp_cli.crypto.keys import KeyKind, b64url_decode, b64url_encode, generate_keypair, public_jwk
from spxp_cli.errors import SigningError

SIGNATURE_FIELD = "signature"


class Signer(Protocol):
    def generate_keypair(self, kind: KeyKind) -> dict: ...

    def public_key(self, keypair: dict) -> dict: ...

    def sign(self, document: dict, keypair: dict) -> dict: ...


def _reject_floats(value: object) -> None:
    if isinstance(value, float):
        raise ValueError("floats are not allowed")
    if isinstance(value, dict):
        for nested_value in value.values():
            _reject_floats(nested_value)
    elif isinstance(value, (list, tuple)):
        for nested_value in value:
            _reject_floats(nested_value)


def canonical_bytes(document: dict) -> bytes:
    """Serialize ``document`` without its signature in canonical JSON form."""
    payload = {key: value for key, value in document.items() if key != SIGNATURE_FIELD}
    _reject_floats(payload)
    return json.dumps(
        payload,
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=False,
        allow_nan=False,
    ).encode("utf-8")


class Ed25519Signer:
    """Default signing capability backed by ``cryptography``."""

    def generate_keypair(self, kind: KeyKind) -> dict:
        return generate_keypair(kind)

    def public_key(self, keypair: dict) -> dict:
        return public_jwk(keypair)

    def sign(self, document: dict, keypair: dict) -> dict:
        if keypair.get("crv") != "Ed25519" or not isinstance(keypair.get("d"), str):
            raise ValueError("signing requires an Ed25519 private key")
        private = Ed25519PrivateKey.from_private_bytes(b64url_decode(keypair["d"]))
        signature = private.sign(canonical_bytes(document))
        signed = dict(document)
        signed[SIGNATURE_FIELD] = {"key": keypair["kid"], "sig": b64url_encode(signature)}
        return signed


def sign_document(document: dict, keypair: dict, signer: Signer | None = None) -> dict:
    """Return a copy of ``document`` carrying a fresh signature.

    Any previous signature is dropped first, so signatures never stack. The
    input document is left untouched.
    """
    unsigned = {key: value for key, value in document.items() if key != SIGNATURE_FIELD}
    try:
        signed = (signer or Ed25519Signer()).sign(unsigned, keypair)
    except Exception as exc:
        raise SigningError(f"failed to sign document: {exc}") from exc
    if not isinstance(signed, dict) or SIGNATURE_FIELD not in signed:
        raise SigningError("signer returned a document without signature")
    return signed


def verify_document_signature(document: dict, public_key: dict) -> bool:
    signature = document.get(SIGNATURE_FIELD)
    if not isinstance(signature, dict):
        return False
    if signature.get("key") != public_key.get("kid"):
        return False
    raw = signature.get("sig")
    if not isinstance(raw, str):
        return False
    try:
        signature_bytes = b64url_decode(raw)
        message = canonical_bytes(document)
    except ValueError:
        return False
    return verify_with_jwk(signature_bytes, message, public_key)
