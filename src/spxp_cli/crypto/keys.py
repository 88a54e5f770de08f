"""Helpers for generating and encoding JWK-shaped key material.

Key id format:
- <22-char-lowercase-base32-prefix>
where the prefix is derived from sha256(public_key_bytes). Symmetric group keys
have no public half and get a random key id instead.
"""

from __future__ import annotations

import base64
import hashlib
import os
from typing import Literal

from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PrivateKey
from cryptography.hazmat.primitives.asymmetric.x25519 import X25519PrivateKey
from cryptography.hazmat.primitives.serialization import (
    Encoding,
    NoEncryption,
    PrivateFormat,
    PublicFormat,
)

KeyKind = Literal["signing", "connection", "group"]

KEY_ID_LEN = 22
_CURVES = {"signing": "Ed25519", "connection": "X25519"}
_PRIVATE_MEMBERS = ("d", "k")


def b64url_encode(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).decode("ascii").rstrip("=")


def b64url_decode(data: str) -> bytes:
    try:
        padded = data + "=" * (-len(data) % 4)
        return base64.urlsafe_b64decode(padded.encode("ascii"))
    except Exception as exc:  # pragma: no cover - exact exception class may vary
        raise ValueError("invalid base64url") from exc


def derive_key_id(public_key_bytes: bytes) -> str:
    digest = hashlib.sha256(public_key_bytes).digest()
    encoded = base64.b32encode(digest).decode("ascii").rstrip("=").lower()
    return encoded[:KEY_ID_LEN]


def generate_keypair(kind: KeyKind) -> dict:
    if kind == "group":
        return {
            "kid": b64url_encode(os.urandom(16)),
            "kty": "oct",
            "alg": "A256GCM",
            "k": b64url_encode(os.urandom(32)),
        }
    if kind == "signing":
        private = Ed25519PrivateKey.generate()
    elif kind == "connection":
        private = X25519PrivateKey.generate()
    else:
        raise ValueError(f"unsupported key kind: {kind}")

    private_key_bytes = private.private_bytes(Encoding.Raw, PrivateFormat.Raw, NoEncryption())
    public_key_bytes = private.public_key().public_bytes(Encoding.Raw, PublicFormat.Raw)
    return {
        "kid": derive_key_id(public_key_bytes),
        "kty": "OKP",
        "crv": _CURVES[kind],
        "x": b64url_encode(public_key_bytes),
        "d": b64url_encode(private_key_bytes),
    }


def public_jwk(keypair: dict) -> dict:
    if keypair.get("kty") != "OKP":
        raise ValueError("only OKP keys have a public half")
    return {name: value for name, value in keypair.items() if name not in _PRIVATE_MEMBERS}


def validate_signing_keypair(keypair: dict) -> bool:
    if keypair.get("kty") != "OKP" or keypair.get("crv") != "Ed25519":
        return False
    if not isinstance(keypair.get("x"), str) or not isinstance(keypair.get("d"), str):
        return False
    try:
        private = Ed25519PrivateKey.from_private_bytes(b64url_decode(keypair["d"]))
    except ValueError:
        return False
    expected_public = private.public_key().public_bytes(Encoding.Raw, PublicFormat.Raw)
    return b64url_decode(keypair["x"]) == expected_public
