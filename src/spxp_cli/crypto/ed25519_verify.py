"""Ed25519 signature verification helper."""

from __future__ import annotations

from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PublicKey

from spxp_cli.crypto.keys import b64url_decode


def verify_ed25519(signature: bytes, message: bytes, public_key: bytes) -> bool:
    try:
        key = Ed25519PublicKey.from_public_bytes(public_key)
        key.verify(signature, message)
    except Exception:
        return False
    return True


def verify_with_jwk(signature: bytes, message: bytes, jwk: dict) -> bool:
    if jwk.get("kty") != "OKP" or jwk.get("crv") != "Ed25519":
        return False
    x = jwk.get("x")
    if not isinstance(x, str):
        return False
    try:
        public_key = b64url_decode(x)
    except ValueError:
        return False
    return verify_ed25519(signature, message, public_key)
