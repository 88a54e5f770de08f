from __future__ import annotations

import pytest

from spxp_cli.crypto.keys import generate_keypair, public_jwk
from spxp_cli.errors import SigningError
from spxp_cli.signing import canonical_bytes, sign_document, verify_document_signature


def _document() -> dict:
    return {"ver": "0.3", "name": "John Doe", "about": "hiking"}


def test_sign_document_adds_verifiable_signature() -> None:
    keypair = generate_keypair("signing")

    signed = sign_document(_document(), keypair)

    assert signed["signature"]["key"] == keypair["kid"]
    assert verify_document_signature(signed, public_jwk(keypair))


def test_resigning_keeps_non_signature_fields() -> None:
    keypair = generate_keypair("signing")

    once = sign_document(_document(), keypair)
    twice = sign_document(once, keypair)

    strip = lambda doc: {k: v for k, v in doc.items() if k != "signature"}  # noqa: E731
    assert strip(once) == strip(twice) == _document()
    assert isinstance(twice["signature"], dict)
    assert set(twice["signature"]) == {"key", "sig"}
    assert verify_document_signature(twice, public_jwk(keypair))


def test_sign_document_does_not_mutate_input() -> None:
    keypair = generate_keypair("signing")
    document = _document()

    sign_document(document, keypair)

    assert "signature" not in document


def test_tampered_document_fails_verification() -> None:
    keypair = generate_keypair("signing")
    signed = sign_document(_document(), keypair)
    signed["about"] = "sailing"

    assert not verify_document_signature(signed, public_jwk(keypair))


def test_signature_from_other_key_is_rejected() -> None:
    signed = sign_document(_document(), generate_keypair("signing"))

    assert not verify_document_signature(signed, public_jwk(generate_keypair("signing")))


def test_canonical_bytes_ignore_signature_and_key_order() -> None:
    first = canonical_bytes({"b": 1, "a": "x", "signature": {"key": "k", "sig": "s"}})
    second = canonical_bytes({"a": "x", "b": 1})

    assert first == second == b'{"a":"x","b":1}'


def test_signer_failure_is_reported_as_signing_error() -> None:
    class _BrokenSigner:
        def sign(self, document: dict, keypair: dict) -> dict:  # noqa: ARG002
            raise RuntimeError("hsm offline")

    with pytest.raises(SigningError, match="hsm offline"):
        sign_document(_document(), generate_keypair("signing"), _BrokenSigner())


def test_floats_cannot_be_signed() -> None:
    with pytest.raises(SigningError):
        sign_document({"ver": "0.3", "score": 1.5}, generate_keypair("signing"))


def test_connection_key_cannot_sign() -> None:
    with pytest.raises(SigningError):
        sign_document(_document(), generate_keypair("connection"))
