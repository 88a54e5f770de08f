from __future__ import annotations

import pytest
from conftest import MANAGEMENT

from spxp_cli.errors import NotBoundError, PreconditionError, ProtocolResponseError
from spxp_cli.mutators import sign_friends, sign_profile
from spxp_cli.publisher import AuthenticatedPublisher
from spxp_cli.signing import verify_document_signature


def test_access_token_is_memoized(service, bound_identity) -> None:
    sign_profile(bound_identity)
    sign_friends(bound_identity)
    publisher = AuthenticatedPublisher(service, bound_identity)

    publisher.publish_profile()
    publisher.publish_friends()

    assert service.names() == ["request_access_token", "put_profile", "put_profile"]
    for _, _, kwargs in service.calls[1:]:
        assert kwargs["access_token"] == "access-1"


def test_access_token_request_is_signed_device_token(service, bound_identity) -> None:
    AuthenticatedPublisher(service, bound_identity).access_token()

    name, args, _ = service.calls[0]
    assert name == "request_access_token"
    assert args[0] == MANAGEMENT
    payload = args[1]
    assert payload["device_token"] == "dev-token-1"
    assert "timestamp" in payload
    assert verify_document_signature(payload, bound_identity.public_key)


def test_unexpected_token_response_is_rejected(service, bound_identity, monkeypatch) -> None:
    monkeypatch.setattr(service, "request_access_token", lambda *args: {"token": "x"})

    with pytest.raises(ProtocolResponseError):
        AuthenticatedPublisher(service, bound_identity).access_token()


def test_unbound_identity_cannot_publish(service, identity) -> None:
    sign_profile(identity)

    with pytest.raises(NotBoundError):
        AuthenticatedPublisher(service, identity).publish_profile()

    assert service.calls == []


def test_unsigned_profile_is_not_published(service, bound_identity) -> None:
    with pytest.raises(PreconditionError):
        AuthenticatedPublisher(service, bound_identity).publish_profile()

    assert service.calls == []


def test_upload_media_returns_uri(service, bound_identity, tmp_path) -> None:
    photo = tmp_path / "me.png"
    photo.write_bytes(b"png")

    uri = AuthenticatedPublisher(service, bound_identity).upload_media(photo)

    assert uri == "https://spxp.example/media/1-me.png"


def test_upload_media_requires_existing_file(service, bound_identity, tmp_path) -> None:
    with pytest.raises(PreconditionError):
        AuthenticatedPublisher(service, bound_identity).upload_media(tmp_path / "missing.png")

    assert service.calls == []
