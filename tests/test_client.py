from __future__ import annotations

import json
import types

import pytest

from spxp_cli.client import SpxpServiceClient
from spxp_cli.errors import ProtocolResponseError, ServiceRequestError, TransportError


def _response(status_code: int, body: object | None = None, *, text: str | None = None):
    raw = text if text is not None else ("" if body is None else json.dumps(body))

    def _json():
        return json.loads(raw)

    return types.SimpleNamespace(
        status_code=status_code,
        content=raw.encode("utf-8"),
        text=raw,
        json=_json,
    )


def _capture(monkeypatch, client: SpxpServiceClient, response) -> dict[str, object]:
    captured: dict[str, object] = {}

    def fake_request(method, url, *, json=None, files=None, headers=None, timeout=None):  # noqa: ANN001
        captured["method"] = method
        captured["url"] = url
        captured["json"] = json
        captured["files"] = files
        captured["headers"] = headers
        captured["timeout"] = timeout
        return response

    monkeypatch.setattr(client._session, "request", fake_request)
    return captured


def test_discovery_document_uses_well_known_path(monkeypatch) -> None:
    client = SpxpServiceClient(timeout=0.1)
    captured = _capture(monkeypatch, client, _response(200, {"start": "A"}))

    result = client.get_discovery_document("spxp.space")

    assert result == {"start": "A"}
    assert captured["method"] == "GET"
    assert captured["url"] == "https://spxp.space/.well-known/spxp/spe-discovery"
    assert captured["headers"] is None
    assert captured["timeout"] == 0.1


def test_authenticated_request_sends_bearer_token(monkeypatch) -> None:
    client = SpxpServiceClient(timeout=0.1)
    captured = _capture(monkeypatch, client, _response(200, {"endpoints": {}}))

    client.get_service_info("https://spxp.example/pme/", access_token="tok-1")

    assert captured["url"] == "https://spxp.example/pme/service/info"
    assert captured["headers"] == {"Authorization": "Bearer tok-1"}


def test_put_profile_targets_section(monkeypatch) -> None:
    client = SpxpServiceClient(timeout=0.1)
    captured = _capture(monkeypatch, client, _response(200))

    result = client.put_profile(
        "https://spxp.example/pme", "friends", {"data": []}, access_token="tok"
    )

    assert result == {}
    assert captured["method"] == "PUT"
    assert captured["url"] == "https://spxp.example/pme/profile/friends"
    assert captured["json"] == {"data": []}


def test_error_status_surfaces_raw_body(monkeypatch) -> None:
    client = SpxpServiceClient(timeout=0.1)
    _capture(monkeypatch, client, _response(403, text="token already used"))

    with pytest.raises(ServiceRequestError) as excinfo:
        client.bind("https://spxp.example/bind", token="t", public_key={"kid": "k"})

    assert excinfo.value.status_code == 403
    assert excinfo.value.body == "token already used"
    assert "token already used" in str(excinfo.value)


def test_non_json_body_is_a_protocol_error(monkeypatch) -> None:
    client = SpxpServiceClient(timeout=0.1)
    _capture(monkeypatch, client, _response(200, text="<html>hi</html>"))

    with pytest.raises(ProtocolResponseError):
        client.fetch_profile("https://spxp.example/p/x")


def test_non_object_body_is_a_protocol_error(monkeypatch) -> None:
    client = SpxpServiceClient(timeout=0.1)
    _capture(monkeypatch, client, _response(200, ["a", "b"]))

    with pytest.raises(ProtocolResponseError):
        client.fetch_profile("https://spxp.example/p/x")


def test_transport_failure_is_wrapped(monkeypatch) -> None:
    client = SpxpServiceClient(timeout=0.1)

    def fake_request(*args, **kwargs):  # noqa: ANN002, ANN003
        raise ConnectionError("connection refused")

    monkeypatch.setattr(client._session, "request", fake_request)

    with pytest.raises(TransportError, match="connection refused"):
        client.fetch_profile("https://spxp.example/p/x")


def test_upload_media_sends_multipart_file(monkeypatch, tmp_path) -> None:
    client = SpxpServiceClient(timeout=0.1)
    photo = tmp_path / "beach.jpg"
    photo.write_bytes(b"\xff\xd8\xff")
    captured = _capture(monkeypatch, client, _response(200, {"uri": "https://m/1"}))

    result = client.upload_media("https://spxp.example/pme", photo, access_token="tok")

    assert result == {"uri": "https://m/1"}
    assert captured["url"] == "https://spxp.example/pme/media"
    name, _, content_type = captured["files"]["file"]
    assert name == "beach.jpg"
    assert content_type == "image/jpeg"
