from __future__ import annotations

import io

import pytest

from spxp_cli.cli.main import _sanitize_error_text, main
from spxp_cli.errors import TransportError


@pytest.mark.parametrize(
    ("raw", "secret"),
    [
        ('403 {"access_token": "abc123"}', "abc123"),
        ("device_token=dev-secret, retry later", "dev-secret"),
        ("Authorization: Bearer tok-xyz", "tok-xyz"),
    ],
)
def test_sanitize_redacts_credentials(raw: str, secret: str) -> None:
    sanitized = _sanitize_error_text(raw)

    assert secret not in sanitized
    assert "[REDACTED]" in sanitized


def test_transport_error_is_redacted_on_stderr(tmp_path, monkeypatch) -> None:
    out = io.StringIO()
    err = io.StringIO()

    class _Client:
        def __init__(self, **kwargs) -> None:  # noqa: ARG002
            pass

        def get_discovery_document(self, domain: str) -> dict:  # noqa: ARG002
            raise TransportError("failed ?token=abc123")

    monkeypatch.setattr("spxp_cli.cli.main.SpxpServiceClient", _Client)
    monkeypatch.setattr(
        "spxp_cli.cli.main.discover",
        lambda domain, *, client: client.get_discovery_document(domain),
    )

    rc = main(
        ["--config", str(tmp_path / "config.toml"), "discover", "spxp.space"],
        stdout=out,
        stderr=err,
    )

    assert rc == 2
    assert "abc123" not in err.getvalue()
    assert "token=[REDACTED]" in err.getvalue()
