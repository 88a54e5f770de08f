"""Builders for signed SPXP-PME authentication requests."""

from __future__ import annotations

from datetime import datetime, timezone

from spxp_cli.signing import Signer, sign_document


def utc_timestamp(moment: datetime | None = None) -> str:
    value = (moment or datetime.now(timezone.utc)).astimezone(timezone.utc)
    return value.strftime("%Y-%m-%dT%H:%M:%S.") + f"{value.microsecond // 1000:03d}"


def build_device_registration_request(
    *,
    profile_uri: str,
    device_id: str,
    timestamp: str | None = None,
) -> dict:
    return {
        "profile_uri": profile_uri,
        "device_id": device_id,
        "timestamp": timestamp or utc_timestamp(),
    }


def build_access_token_request(*, device_token: str, timestamp: str | None = None) -> dict:
    return {
        "device_token": device_token,
        "timestamp": timestamp or utc_timestamp(),
    }


def sign_request(payload: dict, keypair: dict, signer: Signer | None = None) -> dict:
    return sign_document(payload, keypair, signer)
