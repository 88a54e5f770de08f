"""Authenticated uploads to an SPXP-PME management endpoint."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from pydantic import BaseModel, ValidationError

from spxp_cli.client import SpxpServiceClient
from spxp_cli.documents import AccessTokenResponse, MediaUploadResponse, dump_document
from spxp_cli.errors import NotBoundError, PreconditionError, ProtocolResponseError
from spxp_cli.requests import build_access_token_request, sign_request
from spxp_cli.signing import Signer
from spxp_cli.store import Identity


def parse_response(model: type[BaseModel], payload: dict, *, operation: str):
    try:
        return model.model_validate(payload)
    except ValidationError as exc:
        raise ProtocolResponseError(
            f"unexpected {operation} response: {payload}",
            body=payload,
        ) from exc


@dataclass
class AuthenticatedPublisher:
    """Publishes one identity's documents.

    The access token is fetched on first use and reused for every later call on
    the same instance. Create one publisher per command run.
    """

    client: SpxpServiceClient
    identity: Identity
    signer: Signer | None = None
    _access_token: str | None = field(default=None, init=False, repr=False)

    @property
    def management_endpoint(self) -> str:
        binding = self.identity.binding
        if binding is None:
            raise NotBoundError(f"identity {self.identity.name} is not bound to a service")
        return binding.managementEndpoint

    def access_token(self) -> str:
        if self._access_token is not None:
            return self._access_token
        binding = self.identity.binding
        if binding is None or not binding.deviceToken:
            raise NotBoundError(f"identity {self.identity.name} has no registered device")

        payload = sign_request(
            build_access_token_request(device_token=binding.deviceToken),
            self.identity.signing_keypair,
            self.signer,
        )
        response = self.client.request_access_token(binding.managementEndpoint, payload)
        self._access_token = parse_response(
            AccessTokenResponse, response, operation="access token"
        ).access_token
        return self._access_token

    def upload_media(self, path: str | Path) -> str:
        media_path = Path(path)
        if not media_path.is_file():
            raise PreconditionError(f"media file not found: {media_path}")
        response = self.client.upload_media(
            self.management_endpoint,
            media_path,
            access_token=self.access_token(),
        )
        return parse_response(MediaUploadResponse, response, operation="media upload").uri

    def publish_profile(self) -> None:
        self._require_signed(self.identity.profile, "profile")
        self.client.put_profile(
            self.management_endpoint,
            "root",
            dump_document(self.identity.profile),
            access_token=self.access_token(),
        )

    def publish_friends(self) -> None:
        self._require_signed(self.identity.friends, "friends list")
        self.client.put_profile(
            self.management_endpoint,
            "friends",
            dump_document(self.identity.friends),
            access_token=self.access_token(),
        )

    def publish_post(self, post: dict) -> dict:
        if "signature" not in post:
            raise PreconditionError("post must be signed before publishing")
        return self.client.publish_post(
            self.management_endpoint,
            post,
            access_token=self.access_token(),
        )

    @staticmethod
    def _require_signed(document: BaseModel, label: str) -> None:
        if getattr(document, "signature", None) is None:
            raise PreconditionError(f"{label} must be signed before publishing")
