"""HTTP client for SPXP-SPE and SPXP-PME service endpoints."""

from __future__ import annotations

import mimetypes
from dataclasses import dataclass
from pathlib import Path

from spxp_cli.errors import LocalIOError, ProtocolResponseError, ServiceRequestError, TransportError

DISCOVERY_PATH = "/.well-known/spxp/spe-discovery"


@dataclass
class SpxpServiceClient:
    timeout: float = 10.0
    retries: int = 0

    def __post_init__(self) -> None:
        try:
            import requests
            from requests.adapters import HTTPAdapter
            from urllib3.util.retry import Retry
        except Exception as exc:  # pragma: no cover
            raise TransportError(f"requests stack unavailable: {exc}") from exc

        self._requests = requests
        self._session = requests.Session()
        retry = Retry(
            total=max(0, int(self.retries)),
            connect=max(0, int(self.retries)),
            read=max(0, int(self.retries)),
            status=max(0, int(self.retries)),
            status_forcelist=(429, 500, 502, 503, 504),
            backoff_factor=0.2,
            allowed_methods=("GET", "PUT"),
            raise_on_status=False,
        )
        adapter = HTTPAdapter(max_retries=retry)
        self._session.mount("http://", adapter)
        self._session.mount("https://", adapter)

    @staticmethod
    def _join(base: str, path: str) -> str:
        return f"{base.rstrip('/')}/{path.lstrip('/')}"

    def _request(
        self,
        method: str,
        url: str,
        *,
        json_payload: dict | None = None,
        access_token: str | None = None,
        files: dict | None = None,
    ) -> dict:
        headers = {"Authorization": f"Bearer {access_token}"} if access_token else None
        try:
            response = self._session.request(
                method,
                url,
                json=json_payload,
                files=files,
                headers=headers,
                timeout=self.timeout,
            )
        except Exception as exc:
            raise TransportError(f"{method} {url} failed: {exc}") from exc

        if response.status_code < 200 or response.status_code >= 300:
            raise ServiceRequestError(
                f"{method} {url} failed: {response.status_code} {response.text}",
                status_code=response.status_code,
                body=response.text,
            )
        if not response.content:
            return {}
        try:
            body = response.json()
        except Exception as exc:
            raise ProtocolResponseError(
                f"{method} {url} returned a non-JSON body: {response.text}",
                body=response.text,
            ) from exc
        if not isinstance(body, dict):
            raise ProtocolResponseError(
                f"{method} {url} returned a non-object body: {response.text}",
                body=body,
            )
        return body

    def get_discovery_document(self, domain: str) -> dict:
        return self._request("GET", f"https://{domain}{DISCOVERY_PATH}")

    def fetch_profile(self, uri: str) -> dict:
        return self._request("GET", uri)

    def bind(self, bind_endpoint: str, *, token: str, public_key: dict) -> dict:
        return self._request(
            "POST",
            bind_endpoint,
            json_payload={"token": token, "publicKey": public_key},
        )

    def register_device(self, management_endpoint: str, payload: dict) -> dict:
        return self._request(
            "POST",
            self._join(management_endpoint, "/auth/device"),
            json_payload=payload,
        )

    def request_access_token(self, management_endpoint: str, payload: dict) -> dict:
        return self._request(
            "POST",
            self._join(management_endpoint, "/auth/access_token"),
            json_payload=payload,
        )

    def get_service_info(self, management_endpoint: str, *, access_token: str) -> dict:
        return self._request(
            "GET",
            self._join(management_endpoint, "/service/info"),
            access_token=access_token,
        )

    def put_profile(
        self,
        management_endpoint: str,
        section: str,
        document: dict,
        *,
        access_token: str,
    ) -> dict:
        return self._request(
            "PUT",
            self._join(management_endpoint, f"/profile/{section}"),
            json_payload=document,
            access_token=access_token,
        )

    def publish_post(self, management_endpoint: str, post: dict, *, access_token: str) -> dict:
        return self._request(
            "POST",
            self._join(management_endpoint, "/posts"),
            json_payload=post,
            access_token=access_token,
        )

    def upload_media(self, management_endpoint: str, path: Path, *, access_token: str) -> dict:
        content_type = mimetypes.guess_type(path.name)[0] or "application/octet-stream"
        try:
            handle = path.open("rb")
        except OSError as exc:
            raise LocalIOError(f"cannot read media file: {path}") from exc
        with handle:
            return self._request(
                "POST",
                self._join(management_endpoint, "/media"),
                files={"file": (path.name, handle, content_type)},
                access_token=access_token,
            )


__all__ = ["SpxpServiceClient", "DISCOVERY_PATH"]
