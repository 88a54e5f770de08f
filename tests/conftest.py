from __future__ import annotations

from pathlib import Path

import pytest

from spxp_cli.documents import BindingRecord
from spxp_cli.errors import ServiceRequestError
from spxp_cli.store import Identity, IdentityStore

MANAGEMENT = "https://spxp.example/pme"
PROFILE_URI = "https://spxp.example/p/john"

ENDPOINTS = {
    "friendsEndpoint": "https://spxp.example/p/john/friends",
    "postsEndpoint": "https://spxp.example/p/john/posts",
    "keysEndpoint": "https://spxp.example/p/john/keys",
    "connectEndpoint": "https://spxp.example/p/john/connect",
    "connectResponseEndpoint": "https://spxp.example/p/john/connect-response",
}


class FakeServiceClient:
    """Records every call and answers like a well-behaved SPXP service."""

    def __init__(self, *, timeout: float = 10.0, retries: int = 0) -> None:
        self.timeout = timeout
        self.retries = retries
        self.calls: list[tuple[str, tuple, dict]] = []
        self.profiles: dict[str, dict] = {}
        self.discovery = {
            "start": "https://spxp.example/start",
            "bind": "https://spxp.example/bind",
            "managementEndpoint": MANAGEMENT,
        }
        self.failures: dict[str, Exception] = {}
        self.media_counter = 0

    def _record(self, name: str, *args, **kwargs) -> None:
        self.calls.append((name, args, kwargs))
        if name in self.failures:
            raise self.failures[name]

    def names(self) -> list[str]:
        return [name for name, _, _ in self.calls]

    def get_discovery_document(self, domain: str) -> dict:
        self._record("get_discovery_document", domain)
        return dict(self.discovery)

    def fetch_profile(self, uri: str) -> dict:
        self._record("fetch_profile", uri)
        if uri not in self.profiles:
            raise ServiceRequestError(f"GET {uri} failed: 404 not found", status_code=404)
        return dict(self.profiles[uri])

    def bind(self, bind_endpoint: str, *, token: str, public_key: dict) -> dict:
        self._record("bind", bind_endpoint, token=token, public_key=public_key)
        return {"profileUri": PROFILE_URI}

    def register_device(self, management_endpoint: str, payload: dict) -> dict:
        self._record("register_device", management_endpoint, payload)
        return {"device_token": "dev-token-1"}

    def request_access_token(self, management_endpoint: str, payload: dict) -> dict:
        self._record("request_access_token", management_endpoint, payload)
        return {"access_token": "access-1"}

    def get_service_info(self, management_endpoint: str, *, access_token: str) -> dict:
        self._record("get_service_info", management_endpoint, access_token=access_token)
        return {"endpoints": dict(ENDPOINTS)}

    def put_profile(
        self, management_endpoint: str, section: str, document: dict, *, access_token: str
    ) -> dict:
        self._record(
            "put_profile", management_endpoint, section, document, access_token=access_token
        )
        return {}

    def publish_post(self, management_endpoint: str, post: dict, *, access_token: str) -> dict:
        self._record("publish_post", management_endpoint, post, access_token=access_token)
        return {"seqts": "2024-01-01T00:00:00.000"}

    def upload_media(self, management_endpoint: str, path: Path, *, access_token: str) -> dict:
        self._record("upload_media", management_endpoint, path, access_token=access_token)
        self.media_counter += 1
        return {"uri": f"https://spxp.example/media/{self.media_counter}-{Path(path).name}"}


@pytest.fixture
def store(tmp_path) -> IdentityStore:
    return IdentityStore(tmp_path / "identities")


@pytest.fixture
def service() -> FakeServiceClient:
    return FakeServiceClient()


@pytest.fixture
def identity(store) -> Identity:
    return store.create("default", display_name="John Doe", short_info="Exploring")


def bind_locally(store: IdentityStore, identity: Identity) -> Identity:
    identity.binding = BindingRecord(
        state="bound",
        profileUri=PROFILE_URI,
        managementEndpoint=MANAGEMENT,
        deviceId="device-1",
        deviceToken="dev-token-1",
        **ENDPOINTS,
    )
    store.persist(identity, "binding")
    return identity


@pytest.fixture
def bound_identity(store, identity) -> Identity:
    return bind_locally(store, identity)
