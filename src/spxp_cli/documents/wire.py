"""Response shapes of the SPXP-SPE and SPXP-PME service endpoints."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict


class _Response(BaseModel):
    model_config = ConfigDict(extra="ignore")


class DiscoveryDocument(_Response):
    start: str
    bind: str
    managementEndpoint: str


class BindResponse(_Response):
    profileUri: str


class DeviceRegistrationResponse(_Response):
    device_token: str


class ServiceEndpoints(_Response):
    friendsEndpoint: str
    postsEndpoint: str
    keysEndpoint: str
    connectEndpoint: str
    connectResponseEndpoint: str


class ServiceInfo(_Response):
    endpoints: ServiceEndpoints


class AccessTokenResponse(_Response):
    access_token: str


class MediaUploadResponse(_Response):
    uri: str
