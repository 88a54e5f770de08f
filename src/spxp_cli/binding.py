"""SPXP-SPE binding handshake.

The handshake walks an identity through these states, persisting the binding
record after every step::

    UNBOUND -> DISCOVERED -> SERVICE_BOUND -> DEVICE_REGISTERED
            -> ENDPOINTS_KNOWN -> BOUND

A record left behind by an interrupted run is resumed from its last completed
step. A BOUND identity cannot be bound again.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Callable
from urllib.parse import urlparse
from uuid import uuid4

from spxp_cli.client import SpxpServiceClient
from spxp_cli.discovery import discover, normalize_domain
from spxp_cli.documents import (
    BindingRecord,
    BindResponse,
    DeviceRegistrationResponse,
    DiscoveryDocument,
    ServiceInfo,
)
from spxp_cli.errors import AlreadyBoundError, PreconditionError
from spxp_cli.mutators import apply_service_endpoints, sign_friends, sign_profile
from spxp_cli.publisher import AuthenticatedPublisher, parse_response
from spxp_cli.requests import build_device_registration_request, sign_request
from spxp_cli.signing import Signer
from spxp_cli.store import BINDING_FILE, Identity, IdentityStore

TOTAL_STEPS = 5

StepCallback = Callable[[int, int, str], None]


class BindingState(str, Enum):
    UNBOUND = "unbound"
    DISCOVERED = "discovered"
    SERVICE_BOUND = "service_bound"
    DEVICE_REGISTERED = "device_registered"
    ENDPOINTS_KNOWN = "endpoints_known"
    BOUND = "bound"


def binding_state(identity: Identity) -> BindingState:
    if identity.binding is None:
        return BindingState.UNBOUND
    return BindingState(identity.binding.state)


@dataclass
class BindingProtocol:
    client: SpxpServiceClient
    store: IdentityStore
    signer: Signer | None = None
    device_id: str | None = None
    on_step: StepCallback | None = None

    def _step(self, index: int, title: str) -> None:
        if self.on_step is not None:
            self.on_step(index, TOTAL_STEPS, title)

    def run(self, identity: Identity, *, domain: str, token: str | None) -> BindingRecord:
        if identity.is_bound:
            raise AlreadyBoundError(
                f"identity {identity.name} is already bound to {identity.binding.profileUri}"
            )

        publisher = AuthenticatedPublisher(self.client, identity, self.signer)

        if identity.binding is None:
            if not token:
                raise PreconditionError("a bind token is required to bind a new identity")
            self._step(1, f"discovering service at {domain}")
            discovery = discover(domain, client=self.client)
            self._step(2, "binding profile to service")
            self.bind_service(identity, discovery, token, domain=normalize_domain(domain))
        else:
            self.check_resume(identity, domain=domain, token=token)

        if not identity.binding.reached(BindingState.DEVICE_REGISTERED.value):
            self._step(3, "registering device")
            self.register_device(identity)

        if not identity.binding.reached(BindingState.ENDPOINTS_KNOWN.value):
            self._step(4, "negotiating service endpoints")
            self.negotiate_endpoints(identity, publisher)

        self._step(5, "publishing profile and friends")
        self.publish_initial(identity, publisher)
        return identity.binding

    def check_resume(self, identity: Identity, *, domain: str | None, token: str | None) -> None:
        """Refuse to resume an unfinished binding against anything but its own service."""
        binding = identity.binding
        recorded = binding.domain or urlparse(binding.managementEndpoint).hostname or ""
        binding_path = identity.context.directory / BINDING_FILE
        if domain and normalize_domain(domain) != recorded:
            raise PreconditionError(
                f"identity {identity.name} has an unfinished binding with {recorded}; "
                f"delete {binding_path} to bind to {normalize_domain(domain)} instead"
            )
        if token:
            raise PreconditionError(
                f"identity {identity.name} resumes its unfinished binding with {recorded} "
                f"and needs no bind token; run bind without the token, or delete "
                f"{binding_path} to start over"
            )

    def bind_service(
        self,
        identity: Identity,
        discovery: DiscoveryDocument,
        token: str,
        *,
        domain: str | None = None,
    ) -> None:
        response = self.client.bind(discovery.bind, token=token, public_key=identity.public_key)
        bound = parse_response(BindResponse, response, operation="bind")
        identity.binding = BindingRecord(
            state=BindingState.SERVICE_BOUND.value,
            domain=domain,
            profileUri=bound.profileUri,
            managementEndpoint=discovery.managementEndpoint,
        )
        self.store.persist(identity, "binding")

    def register_device(self, identity: Identity) -> None:
        binding = identity.binding
        device_id = self.device_id or binding.deviceId or uuid4().hex
        payload = sign_request(
            build_device_registration_request(
                profile_uri=binding.profileUri,
                device_id=device_id,
            ),
            identity.signing_keypair,
            self.signer,
        )
        response = self.client.register_device(binding.managementEndpoint, payload)
        registered = parse_response(
            DeviceRegistrationResponse, response, operation="device registration"
        )
        identity.binding = binding.model_copy(
            update={
                "state": BindingState.DEVICE_REGISTERED.value,
                "deviceId": device_id,
                "deviceToken": registered.device_token,
            }
        )
        self.store.persist(identity, "binding")

    def negotiate_endpoints(self, identity: Identity, publisher: AuthenticatedPublisher) -> None:
        binding = identity.binding
        response = self.client.get_service_info(
            binding.managementEndpoint,
            access_token=publisher.access_token(),
        )
        endpoints = parse_response(ServiceInfo, response, operation="service info").endpoints
        identity.binding = binding.model_copy(
            update={
                "state": BindingState.ENDPOINTS_KNOWN.value,
                **endpoints.model_dump(),
            }
        )
        self.store.persist(identity, "binding")
        self._patch_profile(identity)

    def publish_initial(self, identity: Identity, publisher: AuthenticatedPublisher) -> None:
        self._patch_profile(identity)
        sign_friends(identity, self.signer)
        self.store.persist(identity, "friends")
        publisher.publish_profile()
        publisher.publish_friends()
        identity.binding = identity.binding.model_copy(
            update={"state": BindingState.BOUND.value}
        )
        self.store.persist(identity, "binding")

    def _patch_profile(self, identity: Identity) -> None:
        changed = apply_service_endpoints(identity.profile, identity.binding)
        if changed or identity.profile.signature is None:
            sign_profile(identity, self.signer)
            self.store.persist(identity, "profile")
