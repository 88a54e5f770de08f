"""SPXP-SPE service discovery."""

from __future__ import annotations

from pydantic import ValidationError

from spxp_cli.client import SpxpServiceClient
from spxp_cli.documents import DiscoveryDocument
from spxp_cli.errors import DiscoveryFailedError, TransportError


def normalize_domain(domain: str) -> str:
    normalized = domain.strip()
    for scheme in ("https://", "http://"):
        if normalized.lower().startswith(scheme):
            normalized = normalized[len(scheme):]
    return normalized.rstrip("/")


def discover(domain: str, *, client: SpxpServiceClient) -> DiscoveryDocument:
    """Resolve ``domain`` to its SPE start, bind and management endpoints.

    Every failure collapses into one :class:`DiscoveryFailedError`; callers
    only learn that the domain does not speak SPXP-SPE.
    """
    normalized = normalize_domain(domain)
    if not normalized:
        raise DiscoveryFailedError("domain must not be empty")
    try:
        payload = client.get_discovery_document(normalized)
        return DiscoveryDocument.model_validate(payload)
    except (TransportError, ValidationError) as exc:
        raise DiscoveryFailedError(
            f"{normalized} does not provide the SPXP-SPE extension"
        ) from exc
