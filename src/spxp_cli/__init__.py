"""SPXP client public surface."""

from spxp_cli.binding import BindingProtocol, BindingState, binding_state
from spxp_cli.client import SpxpServiceClient
from spxp_cli.discovery import discover
from spxp_cli.errors import (
    AlreadyBoundError,
    DiscoveryFailedError,
    IdentityExistsError,
    IdentityNotFoundError,
    LocalIOError,
    NotBoundError,
    PreconditionError,
    ProtocolResponseError,
    RemoteValidationError,
    ServiceRequestError,
    SigningError,
    SpxpError,
    TransportError,
)
from spxp_cli.operations import (
    OperationResult,
    add_friend,
    create_group,
    create_post,
    init_identity,
    remove_friend,
    update_profile,
)
from spxp_cli.publisher import AuthenticatedPublisher
from spxp_cli.signing import Ed25519Signer, Signer, sign_document, verify_document_signature
from spxp_cli.store import (
    DocumentStore,
    Identity,
    IdentityContext,
    IdentityStore,
    JsonFileStore,
)

__all__ = [
    "SpxpError",
    "PreconditionError",
    "IdentityExistsError",
    "IdentityNotFoundError",
    "AlreadyBoundError",
    "NotBoundError",
    "RemoteValidationError",
    "TransportError",
    "DiscoveryFailedError",
    "ServiceRequestError",
    "ProtocolResponseError",
    "LocalIOError",
    "SigningError",
    "SpxpServiceClient",
    "discover",
    "BindingProtocol",
    "BindingState",
    "binding_state",
    "AuthenticatedPublisher",
    "Signer",
    "Ed25519Signer",
    "sign_document",
    "verify_document_signature",
    "DocumentStore",
    "JsonFileStore",
    "Identity",
    "IdentityContext",
    "IdentityStore",
    "OperationResult",
    "init_identity",
    "update_profile",
    "add_friend",
    "remove_friend",
    "create_post",
    "create_group",
]
