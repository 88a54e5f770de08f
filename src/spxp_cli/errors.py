"""Client error types."""

from __future__ import annotations


class SpxpError(RuntimeError):
    """Base client error."""


class PreconditionError(SpxpError):
    """A command precondition does not hold; nothing was changed."""


class IdentityExistsError(PreconditionError):
    """An identity with this name already exists."""


class IdentityNotFoundError(PreconditionError):
    """No identity with this name exists."""


class AlreadyBoundError(PreconditionError):
    """Identity already completed the binding handshake."""


class NotBoundError(PreconditionError):
    """Operation requires a bound identity."""


class RemoteValidationError(SpxpError):
    """A referenced remote profile is missing or malformed."""


class TransportError(SpxpError):
    """A network call failed."""


class DiscoveryFailedError(TransportError):
    """Domain does not provide the SPXP-SPE extension."""


class ServiceRequestError(TransportError):
    """Service returned a non-2xx response."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        body: str | None = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class ProtocolResponseError(TransportError):
    """Service answered 2xx but the body does not have the expected shape."""

    def __init__(self, message: str, *, body: object | None = None) -> None:
        super().__init__(message)
        self.body = body


class LocalIOError(SpxpError):
    """Reading, transforming or writing a local document failed."""


class SigningError(SpxpError):
    """Signing capability failed."""
