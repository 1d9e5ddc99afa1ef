from __future__ import annotations


class ServiceError(Exception):
    """Base class for errors that map onto an API response."""

    status_code: int = 500

    def __init__(self, message: str, status_code: int | None = None):
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        super().__init__(message)


class BadRequestError(ServiceError):
    """Malformed or missing input."""

    status_code = 400


class UnauthorizedError(ServiceError):
    status_code = 401


class AccountNotFoundError(ServiceError):
    """Login against an account that was never created."""

    status_code = 404


class AccountConflictError(ServiceError):
    """Signup against a (provider, provider_id) pair that already exists."""

    status_code = 409


class InternalError(ServiceError):
    status_code = 500


# ---------------------------------------------------------------------------
# Credential resolution
# ---------------------------------------------------------------------------


class CredentialError(UnauthorizedError):
    """A provider credential could not be turned into an identity."""
    pass


class MissingCredential(CredentialError):
    """The credential field the provider needs is absent from the request."""

    status_code = 400


class InvalidCredential(CredentialError):
    pass


class ExpiredCredential(CredentialError):
    pass


class ProviderUnreachable(CredentialError):
    """The provider could not be reached (timeout or transport failure)."""
    pass


class ProviderRejected(CredentialError):
    """The provider answered with an unexpected status or payload."""

    def __init__(self, message: str, upstream_status: int | None = None):
        self.upstream_status = upstream_status
        super().__init__(message)
