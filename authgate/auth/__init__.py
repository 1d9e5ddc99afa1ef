from authgate.auth.errors import (
    AccountConflictError,
    AccountNotFoundError,
    BadRequestError,
    CredentialError,
    ServiceError,
)
from authgate.auth.jwt import TokenIssuer
from authgate.auth.repository import AccountRepository
from authgate.auth.resolvers import CredentialResolver, ResolveMode
from authgate.auth.schemas import AccountData, ResolvedIdentity, TokenData

__all__ = [
    "AccountConflictError",
    "AccountNotFoundError",
    "AccountData",
    "AccountRepository",
    "BadRequestError",
    "CredentialError",
    "CredentialResolver",
    "ResolveMode",
    "ResolvedIdentity",
    "ServiceError",
    "TokenData",
    "TokenIssuer",
]
