from __future__ import annotations

from datetime import datetime, timedelta, timezone

from jose import JWTError, jwt

from authgate.auth.errors import UnauthorizedError
from authgate.auth.schemas import TokenData
from authgate.config import Settings


class TokenIssuer:
    """Signs short-lived session tokens carrying the internal user id."""

    def __init__(self, secret: str, algorithm: str = "HS256", expire_minutes: int = 60):
        self._secret = secret
        self._algorithm = algorithm
        self._expire = timedelta(minutes=expire_minutes)

    @classmethod
    def from_settings(cls, settings: Settings) -> TokenIssuer:
        return cls(settings.jwt_secret, settings.jwt_algorithm, settings.jwt_expire_minutes)

    def issue(self, user_id: str) -> str:
        now = datetime.now(timezone.utc)
        payload = {"user_id": user_id, "sub": user_id, "iat": now, "exp": now + self._expire}
        return jwt.encode(payload, self._secret, algorithm=self._algorithm)

    def decode(self, token: str) -> TokenData:
        """Decode a token issued by this issuer. Raises UnauthorizedError on failure."""
        try:
            payload = jwt.decode(token, self._secret, algorithms=[self._algorithm])
        except jwt.ExpiredSignatureError as e:
            raise UnauthorizedError("Token expired") from e
        except JWTError as e:
            raise UnauthorizedError("Invalid token") from e
        return TokenData(user_id=payload["user_id"])
