from __future__ import annotations

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    database_url: str = "sqlite+aiosqlite:///./authgate.db"
    jwt_secret: str = "dev-secret-change-in-production"
    jwt_algorithm: str = "HS256"
    jwt_expire_minutes: int = 60
    host: str = "0.0.0.0"
    port: int = 8000
    debug: bool = False

    cors_origins: list[str] = ["*"]

    # Kakao (OAuth access token)
    kakao_userinfo_url: str = "https://kapi.kakao.com/v2/user/me"
    provider_timeout_seconds: float = 10.0

    # Apple (signed id token). Signature verification is off unless enabled.
    apple_issuer: str = "https://appleid.apple.com"
    apple_keys_url: str = "https://appleid.apple.com/auth/keys"
    apple_client_id: str = ""
    apple_verify_signature: bool = False

    model_config = SettingsConfigDict(
        env_prefix="AUTHGATE_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )


settings = Settings()
