from __future__ import annotations

import enum
from uuid import uuid4

from sqlalchemy import Enum, Index, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from authgate.models.base import Base, TimestampMixin


class Provider(str, enum.Enum):
    KAKAO = "kakao"
    APPLE = "apple"
    GUEST = "guest"


def _new_user_id() -> str:
    return str(uuid4())


class User(TimestampMixin, Base):
    __tablename__ = "users"

    user_id: Mapped[str] = mapped_column(String(255), primary_key=True, default=_new_user_id)
    provider: Mapped[Provider] = mapped_column(
        Enum(Provider, name="provider", values_callable=lambda e: [m.value for m in e]),
    )
    # External id from kakao/apple, self-generated for guests
    provider_id: Mapped[str | None] = mapped_column(String(255), nullable=True)
    email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    profile_image_url: Mapped[str | None] = mapped_column(Text, nullable=True)

    __table_args__ = (
        UniqueConstraint("provider", "provider_id", name="unique_provider_user"),
        Index("idx_provider_id", "provider", "provider_id"),
    )
