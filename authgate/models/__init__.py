from __future__ import annotations

from authgate.models.base import Base, TimestampMixin
from authgate.models.user import Provider, User

__all__ = [
    "Base",
    "TimestampMixin",
    "Provider",
    "User",
]
