from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from authgate.auth.errors import AccountConflictError
from authgate.auth.schemas import ResolvedIdentity
from authgate.models.user import Provider, User

logger = logging.getLogger(__name__)

CONFLICT_MESSAGE = "User already exists with this provider"


class AccountRepository:
    """Maps (provider, provider_id) to user rows."""

    def __init__(self, db: AsyncSession) -> None:
        self._db = db

    async def find_by_provider_identity(self, provider: Provider, external_id: str) -> User | None:
        result = await self._db.execute(
            select(User).where(
                User.provider == provider,
                User.provider_id == external_id,
            )
        )
        return result.scalar_one_or_none()

    async def create(self, identity: ResolvedIdentity) -> User:
        """Insert a new account, raising AccountConflictError if the identity is taken.

        The pre-insert lookup only gives a friendlier fast path. The unique
        constraint on (provider, provider_id) decides races: a violation on
        commit is rolled back and reported as a conflict.
        """
        existing = await self.find_by_provider_identity(identity.provider, identity.external_id)
        if existing is not None:
            raise AccountConflictError(CONFLICT_MESSAGE)

        user = User(
            provider=identity.provider,
            provider_id=identity.external_id,
            email=identity.email,
            name=identity.name,
            profile_image_url=identity.avatar_url,
        )
        self._db.add(user)
        try:
            await self._db.commit()
        except IntegrityError as e:
            await self._db.rollback()
            logger.info(f"Concurrent signup lost the race for {identity.provider.value} identity")
            raise AccountConflictError(CONFLICT_MESSAGE) from e

        await self._db.refresh(user)
        return user
