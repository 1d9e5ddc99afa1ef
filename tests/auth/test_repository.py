from __future__ import annotations

import pytest
from sqlalchemy import func, select

from authgate.auth.errors import AccountConflictError
from authgate.auth.repository import AccountRepository
from authgate.auth.schemas import ResolvedIdentity
from authgate.models.user import Provider, User


def _identity(provider: Provider = Provider.KAKAO, external_id: str = "123") -> ResolvedIdentity:
    return ResolvedIdentity(
        provider=provider,
        external_id=external_id,
        email="ann@example.com",
        name="Ann",
        avatar_url="http://img/ann.png",
    )


@pytest.mark.asyncio
async def test_create_then_find(test_db_session):
    repository = AccountRepository(test_db_session)

    created = await repository.create(_identity())
    found = await repository.find_by_provider_identity(Provider.KAKAO, "123")

    assert found is not None
    assert found.user_id == created.user_id
    assert found.provider is Provider.KAKAO
    assert found.profile_image_url == "http://img/ann.png"
    assert found.created_at is not None
    assert found.updated_at is not None


@pytest.mark.asyncio
async def test_same_external_id_on_different_providers(test_db_session):
    repository = AccountRepository(test_db_session)

    kakao = await repository.create(_identity(Provider.KAKAO, "shared"))
    apple = await repository.create(_identity(Provider.APPLE, "shared"))

    assert kakao.user_id != apple.user_id
    assert await repository.find_by_provider_identity(Provider.GUEST, "shared") is None


@pytest.mark.asyncio
async def test_create_existing_identity_conflicts(test_db_session):
    repository = AccountRepository(test_db_session)
    await repository.create(_identity())

    with pytest.raises(AccountConflictError):
        await repository.create(_identity())


@pytest.mark.asyncio
async def test_racing_insert_loses_on_unique_constraint(test_db_session_factory, monkeypatch):
    """Both signups passed the lookup before either committed; the constraint decides."""
    async with test_db_session_factory() as first_session:
        winner = await AccountRepository(first_session).create(_identity())

    async with test_db_session_factory() as second_session:
        loser = AccountRepository(second_session)

        async def stale_lookup(provider, external_id):
            return None

        monkeypatch.setattr(loser, "find_by_provider_identity", stale_lookup)

        with pytest.raises(AccountConflictError):
            await loser.create(_identity())

    async with test_db_session_factory() as session:
        rows = (await session.execute(select(User))).scalars().all()
        assert [row.user_id for row in rows] == [winner.user_id]
        assert await session.scalar(select(func.count()).select_from(User)) == 1
