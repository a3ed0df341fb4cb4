"""Tests for UserRepository."""

import uuid

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from users_api.database.models import User
from users_api.repositories.user_repository import UserPage, UserRepository


def make_user(login: str, user_id: str = None) -> User:
    user = User(login=login, first_name="First", last_name="Last")
    if user_id:
        user.id = user_id
    return user


@pytest.mark.asyncio
async def test_insert_generates_id(session: AsyncSession):
    repository = UserRepository(session)

    user = await repository.insert(make_user("jd"))

    assert uuid.UUID(user.id)
    assert user.games_played == 0
    assert (await repository.get_by_id(user.id)).login == "jd"


@pytest.mark.asyncio
async def test_insert_keeps_given_id(session: AsyncSession):
    repository = UserRepository(session)
    user_id = str(uuid.uuid4())

    user = await repository.insert(make_user("jd", user_id))

    assert user.id == user_id


@pytest.mark.asyncio
async def test_update_or_insert_reports_branch(session: AsyncSession):
    repository = UserRepository(session)
    user_id = str(uuid.uuid4())

    inserted, created = await repository.update_or_insert(make_user("first", user_id))
    assert created is True
    assert inserted.id == user_id

    replaced, created = await repository.update_or_insert(make_user("second", user_id))
    assert created is False
    assert replaced.login == "second"
    assert await repository.count() == 1


@pytest.mark.asyncio
async def test_replace_applies_defaults_for_unset_columns(session: AsyncSession):
    repository = UserRepository(session)
    user_id = str(uuid.uuid4())
    stored = make_user("first", user_id)
    stored.games_played = 7
    stored.current_game_id = str(uuid.uuid4())
    await repository.insert(stored)

    replaced, created = await repository.update_or_insert(make_user("second", user_id))

    assert created is False
    assert replaced.games_played == 0
    assert replaced.current_game_id is None
    assert replaced.full_name == "Last First"


@pytest.mark.asyncio
async def test_update_and_delete(session: AsyncSession):
    repository = UserRepository(session)
    user = await repository.insert(make_user("jd"))

    updated = await repository.update(user.id, first_name="Jim")
    assert updated.full_name == "Last Jim"

    assert await repository.delete(user.id) is True
    assert await repository.delete(user.id) is False
    assert await repository.update(user.id, first_name="Jim") is None
    assert await repository.exists(user.id) is False


@pytest.mark.asyncio
async def test_get_page_orders_by_login(session: AsyncSession):
    repository = UserRepository(session)
    for login in ["charlie", "alpha", "echo", "bravo", "delta"]:
        await repository.insert(make_user(login))

    page = await repository.get_page(page_number=2, page_size=2)

    assert [user.login for user in page.items] == ["charlie", "delta"]
    assert page.total_count == 5
    assert page.total_pages == 3
    assert page.has_previous is True
    assert page.has_next is True


def test_user_page_flags():
    assert UserPage(items=[], total_count=0, page_size=10, current_page=1).total_pages == 0
    last = UserPage(items=[], total_count=21, page_size=10, current_page=3)
    assert last.total_pages == 3
    assert last.has_next is False
    assert last.has_previous is True
