from __future__ import annotations

import uuid

import pytest

pytest.importorskip("bcrypt")
pytest.importorskip("sqlalchemy")

from conftest import FakeDB, FakeResult
from obdscribe import accounts
from obdscribe.accounts import (
    AccountAlreadyExistsError,
    EmailAlreadyExistsError,
    check_password,
    create_password_account,
    default_shop_name,
    hash_password,
    resolve_or_create_from_oauth_profile,
    verify_password,
)
from obdscribe.google_oauth import GoogleProfile
from obdscribe.models import Shop, User


@pytest.fixture(autouse=True)
def fast_bcrypt(monkeypatch: pytest.MonkeyPatch) -> None:
    real_gensalt = accounts.bcrypt.gensalt
    monkeypatch.setattr(accounts.bcrypt, "gensalt", lambda: real_gensalt(rounds=4))


def build_user(**overrides) -> User:
    values = {
        "id": uuid.uuid4(),
        "shop_id": uuid.uuid4(),
        "email": "owner@brakeshop.com",
        "password_hash": hash_password("correct horse"),
        "display_name": "Owner",
        "role": "owner",
    }
    values.update(overrides)
    return User(**values)


def test_hash_and_check_password() -> None:
    password_hash = hash_password("s3cret-pass")

    assert check_password("s3cret-pass", password_hash) is True
    assert check_password("wrong-pass", password_hash) is False


def test_check_password_rejects_empty_or_garbage_hash() -> None:
    assert check_password("anything", "") is False
    assert check_password("anything", "not-a-bcrypt-hash") is False


def test_default_shop_name_uses_email_local_part() -> None:
    assert default_shop_name("Mike.Tech@Garage.com") == "mike.tech's Shop"


@pytest.mark.asyncio
async def test_verify_password_returns_user_for_valid_credentials() -> None:
    user = build_user()
    db = FakeDB(FakeResult(scalar=user))

    result = await verify_password(db, "  OWNER@BrakeShop.com ", "correct horse")

    assert result is user


@pytest.mark.asyncio
async def test_verify_password_is_uniform_on_failure() -> None:
    unknown = await verify_password(FakeDB(FakeResult(scalar=None)), "nobody@brakeshop.com", "x")
    wrong = await verify_password(FakeDB(FakeResult(scalar=build_user())), "owner@brakeshop.com", "nope")
    oauth_only = await verify_password(
        FakeDB(FakeResult(scalar=build_user(password_hash=""))), "owner@brakeshop.com", ""
    )

    assert unknown is None
    assert wrong is None
    assert oauth_only is None


@pytest.mark.asyncio
async def test_create_password_account_creates_shop_and_owner() -> None:
    db = FakeDB(FakeResult(scalar=None))

    user, shop = await create_password_account(
        db, email="New.Owner@BrakeShop.com", password="long-enough", display_name="Nia"
    )

    assert db.commit_calls == 1
    assert isinstance(shop, Shop)
    assert shop.name == "new.owner's Shop"
    assert user.shop_id == shop.id
    assert user.email == "new.owner@brakeshop.com"
    assert user.role == "owner"
    assert user.password_hash != "long-enough"
    assert check_password("long-enough", user.password_hash)


@pytest.mark.asyncio
async def test_create_password_account_uses_given_shop_name() -> None:
    db = FakeDB(FakeResult(scalar=None))

    _user, shop = await create_password_account(
        db, email="a@brakeshop.com", password="long-enough", shop_name="Main St Auto"
    )

    assert shop.name == "Main St Auto"


@pytest.mark.asyncio
async def test_create_password_account_rejects_duplicate_email() -> None:
    db = FakeDB(FakeResult(scalar=build_user()))

    with pytest.raises(AccountAlreadyExistsError) as exc_info:
        await create_password_account(db, email="owner@brakeshop.com", password="long-enough")

    assert exc_info.value.code == "ALREADY_EXISTS"
    assert db.added == []


@pytest.mark.asyncio
async def test_oauth_profile_resolves_existing_identity() -> None:
    shop = Shop(id=uuid.uuid4(), name="Existing")
    user = build_user(shop_id=shop.id, oauth_provider="google", oauth_subject="sub-1")
    db = FakeDB(FakeResult(scalar=user), objects={(Shop, shop.id): shop})

    result_user, result_shop, created = await resolve_or_create_from_oauth_profile(
        db, GoogleProfile(sub="sub-1", email="owner@brakeshop.com")
    )

    assert (result_user, result_shop, created) == (user, shop, False)
    assert db.added == []


@pytest.mark.asyncio
async def test_oauth_profile_never_links_to_existing_email() -> None:
    db = FakeDB(FakeResult(scalar=None), FakeResult(scalar=build_user()))

    with pytest.raises(EmailAlreadyExistsError) as exc_info:
        await resolve_or_create_from_oauth_profile(
            db, GoogleProfile(sub="sub-2", email="Owner@BrakeShop.com")
        )

    assert exc_info.value.code == "EMAIL_ALREADY_EXISTS"
    assert db.added == []


@pytest.mark.asyncio
async def test_oauth_profile_creates_shop_and_user() -> None:
    db = FakeDB(FakeResult(scalar=None), FakeResult(scalar=None))

    user, shop, created = await resolve_or_create_from_oauth_profile(
        db,
        GoogleProfile(sub="sub-3", email="tech@gmail.com", email_verified=True, name="Tess Tech"),
    )

    assert created is True
    assert shop.name == "Tess Tech"
    assert user.shop_id == shop.id
    assert user.password_hash == ""
    assert user.oauth_provider == "google"
    assert user.oauth_subject == "sub-3"
    assert user.email_verified_at is not None
