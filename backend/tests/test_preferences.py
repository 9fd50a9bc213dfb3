from __future__ import annotations

import uuid

import pytest

pytest.importorskip("fastapi")
pytest.importorskip("sqlalchemy")

from pydantic import ValidationError

from conftest import FakeDB
from obdscribe.models import Shop, User
from obdscribe.preferences import update_shop_settings, update_user_settings
from obdscribe.schemas import ShopSettingsUpdate, UserSettingsUpdate


@pytest.mark.asyncio
async def test_update_shop_settings_applies_only_given_fields() -> None:
    shop_id = uuid.uuid4()
    shop = Shop(
        id=shop_id,
        name="Main St Auto",
        phone="555-0100",
        default_report_mode="standard",
        default_report_tone="plain_english",
        default_include_maint=True,
    )
    db = FakeDB(objects={(Shop, shop_id): shop})

    result = await update_shop_settings(
        db,
        shop_id,
        ShopSettingsUpdate(defaultReportMode="premium", defaultIncludeMaint=False),
    )

    assert result is shop
    assert shop.default_report_mode == "premium"
    assert shop.default_include_maint is False
    assert shop.default_report_tone == "plain_english"
    assert shop.phone == "555-0100"
    assert db.commit_calls == 1


@pytest.mark.asyncio
async def test_update_shop_settings_for_missing_shop() -> None:
    db = FakeDB()

    assert await update_shop_settings(db, uuid.uuid4(), ShopSettingsUpdate(phone="1")) is None
    assert db.commit_calls == 0


def test_shop_settings_reject_unknown_mode_and_tone() -> None:
    with pytest.raises(ValidationError):
        ShopSettingsUpdate(defaultReportMode="deluxe")
    with pytest.raises(ValidationError):
        ShopSettingsUpdate(defaultReportTone="sarcastic")


@pytest.mark.asyncio
async def test_update_user_settings_changes_display_name_only() -> None:
    user_id = uuid.uuid4()
    user = User(id=user_id, shop_id=uuid.uuid4(), email="tech@brakeshop.com", display_name="Old")
    db = FakeDB(objects={(User, user_id): user})

    await update_user_settings(db, user_id, UserSettingsUpdate(displayName="New Name"))

    assert user.display_name == "New Name"
    assert user.email == "tech@brakeshop.com"
    assert db.commit_calls == 1
