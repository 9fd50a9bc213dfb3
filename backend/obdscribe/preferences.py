import uuid
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from .auth import AuthSession, get_current_session
from .db import get_db
from .models import Shop, User
from .schemas import ShopSettingsOut, ShopSettingsUpdate, UserSettingsOut, UserSettingsUpdate


router = APIRouter(prefix="/settings", tags=["settings"])


async def get_shop_settings(db: AsyncSession, shop_id: uuid.UUID) -> Optional[Shop]:
    return await db.get(Shop, shop_id)


async def update_shop_settings(
    db: AsyncSession,
    shop_id: uuid.UUID,
    payload: ShopSettingsUpdate,
) -> Optional[Shop]:
    """Apply the non-null fields of ``payload`` to the shop."""
    shop = await db.get(Shop, shop_id)
    if shop is None:
        return None
    for field, value in payload.model_dump(exclude_none=True).items():
        setattr(shop, field, value)
    await db.commit()
    await db.refresh(shop)
    return shop


async def get_user_settings(db: AsyncSession, user_id: uuid.UUID) -> Optional[User]:
    return await db.get(User, user_id)


async def update_user_settings(
    db: AsyncSession,
    user_id: uuid.UUID,
    payload: UserSettingsUpdate,
) -> Optional[User]:
    """Update the user's display name.  The email address cannot be changed here."""
    user = await db.get(User, user_id)
    if user is None:
        return None
    if payload.display_name is not None:
        user.display_name = payload.display_name
    await db.commit()
    await db.refresh(user)
    return user


@router.get("/shop", response_model=ShopSettingsOut)
async def read_shop_settings(
    session: AuthSession = Depends(get_current_session),
    db: AsyncSession = Depends(get_db),
) -> ShopSettingsOut:
    shop = await get_shop_settings(db, session.shop_id)
    if shop is None:
        raise HTTPException(status_code=404, detail="Shop not found")
    return ShopSettingsOut.model_validate(shop)


@router.patch("/shop", response_model=ShopSettingsOut)
async def patch_shop_settings(
    payload: ShopSettingsUpdate,
    session: AuthSession = Depends(get_current_session),
    db: AsyncSession = Depends(get_db),
) -> ShopSettingsOut:
    """Update shop details and report defaults.

    Unknown report modes or tones are rejected by validation before this
    handler runs.
    """
    shop = await update_shop_settings(db, session.shop_id, payload)
    if shop is None:
        raise HTTPException(status_code=404, detail="Shop not found")
    return ShopSettingsOut.model_validate(shop)


@router.get("/user", response_model=UserSettingsOut)
async def read_user_settings(
    session: AuthSession = Depends(get_current_session),
    db: AsyncSession = Depends(get_db),
) -> UserSettingsOut:
    user = await get_user_settings(db, session.user_id)
    if user is None:
        raise HTTPException(status_code=404, detail="User not found")
    return UserSettingsOut.model_validate(user)


@router.patch("/user", response_model=UserSettingsOut)
async def patch_user_settings(
    payload: UserSettingsUpdate,
    session: AuthSession = Depends(get_current_session),
    db: AsyncSession = Depends(get_db),
) -> UserSettingsOut:
    user = await update_user_settings(db, session.user_id, payload)
    if user is None:
        raise HTTPException(status_code=404, detail="User not found")
    return UserSettingsOut.model_validate(user)
