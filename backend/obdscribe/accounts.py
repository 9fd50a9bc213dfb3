"""Account creation and credential checks.

Each new account creates its own shop: the first user of a shop is its
owner.  Password hashes use bcrypt; OAuth-only accounts store an empty hash
and can never pass a password check.
"""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Optional

import bcrypt
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from .google_oauth import GoogleProfile
from .models import Shop, User


logger = logging.getLogger("obdscribe")

# bcrypt ignores everything past the first 72 bytes of a password.
BCRYPT_MAX_BYTES = 72


class AccountError(Exception):
    code = "ACCOUNT_ERROR"


class AccountAlreadyExistsError(AccountError):
    code = "ALREADY_EXISTS"


class EmailAlreadyExistsError(AccountError):
    """An OAuth login matched an email that belongs to a different identity."""

    code = "EMAIL_ALREADY_EXISTS"


def normalize_email(email: str) -> str:
    return email.strip().lower()


def default_shop_name(email: str) -> str:
    local_part = normalize_email(email).split("@", 1)[0] or "My"
    return f"{local_part}'s Shop"


def _password_bytes(password: str) -> bytes:
    return password.encode("utf-8")[:BCRYPT_MAX_BYTES]


def hash_password(password: str) -> str:
    return bcrypt.hashpw(_password_bytes(password), bcrypt.gensalt()).decode("ascii")


def check_password(password: str, password_hash: str) -> bool:
    if not password_hash:
        return False
    try:
        return bcrypt.checkpw(_password_bytes(password), password_hash.encode("ascii"))
    except ValueError:
        return False


async def get_user_by_email(db: AsyncSession, email: str) -> Optional[User]:
    result = await db.execute(select(User).where(User.email == normalize_email(email)))
    return result.scalar_one_or_none()


async def verify_password(db: AsyncSession, email: str, password: str) -> Optional[User]:
    """Return the user for valid credentials, ``None`` otherwise."""
    user = await get_user_by_email(db, email)
    if user is None:
        return None
    is_valid = await asyncio.to_thread(check_password, password, user.password_hash)
    return user if is_valid else None


async def create_password_account(
    db: AsyncSession,
    *,
    email: str,
    password: str,
    display_name: Optional[str] = None,
    shop_name: Optional[str] = None,
) -> tuple[User, Shop]:
    """Create a shop and its owner account for email + password signup."""
    email = normalize_email(email)
    if await get_user_by_email(db, email) is not None:
        raise AccountAlreadyExistsError(email)

    password_hash = await asyncio.to_thread(hash_password, password)
    shop = Shop(name=shop_name or default_shop_name(email))
    db.add(shop)
    await db.flush()

    user = User(
        shop_id=shop.id,
        email=email,
        password_hash=password_hash,
        display_name=display_name,
        role="owner",
    )
    db.add(user)
    try:
        await db.commit()
    except IntegrityError as exc:
        await db.rollback()
        raise AccountAlreadyExistsError(email) from exc
    await db.refresh(user)
    await db.refresh(shop)
    logger.info("Created password account %s for shop %s", user.id, shop.id)
    return user, shop


async def resolve_or_create_from_oauth_profile(
    db: AsyncSession,
    profile: GoogleProfile,
    *,
    provider: str = "google",
) -> tuple[User, Shop, bool]:
    """Find the account bound to an OAuth identity, creating one if needed.

    An existing password account with the same email is never linked
    automatically; ``EmailAlreadyExistsError`` is raised instead.
    """
    result = await db.execute(
        select(User).where(User.oauth_provider == provider, User.oauth_subject == profile.sub)
    )
    user = result.scalar_one_or_none()
    if user is not None:
        shop = await db.get(Shop, user.shop_id)
        return user, shop, False

    email = normalize_email(profile.email)
    if await get_user_by_email(db, email) is not None:
        raise EmailAlreadyExistsError(email)

    shop = Shop(name=profile.name or default_shop_name(email))
    db.add(shop)
    await db.flush()

    user = User(
        shop_id=shop.id,
        email=email,
        password_hash="",
        display_name=profile.name,
        role="owner",
        oauth_provider=provider,
        oauth_subject=profile.sub,
        email_verified_at=datetime.now(timezone.utc) if profile.email_verified else None,
    )
    db.add(user)
    try:
        await db.commit()
    except IntegrityError as exc:
        await db.rollback()
        raise EmailAlreadyExistsError(email) from exc
    await db.refresh(user)
    await db.refresh(shop)
    logger.info("Created %s account %s for shop %s", provider, user.id, shop.id)
    return user, shop, True
