from __future__ import annotations

import uuid
from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

import pytest

pytest.importorskip("jwt")
pytest.importorskip("fastapi")

import jwt
from fastapi import HTTPException

from obdscribe import auth as auth_module
from obdscribe.auth import (
    SESSION_COOKIE_NAME,
    AuthSession,
    get_current_session,
    issue_session_token,
    parse_session_token,
)


def fake_request(cookies: dict[str, str] | None = None) -> SimpleNamespace:
    return SimpleNamespace(cookies=cookies or {})


def test_issued_token_round_trips() -> None:
    user_id, shop_id = uuid.uuid4(), uuid.uuid4()

    session = parse_session_token(issue_session_token(user_id, shop_id))

    assert session == AuthSession(user_id=user_id, shop_id=shop_id)


@pytest.mark.parametrize("token", [None, "", "not-a-token", "a.b.c"])
def test_missing_or_malformed_tokens_parse_to_none(token) -> None:
    assert parse_session_token(token) is None


def test_expired_token_parses_to_none() -> None:
    issued = datetime.now(timezone.utc) - timedelta(days=8)

    token = issue_session_token(uuid.uuid4(), uuid.uuid4(), now=issued)

    assert parse_session_token(token) is None


def test_token_is_still_valid_just_inside_the_window() -> None:
    issued = datetime.now(timezone.utc) - timedelta(days=6, hours=23)

    token = issue_session_token(uuid.uuid4(), uuid.uuid4(), now=issued)

    assert parse_session_token(token) is not None


def test_token_signed_with_another_key_parses_to_none() -> None:
    token = issue_session_token(uuid.uuid4(), uuid.uuid4(), secret="some-other-secret")

    assert parse_session_token(token) is None


def test_truncated_token_parses_to_none() -> None:
    token = issue_session_token(uuid.uuid4(), uuid.uuid4())

    assert parse_session_token(token[:-6]) is None
    assert parse_session_token(token.rsplit(".", 1)[0]) is None


@pytest.mark.parametrize(
    "claims",
    [
        {"userId": str(uuid.uuid4())},
        {"shopId": str(uuid.uuid4())},
        {"userId": "", "shopId": str(uuid.uuid4())},
        {"userId": "user-1", "shopId": "shop-1"},
        {"userId": 42, "shopId": str(uuid.uuid4())},
    ],
)
def test_token_with_incomplete_claims_parses_to_none(claims) -> None:
    claims = {**claims, "exp": datetime.now(timezone.utc) + timedelta(days=1)}
    token = jwt.encode(claims, auth_module.settings.auth_secret, algorithm="HS256")

    assert parse_session_token(token) is None


def test_token_without_expiry_parses_to_none() -> None:
    token = jwt.encode(
        {"userId": str(uuid.uuid4()), "shopId": str(uuid.uuid4())},
        auth_module.settings.auth_secret,
        algorithm="HS256",
    )

    assert parse_session_token(token) is None


def test_current_session_reads_cookie() -> None:
    user_id, shop_id = uuid.uuid4(), uuid.uuid4()
    request = fake_request({SESSION_COOKIE_NAME: issue_session_token(user_id, shop_id)})

    session = get_current_session(request)

    assert session.user_id == user_id
    assert session.shop_id == shop_id


def test_current_session_without_cookie_is_unauthorized() -> None:
    with pytest.raises(HTTPException) as exc_info:
        get_current_session(fake_request())

    assert exc_info.value.status_code == 401


def test_dev_identity_only_applies_in_development(monkeypatch: pytest.MonkeyPatch) -> None:
    user_id, shop_id = uuid.uuid4(), uuid.uuid4()
    dev_settings = auth_module.settings.model_copy(
        update={"environment": "development", "dev_user_id": user_id, "dev_shop_id": shop_id}
    )
    monkeypatch.setattr(auth_module, "settings", dev_settings)

    assert get_current_session(fake_request()) == AuthSession(user_id=user_id, shop_id=shop_id)

    test_settings = dev_settings.model_copy(update={"environment": "test"})
    monkeypatch.setattr(auth_module, "settings", test_settings)

    with pytest.raises(HTTPException):
        get_current_session(fake_request())
