import logging
from typing import Optional
from urllib.parse import quote

from fastapi import APIRouter, Depends, HTTPException, Response, status
from fastapi.responses import JSONResponse, RedirectResponse
from sqlalchemy.ext.asyncio import AsyncSession

from .accounts import (
    AccountAlreadyExistsError,
    EmailAlreadyExistsError,
    create_password_account,
    resolve_or_create_from_oauth_profile,
    verify_password,
)
from .auth import clear_session_cookie, issue_session_token, set_session_cookie
from .db import get_db
from .google_oauth import GoogleOAuthClient, decode_state, encode_state
from .schemas import (
    AuthUrlResponse,
    LoginRequest,
    MessageResponse,
    ShopSummary,
    SignupRequest,
    SignupResponse,
    UserSummary,
)
from .settings import settings


logger = logging.getLogger("obdscribe")

router = APIRouter(prefix="/auth", tags=["auth"])


def get_google_oauth_client() -> GoogleOAuthClient:
    return GoogleOAuthClient(
        client_id=settings.google_client_id,
        client_secret=settings.google_client_secret,
        redirect_uri=settings.oauth_redirect_uri,
    )


def _login_error_redirect(code: str) -> RedirectResponse:
    return RedirectResponse(
        f"{settings.app_base_url}/login?googleError={quote(code, safe='')}",
        status_code=status.HTTP_302_FOUND,
    )


@router.post("/signup", response_model=SignupResponse, status_code=status.HTTP_201_CREATED)
async def signup(
    payload: SignupRequest,
    db: AsyncSession = Depends(get_db),
) -> SignupResponse:
    """Create a password account together with a new shop it owns."""
    try:
        user, shop = await create_password_account(
            db,
            email=payload.email,
            password=payload.password,
            display_name=payload.display_name,
            shop_name=payload.shop_name,
        )
    except AccountAlreadyExistsError as exc:
        raise HTTPException(
            status_code=409, detail="An account with this email already exists."
        ) from exc
    return SignupResponse(
        user=UserSummary.model_validate(user),
        shop=ShopSummary.model_validate(shop),
    )


@router.post("/login", response_model=MessageResponse)
async def login(
    payload: LoginRequest,
    response: Response,
    db: AsyncSession = Depends(get_db),
) -> MessageResponse:
    user = await verify_password(db, payload.email, payload.password)
    if user is None:
        raise HTTPException(status_code=401, detail="Invalid email or password")
    set_session_cookie(response, issue_session_token(user.id, user.shop_id))
    return MessageResponse(message="ok")


@router.post("/logout", response_model=MessageResponse)
async def logout(response: Response) -> MessageResponse:
    clear_session_cookie(response)
    return MessageResponse(message="ok")


@router.post("/google/start", response_model=AuthUrlResponse)
async def google_start(
    redirect: Optional[str] = None,
    oauth_client: GoogleOAuthClient = Depends(get_google_oauth_client),
) -> AuthUrlResponse:
    """Return the Google consent URL; ``redirect`` is where to land after login."""
    state = encode_state(redirect, settings.auth_secret)
    return AuthUrlResponse(url=oauth_client.build_authorization_url(state, redirect_hint=redirect))


@router.get("/google/callback")
async def google_callback(
    code: Optional[str] = None,
    state: Optional[str] = None,
    error: Optional[str] = None,
    db: AsyncSession = Depends(get_db),
    oauth_client: GoogleOAuthClient = Depends(get_google_oauth_client),
) -> RedirectResponse:
    """Finish the Google flow, set the session cookie and redirect into the app.

    Every failure redirects to the login page with a short ``googleError``
    code instead of surfacing the provider's error text.
    """
    if error:
        return _login_error_redirect(error)
    if not code or not state:
        return _login_error_redirect("missing_code_or_state")

    redirect_path = decode_state(state, settings.auth_secret)
    if redirect_path is None:
        return _login_error_redirect("invalid_state")

    try:
        tokens = await oauth_client.exchange_code(code)
        profile = await oauth_client.fetch_profile(tokens["access_token"])
        user, shop, created = await resolve_or_create_from_oauth_profile(db, profile)
    except EmailAlreadyExistsError:
        logger.warning("Google login refused: email already registered to another account")
        return _login_error_redirect("email_already_exists")
    except Exception as exc:
        logger.exception("Google OAuth callback failed: %s", exc)
        return _login_error_redirect("callback_failed")

    if created:
        logger.info("Signed up user %s through Google", user.id)
    response = RedirectResponse(
        f"{settings.app_base_url}{redirect_path}", status_code=status.HTTP_302_FOUND
    )
    set_session_cookie(response, issue_session_token(user.id, shop.id))
    return response


@router.post("/apple", status_code=status.HTTP_501_NOT_IMPLEMENTED)
async def apple_login() -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_501_NOT_IMPLEMENTED,
        content={"detail": "Apple signup/login not implemented yet"},
    )
