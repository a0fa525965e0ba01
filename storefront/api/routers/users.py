from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends, Request, status

from storefront.api.deps import get_current_user, get_metrics, get_tokens, get_users
from storefront.core.logging import get_logger, security_alert
from storefront.core.metrics import Metrics
from storefront.core.security import TokenService
from storefront.models.user import User
from storefront.schemas.user import LoginRequest, SignupResponse, Token, UserCreate, UserRead
from storefront.services.exceptions import InvalidCredentialsError
from storefront.services.user_service import UserAccounts

router = APIRouter(prefix="/users", tags=["users"])

auth_logger = get_logger("storefront.auth")


def _client_ip(request: Request | None) -> str | None:
    if request is None:
        return None
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    client = request.client
    return client.host if client else None


@router.post("", response_model=SignupResponse, status_code=status.HTTP_201_CREATED)
async def signup(data: UserCreate, users: UserAccounts = Depends(get_users)):
    user = await users.signup(data.username, data.password)
    return SignupResponse(user_id=user.id, username=user.username)


@router.post("/login", response_model=Token)
async def login(
    request: Request,
    data: LoginRequest,
    users: UserAccounts = Depends(get_users),
    tokens: TokenService = Depends(get_tokens),
    metrics: Metrics = Depends(get_metrics),
):
    try:
        user = await users.authenticate(data.username, data.password)
    except InvalidCredentialsError:
        metrics.record_login_attempt("failure")
        security_alert("Failed login attempt", username=data.username, client_ip=_client_ip(request))
        raise

    metrics.record_login_attempt("success")
    auth_logger.info(
        "User authenticated",
        extra={"user_id": user.id, "username": user.username, "client_ip": _client_ip(request)},
    )
    return Token(
        token=tokens.create_access_token(user.id),
        user_id=user.id,
        expires_in=tokens.expire_minutes * 60,
    )


@router.get("/me", response_model=UserRead)
async def read_me(current_user: User = Depends(get_current_user)):
    return current_user


@router.get("", response_model=List[UserRead])
async def list_users(
    users: UserAccounts = Depends(get_users),
    current_user: User = Depends(get_current_user),
):
    return await users.list_users()
