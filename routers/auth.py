from typing import Annotated, Optional

from fastapi import APIRouter, Cookie, Depends, Header, HTTPException, Response

import config
from db import SessionDep
from models import Admin, User
from schemas import ApiResponse, LoginData, UserCreate, UserRead
from security import (
    ANONYMOUS,
    ROLE_ADMIN,
    ROLE_USER,
    Principal,
    create_session_token,
    verify_session_token,
)
from services.accounts import AccountService

router = APIRouter(tags=["auth"])

SESSION_COOKIE = "session"


def _extract_token(authorization: Optional[str], session_token: Optional[str]) -> Optional[str]:
    if authorization:
        scheme, _, token = authorization.partition(" ")
        if scheme.lower() == "bearer" and token:
            return token.strip()
        raise HTTPException(status_code=401, detail="Authorization header must be 'Bearer <token>'")
    return session_token


def get_optional_principal(
    session: SessionDep,
    authorization: Optional[str] = Header(default=None),
    session_token: Optional[str] = Cookie(default=None, alias=SESSION_COOKIE),
) -> Principal:
    """
    Reads the bearer token (or the 'session' cookie), verifies it and looks
    up the account. Returns ANONYMOUS when no token was sent at all.
    Raises 401 if a token was sent but is invalid or its account is gone.
    """
    token = _extract_token(authorization, session_token)
    if token is None:
        return ANONYMOUS

    data = verify_session_token(token)
    if not data:
        raise HTTPException(status_code=401, detail="Invalid or expired session")

    model = {ROLE_USER: User, ROLE_ADMIN: Admin}.get(data["role"])
    account = session.get(model, data["user_id"]) if model is not None else None
    if account is None:
        raise HTTPException(status_code=401, detail="Account not found for this session")

    return Principal(role=data["role"], id=account.id, email=account.email)


OptionalPrincipalDep = Annotated[Principal, Depends(get_optional_principal)]


def require_auth(principal: OptionalPrincipalDep) -> Principal:
    if principal.is_anonymous:
        raise HTTPException(status_code=401, detail="Not logged in")
    return principal


CurrentPrincipalDep = Annotated[Principal, Depends(require_auth)]


def get_current_user(session: SessionDep, principal: CurrentPrincipalDep) -> User:
    if not principal.is_user:
        raise HTTPException(status_code=403, detail="Only registered donors can do this")
    return session.get(User, principal.id)


CurrentUserDep = Annotated[User, Depends(get_current_user)]


def get_current_admin(session: SessionDep, principal: CurrentPrincipalDep) -> Admin:
    if not principal.is_admin:
        raise HTTPException(status_code=403, detail="Admin access required")
    return session.get(Admin, principal.id)


CurrentAdminDep = Annotated[Admin, Depends(get_current_admin)]


def set_session_cookie(response: Response, token: str) -> None:
    response.set_cookie(
        key=SESSION_COOKIE,
        value=token,
        httponly=True,
        secure=False,
        samesite="lax",
        max_age=config.TOKEN_MAX_AGE_SECONDS,
    )


@router.post("/register", response_model=ApiResponse, status_code=201)
def register(user_in: UserCreate, session: SessionDep):
    """
    Register a new donor account with a hashed password.
    """
    user = AccountService(session).register_user(user_in)
    return ApiResponse(
        status_code=201,
        message="User created successfully",
        data=UserRead.model_validate(user),
    )


@router.post("/login", response_model=ApiResponse)
def login(payload: LoginData, session: SessionDep, response: Response):
    """
    Log in with email + password. The token is returned in the body for
    bearer use and also set as the signed 'session' cookie.
    """
    user = AccountService(session).authenticate_user(payload)
    token = create_session_token(user.id, ROLE_USER)
    set_session_cookie(response, token)
    return ApiResponse(
        status_code=200,
        message="User logged in successfully",
        data={
            "access_token": token,
            "token_type": "bearer",
            "user": UserRead.model_validate(user),
        },
    )


@router.post("/logout", response_model=ApiResponse)
def logout(response: Response):
    """
    Clear the session cookie. Bearer tokens simply expire.
    """
    response.delete_cookie(SESSION_COOKIE)
    return ApiResponse(status_code=200, message="User logged out successfully")
