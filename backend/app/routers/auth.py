"""Registration, login and current-user endpoints."""
from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, status
from fastapi.security import OAuth2PasswordRequestForm

from ..deps import get_current_principal, get_user_service
from ..models import RegisterRequest, Token, UserPublic
from ..services.access import Principal
from ..services.users import UserService

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/register", response_model=UserPublic, status_code=status.HTTP_201_CREATED)
async def register(payload: RegisterRequest, users: UserService = Depends(get_user_service)) -> UserPublic:
    """Create a regular user account. The role is always ``user``."""
    user = users.register(
        username=payload.username,
        password=payload.password,
        name=payload.name,
        email=payload.email,
        phone=payload.phone,
        address=payload.address,
    )
    return UserPublic.from_user(user)


@router.post("/login", response_model=Token)
async def login(
    form: Annotated[OAuth2PasswordRequestForm, Depends()],
    users: UserService = Depends(get_user_service),
) -> Token:
    user = users.authenticate(form.username, form.password)
    return Token(access_token=users.create_access_token(user))


@router.get("/me", response_model=UserPublic)
async def me(
    principal: Principal = Depends(get_current_principal),
    users: UserService = Depends(get_user_service),
) -> UserPublic:
    return UserPublic.from_user(users.get(principal.id))
