"""
Auth endpoints: register, login, logout, current user.
"""

from fastapi import APIRouter, Depends, Response
from fastapi.security import HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession

from orderdesk.core.security import get_current_user, security
from orderdesk.database import get_db
from orderdesk.models import User
from orderdesk.schemas import (
    ErrorResponse,
    LoginRequest,
    RegisterRequest,
    TokenResponse,
    UserResponse,
)
from orderdesk.services.auth import AuthService

router = APIRouter(prefix="/api/auth", tags=["Auth"])


@router.post(
    "/register",
    response_model=UserResponse,
    status_code=201,
    responses={400: {"model": ErrorResponse}, 403: {"model": ErrorResponse}},
)
async def register(data: RegisterRequest, db: AsyncSession = Depends(get_db)) -> UserResponse:
    user = await AuthService(db).register(data)
    return UserResponse.model_validate(user)


@router.post(
    "/login",
    response_model=TokenResponse,
    responses={401: {"model": ErrorResponse}},
)
async def login(data: LoginRequest, db: AsyncSession = Depends(get_db)) -> TokenResponse:
    token, user = await AuthService(db).login(data)
    return TokenResponse(token=token, user=UserResponse.model_validate(user))


@router.get("/me", response_model=UserResponse, responses={401: {"model": ErrorResponse}})
async def me(current_user: User = Depends(get_current_user)) -> UserResponse:
    return UserResponse.model_validate(current_user)


@router.post("/logout", status_code=204, responses={401: {"model": ErrorResponse}})
async def logout(
    current_user: User = Depends(get_current_user),
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: AsyncSession = Depends(get_db),
) -> Response:
    await AuthService(db).logout(credentials.credentials)
    return Response(status_code=204)
