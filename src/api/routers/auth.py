"""Registration, login, logout and session probe endpoints."""
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import get_async_session, get_current_user_id, get_settings
from core.config import Settings
from schemas.auth import LoginRequest, LoginResponse, RegisterRequest, UserResponse
from schemas.common import ApiResponse
from services import auth_service

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/register", response_model=ApiResponse[UserResponse], status_code=201)
async def register(
    data: RegisterRequest,
    db: AsyncSession = Depends(get_async_session),
) -> ApiResponse[UserResponse]:
    """
    Create an account.

    Returns 400 if the email is already registered.
    """
    user = await auth_service.register_user(db, data)
    return ApiResponse(
        message="User registered successfully",
        data=UserResponse.model_validate(user),
    )


@router.post("/login", response_model=ApiResponse[LoginResponse])
async def login(
    data: LoginRequest,
    db: AsyncSession = Depends(get_async_session),
    settings: Settings = Depends(get_settings),
) -> ApiResponse[LoginResponse]:
    """
    Exchange email and password for a bearer token valid for seven days.

    Returns 401 for an unknown email or a wrong password.
    """
    user, token = await auth_service.authenticate(db, data, settings)
    return ApiResponse(
        message="Login successful",
        data=LoginResponse(token=token, user=UserResponse.model_validate(user)),
    )


@router.post("/logout", response_model=ApiResponse[None])
async def logout() -> ApiResponse[None]:
    """
    Log out.

    Tokens are stateless, so this only acknowledges the request; the client
    discards its token.
    """
    return ApiResponse(message="Logout successful")


@router.get("/me", response_model=ApiResponse[UserResponse])
async def get_me(
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_async_session),
) -> ApiResponse[UserResponse]:
    """Return the user behind the bearer token."""
    user = await auth_service.get_user(db, user_id)
    return ApiResponse(data=UserResponse.model_validate(user))
