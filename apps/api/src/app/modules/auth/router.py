"""Authentication router."""

import logging

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.auth import CurrentUser, get_current_user
from app.core.database import get_db
from app.core.errors import AuthenticationError, AuthorizationError, NotFoundError
from app.core.rate_limit import enforce_rate_limit
from app.core.security import create_access_token, create_refresh_token, verify_password
from app.modules.auth.schemas import LoginRequest, LoginResponse, UserResponse
from app.modules.shared.schemas import ApiResponse
from app.modules.users.repository import UserRepository

logger = logging.getLogger(__name__)

router = APIRouter()

RATE_LIMIT_LOGIN = (10, 60)  # 10 attempts per minute per client


def _invalid_credentials() -> AuthenticationError:
    return AuthenticationError("Invalid login or password.", error_code="INVALID_CREDENTIALS")


@router.post("/login", response_model=ApiResponse[LoginResponse])
async def login(
    credentials: LoginRequest,
    request: Request,
    db: AsyncSession = Depends(get_db),
) -> ApiResponse[LoginResponse]:
    """
    Authenticate a user and return JWT tokens.

    Raises:
        AuthenticationError 401: Unknown login or wrong password
        AuthorizationError 403: Account inactive
    """
    client_ip = request.client.host if request.client else "unknown"
    await enforce_rate_limit(f"auth:login:{client_ip}", *RATE_LIMIT_LOGIN)

    user = await UserRepository.get_by_login(db, credentials.login)

    if not user:
        logger.warning(f"Login attempt for non-existent login: {credentials.login}")
        raise _invalid_credentials()

    if not verify_password(credentials.password, user.password_hash):
        logger.warning(f"Invalid password for login: {credentials.login}")
        raise _invalid_credentials()

    if not user.is_active:
        logger.warning(f"Login attempt for inactive account: {credentials.login}")
        raise AuthorizationError("Your account has been deactivated.", error_code="ACCOUNT_INACTIVE")

    access_token = create_access_token(
        subject=str(user.id),
        additional_claims={
            "email": user.email,
            "role": user.role.value,
            "name": user.name,
        },
    )
    refresh_token = create_refresh_token(subject=str(user.id))

    logger.info(f"User logged in: {user.login} (role: {user.role.value})")

    return ApiResponse(
        data=LoginResponse(
            access_token=access_token,
            refresh_token=refresh_token,
            user=UserResponse(
                id=user.id,
                name=user.name,
                email=user.email,
                login=user.login,
                role=user.role,
                is_active=user.is_active,
                created_at=user.created_at,
            ),
        ),
        message="Login successful.",
    )


@router.get("/me", response_model=ApiResponse[UserResponse])
async def me(
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> ApiResponse[UserResponse]:
    """Profile of the authenticated caller."""
    record = await UserRepository.get_by_id(db, user.id)
    if record is None:
        raise NotFoundError("User not found.", error_code="USER_NOT_FOUND")
    return ApiResponse(data=UserResponse.model_validate(record))
