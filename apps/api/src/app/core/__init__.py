"""
Core module - Configuration, database, security, errors and scheduling.
"""

from app.core.config import get_settings, settings
from app.core.database import Base, close_db, get_db, init_db
from app.core.errors import (
    AppError,
    AuthorizationError,
    ConflictError,
    InternalError,
    NotFoundError,
    ValidationError,
)
from app.core.redis import close_redis, get_redis, init_redis
from app.core.security import (
    create_access_token,
    create_refresh_token,
    decode_token,
    hash_password,
    verify_password,
)

__all__ = [
    # Config
    "settings",
    "get_settings",
    # Database
    "Base",
    "get_db",
    "init_db",
    "close_db",
    # Errors
    "AppError",
    "ValidationError",
    "AuthorizationError",
    "NotFoundError",
    "ConflictError",
    "InternalError",
    # Redis
    "get_redis",
    "init_redis",
    "close_redis",
    # Security
    "hash_password",
    "verify_password",
    "create_access_token",
    "create_refresh_token",
    "decode_token",
]
