"""
Users module - Accounts and roles.
"""

from app.modules.users.models import OWNER_ROLES, User, UserRole
from app.modules.users.repository import UserRepository

__all__ = ["User", "UserRole", "OWNER_ROLES", "UserRepository"]
