"""
User Models

Accounts for administrators, teachers and students.
"""

from enum import Enum

from sqlalchemy import Boolean, String, Text
from sqlalchemy.dialects.postgresql import ENUM
from sqlalchemy.orm import Mapped, mapped_column

from app.modules.shared import BaseModel, SoftDeleteMixin, enum_values


class UserRole(str, Enum):
    """User roles in the system."""

    ADMIN = "admin"
    TEACHER = "teacher"
    STUDENT = "student"


# Roles that own their own documents and requests
OWNER_ROLES = frozenset({UserRole.STUDENT, UserRole.TEACHER})


class User(SoftDeleteMixin, BaseModel):
    """
    User model for authentication and authorization.

    Students and teachers own requests and documents; administrators
    review them. Login is by `login` (usually the enrollment number).
    """

    __tablename__ = "users"

    name: Mapped[str] = mapped_column(String(150), nullable=False)
    email: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        index=True,
        nullable=False,
    )
    login: Mapped[str] = mapped_column(
        String(100),
        unique=True,
        index=True,
        nullable=False,
    )
    # Digits only, validated with validate_cpf before insert
    cpf: Mapped[str | None] = mapped_column(
        String(11),
        unique=True,
        nullable=True,
    )
    password_hash: Mapped[str] = mapped_column(Text, nullable=False)

    role: Mapped[UserRole] = mapped_column(
        ENUM(UserRole, name="user_role", create_type=True, values_callable=enum_values),
        nullable=False,
        default=UserRole.STUDENT,
    )

    is_active: Mapped[bool] = mapped_column(
        Boolean,
        default=True,
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<User(id={self.id}, login={self.login}, role={self.role.value})>"
