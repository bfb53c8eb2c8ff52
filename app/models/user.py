"""ORM model for application users (credentials, lockout state, RBAC)."""

import enum

from sqlalchemy import Boolean, Column, DateTime, Enum, Integer, String, func

from app.models.base import Base


class Role(str, enum.Enum):
    """Closed set of roles a user (and therefore a token) may carry."""

    USER = "user"
    ADMIN = "admin"


class User(Base):
    """
    User account for JWT authentication and role-based access control.

    email is stored trimmed and lowercased; the unique index on it is the
    authoritative duplicate guard. locked only ever goes from False to True
    through the API; unlocking is an operator action.
    """

    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    email = Column(String(255), nullable=False, unique=True, index=True)
    password_hash = Column(String(255), nullable=False)
    name = Column(String(255), nullable=False)
    role = Column(
        Enum(
            Role,
            name="user_role",
            native_enum=False,
            length=32,
            values_callable=lambda roles: [r.value for r in roles],
        ),
        nullable=False,
        default=Role.USER,
    )
    login_attempts = Column(Integer, nullable=False, default=0)
    locked = Column(Boolean, nullable=False, default=False)
    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )
