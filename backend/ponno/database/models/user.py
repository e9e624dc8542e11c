"""
User model with marketplace role management.

Users are created by the identity-verification flow the first time a phone
number completes OTP verification; the row id equals the identity provider's
user id. The role is fixed at creation and no operation changes it.
"""

import enum
import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    Enum as SQLEnum,
    ForeignKey,
    Index,
    String,
    Text,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ponno.database.base import BaseModel
from ponno.database.models.district import District


class UserRole(str, enum.Enum):
    """Closed set of marketplace roles."""

    FARMER = "farmer"
    AGENT = "agent"
    CUSTOMER = "customer"
    ADMIN = "admin"


class User(BaseModel):
    """
    Marketplace participant.

    Attributes:
        id: Identity provider user id (UUID)
        name: Display name
        phone: Phone number used for OTP sign-in (unique)
        role: Marketplace role
        language: Preferred UI language
        image_url: Profile image in the object store
        nid: Optional national ID number
        district_id: Home district, nullable
        registration_date: When the account was registered
        is_active: Account active status
    """

    __tablename__ = "users"

    name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        comment="User display name",
    )

    phone: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        unique=True,
        comment="Phone number used for OTP sign-in",
    )

    role: Mapped[UserRole] = mapped_column(
        SQLEnum(
            UserRole,
            name="user_role",
            native_enum=False,
            length=20,
            values_callable=lambda roles: [role.value for role in roles],
        ),
        nullable=False,
        index=True,
        comment="Marketplace role",
    )

    language: Mapped[str] = mapped_column(
        String(10),
        nullable=False,
        default="bn",
        server_default="bn",
        comment="Preferred language",
    )

    image_url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    nid: Mapped[Optional[str]] = mapped_column(
        String(20),
        nullable=True,
        comment="National ID number",
    )

    district_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        ForeignKey("districts.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
        comment="Home district",
    )

    registration_date: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )

    is_active: Mapped[bool] = mapped_column(
        default=True,
        nullable=False,
        index=True,
        comment="Account active status",
    )

    district: Mapped[Optional[District]] = relationship(
        District,
        foreign_keys=[district_id],
        lazy="raise",
    )

    __table_args__ = (
        Index("ix_users_role_district_active", "role", "district_id", "is_active"),
        CheckConstraint(
            "role IN ('farmer', 'agent', 'customer', 'admin')",
            name="ck_users_role_valid",
        ),
        {"comment": "Marketplace users registered through phone OTP"},
    )

    def __repr__(self) -> str:
        return (
            f"<User(id={self.id}, phone='{self.phone}', "
            f"role={self.role.value}, is_active={self.is_active})>"
        )

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN

    def has_role(self, *roles: UserRole) -> bool:
        """Check whether the user holds any of the given roles."""
        return self.role in roles
