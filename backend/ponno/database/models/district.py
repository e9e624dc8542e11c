"""
District model for administrative service areas.

Districts scope product listings and agent eligibility. A district referenced
by any user or product cannot be deleted.
"""

from sqlalchemy import CheckConstraint, String
from sqlalchemy.orm import Mapped, mapped_column

from ponno.database.base import BaseModel


class District(BaseModel):
    """
    Administrative service area.

    Attributes:
        id: Unique district identifier (UUID)
        name: District name (unique)
    """

    __tablename__ = "districts"

    name: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
        unique=True,
        comment="District name",
    )

    __table_args__ = (
        CheckConstraint(
            "length(name) >= 2",
            name="ck_districts_name_min_length",
        ),
        {"comment": "Administrative districts scoping products and agents"},
    )

    def __repr__(self) -> str:
        return f"<District(id={self.id}, name='{self.name}')>"
