"""
Company Models

An employer's company profile. Each employer owns at most one company;
jobs cannot outlive the company they belong to.
"""

from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import (
    String,
    Boolean,
    ForeignKey,
    DateTime,
    Integer,
    Text,
    JSON,
)
from database.engine import Base
from core.utils.datetime import now
from datetime import datetime
from enum import Enum as PyEnum
from typing import Any


# ==================== Company Enums ===================== #
class CompanySize(str, PyEnum):
    XS = "1-10"
    S = "11-50"
    M = "51-200"
    L = "201-500"
    XL = "501-1000"
    XXL = "1000+"


class Company(Base):
    """Company profile owned by a single employer."""

    __tablename__: str = "companies"
    id: Mapped[int] = mapped_column(primary_key=True, nullable=False, autoincrement=True)
    owner_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        unique=True,
        nullable=False,
        index=True,
    )
    name: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    website: Mapped[str | None] = mapped_column(String(500), nullable=True)
    industry: Mapped[str | None] = mapped_column(String(100), nullable=True, index=True)
    size: Mapped[CompanySize | None] = mapped_column(String(20), nullable=True)
    founded: Mapped[int | None] = mapped_column(Integer, nullable=True)
    headquarters: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)

    # Metadata only, the file itself lives in external storage
    logo: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)

    verified: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=now, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=now, onupdate=now, nullable=False
    )
