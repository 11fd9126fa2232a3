"""Company API schemas."""

from datetime import datetime
from typing import Optional
from pydantic import Field, field_validator

from api.schemas.common import CamelModel, TimestampMixin
from core.utils.validators import validate_founded_year, validate_url
from database.models.companies import CompanySize


class Headquarters(CamelModel):
    address: Optional[str] = Field(None, max_length=255)
    city: Optional[str] = Field(None, max_length=100)
    state: Optional[str] = Field(None, max_length=100)
    country: Optional[str] = Field(None, max_length=100)
    zip_code: Optional[str] = Field(None, max_length=20)


class LogoReference(CamelModel):
    """Metadata of an uploaded logo; the file itself is stored elsewhere."""

    filename: str = Field(..., min_length=1, max_length=255)
    url: str = Field(..., min_length=1, max_length=500)
    uploaded_at: Optional[datetime] = None


class _CompanyFields(CamelModel):
    description: Optional[str] = Field(None, max_length=2000)
    website: Optional[str] = Field(None, max_length=500)
    industry: Optional[str] = Field(None, max_length=100)
    size: Optional[CompanySize] = None
    founded: Optional[int] = None
    headquarters: Optional[Headquarters] = None

    @field_validator("website")
    @classmethod
    def check_website(cls, v: Optional[str]) -> Optional[str]:
        if not v:
            return None
        is_valid, error = validate_url(v.strip())
        if not is_valid:
            raise ValueError(error)
        return v.strip()

    @field_validator("founded")
    @classmethod
    def check_founded(cls, v: Optional[int]) -> Optional[int]:
        if v is None:
            return v
        is_valid, error = validate_founded_year(v)
        if not is_valid:
            raise ValueError(error)
        return v


class CompanyCreateRequest(_CompanyFields):
    """Schema for creating the caller's company profile."""

    name: str = Field(..., min_length=2, max_length=100)

    @field_validator("name", mode="before")
    @classmethod
    def strip_name(cls, v: str) -> str:
        if isinstance(v, str):
            return v.strip()
        return v


class CompanyUpdateRequest(_CompanyFields):
    """Partial update; omitted fields are left untouched."""

    name: Optional[str] = Field(None, min_length=2, max_length=100)


class CompanyVerifyRequest(CamelModel):
    verified: bool = True


class CompanyStatusRequest(CamelModel):
    is_active: bool


class CompanySummary(CamelModel):
    """Company fields embedded in job listings."""

    id: int
    name: str
    industry: Optional[str] = None
    size: Optional[CompanySize] = None
    logo: Optional[dict] = None
    verified: bool = False


class CompanyResponse(TimestampMixin):
    id: int
    owner_id: int
    name: str
    description: Optional[str] = None
    website: Optional[str] = None
    industry: Optional[str] = None
    size: Optional[CompanySize] = None
    founded: Optional[int] = None
    headquarters: Optional[dict] = None
    logo: Optional[dict] = None
    verified: bool
    is_active: bool
