"""Pydantic schemas for partnership endpoints."""

from __future__ import annotations

from datetime import date, datetime
from typing import Literal

from pydantic import BaseModel, Field

PartnershipStatus = Literal["Pending", "Active", "Rejected", "Expired"]


class CreatePartnershipRequest(BaseModel):
    partner_institution: str = Field(..., min_length=1, max_length=200)
    potential_start_date: date | None = None
    duration_years: int | None = Field(None, ge=1, le=50)
    description: str | None = Field(None, max_length=5000)
    status: PartnershipStatus = "Pending"


class UpdatePartnershipRequest(BaseModel):
    """Fields left out are not changed."""

    partner_institution: str | None = Field(None, min_length=1, max_length=200)
    potential_start_date: date | None = None
    duration_years: int | None = Field(None, ge=1, le=50)
    description: str | None = Field(None, max_length=5000)
    status: PartnershipStatus | None = None


class PartnershipResponse(BaseModel):
    id: int
    partner_institution: str
    status: str
    campus_id: str
    potential_start_date: date | None = None
    duration_years: int | None = None
    description: str | None = None
    created_by: int | None = None
    created_at: datetime | None = None
