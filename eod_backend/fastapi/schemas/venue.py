"""
Pydantic schemas for venues.
"""

from datetime import datetime
from typing import List, Optional
from uuid import UUID
from pydantic import BaseModel, Field, ConfigDict


class VenueBase(BaseModel):
    name: str = Field(
        ...,
        min_length=1,
        max_length=100,
        description="Venue name",
        examples=["Sushi Old Town"]
    )


class VenueCreate(VenueBase):
    """Schema for creating a venue."""

    is_active: bool = Field(default=True, description="Whether the venue accepts reports")


class VenueUpdate(BaseModel):
    """Schema for updating a venue."""

    name: Optional[str] = Field(None, min_length=1, max_length=100, description="New name (optional)")
    is_active: Optional[bool] = Field(None, description="New active status (optional)")


class VenueRead(VenueBase):
    id: UUID
    slug: str
    is_active: bool
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class VenueListResponse(BaseModel):
    venues: List[VenueRead]
    total_count: int
