"""
Pydantic schemas for User model validation and serialization.

This module defines the data validation schemas for user-related
API operations including sign-up, login, creation, updates and responses.
"""

from datetime import datetime
from typing import List, Literal, Optional
from uuid import UUID
from pydantic import BaseModel, EmailStr, Field, field_validator

from eod_backend.fastapi.core.utils import normalize_email

RoleName = Literal["staff", "admin", "owner"]


class UserBase(BaseModel):
    """Base User schema with common fields."""

    email: EmailStr = Field(
        ...,
        description="Login email address",
        examples=["anna@example.com"]
    )

    display_name: Optional[str] = Field(
        None,
        max_length=100,
        description="Name shown on reports and in emails",
        examples=["Anna Kowalska"]
    )

    @field_validator('email', mode='before')
    @classmethod
    def lowercase_email(cls, v):
        """Emails are stored lowercase."""
        return normalize_email(v) if isinstance(v, str) else v

    @field_validator('display_name', mode='before')
    @classmethod
    def empty_string_to_none(cls, v):
        if isinstance(v, str) and not v.strip():
            return None
        return v


class UserSignup(UserBase):
    """Public self sign-up; the account stays pending until approved."""

    password: str = Field(
        ...,
        min_length=8,
        max_length=100,
        description="Password (minimum 8 characters)",
        examples=["SecureStaffPass123!"]
    )


class UserCreate(UserSignup):
    """Schema for an admin creating an account directly."""

    role: RoleName = Field(default="staff", description="Account role")
    approved: bool = Field(default=True, description="Whether the account is approved at once")
    is_active: bool = Field(default=True, description="Whether the account is active")
    venue_ids: List[UUID] = Field(default_factory=list, description="Venues the user may access")


class UserUpdate(BaseModel):
    """Schema for updating user information."""

    email: Optional[EmailStr] = Field(None, description="New email (optional)")
    display_name: Optional[str] = Field(None, max_length=100, description="New display name (optional)")
    password: Optional[str] = Field(None, min_length=8, max_length=100, description="New password (optional)")
    role: Optional[RoleName] = Field(None, description="New role (optional)")
    is_active: Optional[bool] = Field(None, description="New active status (optional)")
    venue_ids: Optional[List[UUID]] = Field(None, description="Replacement venue access list (optional)")

    @field_validator('email', mode='before')
    @classmethod
    def lowercase_email(cls, v):
        return normalize_email(v) if isinstance(v, str) else v


class UserApproval(BaseModel):
    """Approve or revoke a sign-up."""

    approved: bool = Field(..., description="True approves the account, False revokes approval")


class UserRead(BaseModel):
    """Schema for reading user information (excludes sensitive data)."""

    id: UUID = Field(..., description="User unique identifier")
    email: str = Field(..., description="Login email")
    display_name: Optional[str] = Field(None, description="Display name")
    role: str = Field(..., description="Account role")
    approved: bool = Field(..., description="Whether the account is approved")
    approved_by: Optional[UUID] = Field(None, description="Admin who approved the account")
    approved_at: Optional[datetime] = Field(None, description="When the account was approved")
    is_active: bool = Field(..., description="Whether the account is active")
    venue_ids: List[UUID] = Field(default_factory=list, description="Venues the user may access")
    created_at: datetime = Field(..., description="Account creation timestamp")
    updated_at: datetime = Field(..., description="Last update timestamp")

    class Config:
        """Pydantic configuration."""
        from_attributes = True


class UserLogin(BaseModel):
    """Schema for login requests."""

    email: str = Field(..., min_length=3, description="Login email", examples=["anna@example.com"])
    password: str = Field(..., min_length=1, description="Password")


class UserToken(BaseModel):
    """JWT token schema."""

    access_token: str = Field(..., description="JWT access token")
    token_type: str = Field(default="bearer", description="Token type")


class UserTokenResponse(UserToken):
    """Token response with expiration and user info."""

    expires_in: int = Field(..., description="Token expiration time in seconds")
    user: UserRead = Field(..., description="User account information")


class UserSignupResponse(BaseModel):
    message: str
    user: UserRead


class PasswordResetRequest(BaseModel):
    email: str = Field(..., min_length=3, description="Account email")


class PasswordResetConfirm(BaseModel):
    """New password together with the emailed reset token."""

    token: str = Field(..., min_length=1, description="Reset token from the email link")
    new_password: str = Field(
        ...,
        min_length=8,
        max_length=100,
        description="New password (minimum 8 characters)"
    )


class MessageResponse(BaseModel):
    message: str


class UserListResponse(BaseModel):
    """Schema for listing users."""

    users: List[UserRead] = Field(..., description="List of users")
    total_count: int = Field(..., description="Number of users matching the filters")


class UserDeleteResponse(BaseModel):
    message: str
    reports_transferred: int = Field(..., description="Reports handed over to the fallback admin")
    transferred_to: Optional[UUID] = Field(None, description="Admin who received the reports")
