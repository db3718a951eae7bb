"""Pydantic schemas for member accounts."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class MemberBase(BaseModel):
    """Base member fields."""

    name: str = Field(..., min_length=1, max_length=200)
    email: Optional[str] = Field(None, max_length=200)
    phone: Optional[str] = Field(None, max_length=50)


class MemberCreate(MemberBase):
    """Schema for registering a member.

    ``id`` is generated when omitted.
    """

    id: Optional[str] = Field(None, min_length=1, max_length=36)


class MemberUpdate(BaseModel):
    """Schema for updating a member's contact details."""

    name: Optional[str] = Field(None, min_length=1, max_length=200)
    email: Optional[str] = Field(None, max_length=200)
    phone: Optional[str] = Field(None, max_length=50)


class MemberResponse(MemberBase):
    """Schema for member responses."""

    id: str
    fine_balance: int
    registered_at: datetime

    model_config = {"from_attributes": True}


class HistoryEntryResponse(BaseModel):
    """A copy in a member's read history."""

    copy_isbn: str
    title: str
    author: str
    added_at: datetime
    last_returned_at: datetime
    times_returned: int

    model_config = {"from_attributes": True}
