"""Pydantic schemas for the author registry."""

from typing import Optional

from pydantic import BaseModel, Field


class AuthorCreate(BaseModel):
    """Schema for registering an author."""

    name: str = Field(..., min_length=1, max_length=500)
    biography: Optional[str] = None
    birth_year: Optional[int] = Field(None, ge=0, le=3000)


class AuthorResponse(BaseModel):
    """Schema for author responses."""

    id: str
    name: str
    biography: Optional[str] = None
    birth_year: Optional[int] = None
    copies: int = 0
    readers: int = 0
