"""Pydantic schemas for the copy catalog."""

from typing import Optional

from pydantic import BaseModel, Field, field_validator, model_validator


class CopyCreate(BaseModel):
    """Schema for adding a copy to the catalog.

    Give the author by name, by registered ``author_id``, or both. A
    name that matches a registered author links the copy to it.
    """

    isbn: str = Field(..., min_length=1, max_length=20)
    title: str = Field(..., min_length=1, max_length=500)
    author: Optional[str] = Field(None, min_length=1, max_length=500)
    author_id: Optional[str] = None

    @field_validator("isbn")
    @classmethod
    def strip_isbn(cls, v: str) -> str:
        """Normalize ISBN by removing hyphens and spaces."""
        cleaned = v.replace("-", "").replace(" ", "")
        if not cleaned:
            raise ValueError("isbn must not be blank")
        return cleaned

    @model_validator(mode="after")
    def require_author(self) -> "CopyCreate":
        if not self.author and not self.author_id:
            raise ValueError("author or author_id is required")
        return self


class CopyResponse(BaseModel):
    """Schema for copy responses, with circulation state."""

    isbn: str
    title: str
    author: str
    author_id: Optional[str] = None
    holder: Optional[str] = None
    queue_length: int = 0

    @property
    def available(self) -> bool:
        return self.holder is None
