"""Catalog lookup for copies and members.

Enforces uniqueness of ISBNs and member ids; the circulation
manager resolves both through it.
"""

from .manager import CatalogManager
from .models import Copy
from .schemas import CopyCreate, CopyResponse

__all__ = [
    "CatalogManager",
    "Copy",
    "CopyCreate",
    "CopyResponse",
]
