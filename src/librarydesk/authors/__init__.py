"""Author registry.

Copies can link to a registered author; adding such a copy notifies
members who have read that author before.
"""

from .manager import AuthorManager
from .models import Author
from .schemas import AuthorCreate, AuthorResponse

__all__ = [
    "AuthorManager",
    "Author",
    "AuthorCreate",
    "AuthorResponse",
]
