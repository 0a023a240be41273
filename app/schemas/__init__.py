from .book import BookCreate, BookProfile
from .common import ConflictResponse, ErrorResponse, ValidationErrorResponse

__all__ = [
    "BookCreate",
    "BookProfile",
    "ConflictResponse",
    "ErrorResponse",
    "ValidationErrorResponse",
]
