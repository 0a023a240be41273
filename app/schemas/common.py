from pydantic import BaseModel
from datetime import datetime

class ErrorResponse(BaseModel):
    error: str
    detail: str | None = None
    timestamp: datetime

class ValidationErrorResponse(BaseModel):
    title: str = "One or more validation errors occurred."
    status: int = 400
    errors: dict[str, list[str]]

class ConflictResponse(BaseModel):
    detail: str
