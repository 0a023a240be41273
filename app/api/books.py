from typing import Annotated

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.cache import BookCache
from app.database import get_book_cache, get_db
from app.schemas.book import BookCreate, BookProfile
from app.schemas.common import ConflictResponse, ValidationErrorResponse
from app.services.book_service import BookService

router = APIRouter()


@router.post(
    "",
    response_model=BookProfile,
    status_code=status.HTTP_201_CREATED,
    name="create_book",
    responses={
        status.HTTP_400_BAD_REQUEST: {"model": ValidationErrorResponse},
        status.HTTP_409_CONFLICT: {"model": ConflictResponse},
    },
)
async def create_book(
    data: BookCreate,
    response: Response,
    db: Annotated[AsyncSession, Depends(get_db)],
    cache: Annotated[BookCache, Depends(get_book_cache)],
):
    book_service = BookService(db, cache)
    profile = await book_service.create_book(data)

    response.headers["Location"] = f"/api/books/{profile.id}"
    return profile
