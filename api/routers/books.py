"""
Book endpoints.
"""

from typing import List, Optional

import structlog
from fastapi import APIRouter, Depends, Request, Response, status
from fastapi.responses import JSONResponse

from api.auth import require_admin
from api.config import config
from api.database import UnitOfWork
from api.dependencies import get_book_or_404, get_unit_of_work
from api.entities import Author, Book, populate
from api.models import BookCreate, BookResponse, BookUpdate, ErrorResponse, ViolationList

logger = structlog.get_logger(__name__)

router = APIRouter(tags=["Books"])


async def resolve_author(uow: UnitOfWork, author_id: Optional[int]) -> Optional[Author]:
    """Look up an author by id; unknown ids resolve to None."""
    if author_id is None:
        return None
    author = await uow.authors.find(author_id)
    if author is None and author_id != -1:
        logger.info("Author id did not resolve, leaving book without author", author_id=author_id)
    return author


def serialize_books(books: List[Book]) -> list:
    return [BookResponse.from_entity(book).dict() for book in books]


@router.get("/books", response_model=List[BookResponse])
async def get_books(uow: UnitOfWork = Depends(get_unit_of_work)):
    """Get every book."""
    books = await uow.books.find_all()
    return JSONResponse(content=serialize_books(books))


@router.get("/bookspages", response_model=List[BookResponse])
async def get_books_paginated(
    page: int = config.default_page,
    limit: int = config.default_limit,
    uow: UnitOfWork = Depends(get_unit_of_work)
):
    """
    Get one page of books.

    - **page**: Page number (starts from 1)
    - **limit**: Number of books per page
    """
    books = await uow.books.find_all_with_pagination(page, limit)
    return JSONResponse(content=serialize_books(books))


@router.get(
    "/books/{book_id:int}",
    response_model=BookResponse,
    responses={404: {"model": ErrorResponse}}
)
async def get_book(book: Book = Depends(get_book_or_404)):
    """Get a single book by ID."""
    return JSONResponse(content=BookResponse.from_entity(book).dict())


@router.post(
    "/books",
    response_model=BookResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_admin)],
    responses={400: {"model": ViolationList}, 403: {"model": ErrorResponse}}
)
async def create_book(
    payload: BookCreate,
    request: Request,
    uow: UnitOfWork = Depends(get_unit_of_work)
):
    """
    Create a book. Admin only.

    - **idAuthor**: identifier of an existing author; unknown ids leave the book without author
    """
    book = Book(title=payload.title, description=payload.description)
    book.set_author(await resolve_author(uow, payload.idAuthor))

    uow.persist(book)
    await uow.flush()

    logger.info("Book created", book_id=book.id, author_id=book.author.id if book.author else None)

    location = str(request.url_for("get_book", book_id=book.id))
    return JSONResponse(
        status_code=status.HTTP_201_CREATED,
        content=BookResponse.from_entity(book).dict(),
        headers={"location": location}
    )


@router.put(
    "/books/{book_id:int}",
    response_model=BookResponse,
    responses={400: {"model": ViolationList}, 404: {"model": ErrorResponse}}
)
async def update_book(
    payload: BookUpdate,
    book: Book = Depends(get_book_or_404),
    uow: UnitOfWork = Depends(get_unit_of_work)
):
    """
    Update a book. Fields left out of the body keep their current value.

    - **idAuthor**: when present, the book is moved to that author (or left without one)
    """
    values = payload.dict(exclude_unset=True)
    populate(book, values)

    if "idAuthor" in values:
        book.set_author(await resolve_author(uow, values["idAuthor"]))

    uow.persist(book)
    await uow.flush()

    logger.info("Book updated", book_id=book.id, fields=sorted(values))
    return JSONResponse(content=BookResponse.from_entity(book).dict())


@router.delete(
    "/books/{book_id:int}",
    status_code=status.HTTP_204_NO_CONTENT,
    response_class=Response,
    dependencies=[Depends(require_admin)],
    responses={403: {"model": ErrorResponse}, 404: {"model": ErrorResponse}}
)
async def delete_book(
    book: Book = Depends(get_book_or_404),
    uow: UnitOfWork = Depends(get_unit_of_work)
):
    """Delete a book. Admin only."""
    uow.remove(book)
    await uow.flush()

    logger.info("Book deleted", book_id=book.id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
