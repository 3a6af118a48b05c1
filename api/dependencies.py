"""
Request dependencies shared by the resource routers.
"""

import structlog
from fastapi import Depends, HTTPException, Request, status

from api.database import StorageBackend, UnitOfWork
from api.entities import Author, Book

logger = structlog.get_logger(__name__)


def get_backend(request: Request) -> StorageBackend:
    """Storage backend opened by the application lifespan."""
    backend = getattr(request.app.state, "backend", None)
    if backend is None:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Database service not available"
        )
    return backend


def get_unit_of_work(backend: StorageBackend = Depends(get_backend)) -> UnitOfWork:
    """A fresh unit of work for the current request."""
    return UnitOfWork(backend)


async def get_book_or_404(book_id: int, uow: UnitOfWork = Depends(get_unit_of_work)) -> Book:
    """Resolve the ``book_id`` path parameter, or answer 404."""
    book = await uow.books.find(book_id)
    if book is None:
        logger.debug("Book not found", book_id=book_id)
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Book with ID '{book_id}' not found"
        )
    return book


async def get_author_or_404(author_id: int, uow: UnitOfWork = Depends(get_unit_of_work)) -> Author:
    """Resolve the ``author_id`` path parameter, or answer 404."""
    author = await uow.authors.find(author_id)
    if author is None:
        logger.debug("Author not found", author_id=author_id)
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Author with ID '{author_id}' not found"
        )
    return author
