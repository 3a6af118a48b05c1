"""
Author endpoints.
"""

from typing import List

import structlog
from fastapi import APIRouter, Depends, Request, Response, status
from fastapi.responses import JSONResponse

from api.auth import require_admin
from api.config import config
from api.database import UnitOfWork
from api.dependencies import get_author_or_404, get_unit_of_work
from api.entities import Author, populate
from api.models import AuthorCreate, AuthorResponse, AuthorUpdate, ErrorResponse, ViolationList

logger = structlog.get_logger(__name__)

router = APIRouter(tags=["Authors"])


async def associate_books(uow: UnitOfWork, author: Author, book_ids: List[int]) -> List[int]:
    """
    Attach the books with the given ids to an author.

    Unknown ids are skipped without error. Every attached book is
    scheduled for persistence since its author reference changed.

    Returns:
        Ids that did not resolve
    """
    missing = []
    for book_id in book_ids:
        book = await uow.books.find(book_id)
        if book is None:
            missing.append(book_id)
            continue
        author.add_book(book)
        uow.persist(book)

    if missing:
        logger.info("Book ids did not resolve, skipping", author_id=author.id, book_ids=missing)
    return missing


@router.get("/authorspages", response_model=List[AuthorResponse])
async def get_authors_paginated(
    page: int = config.default_page,
    limit: int = config.default_limit,
    uow: UnitOfWork = Depends(get_unit_of_work)
):
    """
    Get one page of authors.

    - **page**: Page number (starts from 1)
    - **limit**: Number of authors per page
    """
    authors = await uow.authors.find_all_with_pagination(page, limit)
    return JSONResponse(content=[AuthorResponse.from_entity(author).dict() for author in authors])


@router.get(
    "/authors/{author_id:int}",
    response_model=AuthorResponse,
    responses={404: {"model": ErrorResponse}}
)
async def get_author(author: Author = Depends(get_author_or_404)):
    """Get a single author by ID, with summaries of their books."""
    return JSONResponse(content=AuthorResponse.from_entity(author).dict())


@router.post(
    "/authors",
    response_model=AuthorResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_admin)],
    responses={400: {"model": ViolationList}, 403: {"model": ErrorResponse}}
)
async def create_author(
    payload: AuthorCreate,
    request: Request,
    uow: UnitOfWork = Depends(get_unit_of_work)
):
    """
    Create an author. Admin only.

    - **idBooks**: identifiers of existing books to attach; unknown ids are ignored
    """
    author = Author(firstname=payload.firstname, lastname=payload.lastname)
    await associate_books(uow, author, payload.idBooks)

    uow.persist(author)
    await uow.flush()

    logger.info("Author created", author_id=author.id, books=len(author.books))

    location = str(request.url_for("get_author", author_id=author.id))
    return JSONResponse(
        status_code=status.HTTP_201_CREATED,
        content=AuthorResponse.from_entity(author).dict(),
        headers={"location": location}
    )


@router.put(
    "/authors/{author_id:int}",
    response_model=AuthorResponse,
    responses={400: {"model": ViolationList}, 404: {"model": ErrorResponse}}
)
async def update_author(
    payload: AuthorUpdate,
    author: Author = Depends(get_author_or_404),
    uow: UnitOfWork = Depends(get_unit_of_work)
):
    """
    Update an author. Fields left out of the body keep their current value.

    - **idBooks**: when present, replaces the author's books; books no longer listed lose their author
    """
    values = payload.dict(exclude_unset=True)
    populate(author, values)

    if "idBooks" in values:
        for book in author.clear_books():
            uow.persist(book)
        await associate_books(uow, author, values["idBooks"] or [])

    uow.persist(author)
    await uow.flush()

    logger.info("Author updated", author_id=author.id, fields=sorted(values))
    return JSONResponse(content=AuthorResponse.from_entity(author).dict())


@router.delete(
    "/authors/{author_id:int}",
    status_code=status.HTTP_204_NO_CONTENT,
    response_class=Response,
    dependencies=[Depends(require_admin)],
    responses={403: {"model": ErrorResponse}, 404: {"model": ErrorResponse}}
)
async def delete_author(
    author: Author = Depends(get_author_or_404),
    uow: UnitOfWork = Depends(get_unit_of_work)
):
    """Delete an author. Admin only. Their books are kept."""
    uow.remove(author)
    await uow.flush()

    logger.info("Author deleted", author_id=author.id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
