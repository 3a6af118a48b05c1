"""
Demo data for development databases.
"""

from typing import Dict

import structlog

from api.database import UnitOfWork
from api.entities import Author, Book

logger = structlog.get_logger(__name__)

AUTHOR_NAMES = [
    ("Victor", "Hugo"),
    ("George", "Sand"),
    ("Emile", "Zola"),
    ("Colette", "Gabrielle"),
    ("Jules", "Verne"),
]


async def load_fixtures(uow: UnitOfWork, books: int = 20, authors: int = len(AUTHOR_NAMES)) -> Dict[str, int]:
    """
    Create demo authors and books, spreading the books over the authors.

    Args:
        uow: Unit of work to write through
        books: Number of books to create
        authors: Number of authors to create

    Returns:
        Counts of created entities
    """
    created_authors = []
    for index in range(authors):
        firstname, lastname = AUTHOR_NAMES[index % len(AUTHOR_NAMES)]
        author = Author(firstname=firstname, lastname=lastname)
        uow.persist(author)
        created_authors.append(author)

    for index in range(books):
        book = Book(title=f"Book {index + 1}", description=f"Description of book {index + 1}")
        if created_authors:
            created_authors[index % len(created_authors)].add_book(book)
        uow.persist(book)

    await uow.flush()
    logger.info("Fixtures loaded", authors=authors, books=books)
    return {"authors": authors, "books": books}


async def purge(uow: UnitOfWork) -> Dict[str, int]:
    """
    Delete every book and author.

    Returns:
        Counts of deleted entities
    """
    all_books = await uow.books.find_all()
    all_authors = await uow.authors.find_all()
    for entity in all_books + all_authors:
        uow.remove(entity)

    await uow.flush()
    logger.info("Catalog purged", authors=len(all_authors), books=len(all_books))
    return {"authors": len(all_authors), "books": len(all_books)}
