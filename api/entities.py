"""
Domain entities for the catalog.

Book holds the owning side of the Book/Author relationship (its author
reference is what gets stored); Author.books is the inverse side and is
only changed through add_book/remove_book.
"""

from typing import Any, Dict, List, Optional


class Book:
    """A catalog book."""

    fields = ("title", "description")

    def __init__(
        self,
        id: Optional[int] = None,
        title: Optional[str] = None,
        description: Optional[str] = None,
        author: Optional["Author"] = None
    ):
        self.id = id
        self.title = title
        self.description = description
        self.author = author

    def set_author(self, author: Optional["Author"]) -> None:
        """Move this book to another author, or detach it with None."""
        if author is not None:
            author.add_book(self)
        elif self.author is not None:
            self.author.remove_book(self)

    def __repr__(self) -> str:
        return f"<Book id={self.id} title={self.title!r}>"


class Author:
    """A book author."""

    fields = ("firstname", "lastname")

    def __init__(
        self,
        id: Optional[int] = None,
        firstname: Optional[str] = None,
        lastname: Optional[str] = None
    ):
        self.id = id
        self.firstname = firstname
        self.lastname = lastname
        self.books: List[Book] = []

    def add_book(self, book: Book) -> None:
        """
        Associate a book with this author.

        Both sides change together: the book is appended to this author's
        books and its author reference is set. A book moving from another
        author is removed from that author's list first.
        """
        previous = book.author
        if previous is not None and previous is not self:
            previous.remove_book(book)
        if book not in self.books:
            self.books.append(book)
        book.author = self

    def remove_book(self, book: Book) -> None:
        """Detach a book from this author."""
        if book in self.books:
            self.books.remove(book)
        if book.author is self:
            book.author = None

    def clear_books(self) -> List[Book]:
        """
        Detach every book from this author.

        Returns:
            The books that were detached
        """
        detached = list(self.books)
        for book in detached:
            self.remove_book(book)
        return detached

    def __repr__(self) -> str:
        return f"<Author id={self.id} name={self.firstname!r} {self.lastname!r}>"


def populate(entity, values: Dict[str, Any]):
    """
    Merge incoming values onto an existing entity.

    Only the entity's own fields that are present in ``values`` are
    copied; everything else keeps its current value. Keys that are not
    entity fields (relation ids such as ``idAuthor``) are ignored.

    Args:
        entity: Book or Author to update in place
        values: Field values sent by the client

    Returns:
        The same entity, updated
    """
    for field in entity.fields:
        if field in values:
            setattr(entity, field, values[field])
    return entity
