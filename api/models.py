"""
API models and schemas for the FastAPI application.

Each endpoint exposes an explicit projection: a book nests a summary of
its author, an author nests summaries of its books, so no payload
recurses back into itself.
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field, validator

from api.entities import Author, Book


class AuthorSummary(BaseModel):
    """Author as nested under a book."""
    id: int = Field(..., description="Unique author identifier")
    firstname: Optional[str] = Field(None, description="Author first name")
    lastname: Optional[str] = Field(None, description="Author last name")

    @classmethod
    def from_entity(cls, author: Author) -> "AuthorSummary":
        return cls(id=author.id, firstname=author.firstname, lastname=author.lastname)


class BookSummary(BaseModel):
    """Book as nested under an author."""
    id: int = Field(..., description="Unique book identifier")
    title: Optional[str] = Field(None, description="Book title")
    description: Optional[str] = Field(None, description="Book description")

    @classmethod
    def from_entity(cls, book: Book) -> "BookSummary":
        return cls(id=book.id, title=book.title, description=book.description)


class BookResponse(BaseModel):
    """Book response model, used by every book endpoint."""
    id: int = Field(..., description="Unique book identifier")
    title: Optional[str] = Field(None, description="Book title")
    description: Optional[str] = Field(None, description="Book description")
    author: Optional[AuthorSummary] = Field(None, description="Book author, null when unset")

    @classmethod
    def from_entity(cls, book: Book) -> "BookResponse":
        return cls(
            id=book.id,
            title=book.title,
            description=book.description,
            author=AuthorSummary.from_entity(book.author) if book.author is not None else None
        )


class AuthorResponse(BaseModel):
    """Author response model, used by every author endpoint."""
    id: int = Field(..., description="Unique author identifier")
    firstname: Optional[str] = Field(None, description="Author first name")
    lastname: Optional[str] = Field(None, description="Author last name")
    books: List[BookSummary] = Field(default_factory=list, description="Books by this author")

    @classmethod
    def from_entity(cls, author: Author) -> "AuthorResponse":
        return cls(
            id=author.id,
            firstname=author.firstname,
            lastname=author.lastname,
            books=[BookSummary.from_entity(book) for book in sorted(author.books, key=lambda book: book.id)]
        )


class BookCreate(BaseModel):
    """Payload for creating a book."""
    title: str = Field(..., max_length=255, description="Book title")
    description: str = Field(..., description="Book description")
    idAuthor: int = Field(-1, description="Author identifier, -1 for no author")

    @validator('title')
    def validate_title(cls, v):
        """Reject blank titles."""
        if not v.strip():
            raise ValueError('title must not be blank')
        return v


class BookUpdate(BaseModel):
    """Payload for updating a book. Only the fields sent are applied."""
    title: Optional[str] = Field(None, max_length=255, description="Book title")
    description: Optional[str] = Field(None, description="Book description")
    idAuthor: Optional[int] = Field(None, description="Author identifier, -1 for no author")

    @validator('title', 'description')
    def reject_null(cls, v):
        """Leaving a field out keeps it; sending null is not allowed."""
        if v is None:
            raise ValueError('must not be null')
        return v

    @validator('title')
    def validate_title(cls, v):
        """Reject blank titles."""
        if v is not None and not v.strip():
            raise ValueError('title must not be blank')
        return v


class AuthorCreate(BaseModel):
    """Payload for creating an author."""
    firstname: str = Field(..., max_length=255, description="Author first name")
    lastname: str = Field(..., max_length=255, description="Author last name")
    idBooks: List[int] = Field(default_factory=list, description="Identifiers of the author's books")


class AuthorUpdate(BaseModel):
    """Payload for updating an author. Only the fields sent are applied."""
    firstname: Optional[str] = Field(None, max_length=255, description="Author first name")
    lastname: Optional[str] = Field(None, max_length=255, description="Author last name")
    idBooks: Optional[List[int]] = Field(None, description="Identifiers of the author's books")

    @validator('firstname', 'lastname')
    def reject_null(cls, v):
        """Leaving a field out keeps it; sending null is not allowed."""
        if v is None:
            raise ValueError('must not be null')
        return v


class Violation(BaseModel):
    """A single failed constraint."""
    propertyPath: str = Field(..., description="Field that failed validation")
    title: str = Field(..., description="Human-readable violation message")


class ViolationList(BaseModel):
    """Response model for rejected payloads."""
    title: str = Field("Validation Failed", description="Error title")
    detail: str = Field(..., description="All violations on one line")
    violations: List[Violation] = Field(..., description="Individual violations")


class ErrorResponse(BaseModel):
    """Error response model."""
    error: str = Field(..., description="Error message")
    detail: Optional[str] = Field(None, description="Additional error details")
    status_code: int = Field(..., description="HTTP status code")


class HealthResponse(BaseModel):
    """Health check response model."""
    status: str = Field(..., description="Service status")
    timestamp: datetime = Field(..., description="Current timestamp")
    version: str = Field(..., description="API version")
    database_status: str = Field(..., description="Storage backend status")
