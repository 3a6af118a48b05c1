"""
Persistence layer for the catalog API.

Documents live in a storage backend (MongoDB through motor, or an
in-process dictionary store); repositories turn them into entities and a
per-request UnitOfWork writes changes back on flush.
"""

import copy
from typing import Any, Dict, List, Optional, Tuple

import structlog
from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from pymongo import ReturnDocument

from api.entities import Author, Book

logger = structlog.get_logger(__name__)

BOOKS = "books"
AUTHORS = "authors"
COUNTERS = "counters"


def page_window(page: int, limit: int) -> Optional[Tuple[int, int]]:
    """
    Translate a 1-based page and a page size into skip/limit values.

    Args:
        page: Page number (starts from 1)
        limit: Number of items per page

    Returns:
        (skip, limit) tuple, or None when the page cannot select any rows
    """
    if page < 1 or limit < 1:
        return None
    return (page - 1) * limit, limit


class StorageBackend:
    """Document store contract shared by every backend."""

    async def find_one(self, collection: str, doc_id: int) -> Optional[Dict]:
        raise NotImplementedError

    async def find_many(
        self,
        collection: str,
        skip: int = 0,
        limit: Optional[int] = None
    ) -> List[Dict]:
        raise NotImplementedError

    async def find_by(self, collection: str, field: str, value: Any) -> List[Dict]:
        raise NotImplementedError

    async def count(self, collection: str) -> int:
        raise NotImplementedError

    async def next_id(self, collection: str) -> int:
        raise NotImplementedError

    async def save(self, collection: str, document: Dict) -> None:
        raise NotImplementedError

    async def delete(self, collection: str, doc_id: int) -> None:
        raise NotImplementedError

    async def health_check(self) -> Dict:
        raise NotImplementedError

    async def close(self) -> None:
        pass


class MongoBackend(StorageBackend):
    """MongoDB backend. Documents are keyed by integer ``_id``."""

    def __init__(self, database: AsyncIOMotorDatabase, client: Optional[AsyncIOMotorClient] = None):
        self.database = database
        self.client = client

    @classmethod
    async def connect(cls, connection_url: str, database_name: str) -> "MongoBackend":
        """
        Connect to MongoDB and verify the connection.

        Args:
            connection_url: MongoDB connection URL
            database_name: Name of the database

        Returns:
            Connected backend
        """
        client = AsyncIOMotorClient(connection_url)
        database = client[database_name]
        try:
            await database.command("ping")
        except Exception as e:
            logger.error("Failed to connect to MongoDB", error=str(e), database=database_name)
            client.close()
            raise
        logger.info("Database connection established", database=database_name)
        return cls(database, client)

    async def find_one(self, collection: str, doc_id: int) -> Optional[Dict]:
        return await self.database[collection].find_one({"_id": doc_id})

    async def find_many(
        self,
        collection: str,
        skip: int = 0,
        limit: Optional[int] = None
    ) -> List[Dict]:
        cursor = self.database[collection].find({}).sort("_id", 1).skip(skip)
        if limit is not None:
            cursor = cursor.limit(limit)
        return await cursor.to_list(length=limit)

    async def find_by(self, collection: str, field: str, value: Any) -> List[Dict]:
        cursor = self.database[collection].find({field: value}).sort("_id", 1)
        return await cursor.to_list(length=None)

    async def count(self, collection: str) -> int:
        return await self.database[collection].count_documents({})

    async def next_id(self, collection: str) -> int:
        counter = await self.database[COUNTERS].find_one_and_update(
            {"_id": collection},
            {"$inc": {"seq": 1}},
            upsert=True,
            return_document=ReturnDocument.AFTER
        )
        return counter["seq"]

    async def save(self, collection: str, document: Dict) -> None:
        await self.database[collection].replace_one({"_id": document["_id"]}, document, upsert=True)

    async def delete(self, collection: str, doc_id: int) -> None:
        await self.database[collection].delete_one({"_id": doc_id})

    async def health_check(self) -> Dict:
        """
        Perform database health check.

        Returns:
            Dictionary with health status
        """
        try:
            await self.database.command("ping")

            books_count = await self.count(BOOKS)
            authors_count = await self.count(AUTHORS)

            return {
                "status": "healthy",
                "books_count": books_count,
                "authors_count": authors_count
            }
        except Exception as e:
            logger.error("Database health check failed", error=str(e))
            return {
                "status": "unhealthy",
                "error": str(e)
            }

    async def close(self) -> None:
        if self.client:
            self.client.close()
            logger.info("Disconnected from MongoDB")


class MemoryBackend(StorageBackend):
    """
    In-process backend with the same contract as MongoBackend.

    Documents are copied on the way in and out, so entity changes only
    reach the store through save().
    """

    def __init__(self, initial: Optional[Dict[str, List[Dict]]] = None):
        self._collections: Dict[str, Dict[int, Dict]] = {BOOKS: {}, AUTHORS: {}}
        self._sequences: Dict[str, int] = {}
        for collection, documents in (initial or {}).items():
            store = self._collections.setdefault(collection, {})
            for document in documents:
                store[document["_id"]] = copy.deepcopy(document)
            self._sequences[collection] = max(store, default=0)

    def _collection(self, collection: str) -> Dict[int, Dict]:
        return self._collections.setdefault(collection, {})

    async def find_one(self, collection: str, doc_id: int) -> Optional[Dict]:
        document = self._collection(collection).get(doc_id)
        return copy.deepcopy(document) if document is not None else None

    async def find_many(
        self,
        collection: str,
        skip: int = 0,
        limit: Optional[int] = None
    ) -> List[Dict]:
        store = self._collection(collection)
        ids = sorted(store)[skip:]
        if limit is not None:
            ids = ids[:limit]
        return [copy.deepcopy(store[doc_id]) for doc_id in ids]

    async def find_by(self, collection: str, field: str, value: Any) -> List[Dict]:
        store = self._collection(collection)
        return [
            copy.deepcopy(store[doc_id]) for doc_id in sorted(store)
            if store[doc_id].get(field) == value
        ]

    async def count(self, collection: str) -> int:
        return len(self._collection(collection))

    async def next_id(self, collection: str) -> int:
        self._sequences[collection] = self._sequences.get(collection, 0) + 1
        return self._sequences[collection]

    async def save(self, collection: str, document: Dict) -> None:
        self._collection(collection)[document["_id"]] = copy.deepcopy(document)

    async def delete(self, collection: str, doc_id: int) -> None:
        self._collection(collection).pop(doc_id, None)

    async def health_check(self) -> Dict:
        return {
            "status": "healthy",
            "books_count": await self.count(BOOKS),
            "authors_count": await self.count(AUTHORS)
        }


class EntityRepository:
    """Shared lookups for one entity collection."""

    collection: str = ""

    def __init__(self, unit_of_work: "UnitOfWork"):
        self.unit_of_work = unit_of_work
        self.backend = unit_of_work.backend

    async def hydrate(self, document: Dict):
        raise NotImplementedError

    async def find(self, entity_id: int):
        """
        Find an entity by id.

        Args:
            entity_id: Entity identifier

        Returns:
            The entity, or None if no document has that id
        """
        known = self.unit_of_work.identity_map[self.collection].get(entity_id)
        if known is not None:
            return known

        try:
            document = await self.backend.find_one(self.collection, entity_id)
        except Exception as e:
            logger.error("Failed to find entity", collection=self.collection, entity_id=entity_id, error=str(e))
            raise

        if document is None:
            return None
        return await self.hydrate(document)

    async def find_all(self) -> List:
        """Return every entity in primary key order."""
        try:
            documents = await self.backend.find_many(self.collection)
        except Exception as e:
            logger.error("Failed to list entities", collection=self.collection, error=str(e))
            raise
        return [await self.hydrate(document) for document in documents]

    async def find_all_with_pagination(self, page: int, limit: int) -> List:
        """
        Return one page of entities in primary key order.

        Args:
            page: Page number (starts from 1)
            limit: Items per page

        Returns:
            The entities of that page; empty past the last page
        """
        window = page_window(page, limit)
        if window is None:
            logger.debug("Empty page window", collection=self.collection, page=page, limit=limit)
            return []

        skip, limit = window
        try:
            documents = await self.backend.find_many(self.collection, skip=skip, limit=limit)
        except Exception as e:
            logger.error(
                "Failed to get page",
                collection=self.collection,
                page=page,
                limit=limit,
                error=str(e)
            )
            raise
        return [await self.hydrate(document) for document in documents]

    async def count(self) -> int:
        return await self.backend.count(self.collection)


class BookRepository(EntityRepository):
    """Repository for Book entities."""

    collection = BOOKS

    async def hydrate(self, document: Dict) -> Book:
        identity = self.unit_of_work.identity_map[BOOKS]
        book = identity.get(document["_id"])
        if book is not None:
            return book

        book = Book(
            id=document["_id"],
            title=document.get("title"),
            description=document.get("description")
        )
        identity[book.id] = book

        author_id = document.get("author_id")
        if author_id is not None:
            # A dangling author_id (deleted author) resolves to None
            book.author = await self.unit_of_work.authors.find(author_id)
        return book


class AuthorRepository(EntityRepository):
    """Repository for Author entities."""

    collection = AUTHORS

    async def hydrate(self, document: Dict) -> Author:
        identity = self.unit_of_work.identity_map[AUTHORS]
        author = identity.get(document["_id"])
        if author is not None:
            return author

        author = Author(
            id=document["_id"],
            firstname=document.get("firstname"),
            lastname=document.get("lastname")
        )
        identity[author.id] = author

        for book_document in await self.backend.find_by(BOOKS, "author_id", author.id):
            book = await self.unit_of_work.books.hydrate(book_document)
            book.author = author
            author.books.append(book)
        return author


class UnitOfWork:
    """
    Tracks the entity changes of one request.

    persist() and remove() only record intent; flush() writes everything
    to the backend.
    """

    def __init__(self, backend: StorageBackend):
        self.backend = backend
        self.identity_map: Dict[str, Dict[int, Any]] = {BOOKS: {}, AUTHORS: {}}
        self._persisted: List = []
        self._removed: List = []
        self.books = BookRepository(self)
        self.authors = AuthorRepository(self)

    @staticmethod
    def collection_for(entity) -> str:
        if isinstance(entity, Book):
            return BOOKS
        if isinstance(entity, Author):
            return AUTHORS
        raise TypeError(f"Not an entity: {entity!r}")

    @staticmethod
    def to_document(entity) -> Dict:
        """Build the stored document for an entity."""
        if isinstance(entity, Book):
            return {
                "_id": entity.id,
                "title": entity.title,
                "description": entity.description,
                "author_id": entity.author.id if entity.author is not None else None
            }
        return {
            "_id": entity.id,
            "firstname": entity.firstname,
            "lastname": entity.lastname
        }

    def persist(self, entity) -> None:
        """Schedule an entity to be written on the next flush."""
        self.collection_for(entity)
        if entity not in self._persisted:
            self._persisted.append(entity)

    def remove(self, entity) -> None:
        """Schedule an entity to be deleted on the next flush."""
        self.collection_for(entity)
        if entity not in self._removed:
            self._removed.append(entity)

    async def flush(self) -> None:
        """Write pending changes to the backend."""
        persisted = [entity for entity in self._persisted if entity not in self._removed]
        removed = [entity for entity in self._removed if entity.id is not None]

        try:
            # Ids first, so books can reference authors created in the same flush
            for entity in persisted:
                if entity.id is None:
                    collection = self.collection_for(entity)
                    entity.id = await self.backend.next_id(collection)
                    self.identity_map[collection][entity.id] = entity

            for entity in persisted:
                await self.backend.save(self.collection_for(entity), self.to_document(entity))

            for entity in removed:
                collection = self.collection_for(entity)
                await self.backend.delete(collection, entity.id)
                self.identity_map[collection].pop(entity.id, None)

        except Exception as e:
            logger.error(
                "Flush failed",
                persisted=len(persisted),
                removed=len(removed),
                error=str(e)
            )
            raise

        self._persisted.clear()
        self._removed.clear()
        logger.debug("Unit of work flushed", persisted=len(persisted), removed=len(removed))
