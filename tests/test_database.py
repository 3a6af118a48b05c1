"""
Tests for the storage backends, repositories and unit of work.
"""

import pytest
from unittest.mock import AsyncMock, MagicMock, patch
from pymongo import ReturnDocument

from api.database import AUTHORS, BOOKS, MemoryBackend, MongoBackend, UnitOfWork, page_window
from api.entities import Author, Book


class TestPageWindow:
    """Test cases for page to skip/limit translation."""

    def test_first_page(self):
        assert page_window(1, 3) == (0, 3)

    def test_later_page(self):
        assert page_window(4, 5) == (15, 5)

    def test_non_positive_values(self):
        assert page_window(0, 3) is None
        assert page_window(-1, 3) is None
        assert page_window(1, 0) is None


class TestMemoryBackend:
    """Test cases for the in-memory backend."""

    @pytest.mark.asyncio
    async def test_find_many_in_id_order(self):
        backend = MemoryBackend({BOOKS: [{"_id": 3}, {"_id": 1}, {"_id": 2}]})

        documents = await backend.find_many(BOOKS, skip=1, limit=1)

        assert documents == [{"_id": 2}]

    @pytest.mark.asyncio
    async def test_next_id_continues_after_seed(self, catalog):
        backend = MemoryBackend(catalog)

        assert await backend.next_id(BOOKS) == 11
        assert await backend.next_id(BOOKS) == 12
        assert await backend.next_id(AUTHORS) == 4

    @pytest.mark.asyncio
    async def test_documents_are_copied(self, catalog):
        backend = MemoryBackend(catalog)

        document = await backend.find_one(BOOKS, 1)
        document["title"] = "Changed"

        assert (await backend.find_one(BOOKS, 1))["title"] == "Book 1"

    @pytest.mark.asyncio
    async def test_find_by(self, catalog):
        backend = MemoryBackend(catalog)

        documents = await backend.find_by(BOOKS, "author_id", 2)

        assert [document["_id"] for document in documents] == [2, 5, 8]

    @pytest.mark.asyncio
    async def test_delete_and_count(self, catalog):
        backend = MemoryBackend(catalog)

        await backend.delete(BOOKS, 1)
        await backend.delete(BOOKS, 999)

        assert await backend.count(BOOKS) == 9


class TestRepositories:
    """Test cases for entity hydration."""

    @pytest.mark.asyncio
    async def test_book_resolves_author(self, catalog):
        uow = UnitOfWork(MemoryBackend(catalog))

        book = await uow.books.find(4)

        assert book.author.id == 1
        assert book in book.author.books

    @pytest.mark.asyncio
    async def test_identity_map_returns_same_object(self, catalog):
        uow = UnitOfWork(MemoryBackend(catalog))

        first = await uow.books.find(1)
        second = await uow.books.find(1)
        author = await uow.authors.find(1)

        assert first is second
        assert first.author is author

    @pytest.mark.asyncio
    async def test_dangling_author_id_resolves_to_none(self):
        backend = MemoryBackend({BOOKS: [{"_id": 1, "title": "A", "description": "B", "author_id": 42}]})
        uow = UnitOfWork(backend)

        book = await uow.books.find(1)

        assert book.author is None

    @pytest.mark.asyncio
    async def test_missing_entity(self, catalog):
        uow = UnitOfWork(MemoryBackend(catalog))

        assert await uow.books.find(-1) is None
        assert await uow.authors.find(99) is None

    @pytest.mark.asyncio
    async def test_pagination(self, catalog):
        uow = UnitOfWork(MemoryBackend(catalog))

        page = await uow.books.find_all_with_pagination(2, 4)

        assert [book.id for book in page] == [5, 6, 7, 8]
        assert await uow.books.find_all_with_pagination(4, 4) == []
        assert await uow.books.count() == 10


class TestUnitOfWork:
    """Test cases for persist/remove/flush."""

    @pytest.mark.asyncio
    async def test_nothing_written_before_flush(self, catalog):
        backend = MemoryBackend(catalog)
        uow = UnitOfWork(backend)

        uow.persist(Book(title="A", description="B"))

        assert await backend.count(BOOKS) == 10

    @pytest.mark.asyncio
    async def test_flush_assigns_ids_across_entities(self, catalog):
        """Test that a new book can reference an author created in the same flush."""
        backend = MemoryBackend(catalog)
        uow = UnitOfWork(backend)
        author = Author(firstname="George", lastname="Sand")
        book = Book(title="Indiana", description="Novel")
        author.add_book(book)

        uow.persist(book)
        uow.persist(author)
        await uow.flush()

        assert author.id == 4
        assert book.id == 11
        assert (await backend.find_one(BOOKS, 11))["author_id"] == 4

    @pytest.mark.asyncio
    async def test_remove(self, catalog):
        backend = MemoryBackend(catalog)
        uow = UnitOfWork(backend)
        book = await uow.books.find(1)

        uow.remove(book)
        await uow.flush()

        assert await backend.find_one(BOOKS, 1) is None
        assert await UnitOfWork(backend).books.find(1) is None

    @pytest.mark.asyncio
    async def test_persisted_then_removed_is_deleted(self, catalog):
        backend = MemoryBackend(catalog)
        uow = UnitOfWork(backend)
        book = await uow.books.find(2)
        book.title = "Changed"

        uow.persist(book)
        uow.remove(book)
        await uow.flush()

        assert await backend.find_one(BOOKS, 2) is None

    def test_persist_rejects_non_entities(self):
        uow = UnitOfWork(MemoryBackend())

        with pytest.raises(TypeError):
            uow.persist({"title": "A"})

    @pytest.mark.asyncio
    async def test_flush_failure_propagates(self):
        backend = MemoryBackend()
        backend.save = AsyncMock(side_effect=RuntimeError("disk full"))
        uow = UnitOfWork(backend)
        uow.persist(Book(title="A", description="B"))

        with pytest.raises(RuntimeError):
            await uow.flush()


@pytest.fixture
def mongo_collection():
    """Mock motor collection with a chainable cursor."""
    collection = MagicMock()
    cursor = MagicMock()
    cursor.sort.return_value = cursor
    cursor.skip.return_value = cursor
    cursor.limit.return_value = cursor
    cursor.to_list = AsyncMock(return_value=[{"_id": 4}, {"_id": 5}])
    collection.find.return_value = cursor
    collection.find_one = AsyncMock(return_value={"_id": 1, "title": "A"})
    collection.find_one_and_update = AsyncMock(return_value={"_id": BOOKS, "seq": 7})
    collection.replace_one = AsyncMock()
    collection.delete_one = AsyncMock()
    collection.count_documents = AsyncMock(return_value=3)
    return collection


@pytest.fixture
def mongo_database(mongo_collection):
    database = MagicMock()
    database.__getitem__.return_value = mongo_collection
    database.command = AsyncMock(return_value={"ok": 1})
    return database


class TestMongoBackend:
    """Test cases for the MongoDB backend."""

    @pytest.mark.asyncio
    async def test_find_one(self, mongo_database, mongo_collection):
        backend = MongoBackend(mongo_database)

        document = await backend.find_one(BOOKS, 1)

        assert document["title"] == "A"
        mongo_collection.find_one.assert_awaited_once_with({"_id": 1})

    @pytest.mark.asyncio
    async def test_find_many_pages_in_id_order(self, mongo_database, mongo_collection):
        backend = MongoBackend(mongo_database)

        documents = await backend.find_many(BOOKS, skip=3, limit=2)

        assert documents == [{"_id": 4}, {"_id": 5}]
        cursor = mongo_collection.find.return_value
        cursor.sort.assert_called_once_with("_id", 1)
        cursor.skip.assert_called_once_with(3)
        cursor.limit.assert_called_once_with(2)

    @pytest.mark.asyncio
    async def test_next_id_uses_counter(self, mongo_database, mongo_collection):
        backend = MongoBackend(mongo_database)

        assert await backend.next_id(BOOKS) == 7
        mongo_collection.find_one_and_update.assert_awaited_once_with(
            {"_id": BOOKS},
            {"$inc": {"seq": 1}},
            upsert=True,
            return_document=ReturnDocument.AFTER
        )

    @pytest.mark.asyncio
    async def test_save_upserts(self, mongo_database, mongo_collection):
        backend = MongoBackend(mongo_database)
        document = {"_id": 2, "firstname": "Emile", "lastname": "Zola"}

        await backend.save(AUTHORS, document)

        mongo_collection.replace_one.assert_awaited_once_with({"_id": 2}, document, upsert=True)

    @pytest.mark.asyncio
    async def test_health_check(self, mongo_database):
        backend = MongoBackend(mongo_database)

        health = await backend.health_check()

        assert health == {"status": "healthy", "books_count": 3, "authors_count": 3}

    @pytest.mark.asyncio
    async def test_health_check_failure(self, mongo_database):
        mongo_database.command = AsyncMock(side_effect=Exception("connection refused"))
        backend = MongoBackend(mongo_database)

        health = await backend.health_check()

        assert health["status"] == "unhealthy"

    @pytest.mark.asyncio
    async def test_connect_failure_closes_client(self, mongo_database):
        mongo_database.command = AsyncMock(side_effect=Exception("connection refused"))
        client = MagicMock()
        client.__getitem__.return_value = mongo_database

        with patch("api.database.AsyncIOMotorClient", return_value=client):
            with pytest.raises(Exception):
                await MongoBackend.connect("mongodb://nowhere:27017", "book_catalog")

        client.close.assert_called_once()
