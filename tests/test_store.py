import bson
import pymongo
import pymongo.errors
import pytest

import datetime
import unittest.mock

import app.properties.filters
import app.properties.handlers
import app.properties.mappers
import app.properties.models
import app.properties.store

from factories import BASE_TIME, make_record

ID = "507f1f77bcf86cd799439012"


def make_collection(documents=()):
    cursor = unittest.mock.MagicMock()
    cursor.sort.return_value = cursor
    cursor.skip.return_value = cursor
    cursor.limit.return_value = cursor
    cursor.batch_size.return_value = cursor
    cursor.to_list = unittest.mock.AsyncMock(return_value=list(documents))
    collection = unittest.mock.MagicMock()
    collection.find.return_value = cursor
    collection.count_documents = unittest.mock.AsyncMock(return_value=len(documents))
    collection.find_one = unittest.mock.AsyncMock(return_value=None)
    collection.insert_one = unittest.mock.AsyncMock()
    collection.replace_one = unittest.mock.AsyncMock()
    collection.delete_one = unittest.mock.AsyncMock()
    collection.create_indexes = unittest.mock.AsyncMock(return_value=["text_search_index"])
    collection.database.command = unittest.mock.AsyncMock(return_value={"ok": 1})
    return collection


@pytest.mark.asyncio
async def test_mongo_find_matching_builds_query_sort_and_window():
    document = app.properties.mappers.to_document(make_record(id=ID))
    collection = make_collection([document])
    store = app.properties.store.MongoPropertyStore(collection)
    predicates = app.properties.filters.build_predicates(
        app.properties.models.FilterSpec(min_price=100.0, is_available=True)
    )

    records = await store.find_matching(
        predicates, sort=app.properties.filters.DEFAULT_SORT, skip=20, limit=10
    )

    assert [record.id for record in records] == [ID]
    collection.find.assert_called_once_with(
        {"$and": [{"price": {"$gte": 100.0}}, {"is_available": True}]}
    )
    cursor = collection.find.return_value
    cursor.sort.assert_called_once_with(
        [("created_at", pymongo.DESCENDING), ("_id", pymongo.ASCENDING)]
    )
    cursor.skip.assert_called_once_with(20)
    cursor.limit.assert_called_once_with(10)
    cursor.to_list.assert_awaited_once_with(length=10)


@pytest.mark.asyncio
async def test_mongo_count_matching_uses_combined_query():
    collection = make_collection()
    collection.count_documents.return_value = 7
    store = app.properties.store.MongoPropertyStore(collection)
    assert await store.count_matching([]) == 7
    collection.count_documents.assert_awaited_once_with({})


@pytest.mark.asyncio
async def test_mongo_insert_returns_assigned_id():
    collection = make_collection()
    collection.insert_one.return_value = unittest.mock.Mock(inserted_id=bson.ObjectId(ID))
    store = app.properties.store.MongoPropertyStore(collection)

    created = await store.insert(make_record())

    assert created.id == ID
    (document,), _ = collection.insert_one.call_args
    assert "_id" not in document


@pytest.mark.asyncio
async def test_mongo_replace_is_not_an_upsert():
    collection = make_collection()
    collection.replace_one.return_value = unittest.mock.Mock(matched_count=1, modified_count=0)
    store = app.properties.store.MongoPropertyStore(collection)

    assert await store.replace(ID, make_record()) is True
    args, kwargs = collection.replace_one.call_args
    assert args[0] == {"_id": bson.ObjectId(ID)}
    assert args[1]["_id"] == bson.ObjectId(ID)
    assert kwargs == {"upsert": False}

    collection.replace_one.return_value = unittest.mock.Mock(matched_count=0, modified_count=0)
    assert await store.replace(ID, make_record()) is False


@pytest.mark.asyncio
async def test_mongo_delete_reports_whether_removed():
    collection = make_collection()
    collection.delete_one.return_value = unittest.mock.Mock(deleted_count=1)
    store = app.properties.store.MongoPropertyStore(collection)
    assert await store.delete_by_key(ID) is True
    collection.delete_one.return_value = unittest.mock.Mock(deleted_count=0)
    assert await store.delete_by_key(ID) is False


@pytest.mark.asyncio
async def test_mongo_find_by_key():
    collection = make_collection()
    collection.find_one.return_value = app.properties.mappers.to_document(make_record(id=ID))
    store = app.properties.store.MongoPropertyStore(collection)
    record = await store.find_by_key(ID)
    assert record.id == ID
    collection.find_one.assert_awaited_once_with({"_id": bson.ObjectId(ID)})


@pytest.mark.asyncio
async def test_mongo_malformed_ids_skip_the_database():
    collection = make_collection()
    store = app.properties.store.MongoPropertyStore(collection)
    assert await store.find_by_key("invalid-id") is None
    assert await store.replace("invalid-id", make_record()) is False
    assert await store.delete_by_key("invalid-id") is False
    collection.find_one.assert_not_awaited()
    collection.replace_one.assert_not_awaited()
    collection.delete_one.assert_not_awaited()


@pytest.mark.asyncio
async def test_mongo_errors_become_store_errors():
    collection = make_collection()
    collection.count_documents.side_effect = pymongo.errors.ServerSelectionTimeoutError("timed out")
    collection.find_one.side_effect = pymongo.errors.AutoReconnect("connection reset")
    collection.database.command.side_effect = pymongo.errors.ConnectionFailure("down")
    store = app.properties.store.MongoPropertyStore(collection)

    with pytest.raises(app.properties.store.StoreError) as excinfo:
        await store.count_matching([])
    assert isinstance(excinfo.value.__cause__, pymongo.errors.ServerSelectionTimeoutError)
    with pytest.raises(app.properties.store.StoreError):
        await store.find_by_key(ID)
    with pytest.raises(app.properties.store.StoreError):
        await store.ping()


@pytest.mark.asyncio
async def test_mongo_corrupt_document_is_a_store_error():
    document = app.properties.mappers.to_document(make_record(id=ID))
    document["property_type"] = "Castle"
    collection = make_collection([document])
    store = app.properties.store.MongoPropertyStore(collection)
    with pytest.raises(app.properties.store.StoreError):
        await store.find_matching([], sort=app.properties.filters.DEFAULT_SORT, skip=0, limit=10)


@pytest.mark.asyncio
async def test_mongo_ensure_indexes():
    collection = make_collection()
    store = app.properties.store.MongoPropertyStore(collection)
    assert await store.ensure_indexes() == ["text_search_index"]
    (indexes,), _ = collection.create_indexes.call_args
    assert indexes[0].document["name"] == "text_search_index"


@pytest.mark.asyncio
async def test_in_memory_store_sorts_filters_and_windows(store):
    for hours in range(5):
        await store.insert(
            make_record(
                created_at=BASE_TIME + datetime.timedelta(hours=hours),
                name=f"Listing {hours}",
                price=100.0 * hours,
            )
        )
    predicates = app.properties.filters.build_predicates(
        app.properties.models.FilterSpec(min_price=100.0)
    )
    records = await store.find_matching(
        predicates, sort=app.properties.filters.DEFAULT_SORT, skip=1, limit=2
    )
    assert [record.name for record in records] == ["Listing 3", "Listing 2"]
    assert await store.count_matching(predicates) == 4


@pytest.mark.asyncio
async def test_in_memory_store_hands_out_copies(store):
    created = await store.insert(make_record())
    fetched = await store.find_by_key(created.id)
    fetched.name = "Changed"
    assert (await store.find_by_key(created.id)).name == "Beautiful House"


@pytest.mark.asyncio
async def test_in_memory_store_replace_and_delete(store):
    missing = str(bson.ObjectId())
    assert await store.replace(missing, make_record()) is False
    assert await store.find_by_key(missing) is None
    created = await store.insert(make_record())
    assert await store.replace(created.id, make_record(name="Replaced")) is True
    assert (await store.find_by_key(created.id)).name == "Replaced"
    assert await store.delete_by_key(created.id) is True
    assert await store.delete_by_key(created.id) is False


def test_get_store_selects_backend(monkeypatch):
    app.properties.store.get_store.cache_clear()
    monkeypatch.setenv("PROPERTY_STORE", "memory")
    try:
        assert isinstance(app.properties.store.get_store(), app.properties.store.InMemoryPropertyStore)
    finally:
        app.properties.store.get_store.cache_clear()


def test_get_store_rejects_unknown_backend(monkeypatch):
    app.properties.store.get_store.cache_clear()
    monkeypatch.setenv("PROPERTY_STORE", "cassandra")
    try:
        with pytest.raises(ValueError, match="Unknown store backend"):
            app.properties.store.get_store()
    finally:
        app.properties.store.get_store.cache_clear()


@pytest.mark.asyncio
async def test_huge_page_number_never_queries_mongo():
    collection = make_collection()
    collection.count_documents.return_value = 4
    engine = app.properties.handlers.PropertySearchEngine(
        app.properties.store.MongoPropertyStore(collection)
    )
    result = await engine.search(app.properties.models.FilterSpec(page_number=10**19))
    assert result.items == []
    assert result.total_count == 4
    assert result.page_number == 10**19
    collection.find.assert_not_called()
