import motor.motor_asyncio
import pymongo.errors
import pymongo.server_api
import pydantic
import bson

import functools
import logging
import operator

import app.properties.filters
import app.properties.mappers
import app.properties.models
import app.settings

logger = logging.getLogger(__name__)


class StoreError(Exception):
    """Raised when the underlying store cannot complete an operation."""


def is_valid_id(id: str | None) -> bool:
    return isinstance(id, str) and bson.ObjectId.is_valid(id)


def _mongo_sort(sort: list[tuple[str, int]]) -> list[tuple[str, int]]:
    return [("_id" if key == "id" else key, direction) for key, direction in sort]


class MongoPropertyStore:
    def __init__(self, collection: motor.motor_asyncio.AsyncIOMotorCollection):
        self.collection = collection

    async def find_matching(
        self,
        predicates: list[app.properties.filters.Predicate],
        sort: list[tuple[str, int]],
        skip: int,
        limit: int,
    ) -> list[app.properties.models.Property]:
        search_query = app.properties.filters.combine(predicates)
        try:
            cursor = (
                self.collection.find(search_query)
                .sort(_mongo_sort(sort))
                .skip(skip)
                .limit(limit)
                .batch_size(limit)
            )
            documents = await cursor.to_list(length=limit)
            return [app.properties.mappers.from_document(document) for document in documents]
        except (pymongo.errors.PyMongoError, pydantic.ValidationError) as e:
            logger.exception(f"Failed to find properties matching {search_query}")
            raise StoreError(f"Failed to filter properties: {e}") from e

    async def count_matching(self, predicates: list[app.properties.filters.Predicate]) -> int:
        search_query = app.properties.filters.combine(predicates)
        try:
            return await self.collection.count_documents(search_query)
        except pymongo.errors.PyMongoError as e:
            logger.exception(f"Failed to count properties matching {search_query}")
            raise StoreError(f"Failed to count properties: {e}") from e

    async def insert(self, record: app.properties.models.Property) -> app.properties.models.Property:
        document = app.properties.mappers.to_document(record.model_copy(update={"id": None}))
        try:
            result = await self.collection.insert_one(document)
        except pymongo.errors.PyMongoError as e:
            logger.exception("Failed to insert property")
            raise StoreError(f"Failed to create property: {e}") from e
        return record.model_copy(update={"id": str(result.inserted_id)})

    async def replace(self, id: str, record: app.properties.models.Property) -> bool:
        if not is_valid_id(id):
            return False
        document = app.properties.mappers.to_document(record.model_copy(update={"id": id}))
        try:
            result = await self.collection.replace_one({"_id": bson.ObjectId(id)}, document, upsert=False)
        except pymongo.errors.PyMongoError as e:
            logger.exception(f"Failed to replace property {id}")
            raise StoreError(f"Failed to update property with id {id}: {e}") from e
        return result.matched_count > 0

    async def delete_by_key(self, id: str) -> bool:
        if not is_valid_id(id):
            return False
        try:
            result = await self.collection.delete_one({"_id": bson.ObjectId(id)})
        except pymongo.errors.PyMongoError as e:
            logger.exception(f"Failed to delete property {id}")
            raise StoreError(f"Failed to delete property with id {id}: {e}") from e
        return result.deleted_count > 0

    async def find_by_key(self, id: str) -> app.properties.models.Property | None:
        if not is_valid_id(id):
            return None
        try:
            document = await self.collection.find_one({"_id": bson.ObjectId(id)})
            if document is None:
                return None
            return app.properties.mappers.from_document(document)
        except (pymongo.errors.PyMongoError, pydantic.ValidationError) as e:
            logger.exception(f"Failed to retrieve property {id}")
            raise StoreError(f"Failed to retrieve property with id {id}: {e}") from e

    async def ping(self) -> bool:
        try:
            await self.collection.database.command("ping")
        except pymongo.errors.PyMongoError as e:
            raise StoreError(f"Database is unreachable: {e}") from e
        return True

    async def ensure_indexes(self) -> list[str]:
        indexes = [
            pymongo.IndexModel(
                [("name", pymongo.TEXT), ("address", pymongo.TEXT)],
                name="text_search_index",
            ),
            pymongo.IndexModel([("price", pymongo.ASCENDING)]),
            pymongo.IndexModel([("property_type", pymongo.ASCENDING)]),
            pymongo.IndexModel([("is_available", pymongo.ASCENDING)]),
            pymongo.IndexModel([("owner_id", pymongo.ASCENDING)]),
            pymongo.IndexModel([("created_at", pymongo.DESCENDING), ("_id", pymongo.ASCENDING)]),
        ]
        try:
            return await self.collection.create_indexes(indexes)
        except pymongo.errors.PyMongoError as e:
            logger.exception("Failed to create property indexes")
            raise StoreError(f"Failed to create indexes: {e}") from e


class InMemoryPropertyStore:
    """Dict-backed store with the same interface as `MongoPropertyStore`.

    Records are copied on the way in and out so callers never share state with
    the store.
    """

    def __init__(self):
        self.records: dict[str, app.properties.models.Property] = {}

    async def find_matching(
        self,
        predicates: list[app.properties.filters.Predicate],
        sort: list[tuple[str, int]],
        skip: int,
        limit: int,
    ) -> list[app.properties.models.Property]:
        matching = [
            record
            for record in self.records.values()
            if app.properties.filters.matches_all(predicates, record)
        ]
        # Stable sorts applied from the least significant key
        for key, direction in reversed(sort):
            matching.sort(key=operator.attrgetter(key), reverse=direction == pymongo.DESCENDING)
        return [record.model_copy() for record in matching[skip : skip + limit]]

    async def count_matching(self, predicates: list[app.properties.filters.Predicate]) -> int:
        return sum(
            1
            for record in self.records.values()
            if app.properties.filters.matches_all(predicates, record)
        )

    async def insert(self, record: app.properties.models.Property) -> app.properties.models.Property:
        stored = record.model_copy(update={"id": str(bson.ObjectId())})
        self.records[stored.id] = stored
        return stored.model_copy()

    async def replace(self, id: str, record: app.properties.models.Property) -> bool:
        if id not in self.records:
            return False
        self.records[id] = record.model_copy(update={"id": id})
        return True

    async def delete_by_key(self, id: str) -> bool:
        return self.records.pop(id, None) is not None

    async def find_by_key(self, id: str) -> app.properties.models.Property | None:
        record = self.records.get(id)
        return record.model_copy() if record is not None else None

    async def ping(self) -> bool:
        return True

    async def ensure_indexes(self) -> list[str]:
        return []


@functools.lru_cache
def get_store() -> MongoPropertyStore | InMemoryPropertyStore:
    backend = app.settings.get_store_backend()
    if backend == "memory":
        logger.info("Using in-memory property store")
        return InMemoryPropertyStore()
    if backend != "mongodb":
        raise ValueError(f"Unknown store backend: {backend}")
    client = motor.motor_asyncio.AsyncIOMotorClient(
        app.settings.get_mongodb_uri(),
        server_api=pymongo.server_api.ServerApi("1"),
        serverSelectionTimeoutMS=app.settings.config["server_selection_timeout_ms"],
        timeoutMS=app.settings.config["timeout_ms"],
        tz_aware=True,
    )
    database = client.get_database(app.settings.get_database_name())
    collection = database.get_collection(app.settings.config["properties_collection_name"])
    logger.info(f"Using MongoDB property store, database {database.name}")
    return MongoPropertyStore(collection)
