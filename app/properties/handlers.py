import datetime
import logging

import app.properties.filters
import app.properties.mappers
import app.properties.models
import app.properties.store

logger = logging.getLogger(__name__)


def utc_now() -> datetime.datetime:
    # MongoDB keeps millisecond precision, so stamp at that precision
    now = datetime.datetime.now(datetime.timezone.utc)
    return now.replace(microsecond=now.microsecond // 1000 * 1000)


class PropertySearchEngine:
    """Filtered search and CRUD over a property store.

    The engine holds no state of its own. Bad filter input is repaired or
    ignored rather than rejected; store failures propagate as `StoreError`.
    Missing records are reported as None (or False for `delete`).
    """

    def __init__(self, store):
        self.store = store

    async def search(
        self, spec: app.properties.models.FilterSpec
    ) -> app.properties.models.PageResult[app.properties.models.Property]:
        spec = app.properties.filters.normalize_filter(spec)
        predicates = app.properties.filters.build_predicates(spec)
        skip = (spec.page_number - 1) * spec.page_size
        total_count = await self.store.count_matching(predicates)
        if skip >= total_count:
            # Nothing to fetch past the last match, however large the offset
            items = []
        else:
            items = await self.store.find_matching(
                predicates,
                sort=app.properties.filters.DEFAULT_SORT,
                skip=skip,
                limit=spec.page_size,
            )
        logger.debug(
            f"Search on {[predicate.field for predicate in predicates]} matched "
            f"{total_count} properties, returning {len(items)} from offset {skip}"
        )
        return app.properties.models.PageResult[app.properties.models.Property](
            items=items,
            page_number=spec.page_number,
            page_size=spec.page_size,
            total_count=total_count,
        )

    async def get_by_id(self, id: str) -> app.properties.models.Property | None:
        if not app.properties.store.is_valid_id(id):
            return None
        return await self.store.find_by_key(id)

    async def create(
        self, payload: app.properties.models.PropertyIn
    ) -> app.properties.models.Property:
        now = utc_now()
        record = app.properties.mappers.to_record(payload, created_at=now, updated_at=now)
        created = await self.store.insert(record)
        logger.info(f"Created property {created.id}")
        return created

    async def update(
        self, id: str, payload: app.properties.models.PropertyIn
    ) -> app.properties.models.Property | None:
        existing = await self.get_by_id(id)
        if existing is None:
            return None
        record = app.properties.mappers.to_record(
            payload,
            created_at=existing.created_at,
            updated_at=max(utc_now(), existing.created_at),
            id=id,
        )
        # The record may have been deleted since it was read
        if not await self.store.replace(id, record):
            return None
        logger.info(f"Updated property {id}")
        return record

    async def delete(self, id: str) -> bool:
        if not app.properties.store.is_valid_id(id):
            return False
        deleted = await self.store.delete_by_key(id)
        if deleted:
            logger.info(f"Deleted property {id}")
        return deleted

    async def count(self) -> int:
        return await self.store.count_matching([])
