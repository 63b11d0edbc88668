import httpx
import pytest
import pytest_asyncio

import datetime

import app.main
import app.properties.handlers
import app.properties.models
import app.properties.store

from factories import BASE_TIME, make_record


@pytest.fixture
def store():
    return app.properties.store.InMemoryPropertyStore()


@pytest.fixture
def engine(store):
    return app.properties.handlers.PropertySearchEngine(store)


@pytest_asyncio.fixture
async def listings(store):
    """Four properties created an hour apart, oldest first."""
    specs = [
        ("Luxury Downtown Apartment", "123 Main St, New York, NY 10001", 850000.0, app.properties.models.PropertyType.APARTMENT, True),
        ("Suburban Family House", "456 Oak Avenue, Los Angeles, CA 90001", 1200000.0, app.properties.models.PropertyType.HOUSE, True),
        ("Beach Condo Paradise", "789 Ocean Drive, Miami, FL 33139", 650000.0, app.properties.models.PropertyType.CONDO, True),
        ("Mountain Retreat Townhouse", "321 Pine Street, Denver, CO 80201", 450000.0, app.properties.models.PropertyType.TOWNHOUSE, False),
    ]
    records = []
    for hours, (name, address, price, property_type, is_available) in enumerate(specs):
        record = make_record(
            created_at=BASE_TIME + datetime.timedelta(hours=hours),
            name=name,
            address=address,
            price=price,
            property_type=property_type,
            is_available=is_available,
        )
        records.append(await store.insert(record))
    return records


@pytest_asyncio.fixture
async def client(store):
    app.main.app.dependency_overrides[app.properties.store.get_store] = lambda: store
    transport = httpx.ASGITransport(app=app.main.app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
    app.main.app.dependency_overrides.clear()
