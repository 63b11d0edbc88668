import fastapi

import logging

import app.properties.dependencies
import app.properties.handlers
import app.properties.mappers
import app.properties.models
import app.properties.store
import app.settings

properties_router = fastapi.APIRouter()
logger = logging.getLogger(__name__)


def _invalid_id_response() -> fastapi.HTTPException:
    return fastapi.HTTPException(status_code=400, detail="Invalid property ID")


def _not_found_response(id: str) -> fastapi.HTTPException:
    return fastapi.HTTPException(status_code=404, detail=f"Property with ID {id} not found")


@properties_router.get(
    "/properties",
    response_model=app.properties.models.PageResult[app.properties.models.PropertySummary],
)
async def search_properties(
    name: str = None,
    address: str = None,
    min_price: float = None,
    max_price: float = None,
    property_type: str = None,
    is_available: bool = None,
    page_number: int = 1,
    page_size: int = app.settings.config["default_page_size"],
    engine: app.properties.handlers.PropertySearchEngine = fastapi.Depends(
        app.properties.dependencies.get_engine
    ),
):
    spec = app.properties.models.FilterSpec(
        name=name,
        address=address,
        min_price=min_price,
        max_price=max_price,
        property_type=property_type,
        is_available=is_available,
        page_number=page_number,
        page_size=page_size,
    )
    try:
        result = await engine.search(spec)
    except app.properties.store.StoreError as e:
        logger.error(f"{str(e)} returned for search: {spec.model_dump()}")
        raise fastapi.HTTPException(
            status_code=500, detail="An error occurred while fetching properties"
        )
    return app.properties.mappers.to_summary_page(result)


@properties_router.get(
    "/properties/{id}", response_model=app.properties.models.PropertyDetail
)
async def get_property(
    id: str,
    engine: app.properties.handlers.PropertySearchEngine = fastapi.Depends(
        app.properties.dependencies.get_engine
    ),
):
    if not id.strip():
        raise _invalid_id_response()
    try:
        record = await engine.get_by_id(id)
    except app.properties.store.StoreError as e:
        logger.error(str(e))
        raise fastapi.HTTPException(
            status_code=500, detail="An error occurred while fetching the property"
        )
    if record is None:
        raise _not_found_response(id)
    return app.properties.mappers.to_detail(record)


@properties_router.post(
    "/properties",
    response_model=app.properties.models.PropertyDetail,
    status_code=201,
)
async def create_property(
    payload: app.properties.models.PropertyIn,
    request: fastapi.Request,
    response: fastapi.Response,
    engine: app.properties.handlers.PropertySearchEngine = fastapi.Depends(
        app.properties.dependencies.get_engine
    ),
):
    try:
        record = await engine.create(payload)
    except app.properties.store.StoreError as e:
        logger.error(str(e))
        raise fastapi.HTTPException(
            status_code=500, detail="An error occurred while creating the property"
        )
    response.headers["Location"] = str(request.url_for("get_property", id=record.id))
    return app.properties.mappers.to_detail(record)


@properties_router.put(
    "/properties/{id}", response_model=app.properties.models.PropertyDetail
)
async def update_property(
    id: str,
    payload: app.properties.models.PropertyIn,
    engine: app.properties.handlers.PropertySearchEngine = fastapi.Depends(
        app.properties.dependencies.get_engine
    ),
):
    if not id.strip():
        raise _invalid_id_response()
    try:
        record = await engine.update(id, payload)
    except app.properties.store.StoreError as e:
        logger.error(str(e))
        raise fastapi.HTTPException(
            status_code=500, detail="An error occurred while updating the property"
        )
    if record is None:
        raise _not_found_response(id)
    return app.properties.mappers.to_detail(record)


@properties_router.delete("/properties/{id}", status_code=204)
async def delete_property(
    id: str,
    engine: app.properties.handlers.PropertySearchEngine = fastapi.Depends(
        app.properties.dependencies.get_engine
    ),
):
    if not id.strip():
        raise _invalid_id_response()
    try:
        deleted = await engine.delete(id)
    except app.properties.store.StoreError as e:
        logger.error(str(e))
        raise fastapi.HTTPException(
            status_code=500, detail="An error occurred while deleting the property"
        )
    if not deleted:
        raise _not_found_response(id)
    return fastapi.Response(status_code=204)
