import fastapi
import fastapi.responses

import datetime
import logging

import app.properties.dependencies
import app.properties.handlers
import app.properties.store

health_router = fastapi.APIRouter()
logger = logging.getLogger(__name__)

SERVICE_NAME = "RealEstate.API"


@health_router.get("/health")
async def health():
    return {
        "status": "Healthy",
        "timestamp": datetime.datetime.now(datetime.timezone.utc),
        "service": SERVICE_NAME,
    }


@health_router.get("/health/detailed")
async def detailed_health(
    engine: app.properties.handlers.PropertySearchEngine = fastapi.Depends(
        app.properties.dependencies.get_engine
    ),
):
    timestamp = datetime.datetime.now(datetime.timezone.utc)
    try:
        await engine.store.ping()
        property_count = await engine.count()
    except app.properties.store.StoreError as e:
        logger.error(f"Health check failed: {e}")
        return fastapi.responses.JSONResponse(
            status_code=503,
            content={
                "status": "Unhealthy",
                "timestamp": timestamp.isoformat(),
                "service": SERVICE_NAME,
                "database": {"status": "Disconnected", "error": str(e)},
            },
        )
    return {
        "status": "Healthy",
        "timestamp": timestamp,
        "service": SERVICE_NAME,
        "database": {"status": "Connected", "property_count": property_count},
    }
