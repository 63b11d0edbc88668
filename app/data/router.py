import fastapi

import logging

import app.data.handlers
import app.properties.store

data_router = fastapi.APIRouter()
logger = logging.getLogger(__name__)


@data_router.post("/seed", include_in_schema=False)
async def seed(
    store=fastapi.Depends(app.properties.store.get_store),
):
    try:
        response = await app.data.handlers.seed_handler(store)
        logger.info(f"Seeded data - {response}")
        return response
    except Exception as e:
        raise fastapi.HTTPException(status_code=500, detail=str(e))
