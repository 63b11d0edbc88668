import fastapi
import fastapi.exceptions
import fastapi.responses
import starlette.exceptions

import datetime
import logging

from app.data.router import data_router
from app.health.router import health_router
from app.properties.router import properties_router

logging.basicConfig(
    level=logging.INFO,
    format="%(levelname)s - %(name)s - %(asctime)s - %(message)s",
)
app = fastapi.FastAPI(title="Real Estate API", version="1.0.0")
app.include_router(properties_router, prefix="/api")
app.include_router(health_router, prefix="/api")
app.include_router(data_router, prefix="/private")


@app.exception_handler(starlette.exceptions.HTTPException)
async def http_exception_handler(request, exc):
    return fastapi.responses.JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.detail},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(fastapi.exceptions.RequestValidationError)
async def validation_exception_handler(request, exc):
    errors = [
        {
            "field": ".".join(str(part) for part in error["loc"][1:]) or str(error["loc"][0]),
            "message": error["msg"],
        }
        for error in exc.errors()
    ]
    return fastapi.responses.JSONResponse(status_code=400, content={"errors": errors})


@app.get("/")
async def root():
    return {
        "service": "Real Estate API",
        "version": app.version,
        "status": "Running",
        "documentation": "/docs",
        "health": "/api/health",
        "timestamp": datetime.datetime.now(datetime.timezone.utc),
    }
