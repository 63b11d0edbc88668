import fastapi

import app.properties.handlers
import app.properties.store


def get_engine(
    store=fastapi.Depends(app.properties.store.get_store),
) -> app.properties.handlers.PropertySearchEngine:
    return app.properties.handlers.PropertySearchEngine(store)
