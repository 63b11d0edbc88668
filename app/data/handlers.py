import pydantic
import pandas

import asyncio
import logging
import pathlib
import timeit

import app.properties.handlers
import app.properties.models
import app.properties.store
import app.settings


def parse_data(data_fp: pathlib.Path) -> list[app.properties.models.PropertyIn]:
    data = pandas.read_csv(data_fp, dtype={"owner_id": str})
    records = data.to_dict(orient="records")
    # Set any values that are NaN to None
    for record in records:
        for k, v in record.items():
            if pandas.isna(v):
                record[k] = None
    return [app.properties.models.PropertyIn(**record) for record in records]


async def insert_data(
    engine: app.properties.handlers.PropertySearchEngine,
    payloads: list[app.properties.models.PropertyIn],
    batch_size: int,
) -> int:
    num_rows_inserted = 0
    for i in range(0, len(payloads), batch_size):
        batch = payloads[i : i + batch_size]
        await asyncio.gather(*(engine.create(payload) for payload in batch))
        num_rows_inserted += len(batch)
    return num_rows_inserted


async def seed_handler(store, data_fp: pathlib.Path | None = None) -> dict:
    """Load sample properties from CSV into an empty store."""
    total_start_time = timeit.default_timer()
    if data_fp is None:
        data_fp = pathlib.Path(__file__).parent.joinpath(app.settings.config["seed_file"])
    engine = app.properties.handlers.PropertySearchEngine(store)
    if await engine.count() > 0:
        logging.info("Database already contains data, skipping seed")
        return {
            "data_file": str(data_fp),
            "num_rows_inserted": 0,
            "total_time_seconds": timeit.default_timer() - total_start_time,
        }
    try:
        payloads = parse_data(data_fp)
    except (OSError, pandas.errors.ParserError, pydantic.ValidationError) as e:
        logging.exception(e)
        raise ValueError(f"Failed to parse data from {data_fp}: {e}") from e
    await store.ensure_indexes()
    num_rows_inserted = await insert_data(
        engine, payloads, batch_size=app.settings.config["seed_batch_size"]
    )
    total_end_time = timeit.default_timer()
    return {
        "data_file": str(data_fp),
        "num_rows_inserted": num_rows_inserted,
        "total_time_seconds": total_end_time - total_start_time,
    }


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    response = asyncio.run(seed_handler(app.properties.store.get_store()))
    print(response)
