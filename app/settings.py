import dotenv

import json
import os
import pathlib

dotenv.load_dotenv()
config_fp = pathlib.Path(__file__).parent.parent.joinpath("config.json")
with open(config_fp, "r") as f:
    config = json.load(f)


def get_mongodb_uri() -> str:
    uri = os.getenv("MONGODB_URI")
    if uri:
        return uri
    return config["mongodb_uri"].format(
        username=os.getenv("MONGODB_USERNAME"),
        password=os.getenv("MONGODB_PASSWORD"),
        cluster_name=os.getenv("MONGODB_CLUSTER_NAME"),
    )


def get_database_name() -> str:
    return os.getenv("MONGODB_DATABASE_NAME", "real_estate")


def get_store_backend() -> str:
    return os.getenv("PROPERTY_STORE") or config["store_backend"]
