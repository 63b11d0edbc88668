"""Search filter construction.

A search is described by a `FilterSpec`. Before it reaches a store the spec is
normalised (pagination clamped into range) and turned into a list of
`Predicate` objects, one per active constraint. Each predicate carries both its
MongoDB query clause and a Python test, so the same list drives the MongoDB
store and the in-memory one. An empty list matches every record.
"""
import pymongo

import dataclasses
import math
import re
import typing

import app.properties.models
import app.settings

DEFAULT_SORT = [("created_at", pymongo.DESCENDING), ("id", pymongo.ASCENDING)]


@dataclasses.dataclass(frozen=True)
class Predicate:
    field: str
    query: dict
    test: typing.Callable[[app.properties.models.Property], bool]

    def __call__(self, record: app.properties.models.Property) -> bool:
        return self.test(record)


def normalize_filter(
    spec: app.properties.models.FilterSpec,
) -> app.properties.models.FilterSpec:
    default_page_size = app.settings.config["default_page_size"]
    max_page_size = app.settings.config["max_page_size"]
    page_number = spec.page_number if spec.page_number >= 1 else 1
    page_size = spec.page_size if spec.page_size >= 1 else default_page_size
    page_size = min(page_size, max_page_size)
    return spec.model_copy(update={"page_number": page_number, "page_size": page_size})


def contains_text(field: str, value: str | None) -> Predicate | None:
    if value is None or not value.strip():
        return None
    pattern = re.compile(re.escape(value), re.IGNORECASE)
    return Predicate(
        field=field,
        query={field: {"$regex": re.escape(value), "$options": "i"}},
        test=lambda record: pattern.search(getattr(record, field)) is not None,
    )


def price_at_least(min_price: float | None) -> Predicate | None:
    if min_price is None or not math.isfinite(min_price):
        return None
    return Predicate(
        field="price",
        query={"price": {"$gte": min_price}},
        test=lambda record: record.price >= min_price,
    )


def price_at_most(max_price: float | None) -> Predicate | None:
    if max_price is None or not math.isfinite(max_price):
        return None
    return Predicate(
        field="price",
        query={"price": {"$lte": max_price}},
        test=lambda record: record.price <= max_price,
    )


def type_is(token: str | None) -> Predicate | None:
    # Unrecognised tokens drop the constraint instead of failing the search
    property_type = app.properties.models.parse_property_type(token)
    if property_type is None:
        return None
    return Predicate(
        field="property_type",
        query={"property_type": app.properties.models.property_type_token(property_type)},
        test=lambda record: record.property_type == property_type,
    )


def availability_is(is_available: bool | None) -> Predicate | None:
    if is_available is None:
        return None
    return Predicate(
        field="is_available",
        query={"is_available": is_available},
        test=lambda record: record.is_available is is_available,
    )


def build_predicates(spec: app.properties.models.FilterSpec) -> list[Predicate]:
    candidates = [
        contains_text("name", spec.name),
        contains_text("address", spec.address),
        price_at_least(spec.min_price),
        price_at_most(spec.max_price),
        type_is(spec.property_type),
        availability_is(spec.is_available),
    ]
    return [predicate for predicate in candidates if predicate is not None]


def combine(predicates: list[Predicate]) -> dict:
    """AND the predicates into a single MongoDB query document."""
    if not predicates:
        return {}
    if len(predicates) == 1:
        return dict(predicates[0].query)
    return {"$and": [predicate.query for predicate in predicates]}


def matches_all(predicates: list[Predicate], record: app.properties.models.Property) -> bool:
    return all(predicate(record) for predicate in predicates)
