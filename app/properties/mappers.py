import bson

import datetime

import app.properties.models


def to_summary(record: app.properties.models.Property) -> app.properties.models.PropertySummary:
    return app.properties.models.PropertySummary(
        id=record.id,
        name=record.name,
        address=record.address,
        price=record.price,
        image_url=record.image_url,
        property_type=app.properties.models.property_type_token(record.property_type),
        is_available=record.is_available,
    )


def to_detail(record: app.properties.models.Property) -> app.properties.models.PropertyDetail:
    return app.properties.models.PropertyDetail(
        id=record.id,
        owner_id=record.owner_id,
        name=record.name,
        address=record.address,
        price=record.price,
        image_url=record.image_url,
        description=record.description,
        bedrooms=record.bedrooms,
        bathrooms=record.bathrooms,
        square_meters=record.square_meters,
        property_type=app.properties.models.property_type_token(record.property_type),
        is_available=record.is_available,
        created_at=record.created_at,
        updated_at=record.updated_at,
    )


def to_record(
    payload: app.properties.models.PropertyIn,
    created_at: datetime.datetime,
    updated_at: datetime.datetime,
    id: str | None = None,
) -> app.properties.models.Property:
    return app.properties.models.Property(
        id=id,
        owner_id=payload.owner_id,
        name=payload.name,
        address=payload.address,
        price=payload.price,
        image_url=payload.image_url,
        description=payload.description,
        bedrooms=payload.bedrooms,
        bathrooms=payload.bathrooms,
        square_meters=payload.square_meters,
        property_type=app.properties.models.parse_property_type(payload.property_type),
        is_available=payload.is_available,
        created_at=created_at,
        updated_at=updated_at,
    )


def to_document(record: app.properties.models.Property) -> dict:
    """Convert a record to its MongoDB document; `_id` is omitted for unsaved records."""
    document = {
        "owner_id": record.owner_id,
        "name": record.name,
        "address": record.address,
        "price": record.price,
        "image_url": record.image_url,
        "description": record.description,
        "bedrooms": record.bedrooms,
        "bathrooms": record.bathrooms,
        "square_meters": record.square_meters,
        "property_type": app.properties.models.property_type_token(record.property_type),
        "is_available": record.is_available,
        "created_at": record.created_at,
        "updated_at": record.updated_at,
    }
    if record.id is not None:
        document["_id"] = bson.ObjectId(record.id)
    return document


def from_document(document: dict) -> app.properties.models.Property:
    return app.properties.models.Property(
        id=str(document["_id"]),
        owner_id=document["owner_id"],
        name=document["name"],
        address=document["address"],
        price=document["price"],
        image_url=document["image_url"],
        description=document.get("description"),
        bedrooms=document.get("bedrooms"),
        bathrooms=document.get("bathrooms"),
        square_meters=document.get("square_meters"),
        property_type=app.properties.models.parse_property_type(document.get("property_type")),
        is_available=document.get("is_available", True),
        created_at=document["created_at"],
        updated_at=document["updated_at"],
    )


def to_summary_page(
    result: app.properties.models.PageResult[app.properties.models.Property],
) -> app.properties.models.PageResult[app.properties.models.PropertySummary]:
    return app.properties.models.PageResult[app.properties.models.PropertySummary](
        items=[to_summary(record) for record in result.items],
        page_number=result.page_number,
        page_size=result.page_size,
        total_count=result.total_count,
    )
