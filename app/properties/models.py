import pydantic

import datetime
import enum
import math
import typing

import app.settings

T = typing.TypeVar("T")
_HTTP_URL = pydantic.TypeAdapter(pydantic.HttpUrl)


class PropertyType(enum.Enum):
    HOUSE = 0
    APARTMENT = 1
    CONDO = 2
    TOWNHOUSE = 3
    LAND = 4
    COMMERCIAL = 5


PROPERTY_TYPE_TOKENS = {
    PropertyType.HOUSE: "House",
    PropertyType.APARTMENT: "Apartment",
    PropertyType.CONDO: "Condo",
    PropertyType.TOWNHOUSE: "Townhouse",
    PropertyType.LAND: "Land",
    PropertyType.COMMERCIAL: "Commercial",
}
_TOKEN_LOOKUP = {token.lower(): member for member, token in PROPERTY_TYPE_TOKENS.items()}


def parse_property_type(token: str | None) -> PropertyType | None:
    """Return the property type named by `token`, or None if it is not recognised.

    Matching ignores case and surrounding whitespace.
    """
    if not isinstance(token, str):
        return None
    return _TOKEN_LOOKUP.get(token.strip().lower())


def property_type_token(property_type: PropertyType) -> str:
    return PROPERTY_TYPE_TOKENS[property_type]


class Property(pydantic.BaseModel):
    id: str | None = None
    owner_id: str
    name: str
    address: str
    price: float = pydantic.Field(ge=0)
    image_url: str
    description: str | None = None
    bedrooms: int | None = pydantic.Field(default=None, ge=0)
    bathrooms: int | None = pydantic.Field(default=None, ge=0)
    square_meters: float | None = pydantic.Field(default=None, gt=0)
    property_type: PropertyType = PropertyType.HOUSE
    is_available: bool = True
    created_at: datetime.datetime
    updated_at: datetime.datetime

    @pydantic.model_validator(mode="after")
    def updated_after_created(self):
        if self.updated_at < self.created_at:
            raise ValueError("updated_at must not be earlier than created_at")
        return self


class PropertyIn(pydantic.BaseModel):
    owner_id: str = pydantic.Field(min_length=1)
    name: str = pydantic.Field(min_length=3, max_length=100)
    address: str = pydantic.Field(min_length=5, max_length=200)
    price: float = pydantic.Field(gt=0)
    image_url: str
    description: str | None = None
    bedrooms: int | None = pydantic.Field(default=None, ge=0, le=50)
    bathrooms: int | None = pydantic.Field(default=None, ge=0, le=20)
    square_meters: float | None = pydantic.Field(default=None, gt=0)
    property_type: str = "House"
    is_available: bool = True

    @pydantic.field_validator("owner_id", "name", "address")
    @classmethod
    def not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("Value must not be blank")
        return value

    @pydantic.field_validator("image_url")
    @classmethod
    def absolute_http_url(cls, value: str) -> str:
        # Validate only; the URL is stored exactly as given
        try:
            _HTTP_URL.validate_python(value)
        except pydantic.ValidationError:
            raise ValueError("Invalid URL format") from None
        return value

    @pydantic.field_validator("property_type")
    @classmethod
    def known_property_type(cls, value: str) -> str:
        property_type = parse_property_type(value)
        if property_type is None:
            raise ValueError("Invalid property type")
        return property_type_token(property_type)


class PropertySummary(pydantic.BaseModel):
    id: str
    name: str
    address: str
    price: float
    image_url: str
    property_type: str
    is_available: bool


class PropertyDetail(pydantic.BaseModel):
    id: str
    owner_id: str
    name: str
    address: str
    price: float
    image_url: str
    description: str | None
    bedrooms: int | None
    bathrooms: int | None
    square_meters: float | None
    property_type: str
    is_available: bool
    created_at: datetime.datetime
    updated_at: datetime.datetime


class FilterSpec(pydantic.BaseModel):
    name: str | None = None
    address: str | None = None
    min_price: float | None = None
    max_price: float | None = None
    property_type: str | None = None
    is_available: bool | None = None
    page_number: int = 1
    page_size: int = app.settings.config["default_page_size"]


class PageResult(pydantic.BaseModel, typing.Generic[T]):
    items: list[T]
    page_number: int
    page_size: int
    total_count: int

    @pydantic.computed_field
    @property
    def total_pages(self) -> int:
        if self.page_size < 1:
            return 0
        return math.ceil(self.total_count / self.page_size)

    @pydantic.computed_field
    @property
    def has_previous_page(self) -> bool:
        return self.page_number > 1

    @pydantic.computed_field
    @property
    def has_next_page(self) -> bool:
        return self.page_number < self.total_pages
