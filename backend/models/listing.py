from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from typing import Optional
from datetime import date
from decimal import Decimal
from enum import Enum

from config.constants import (
    AMOUNT_MAX_DIGITS,
    DEFAULT_UNIT,
    LISTING_UNITS,
    PRICE_DECIMAL_PLACES,
    QUANTITY_DECIMAL_PLACES,
)


class ListingStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"


def _normalize_unit(value: str) -> str:
    unit = (value or "").strip().lower()
    if unit not in LISTING_UNITS:
        raise ValueError(f"Unit must be one of: {', '.join(sorted(LISTING_UNITS))}")
    return unit


class ListingCreate(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(..., min_length=1, max_length=120)
    category: str = Field(..., min_length=1, max_length=60)
    planted_on: date
    harvest_on: date

    quantity: Decimal = Field(
        ..., gt=0, max_digits=AMOUNT_MAX_DIGITS, decimal_places=QUANTITY_DECIMAL_PLACES
    )
    unit: str = DEFAULT_UNIT
    unit_price: Decimal = Field(
        ..., ge=0, max_digits=AMOUNT_MAX_DIGITS, decimal_places=PRICE_DECIMAL_PLACES
    )

    image_url: Optional[str] = None

    @field_validator("unit")
    @classmethod
    def check_unit(cls, value):
        return _normalize_unit(value)

    @model_validator(mode="after")
    def check_dates(self):
        if self.harvest_on < self.planted_on:
            raise ValueError("Harvest date cannot precede planting date")
        return self


class ListingUpdate(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    name: Optional[str] = Field(None, min_length=1, max_length=120)
    category: Optional[str] = Field(None, min_length=1, max_length=60)
    planted_on: Optional[date] = None
    harvest_on: Optional[date] = None

    quantity: Optional[Decimal] = Field(
        None, ge=0, max_digits=AMOUNT_MAX_DIGITS, decimal_places=QUANTITY_DECIMAL_PLACES
    )
    unit: Optional[str] = None
    unit_price: Optional[Decimal] = Field(
        None, ge=0, max_digits=AMOUNT_MAX_DIGITS, decimal_places=PRICE_DECIMAL_PLACES
    )

    status: Optional[ListingStatus] = None
    image_url: Optional[str] = None

    @field_validator("unit")
    @classmethod
    def check_unit(cls, value):
        if value is None:
            return value
        return _normalize_unit(value)
