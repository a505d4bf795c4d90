from datetime import date, datetime
from decimal import Decimal

import pytest
from bson import ObjectId
from bson.decimal128 import Decimal128
from pymongo import ReturnDocument
from pymongo.errors import ServerSelectionTimeoutError

from stores.mongo import MongoStore, _from_mongo, _oid, _to_mongo, translate_errors
from utils.errors import TransientError


def test_oid():
    oid = ObjectId()
    assert _oid(oid) is oid
    assert _oid(str(oid)) == oid
    assert _oid("not-an-id") is None
    assert _oid(None) is None


def test_listing_to_mongo():
    farmer_id = str(ObjectId())

    doc = _to_mongo({
        "id": "ignored",
        "farmer_id": farmer_id,
        "quantity": Decimal("2.5"),
        "unit_price": Decimal("1.20"),
        "planted_on": date(2026, 3, 1),
        "created_at": datetime(2026, 3, 2, 9, 30),
        "image_url": None,
    })

    assert "id" not in doc
    assert doc["farmer_id"] == ObjectId(farmer_id)
    assert doc["quantity"] == Decimal128("2.5")
    assert doc["planted_on"] == datetime(2026, 3, 1)
    assert doc["created_at"] == datetime(2026, 3, 2, 9, 30)
    assert doc["image_url"] is None


def test_listing_from_mongo():
    oid, farmer = ObjectId(), ObjectId()

    listing = _from_mongo({
        "_id": oid,
        "farmer_id": farmer,
        "quantity": Decimal128("2.5"),
        "unit_price": Decimal128("1.20"),
        "planted_on": datetime(2026, 3, 1),
        "created_at": datetime(2026, 3, 2, 9, 30),
    })

    assert listing["id"] == str(oid)
    assert listing["farmer_id"] == str(farmer)
    assert listing["quantity"] == Decimal("2.5")
    assert listing["unit_price"] == Decimal("1.20")
    assert listing["planted_on"] == date(2026, 3, 1)
    assert listing["created_at"] == datetime(2026, 3, 2, 9, 30)
    assert _from_mongo(None) is None


async def test_connection_failures_become_transient():
    @translate_errors
    async def unreachable():
        raise ServerSelectionTimeoutError("no servers")

    with pytest.raises(TransientError) as exc:
        await unreachable()

    assert exc.value.retryable is True
    assert exc.value.extra["backend_error"] == "ServerSelectionTimeoutError"


# -------------------------------------------------
# Conditional stock decrement
# -------------------------------------------------

class RecordingListings:
    def __init__(self, result):
        self.result = result
        self.calls = []

    async def find_one_and_update(self, filter, update, **kwargs):
        self.calls.append((filter, update, kwargs))
        return self.result


class FakeDB:
    def __init__(self, listings):
        self.listings = listings


async def test_decrement_is_one_conditional_update():
    oid = ObjectId()
    listings = RecordingListings({
        "_id": oid,
        "quantity": Decimal128("3"),
        "unit_price": Decimal128("2.00"),
        "status": "active",
    })
    store = MongoStore(FakeDB(listings))

    updated = await store.decrement_stock(str(oid), Decimal("2"))

    assert len(listings.calls) == 1
    filter, pipeline, kwargs = listings.calls[0]
    assert filter == {"_id": oid, "status": "active", "quantity": {"$gte": Decimal128("2")}}
    assert pipeline[0]["$set"]["quantity"] == {"$subtract": ["$quantity", Decimal128("2")]}
    assert pipeline[1]["$set"]["status"] == {"$cond": [{"$lte": ["$quantity", 0]}, "inactive", "$status"]}
    assert kwargs["return_document"] == ReturnDocument.AFTER

    assert updated["id"] == str(oid)
    assert updated["quantity"] == Decimal("3")


async def test_decrement_that_matches_nothing_returns_none():
    listings = RecordingListings(None)
    store = MongoStore(FakeDB(listings))

    assert await store.decrement_stock(str(ObjectId()), Decimal("1")) is None
    assert await store.decrement_stock("not-an-id", Decimal("1")) is None
    assert len(listings.calls) == 1
