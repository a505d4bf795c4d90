import functools
import re
from datetime import date, datetime, time
from decimal import Decimal
from typing import List, Optional

from bson import ObjectId
from bson.decimal128 import Decimal128
from bson.errors import InvalidId
from pymongo import ReturnDocument
from pymongo.errors import ConnectionFailure, DuplicateKeyError

from stores.base import MarketStore
from utils.errors import ConflictError, TransientError
from utils.indexes import ensure_indexes

REF_FIELDS = ("farmer_id", "buyer_id", "listing_id", "sender_id", "receiver_id")
DECIMAL_FIELDS = ("quantity", "unit_price", "total")
DATE_FIELDS = ("planted_on", "harvest_on")


def _oid(value) -> Optional[ObjectId]:
    if isinstance(value, ObjectId):
        return value
    try:
        return ObjectId(value)
    except (InvalidId, TypeError):
        return None


def _to_mongo(doc: dict) -> dict:
    out = {}
    for k, v in doc.items():
        if k == "id":
            continue
        if k in REF_FIELDS and v is not None:
            v = _oid(v)
        elif isinstance(v, Decimal):
            v = Decimal128(v)
        elif isinstance(v, date) and not isinstance(v, datetime):
            v = datetime.combine(v, time.min)
        out[k] = v
    return out


def _from_mongo(doc: Optional[dict]) -> Optional[dict]:
    if not doc:
        return None

    out = {}
    for k, v in doc.items():
        if k == "_id":
            out["id"] = str(v)
            continue
        if isinstance(v, ObjectId):
            v = str(v)
        elif isinstance(v, Decimal128):
            v = v.to_decimal()
        elif k in DATE_FIELDS and isinstance(v, datetime):
            v = v.date()
        elif isinstance(v, dict):
            v = _from_mongo(v) if "_id" in v else v
        out[k] = v
    return out


def translate_errors(fn):
    """
    Surface lost connectivity as TransientError so callers can offer a retry.
    """
    @functools.wraps(fn)
    async def wrapper(*args, **kwargs):
        try:
            return await fn(*args, **kwargs)
        except ConnectionFailure as e:
            raise TransientError("Storage backend unavailable", backend_error=type(e).__name__)
    return wrapper


class MongoStore(MarketStore):

    def __init__(self, db):
        self.db = db

    async def ensure_indexes(self):
        await ensure_indexes(self.db)

    # -----------------------------
    # Users
    # -----------------------------

    @translate_errors
    async def create_user(self, user: dict) -> dict:
        doc = _to_mongo(dict(user, email=user["email"].lower()))
        try:
            result = await self.db.users.insert_one(doc)
        except DuplicateKeyError:
            raise ConflictError("Email already registered")
        doc["_id"] = result.inserted_id
        return _from_mongo(doc)

    @translate_errors
    async def get_user(self, user_id: str) -> Optional[dict]:
        oid = _oid(user_id)
        if not oid:
            return None
        return _from_mongo(await self.db.users.find_one({"_id": oid}))

    @translate_errors
    async def get_user_by_email(self, email: str) -> Optional[dict]:
        return _from_mongo(await self.db.users.find_one({"email": (email or "").lower()}))

    @translate_errors
    async def list_users(self) -> List[dict]:
        users = []
        async for u in self.db.users.find({}).sort("created_at", 1):
            users.append(_from_mongo(u))
        return users

    @translate_errors
    async def delete_user(self, user_id: str) -> bool:
        oid = _oid(user_id)
        if not oid:
            return False
        result = await self.db.users.delete_one({"_id": oid})
        return result.deleted_count == 1

    @translate_errors
    async def set_user_role(self, user_id: str, role: str) -> bool:
        oid = _oid(user_id)
        if not oid:
            return False
        result = await self.db.users.update_one({"_id": oid}, {"$set": {"role": role}})
        return result.matched_count == 1

    @translate_errors
    async def touch_user(self, user_id: str, at: datetime) -> None:
        oid = _oid(user_id)
        if oid:
            await self.db.users.update_one({"_id": oid}, {"$set": {"last_active_at": at}})

    # -----------------------------
    # Listings
    # -----------------------------

    @translate_errors
    async def create_listing(self, listing: dict) -> dict:
        doc = _to_mongo(listing)
        result = await self.db.listings.insert_one(doc)
        doc["_id"] = result.inserted_id
        return _from_mongo(doc)

    @translate_errors
    async def get_listing(self, listing_id: str) -> Optional[dict]:
        oid = _oid(listing_id)
        if not oid:
            return None
        return _from_mongo(await self.db.listings.find_one({"_id": oid}))

    @translate_errors
    async def list_listings(
        self,
        *,
        farmer_id=None,
        status=None,
        in_stock=False,
        category=None,
        search=None,
        limit=None,
    ) -> List[dict]:
        query: dict = {}

        if farmer_id:
            query["farmer_id"] = _oid(farmer_id)
        if status:
            query["status"] = status
        if in_stock:
            query["quantity"] = {"$gt": Decimal128("0")}
        if category:
            query["category"] = category
        if search:
            pattern = re.escape(search)
            query["$or"] = [
                {"name": {"$regex": pattern, "$options": "i"}},
                {"category": {"$regex": pattern, "$options": "i"}},
            ]

        cursor = self.db.listings.find(query).sort("created_at", -1)
        if limit:
            cursor = cursor.limit(limit)

        return [_from_mongo(l) async for l in cursor]

    @translate_errors
    async def update_listing(self, listing_id: str, fields: dict) -> Optional[dict]:
        oid = _oid(listing_id)
        if not oid:
            return None
        updated = await self.db.listings.find_one_and_update(
            {"_id": oid},
            {"$set": _to_mongo(fields)},
            return_document=ReturnDocument.AFTER,
        )
        return _from_mongo(updated)

    @translate_errors
    async def delete_listing(self, listing_id: str) -> bool:
        oid = _oid(listing_id)
        if not oid:
            return False
        result = await self.db.listings.delete_one({"_id": oid})
        return result.deleted_count == 1

    @translate_errors
    async def decrement_stock(self, listing_id: str, quantity: Decimal) -> Optional[dict]:
        oid = _oid(listing_id)
        if not oid:
            return None

        amount = Decimal128(quantity)
        updated = await self.db.listings.find_one_and_update(
            {"_id": oid, "status": "active", "quantity": {"$gte": amount}},
            [
                {"$set": {
                    "quantity": {"$subtract": ["$quantity", amount]},
                    "updated_at": datetime.utcnow(),
                }},
                {"$set": {
                    "status": {"$cond": [{"$lte": ["$quantity", 0]}, "inactive", "$status"]},
                }},
            ],
            return_document=ReturnDocument.AFTER,
        )
        return _from_mongo(updated)

    @translate_errors
    async def restore_stock(self, listing_id: str, quantity: Decimal, *, reactivate: bool) -> None:
        update = {
            "$inc": {"quantity": Decimal128(quantity)},
            "$set": {"updated_at": datetime.utcnow()},
        }
        if reactivate:
            update["$set"]["status"] = "active"

        await self.db.listings.update_one({"_id": _oid(listing_id)}, update)

    # -----------------------------
    # Sales
    # -----------------------------

    @translate_errors
    async def insert_sale(self, sale: dict) -> dict:
        doc = _to_mongo(sale)
        result = await self.db.sales.insert_one(doc)
        doc["_id"] = result.inserted_id
        return _from_mongo(doc)

    @translate_errors
    async def list_sales(self, *, farmer_id=None, buyer_id=None, limit=None) -> List[dict]:
        query = {}
        if farmer_id:
            query["farmer_id"] = _oid(farmer_id)
        if buyer_id:
            query["buyer_id"] = _oid(buyer_id)

        cursor = self.db.sales.find(query).sort("created_at", -1)
        if limit:
            cursor = cursor.limit(limit)

        return [_from_mongo(s) async for s in cursor]

    # -----------------------------
    # Messages
    # -----------------------------

    @translate_errors
    async def insert_message(self, message: dict) -> dict:
        doc = _to_mongo(message)
        result = await self.db.messages.insert_one(doc)
        doc["_id"] = result.inserted_id
        return _from_mongo(doc)

    @translate_errors
    async def get_thread(self, user_a: str, user_b: str, *, since=None, limit=None) -> List[dict]:
        a, b = _oid(user_a), _oid(user_b)
        query: dict = {
            "$or": [
                {"sender_id": a, "receiver_id": b},
                {"sender_id": b, "receiver_id": a},
            ]
        }
        if since is not None:
            query["created_at"] = {"$gt": since}

        if limit:
            # newest N, returned oldest first
            cursor = self.db.messages.find(query).sort("created_at", -1).limit(limit)
            items = [_from_mongo(m) async for m in cursor]
            items.reverse()
            return items

        cursor = self.db.messages.find(query).sort("created_at", 1)
        return [_from_mongo(m) async for m in cursor]

    @translate_errors
    async def mark_thread_read(self, receiver_id: str, sender_id: str) -> int:
        result = await self.db.messages.update_many(
            {"receiver_id": _oid(receiver_id), "sender_id": _oid(sender_id), "is_read": False},
            {"$set": {"is_read": True}},
        )
        return result.modified_count

    @translate_errors
    async def list_conversations(self, user_id: str) -> List[dict]:
        uid = _oid(user_id)
        pipeline = [
            {"$match": {"$or": [{"sender_id": uid}, {"receiver_id": uid}]}},
            {"$sort": {"created_at": -1}},
            {"$group": {
                "_id": {"$cond": [{"$eq": ["$sender_id", uid]}, "$receiver_id", "$sender_id"]},
                "last_message": {"$first": "$$ROOT"},
                "unread": {"$sum": {"$cond": [
                    {"$and": [{"$eq": ["$receiver_id", uid]}, {"$eq": ["$is_read", False]}]},
                    1,
                    0,
                ]}},
            }},
            {"$sort": {"last_message.created_at": -1}},
        ]

        rows = await self.db.messages.aggregate(pipeline).to_list(None)
        return [
            {
                "user_id": str(r["_id"]),
                "last_message": _from_mongo(r["last_message"]),
                "unread": r["unread"],
            }
            for r in rows
        ]

    @translate_errors
    async def count_unread(self, user_id: str) -> int:
        return await self.db.messages.count_documents(
            {"receiver_id": _oid(user_id), "is_read": False}
        )

    # -----------------------------
    # Sessions
    # -----------------------------

    @translate_errors
    async def revoke_session(self, jti: str, expires_at: datetime) -> None:
        await self.db.revoked_sessions.update_one(
            {"jti": jti},
            {"$setOnInsert": {"jti": jti, "expires_at": expires_at}},
            upsert=True,
        )

    @translate_errors
    async def is_session_revoked(self, jti: str) -> bool:
        return await self.db.revoked_sessions.find_one({"jti": jti}) is not None

    # -----------------------------
    # Audit
    # -----------------------------

    @translate_errors
    async def log_audit(self, entry: dict) -> None:
        await self.db.audit_logs.insert_one(dict(entry))

    @translate_errors
    async def purge_audit_logs(self, before: datetime) -> int:
        result = await self.db.audit_logs.delete_many({"created_at": {"$lt": before}})
        return result.deleted_count

    @translate_errors
    async def ping(self) -> None:
        await self.db.command("ping")
