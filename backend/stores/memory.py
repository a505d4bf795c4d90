import asyncio
import copy
import uuid
from datetime import datetime
from decimal import Decimal
from typing import Dict, List, Optional

from stores.base import MarketStore
from utils.errors import ConflictError


def _new_id() -> str:
    return uuid.uuid4().hex


def _copy(doc: Optional[dict]) -> Optional[dict]:
    return copy.deepcopy(doc) if doc is not None else None


class InMemoryStore(MarketStore):
    """
    Process-local store for tests and local development.
    The stock check-and-decrement runs under a lock so it behaves like the
    conditional update of the Mongo adapter.
    """

    def __init__(self):
        self.users: Dict[str, dict] = {}
        self.listings: Dict[str, dict] = {}
        self.sales: List[dict] = []
        self.messages: List[dict] = []
        self.revoked: Dict[str, datetime] = {}
        self.audit_logs: List[dict] = []
        self._stock_lock = asyncio.Lock()

    # -----------------------------
    # Users
    # -----------------------------

    async def create_user(self, user: dict) -> dict:
        email = user["email"].lower()
        if any(u["email"] == email for u in self.users.values()):
            raise ConflictError("Email already registered")

        doc = dict(user, id=_new_id(), email=email)
        self.users[doc["id"]] = doc
        return _copy(doc)

    async def get_user(self, user_id: str) -> Optional[dict]:
        return _copy(self.users.get(user_id))

    async def get_user_by_email(self, email: str) -> Optional[dict]:
        email = (email or "").lower()
        for u in self.users.values():
            if u["email"] == email:
                return _copy(u)
        return None

    async def list_users(self) -> List[dict]:
        users = sorted(self.users.values(), key=lambda u: u["created_at"])
        return [_copy(u) for u in users]

    async def delete_user(self, user_id: str) -> bool:
        return self.users.pop(user_id, None) is not None

    async def set_user_role(self, user_id: str, role: str) -> bool:
        user = self.users.get(user_id)
        if not user:
            return False
        user["role"] = role
        return True

    async def touch_user(self, user_id: str, at: datetime) -> None:
        user = self.users.get(user_id)
        if user:
            user["last_active_at"] = at

    # -----------------------------
    # Listings
    # -----------------------------

    async def create_listing(self, listing: dict) -> dict:
        doc = dict(listing, id=_new_id())
        self.listings[doc["id"]] = doc
        return _copy(doc)

    async def get_listing(self, listing_id: str) -> Optional[dict]:
        return _copy(self.listings.get(listing_id))

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
        items = []
        for listing in self.listings.values():
            if farmer_id and listing["farmer_id"] != farmer_id:
                continue
            if status and listing["status"] != status:
                continue
            if in_stock and listing["quantity"] <= 0:
                continue
            if category and listing["category"] != category:
                continue
            if search:
                needle = search.lower()
                if needle not in listing["name"].lower() and needle not in listing["category"].lower():
                    continue
            items.append(listing)

        items.sort(key=lambda l: l["created_at"], reverse=True)
        if limit:
            items = items[:limit]
        return [_copy(l) for l in items]

    async def update_listing(self, listing_id: str, fields: dict) -> Optional[dict]:
        listing = self.listings.get(listing_id)
        if not listing:
            return None
        listing.update(fields)
        return _copy(listing)

    async def delete_listing(self, listing_id: str) -> bool:
        return self.listings.pop(listing_id, None) is not None

    async def decrement_stock(self, listing_id: str, quantity: Decimal) -> Optional[dict]:
        async with self._stock_lock:
            listing = self.listings.get(listing_id)
            if not listing or listing["status"] != "active" or listing["quantity"] < quantity:
                return None

            listing["quantity"] = listing["quantity"] - quantity
            if listing["quantity"] == 0:
                listing["status"] = "inactive"
            listing["updated_at"] = datetime.utcnow()
            return _copy(listing)

    async def restore_stock(self, listing_id: str, quantity: Decimal, *, reactivate: bool) -> None:
        async with self._stock_lock:
            listing = self.listings.get(listing_id)
            if not listing:
                return
            listing["quantity"] = listing["quantity"] + quantity
            if reactivate:
                listing["status"] = "active"
            listing["updated_at"] = datetime.utcnow()

    # -----------------------------
    # Sales
    # -----------------------------

    async def insert_sale(self, sale: dict) -> dict:
        doc = dict(sale, id=_new_id())
        self.sales.append(doc)
        return _copy(doc)

    async def list_sales(self, *, farmer_id=None, buyer_id=None, limit=None) -> List[dict]:
        items = [
            s for s in self.sales
            if (not farmer_id or s["farmer_id"] == farmer_id)
            and (not buyer_id or s["buyer_id"] == buyer_id)
        ]
        items.sort(key=lambda s: s["created_at"], reverse=True)
        if limit:
            items = items[:limit]
        return [_copy(s) for s in items]

    # -----------------------------
    # Messages
    # -----------------------------

    async def insert_message(self, message: dict) -> dict:
        doc = dict(message, id=_new_id())
        self.messages.append(doc)
        return _copy(doc)

    async def get_thread(self, user_a: str, user_b: str, *, since=None, limit=None) -> List[dict]:
        pair = {user_a, user_b}
        items = [
            m for m in self.messages
            if {m["sender_id"], m["receiver_id"]} == pair
            and (since is None or m["created_at"] > since)
        ]
        items.sort(key=lambda m: m["created_at"])
        if limit:
            items = items[-limit:]
        return [_copy(m) for m in items]

    async def mark_thread_read(self, receiver_id: str, sender_id: str) -> int:
        count = 0
        for m in self.messages:
            if m["receiver_id"] == receiver_id and m["sender_id"] == sender_id and not m["is_read"]:
                m["is_read"] = True
                count += 1
        return count

    async def list_conversations(self, user_id: str) -> List[dict]:
        conversations: Dict[str, dict] = {}

        for m in sorted(self.messages, key=lambda m: m["created_at"]):
            if user_id not in (m["sender_id"], m["receiver_id"]):
                continue
            other = m["receiver_id"] if m["sender_id"] == user_id else m["sender_id"]
            entry = conversations.setdefault(other, {"user_id": other, "last_message": None, "unread": 0})
            entry["last_message"] = _copy(m)
            if m["receiver_id"] == user_id and not m["is_read"]:
                entry["unread"] += 1

        return sorted(
            conversations.values(),
            key=lambda c: c["last_message"]["created_at"],
            reverse=True,
        )

    async def count_unread(self, user_id: str) -> int:
        return sum(1 for m in self.messages if m["receiver_id"] == user_id and not m["is_read"])

    # -----------------------------
    # Sessions
    # -----------------------------

    async def revoke_session(self, jti: str, expires_at: datetime) -> None:
        self.revoked[jti] = expires_at

    async def is_session_revoked(self, jti: str) -> bool:
        return jti in self.revoked

    # -----------------------------
    # Audit
    # -----------------------------

    async def log_audit(self, entry: dict) -> None:
        self.audit_logs.append(dict(entry))

    async def purge_audit_logs(self, before: datetime) -> int:
        kept = [e for e in self.audit_logs if e["created_at"] >= before]
        removed = len(self.audit_logs) - len(kept)
        self.audit_logs = kept
        return removed

    async def ping(self) -> None:
        return None
