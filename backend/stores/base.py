from abc import ABC, abstractmethod
from datetime import datetime
from decimal import Decimal
from typing import List, Optional


class MarketStore(ABC):
    """
    Storage port for the marketplace.

    Adapters return plain dicts with a string "id" key; quantities and
    prices are Decimal, timestamps are naive UTC datetimes and listing
    dates are datetime.date. Every method is a coroutine.
    """

    # -----------------------------
    # Users
    # -----------------------------

    @abstractmethod
    async def create_user(self, user: dict) -> dict:
        """Insert a user. Raises ConflictError if the email is taken."""

    @abstractmethod
    async def get_user(self, user_id: str) -> Optional[dict]: ...

    @abstractmethod
    async def get_user_by_email(self, email: str) -> Optional[dict]: ...

    @abstractmethod
    async def list_users(self) -> List[dict]: ...

    @abstractmethod
    async def delete_user(self, user_id: str) -> bool: ...

    @abstractmethod
    async def set_user_role(self, user_id: str, role: str) -> bool: ...

    @abstractmethod
    async def touch_user(self, user_id: str, at: datetime) -> None: ...

    # -----------------------------
    # Listings
    # -----------------------------

    @abstractmethod
    async def create_listing(self, listing: dict) -> dict: ...

    @abstractmethod
    async def get_listing(self, listing_id: str) -> Optional[dict]: ...

    @abstractmethod
    async def list_listings(
        self,
        *,
        farmer_id: Optional[str] = None,
        status: Optional[str] = None,
        in_stock: bool = False,
        category: Optional[str] = None,
        search: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> List[dict]:
        """Newest first."""

    @abstractmethod
    async def update_listing(self, listing_id: str, fields: dict) -> Optional[dict]:
        """Apply fields and return the updated listing, or None if missing."""

    @abstractmethod
    async def delete_listing(self, listing_id: str) -> bool: ...

    @abstractmethod
    async def decrement_stock(self, listing_id: str, quantity: Decimal) -> Optional[dict]:
        """
        Atomically take `quantity` from an active listing holding at least
        that much. Sets status inactive when the result is zero.
        Returns the updated listing, or None when the condition failed.
        """

    @abstractmethod
    async def restore_stock(self, listing_id: str, quantity: Decimal, *, reactivate: bool) -> None:
        """Give back a decrement whose sale could not be recorded."""

    # -----------------------------
    # Sales (append-only)
    # -----------------------------

    @abstractmethod
    async def insert_sale(self, sale: dict) -> dict: ...

    @abstractmethod
    async def list_sales(
        self,
        *,
        farmer_id: Optional[str] = None,
        buyer_id: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> List[dict]:
        """Newest first."""

    # -----------------------------
    # Messages (append-only)
    # -----------------------------

    @abstractmethod
    async def insert_message(self, message: dict) -> dict: ...

    @abstractmethod
    async def get_thread(
        self,
        user_a: str,
        user_b: str,
        *,
        since: Optional[datetime] = None,
        limit: Optional[int] = None,
    ) -> List[dict]:
        """Messages between two users, oldest first."""

    @abstractmethod
    async def mark_thread_read(self, receiver_id: str, sender_id: str) -> int: ...

    @abstractmethod
    async def list_conversations(self, user_id: str) -> List[dict]:
        """
        One entry per counterpart:
        {"user_id", "last_message", "unread"}, most recent first.
        """

    @abstractmethod
    async def count_unread(self, user_id: str) -> int: ...

    # -----------------------------
    # Sessions
    # -----------------------------

    @abstractmethod
    async def revoke_session(self, jti: str, expires_at: datetime) -> None: ...

    @abstractmethod
    async def is_session_revoked(self, jti: str) -> bool: ...

    # -----------------------------
    # Audit
    # -----------------------------

    @abstractmethod
    async def log_audit(self, entry: dict) -> None: ...

    @abstractmethod
    async def purge_audit_logs(self, before: datetime) -> int: ...

    # -----------------------------
    # Health
    # -----------------------------

    @abstractmethod
    async def ping(self) -> None:
        """Raise TransientError when the backend is unreachable."""
