from datetime import datetime
from typing import Optional

from config.constants import THREAD_PAGE_LIMIT
from models.message import MessageCreate
from utils.errors import NotFoundError, ValidationError


async def send_message(store, sender: dict, data: MessageCreate) -> dict:
    if data.receiver_id == sender["id"]:
        raise ValidationError("Cannot message yourself")

    receiver = await store.get_user(data.receiver_id)
    if not receiver:
        raise NotFoundError("Recipient not found")

    if data.listing_id and not await store.get_listing(data.listing_id):
        raise NotFoundError("Listing not found")

    return await store.insert_message({
        "sender_id": sender["id"],
        "receiver_id": receiver["id"],
        "listing_id": data.listing_id,
        "body": data.body,
        "created_at": datetime.utcnow(),
        "is_read": False,
    })


async def read_thread(store, reader: dict, other_user_id: str, since: Optional[datetime] = None) -> list:
    """
    Messages between `reader` and the other user, oldest first.
    Anything the other user sent to the reader is marked read.
    With `since`, only messages created after it are returned.
    """
    other = await store.get_user(other_user_id)
    if not other:
        raise NotFoundError("User not found")

    messages = await store.get_thread(reader["id"], other["id"], since=since, limit=THREAD_PAGE_LIMIT)

    if await store.mark_thread_read(reader["id"], other["id"]):
        for m in messages:
            if m["receiver_id"] == reader["id"]:
                m["is_read"] = True

    return messages
