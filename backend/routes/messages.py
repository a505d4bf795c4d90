from fastapi import APIRouter, Depends, Query
from typing import Optional

from database import get_store
from models.message import MessageCreate
from utils.messaging import read_thread, send_message
from utils.security import get_current_user
from utils.serializers import serialize_message, serialize_user
from utils.validators import parse_since

router = APIRouter(
    prefix="/api/messages",
    tags=["Messages"]
)


@router.post("", status_code=201)
async def send(
    data: MessageCreate,
    user=Depends(get_current_user),
    store=Depends(get_store),
):
    message = await send_message(store, user, data)
    return serialize_message(message)


@router.get("/conversations")
async def conversations(
    user=Depends(get_current_user),
    store=Depends(get_store),
):
    items = []
    for c in await store.list_conversations(user["id"]):
        other = await store.get_user(c["user_id"])
        items.append({
            "user": serialize_user(other) if other else {"id": c["user_id"], "full_name": "Unknown"},
            "last_message": serialize_message(c["last_message"]),
            "unread": c["unread"],
        })
    return items


@router.get("/unread-count")
async def unread_count(
    user=Depends(get_current_user),
    store=Depends(get_store),
):
    return {"unread": await store.count_unread(user["id"])}


@router.get("/thread/{user_id}")
async def thread(
    user_id: str,
    since: Optional[str] = Query(None, description="ISO timestamp of the newest message already shown"),
    user=Depends(get_current_user),
    store=Depends(get_store),
):
    """
    Poll with `since=<latest>` to pick up new messages.
    """
    since_at = parse_since(since)
    messages = await read_thread(store, user, user_id, since=since_at)

    items = [serialize_message(m) for m in messages]
    latest = items[-1]["created_at"] if items else since
    return {"latest": latest, "messages": items}
