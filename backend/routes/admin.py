import logging

from fastapi import APIRouter, Depends, HTTPException

from database import get_store
from models.listing import ListingStatus
from models.user import Role
from routes.listings import with_farmers
from utils.audit import log_audit
from utils.listings import delete_listing, set_listing_status
from utils.security import require_role
from utils.serializers import serialize_sale, serialize_user

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/admin", tags=["Admin"])


# =====================================================
# USERS
# =====================================================

@router.get("/users")
async def list_users(
    admin=Depends(require_role("admin")),
    store=Depends(get_store),
):
    users = await store.list_users()
    return {
        "count": len(users),
        "users": [serialize_user(u) for u in users],
    }


@router.delete("/users/{user_id}")
async def delete_user(
    user_id: str,
    admin=Depends(require_role("admin")),
    store=Depends(get_store),
):
    user = await store.get_user(user_id)
    if not user:
        raise HTTPException(404, "User not found")

    if Role.parse(user.get("role")) == Role.ADMIN:
        raise HTTPException(403, "Admin accounts cannot be deleted here")

    await store.delete_user(user["id"])

    await log_audit(
        store,
        actor_id=admin["id"],
        actor_role="admin",
        action="USER_DELETED",
        metadata={"user_id": user["id"], "email": user["email"], "role": user["role"]},
    )
    logger.info("USER_DELETED user=%s by=%s", user["id"], admin["id"])

    return {"message": "User deleted"}


# =====================================================
# LISTINGS
# =====================================================

@router.get("/listings")
async def list_listings(
    admin=Depends(require_role("admin")),
    store=Depends(get_store),
):
    listings = await store.list_listings()
    return {
        "count": len(listings),
        "listings": await with_farmers(store, listings),
    }


@router.post("/listings/{listing_id}/toggle-status")
async def toggle_listing_status(
    listing_id: str,
    admin=Depends(require_role("admin")),
    store=Depends(get_store),
):
    listing = await store.get_listing(listing_id)
    if not listing:
        raise HTTPException(404, "Listing not found")

    new_status = (
        ListingStatus.INACTIVE
        if listing["status"] == ListingStatus.ACTIVE.value
        else ListingStatus.ACTIVE
    )
    await set_listing_status(store, admin, listing["id"], new_status)

    return {
        "message": f"Listing is now {new_status.value}",
        "status": new_status.value,
    }


@router.delete("/listings/{listing_id}")
async def remove_listing(
    listing_id: str,
    admin=Depends(require_role("admin")),
    store=Depends(get_store),
):
    await delete_listing(store, admin, listing_id)
    return {"message": "Listing deleted"}


# =====================================================
# SALES
# =====================================================

@router.get("/sales")
async def list_sales(
    admin=Depends(require_role("admin")),
    store=Depends(get_store),
):
    sales = await store.list_sales()
    return {
        "count": len(sales),
        "sales": [serialize_sale(s) for s in sales],
    }
