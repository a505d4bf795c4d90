from fastapi import APIRouter, Depends, HTTPException, Query
from typing import Optional

from config.constants import MARKETPLACE_PAGE_LIMIT
from database import get_store
from models.listing import ListingCreate, ListingStatus, ListingUpdate
from utils.listings import create_listing, delete_listing, update_listing
from utils.security import require_role
from utils.serializers import serialize_listing

router = APIRouter(prefix="/api/listings", tags=["Listings"])


async def with_farmers(store, listings: list) -> list:
    farmers = {}
    items = []
    for listing in listings:
        farmer_id = listing["farmer_id"]
        if farmer_id not in farmers:
            farmers[farmer_id] = await store.get_user(farmer_id) or {}
        items.append(serialize_listing(listing, farmers[farmer_id]))
    return items


# =========================
# MARKETPLACE (ACTIVE, IN STOCK)
# =========================

@router.get("")
async def marketplace(
    search: Optional[str] = Query(None, max_length=100),
    category: Optional[str] = None,
    limit: int = Query(MARKETPLACE_PAGE_LIMIT, ge=1, le=MARKETPLACE_PAGE_LIMIT),
    store=Depends(get_store),
):
    listings = await store.list_listings(
        status=ListingStatus.ACTIVE.value,
        in_stock=True,
        category=category.strip().lower() if category else None,
        search=search.strip() if search else None,
        limit=limit,
    )
    return await with_farmers(store, listings)


# =========================
# FARMER'S OWN LISTINGS (STATIC ROUTE, MUST BE BEFORE DETAIL)
# =========================

@router.get("/mine")
async def my_listings(
    farmer=Depends(require_role("farmer")),
    store=Depends(get_store),
):
    listings = await store.list_listings(farmer_id=farmer["id"])
    return [serialize_listing(l) for l in listings]


# =========================
# LISTING DETAIL
# =========================

@router.get("/{listing_id}")
async def listing_detail(listing_id: str, store=Depends(get_store)):
    listing = await store.get_listing(listing_id)
    if not listing:
        raise HTTPException(status_code=404, detail="Listing not found")

    farmer = await store.get_user(listing["farmer_id"]) or {}
    return serialize_listing(listing, farmer)


# =========================
# CREATE / UPDATE / DELETE
# =========================

@router.post("", status_code=201)
async def create(
    data: ListingCreate,
    farmer=Depends(require_role("farmer")),
    store=Depends(get_store),
):
    listing = await create_listing(store, farmer, data)
    return {
        "message": "Listing created",
        "listing": serialize_listing(listing),
    }


@router.patch("/{listing_id}")
async def update(
    listing_id: str,
    data: ListingUpdate,
    user=Depends(require_role("farmer", "admin")),
    store=Depends(get_store),
):
    listing = await update_listing(store, user, listing_id, data)
    return {
        "message": "Listing updated",
        "listing": serialize_listing(listing),
    }


@router.delete("/{listing_id}")
async def remove(
    listing_id: str,
    user=Depends(require_role("farmer", "admin")),
    store=Depends(get_store),
):
    await delete_listing(store, user, listing_id)
    return {"message": "Listing deleted"}
