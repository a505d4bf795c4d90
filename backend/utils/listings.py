import logging
from datetime import datetime

from models.listing import ListingCreate, ListingStatus, ListingUpdate
from models.user import Role
from utils.audit import log_audit
from utils.errors import AuthorizationError, NotFoundError, ValidationError

logger = logging.getLogger(__name__)


def can_manage(user: dict, listing: dict) -> bool:
    if Role.parse(user.get("role")) == Role.ADMIN:
        return True
    return listing.get("farmer_id") == user.get("id")


async def get_managed_listing(store, user: dict, listing_id: str) -> dict:
    listing = await store.get_listing(listing_id)
    if not listing:
        raise NotFoundError("Listing not found")

    if not can_manage(user, listing):
        raise AuthorizationError("Only the owning farmer or an admin can change this listing")

    return listing


async def create_listing(store, farmer: dict, data: ListingCreate) -> dict:
    if Role.parse(farmer.get("role")) != Role.FARMER:
        raise AuthorizationError("Only farmers can create listings")

    now = datetime.utcnow()
    listing = await store.create_listing({
        "farmer_id": farmer["id"],
        "name": data.name.strip(),
        "category": data.category.strip().lower(),
        "planted_on": data.planted_on,
        "harvest_on": data.harvest_on,
        "quantity": data.quantity,
        "unit": data.unit,
        "unit_price": data.unit_price,
        "status": ListingStatus.ACTIVE.value,
        "image_url": data.image_url,
        "created_at": now,
        "updated_at": now,
    })

    logger.info("LISTING_CREATED listing=%s farmer=%s", listing["id"], farmer["id"])
    return listing


async def update_listing(store, user: dict, listing_id: str, data: ListingUpdate) -> dict:
    listing = await get_managed_listing(store, user, listing_id)

    fields = data.model_dump(exclude_unset=True, exclude_none=True)
    if not fields:
        return listing

    planted_on = fields.get("planted_on", listing.get("planted_on"))
    harvest_on = fields.get("harvest_on", listing.get("harvest_on"))
    if planted_on and harvest_on and harvest_on < planted_on:
        raise ValidationError("Harvest date cannot precede planting date")

    if "name" in fields:
        fields["name"] = fields["name"].strip()
    if "category" in fields:
        fields["category"] = fields["category"].strip().lower()
    if "status" in fields:
        fields["status"] = ListingStatus(fields["status"]).value

    fields["updated_at"] = datetime.utcnow()

    updated = await store.update_listing(listing["id"], fields)
    if not updated:
        raise NotFoundError("Listing not found")

    if "status" in fields or Role.parse(user.get("role")) == Role.ADMIN:
        await log_audit(
            store,
            actor_id=user["id"],
            actor_role=user["role"],
            action="LISTING_UPDATED",
            metadata={
                "listing_id": listing["id"],
                "fields": sorted(k for k in fields if k != "updated_at"),
                "status": updated["status"],
            },
        )
    return updated


async def set_listing_status(store, user: dict, listing_id: str, status: ListingStatus) -> dict:
    listing = await get_managed_listing(store, user, listing_id)

    updated = await store.update_listing(listing["id"], {
        "status": status.value,
        "updated_at": datetime.utcnow(),
    })
    if not updated:
        raise NotFoundError("Listing not found")

    await log_audit(
        store,
        actor_id=user["id"],
        actor_role=user["role"],
        action="LISTING_STATUS_CHANGED",
        metadata={"listing_id": listing["id"], "status": status.value},
    )
    return updated


async def delete_listing(store, user: dict, listing_id: str) -> None:
    listing = await get_managed_listing(store, user, listing_id)

    # sales keep their snapshot of the listing
    if not await store.delete_listing(listing["id"]):
        raise NotFoundError("Listing not found")

    await log_audit(
        store,
        actor_id=user["id"],
        actor_role=user["role"],
        action="LISTING_DELETED",
        metadata={"listing_id": listing["id"], "farmer_id": listing["farmer_id"]},
    )
    logger.info("LISTING_DELETED listing=%s by=%s", listing["id"], user["id"])
