from datetime import date, datetime
from decimal import Decimal


def serialize_decimal(value):
    return float(value) if isinstance(value, Decimal) else value


def serialize_datetime(value):
    return value.isoformat() if isinstance(value, (datetime, date)) else None


def serialize_user(user: dict) -> dict:
    return {
        "id": user["id"],
        "email": user["email"],
        "full_name": user.get("full_name"),
        "role": user.get("role"),
        "created_at": serialize_datetime(user.get("created_at")),
    }


def serialize_listing(listing: dict, farmer: dict | None = None) -> dict:
    data = {
        "id": listing["id"],
        "farmer_id": listing["farmer_id"],

        "name": listing["name"],
        "category": listing["category"],
        "planted_on": serialize_datetime(listing.get("planted_on")),
        "harvest_on": serialize_datetime(listing.get("harvest_on")),

        "quantity": serialize_decimal(listing["quantity"]),
        "unit": listing.get("unit"),
        "unit_price": serialize_decimal(listing["unit_price"]),

        "status": listing["status"],
        "image_url": listing.get("image_url"),

        "created_at": serialize_datetime(listing.get("created_at")),
        "updated_at": serialize_datetime(listing.get("updated_at")),
    }
    if farmer is not None:
        data["farmer_name"] = farmer.get("full_name") or "Unknown"
    return data


def serialize_sale(sale: dict) -> dict:
    return {
        "id": sale["id"],
        "listing_id": sale["listing_id"],
        "farmer_id": sale["farmer_id"],
        "buyer_id": sale["buyer_id"],

        "listing_name": sale.get("listing_name"),
        "unit": sale.get("unit"),

        "quantity": serialize_decimal(sale["quantity"]),
        "unit_price": serialize_decimal(sale.get("unit_price")),
        "total": serialize_decimal(sale["total"]),

        "created_at": serialize_datetime(sale.get("created_at")),
    }


def serialize_message(message: dict) -> dict:
    return {
        "id": message["id"],
        "sender_id": message["sender_id"],
        "receiver_id": message["receiver_id"],
        "listing_id": message.get("listing_id"),
        "body": message["body"],
        "is_read": message.get("is_read", False),
        "created_at": serialize_datetime(message.get("created_at")),
    }


def serialize_summary(summary: dict) -> dict:
    return {k: serialize_decimal(v) for k, v in summary.items()}
