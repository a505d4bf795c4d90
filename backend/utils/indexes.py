from pymongo import ASCENDING, DESCENDING
from pymongo.errors import OperationFailure


def _normalize_key_pairs(keys):
    return [(k, v) for k, v in keys]


async def _create_index_safe(collection, keys, **kwargs):
    """
    Create index safely.
    If Mongo reports IndexOptionsConflict/IndexKeySpecsConflict for same key pattern,
    drop the conflicting index and recreate with desired options.
    """
    desired_key = _normalize_key_pairs(keys)
    desired_name = kwargs.get("name")
    try:
        await collection.create_index(keys, **kwargs)
        return
    except OperationFailure as e:
        if getattr(e, "code", None) not in {85, 86}:
            raise

        conflicting_names = []
        async for idx in collection.list_indexes():
            idx_key = _normalize_key_pairs(list(idx.get("key", {}).items()))
            if idx_key == desired_key:
                idx_name = idx.get("name")
                if idx_name and idx_name != desired_name:
                    conflicting_names.append(idx_name)

        for idx_name in conflicting_names:
            await collection.drop_index(idx_name)

        await collection.create_index(keys, **kwargs)


async def ensure_indexes(db):
    # Users
    await _create_index_safe(
        db.users,
        [("email", ASCENDING)],
        name="users_email_unique_idx",
        unique=True,
    )
    await _create_index_safe(
        db.users,
        [("role", ASCENDING), ("created_at", ASCENDING)],
        name="users_role_created_idx",
    )

    # Listings
    await _create_index_safe(
        db.listings,
        [("status", ASCENDING), ("created_at", DESCENDING)],
        name="listings_status_created_idx",
    )
    await _create_index_safe(
        db.listings,
        [("farmer_id", ASCENDING), ("created_at", DESCENDING)],
        name="listings_farmer_created_idx",
    )

    # Sales
    await _create_index_safe(
        db.sales,
        [("farmer_id", ASCENDING), ("created_at", DESCENDING)],
        name="sales_farmer_created_idx",
    )
    await _create_index_safe(
        db.sales,
        [("buyer_id", ASCENDING), ("created_at", DESCENDING)],
        name="sales_buyer_created_idx",
    )
    await _create_index_safe(
        db.sales,
        [("listing_id", ASCENDING)],
        name="sales_listing_idx",
    )

    # Messages
    await _create_index_safe(
        db.messages,
        [("sender_id", ASCENDING), ("receiver_id", ASCENDING), ("created_at", ASCENDING)],
        name="messages_pair_created_idx",
    )
    await _create_index_safe(
        db.messages,
        [("receiver_id", ASCENDING), ("is_read", ASCENDING)],
        name="messages_receiver_unread_idx",
    )

    # Revoked sessions (dropped once the token would have expired anyway)
    await _create_index_safe(
        db.revoked_sessions,
        [("jti", ASCENDING)],
        name="revoked_sessions_jti_unique",
        unique=True,
    )
    await _create_index_safe(
        db.revoked_sessions,
        [("expires_at", ASCENDING)],
        name="revoked_sessions_ttl_idx",
        expireAfterSeconds=0,
    )

    # Audit
    await _create_index_safe(
        db.audit_logs,
        [("created_at", ASCENDING)],
        name="audit_logs_created_idx",
    )
