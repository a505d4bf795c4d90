"""
Promote an existing account to admin.

Admins are never created through the API; an operator runs this against
the configured store:

    python promote_admin.py someone@example.com
"""
import argparse
import asyncio
import logging

from database import get_store
from models.user import Role
from utils.audit import log_audit
from utils.validators import normalize_email

logger = logging.getLogger("promote_admin")


async def promote(store, email: str) -> str:
    user = await store.get_user_by_email(normalize_email(email))
    if not user:
        return "missing"

    if Role.parse(user.get("role")) == Role.ADMIN:
        return "already_admin"

    await store.set_user_role(user["id"], Role.ADMIN.value)
    await log_audit(
        store,
        actor_id=None,
        actor_role="operator",
        action="USER_PROMOTED_ADMIN",
        metadata={"user_id": user["id"], "email": user["email"], "previous_role": user.get("role")},
    )
    return "promoted"


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Promote a user to admin")
    parser.add_argument("email")
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO)

    result = asyncio.run(promote(get_store(), args.email))
    if result == "missing":
        logger.error("No user with email %s", args.email)
        return 1
    if result == "already_admin":
        logger.info("User %s is already admin.", args.email)
    else:
        logger.info("User %s promoted to admin.", args.email)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
