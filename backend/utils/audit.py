from datetime import datetime

async def log_audit(
    store,
    actor_id: str | None,
    actor_role: str,
    action: str,
    metadata: dict | None = None
):
    await store.log_audit({
        "actor_id": actor_id,
        "actor_role": actor_role,
        "action": action,
        "metadata": metadata or {},
        "created_at": datetime.utcnow()
    })
