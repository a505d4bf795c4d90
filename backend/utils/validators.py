from datetime import datetime, timezone

from utils.errors import ValidationError


def normalize_email(email: str) -> str:
    return (email or "").strip().lower()


def parse_since(value: str | None) -> datetime | None:
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError:
        raise ValidationError("Invalid since timestamp")
    # stored timestamps are naive UTC
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed
