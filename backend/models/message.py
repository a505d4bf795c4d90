from pydantic import BaseModel, Field, field_validator
from typing import Optional

from config.constants import MAX_MESSAGE_LENGTH


class MessageCreate(BaseModel):
    receiver_id: str
    body: str = Field(..., max_length=MAX_MESSAGE_LENGTH)
    listing_id: Optional[str] = None

    @field_validator("body")
    @classmethod
    def strip_body(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Message cannot be empty")
        return value
