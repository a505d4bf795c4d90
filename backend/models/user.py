from pydantic import BaseModel, EmailStr, Field, field_validator
from enum import Enum


class Role(str, Enum):
    FARMER = "farmer"
    BUYER = "buyer"
    ADMIN = "admin"

    @classmethod
    def parse(cls, value) -> "Role":
        """
        Normalize a role claim ("Admin", " farmer ") to the enum.
        Raises ValueError for anything else.
        """
        if isinstance(value, cls):
            return value
        try:
            return cls((value or "").strip().lower())
        except (ValueError, AttributeError):
            raise ValueError(f"Unknown role: {value!r}")


# roles a user may pick at signup; admins are provisioned out-of-band
SIGNUP_ROLES = {Role.FARMER, Role.BUYER}


class UserCreate(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=8)
    full_name: str = Field(..., min_length=1, max_length=120)
    role: Role = Role.BUYER

    @field_validator("role", mode="before")
    @classmethod
    def normalize_role(cls, value):
        role = Role.parse(value)
        if role not in SIGNUP_ROLES:
            raise ValueError("Role must be farmer or buyer")
        return role


class UserLogin(BaseModel):
    email: EmailStr
    password: str
