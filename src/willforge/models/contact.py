"""
Contact models for people named in a will.
"""

from datetime import datetime
from enum import Enum
from typing import Any
from uuid import uuid4

from pydantic import BaseModel, Field, model_validator


class ContactRole(str, Enum):
    """Fixed role vocabulary. OTHER carries a free-text label."""

    EXECUTOR = "Executor"
    ALTERNATE_EXECUTOR = "Alternate Executor"
    GUARDIAN = "Guardian"
    BENEFICIARY = "Beneficiary"
    WITNESS = "Witness"
    ATTORNEY = "Attorney"
    DIGITAL_EXECUTOR = "Digital Executor"
    FINANCIAL_ADVISOR = "Financial Advisor"
    MEDICAL_REPRESENTATIVE = "Medical Representative"
    TRUSTEE = "Trustee"
    OTHER = "Other"

    @classmethod
    def parse(cls, value: str) -> "ContactRole | None":
        """Case-insensitive lookup; None when the label is not in the vocabulary."""
        wanted = value.strip().casefold()
        for role in cls:
            if role.value.casefold() == wanted:
                return role
        return None


class Contact(BaseModel):
    """One person relevant to the will. Created and edited by the user only."""

    id: str = Field(default_factory=lambda: str(uuid4()))
    name: str
    role: ContactRole = ContactRole.OTHER
    custom_role: str | None = Field(
        default=None, description="Free-text role when role is OTHER"
    )
    email: str | None = None
    phone: str | None = None
    address: str | None = None

    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    @model_validator(mode="before")
    @classmethod
    def split_free_text_role(cls, data: Any) -> Any:
        """Accept any role string; unknown labels become OTHER + custom_role."""
        if not isinstance(data, dict):
            return data
        role = data.get("role")
        if isinstance(role, str) and not isinstance(role, ContactRole):
            parsed = ContactRole.parse(role)
            data = dict(data)
            if parsed is None:
                data["role"] = ContactRole.OTHER
                if not data.get("custom_role"):
                    data["custom_role"] = role.strip() or None
            else:
                data["role"] = parsed
        return data

    @property
    def role_label(self) -> str:
        if self.role == ContactRole.OTHER and self.custom_role:
            return self.custom_role
        return self.role.value

    @property
    def is_reachable(self) -> bool:
        return bool((self.email or "").strip() or (self.phone or "").strip())

    def has_role(self, role: str) -> bool:
        return self.role_label.casefold() == role.strip().casefold()
