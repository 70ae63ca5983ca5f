"""
Fact models for the will-in-progress.

The Fact Model is the single source of truth for everything learned about the
testator. Scalar fields keep their last known non-empty value; list fields only
grow, de-duplicated by a stable key.
"""

import re
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


class Speaker(str, Enum):
    """Who produced an utterance."""

    USER = "user"
    ASSISTANT = "assistant"
    SYSTEM = "system"


class MaritalStatus(str, Enum):
    """Marital status of the testator."""

    SINGLE = "single"
    MARRIED = "married"
    DIVORCED = "divorced"
    WIDOWED = "widowed"


class AssetCategory(str, Enum):
    """Category of a tangible or financial asset."""

    REAL_ESTATE = "realEstate"
    VEHICLE = "vehicle"
    FINANCIAL = "financial"
    PERSONAL_PROPERTY = "personalProperty"
    OTHER = "other"

    @property
    def label(self) -> str:
        return ASSET_CATEGORY_LABELS[self]


ASSET_CATEGORY_LABELS = {
    AssetCategory.REAL_ESTATE: "Real Estate",
    AssetCategory.VEHICLE: "Vehicle",
    AssetCategory.FINANCIAL: "Financial Assets",
    AssetCategory.PERSONAL_PROPERTY: "Personal Property",
    AssetCategory.OTHER: "Other Property",
}


def normalize_key(value: str) -> str:
    """Stable de-duplication key for free-text list items."""
    return re.sub(r"\s+", " ", value).strip().casefold()


class AssetEntry(BaseModel):
    """One asset mentioned by the testator. De-duplicated by category."""

    category: AssetCategory
    descriptive_text: str

    @property
    def dedup_key(self) -> str:
        return self.category.value


class DigitalAssetEntry(BaseModel):
    """One digital asset mentioned by the testator. De-duplicated by asset type."""

    asset_type: str
    details: str

    @property
    def dedup_key(self) -> str:
        return normalize_key(self.asset_type)


# Scalar fields, in rendering order
SCALAR_FIELDS = (
    "full_name",
    "marital_status",
    "spouse_name",
    "address",
    "city",
    "state",
    "postal_code",
    "executor",
    "alternate_executor",
    "guardian",
    "alternate_guardian",
    "final_wishes",
)

LIST_FIELDS = (
    "children",
    "beneficiaries",
    "asset_entries",
    "digital_asset_entries",
)

# Logical field -> document section shown as "what changed" in the UI
FIELD_SECTIONS = {
    "full_name": "PERSONAL INFORMATION",
    "address": "RESIDENCE",
    "city": "RESIDENCE",
    "state": "RESIDENCE",
    "postal_code": "RESIDENCE",
    "marital_status": "FAMILY INFORMATION",
    "spouse_name": "FAMILY INFORMATION",
    "children": "FAMILY INFORMATION",
    "executor": "EXECUTOR",
    "alternate_executor": "EXECUTOR",
    "guardian": "GUARDIAN",
    "alternate_guardian": "GUARDIAN",
    "beneficiaries": "DISTRIBUTION OF ESTATE",
    "asset_entries": "DISTRIBUTION OF ESTATE",
    "digital_asset_entries": "DIGITAL ASSETS",
    "final_wishes": "FINAL WISHES",
}


class FactModel(BaseModel):
    """
    Accumulated knowledge about one will-in-progress.

    Never mutated in place by the pipeline: merges produce a new instance.
    """

    full_name: str | None = None
    marital_status: MaritalStatus | None = None
    spouse_name: str | None = None

    # Residence
    address: str | None = None
    city: str | None = None
    state: str | None = None
    postal_code: str | None = None

    children: list[str] = Field(default_factory=list)

    executor: str | None = None
    alternate_executor: str | None = None
    guardian: str | None = None
    alternate_guardian: str | None = None

    beneficiaries: list[str] = Field(default_factory=list)
    asset_entries: list[AssetEntry] = Field(default_factory=list)
    digital_asset_entries: list[DigitalAssetEntry] = Field(default_factory=list)

    final_wishes: str | None = None

    # Cosmetic only, never read by pipeline logic
    last_updated_field: str = ""

    @property
    def has_residence(self) -> bool:
        return any((self.address, self.city, self.state, self.postal_code))

    def known_fields(self) -> list[str]:
        """Names of fields currently holding a value."""
        known = [f for f in SCALAR_FIELDS if getattr(self, f)]
        known.extend(f for f in LIST_FIELDS if getattr(self, f))
        return known


class FactDelta(BaseModel):
    """
    Partial Fact Model update produced by analyzing one utterance.

    Unset scalars are None; list fields hold only the items to append.
    """

    full_name: str | None = None
    marital_status: MaritalStatus | None = None
    spouse_name: str | None = None
    address: str | None = None
    city: str | None = None
    state: str | None = None
    postal_code: str | None = None
    children: list[str] = Field(default_factory=list)
    executor: str | None = None
    alternate_executor: str | None = None
    guardian: str | None = None
    alternate_guardian: str | None = None
    beneficiaries: list[str] = Field(default_factory=list)
    asset_entries: list[AssetEntry] = Field(default_factory=list)
    digital_asset_entries: list[DigitalAssetEntry] = Field(default_factory=list)
    final_wishes: str | None = None

    def is_empty(self) -> bool:
        return not self.touched_fields()

    def touched_fields(self) -> list[str]:
        touched = [f for f in SCALAR_FIELDS if getattr(self, f)]
        touched.extend(f for f in LIST_FIELDS if getattr(self, f))
        return touched

    @classmethod
    def from_hints(cls, hints: dict[str, Any]) -> "FactDelta":
        """
        Build a delta from loosely structured hints (e.g. JSON in a model reply).

        Unknown keys and malformed values are dropped.
        """
        data: dict[str, Any] = {}
        aliases = {
            "name": "full_name",
            "fullName": "full_name",
            "maritalStatus": "marital_status",
            "spouseName": "spouse_name",
            "zipCode": "postal_code",
            "postalCode": "postal_code",
            "alternateExecutor": "alternate_executor",
            "alternateGuardian": "alternate_guardian",
            "finalWishes": "final_wishes",
        }
        for raw_key, value in hints.items():
            key = aliases.get(raw_key, raw_key)
            if key in SCALAR_FIELDS and isinstance(value, str) and value.strip():
                if key == "marital_status":
                    try:
                        data[key] = MaritalStatus(value.strip().lower())
                    except ValueError:
                        continue
                else:
                    data[key] = value.strip()
            elif key in ("children", "beneficiaries") and isinstance(value, list):
                data[key] = [v.strip() for v in value if isinstance(v, str) and v.strip()]
        return cls(**data)
