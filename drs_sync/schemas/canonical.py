"""
Canonical order record.

Every source (scraped table, CSV export, relay JSON) is mapped onto this
fixed shape before it reaches Airtable.
"""

import json
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from drs_sync.config.settings import FieldNames


class CanonicalRecord(BaseModel):
    """
    One order for one date.

    All fields default to empty string. ``order_number`` never carries a
    leading '#'.
    """
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    date: str = Field(description="Run target date (YYYY-MM-DD)")
    customer: str = Field(default="", description="Customer name")
    address: str = Field(default="", description="Delivery address")
    phone: str = Field(default="", description="Contact phone")
    size: str = Field(default="", description="Dumpster / container size")
    order_number: str = Field(default="", alias="orderNumber", description="Order number, no leading '#'")
    status: str = Field(default="", description="Order status")
    raw: Optional[Dict[str, Any]] = Field(default=None, exclude=True, description="Source object, for the raw column")

    @field_validator("customer", "address", "phone", "size", "status", mode="before")
    @classmethod
    def _to_text(cls, value: Any) -> str:
        return "" if value is None else str(value).strip()

    @field_validator("order_number", mode="before")
    @classmethod
    def _strip_hash(cls, value: Any) -> str:
        text = "" if value is None else str(value).strip()
        return text[1:] if text.startswith("#") else text

    def is_blank(self) -> bool:
        """True when there is nothing to identify the order by."""
        return not (self.customer or self.address or self.order_number)

    def to_fields(self, names: FieldNames) -> Dict[str, Any]:
        """Airtable ``fields`` payload keyed by display name."""
        fields = {
            names.date: self.date,
            names.customer: self.customer,
            names.address: self.address,
            names.phone: self.phone,
            names.size: self.size,
            names.order_number: self.order_number,
            names.status: self.status,
        }
        if names.raw and self.raw is not None:
            fields[names.raw] = json.dumps(self.raw, default=str)
        return fields
