"""
Document models for the marketplace collections.

Models use snake_case attributes and camelCase aliases, so the same shape is
used for stored documents and for JSON at the HTTP boundary. The store's
`_id` is exposed as `id`.
"""
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Self

from bson import ObjectId
from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class TransactionStatus(str, Enum):
    """
    Transaction lifecycle states.

    State machine:
    AWAITING_PAYMENT -> PAID
    """

    AWAITING_PAYMENT = "awaiting payment"
    PAID = "paid"


class DocumentModel(BaseModel):
    """Base model for everything stored in the document store."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        use_enum_values=False,
    )

    def to_document(self) -> Dict[str, Any]:
        """Serialize for insertion, leaving identity to the store."""
        return self.model_dump(by_alias=True, exclude={"id"}, mode="python")

    def to_json(self) -> Dict[str, Any]:
        """Serialize for an HTTP response."""
        return self.model_dump(by_alias=True, mode="json", exclude_none=True)

    @classmethod
    def from_document(cls, document: Dict[str, Any]) -> Self:
        """Build a model from a raw store document."""
        data = dict(document)
        object_id = data.pop("_id", None)
        if object_id is not None:
            data["id"] = str(object_id)
        return cls.model_validate(data)


class Product(DocumentModel):
    """Catalog product or cart line item."""

    id: Optional[str] = None
    name: str
    price: float


class Customer(DocumentModel):
    """Customer snapshot embedded in a transaction."""

    id: str
    name: str
    email: str


class Transaction(DocumentModel):
    """Purchase transaction with an embedded cart and customer snapshot."""

    id: Optional[str] = None
    cart_items: List[Product] = Field(default_factory=list)
    customer: Customer
    status: TransactionStatus = TransactionStatus.AWAITING_PAYMENT
    created_at: datetime
    updated_at: datetime
    total_price: float = 0.0

    @field_validator("created_at", "updated_at")
    @classmethod
    def ensure_utc(cls, v: datetime) -> datetime:
        """BSON datetimes come back naive; they are always UTC."""
        if v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v.astimezone(timezone.utc)

    def to_document(self) -> Dict[str, Any]:
        document = super().to_document()
        document["status"] = self.status.value
        document["cartItems"] = [item.to_document() for item in self.cart_items]
        return document


def parse_object_id(value: str) -> Optional[ObjectId]:
    """Return the ObjectId for a hex string, or None when malformed."""
    if not isinstance(value, str) or not ObjectId.is_valid(value):
        return None
    return ObjectId(value)
