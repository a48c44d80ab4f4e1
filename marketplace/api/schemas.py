"""
Pydantic schemas for API request/response models.
"""
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, StrictFloat
from pydantic.alias_generators import to_camel

from marketplace.core.payment_intake import PaymentForm
from marketplace.database.models import Customer, Product


class ProductRequest(BaseModel):
    """Request schema for creating a catalog product."""

    name: str = Field(..., description="Product name")
    price: StrictFloat = Field(..., description="Unit price")

    model_config = {
        "json_schema_extra": {"examples": [{"name": "Widget", "price": 9.99}]}
    }

    def to_product(self) -> Product:
        return Product(name=self.name, price=self.price)


class CartItem(BaseModel):
    """Cart line item as sent by the storefront."""

    name: str = Field(..., description="Product name")
    price: StrictFloat = Field(..., description="Unit price")


class CustomerSchema(BaseModel):
    """Customer snapshot as sent by the storefront."""

    id: str = Field(..., description="External customer identity")
    name: str = Field(..., description="Customer name")
    email: str = Field(..., description="Customer email")


class CreateTransactionRequest(BaseModel):
    """Request schema for creating a transaction."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        json_schema_extra={
            "examples": [
                {
                    "cartItems": [
                        {"name": "Widget", "price": 9.99},
                        {"name": "Gadget", "price": 5.00},
                    ],
                    "customer": {"id": "c1", "name": "Ann", "email": "a@x.com"},
                }
            ]
        },
    )

    cart_items: List[CartItem] = Field(default_factory=list, description="Ordered cart")
    customer: CustomerSchema = Field(..., description="Customer snapshot")

    def to_domain(self) -> tuple[List[Product], Customer]:
        items = [Product(name=item.name, price=item.price) for item in self.cart_items]
        customer = Customer(
            id=self.customer.id, name=self.customer.name, email=self.customer.email
        )
        return items, customer


class PaymentFormRequest(PaymentForm):
    """Request schema for the card payment form."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        json_schema_extra={
            "examples": [
                {
                    "cardNumber": "4242424242424242",
                    "expirationDate": "12/30",
                    "cvv": "123",
                    "name": "Ann",
                    "address": "1 Main St",
                }
            ]
        },
    )


class PaymentResponse(BaseModel):
    """Response schema for the payment form."""

    success: bool = Field(..., description="Always true once the form is accepted")


class ErrorResponse(BaseModel):
    """Error body returned by every failure path."""

    error: str = Field(..., description="Error message")


class HealthCheckResponse(BaseModel):
    """Response schema for health checks."""

    status: str = Field(..., description="Overall health status (healthy/unhealthy)")
    checks: Optional[Dict[str, Any]] = Field(default=None, description="Individual service checks")
    message: Optional[str] = Field(default=None, description="Status message")
