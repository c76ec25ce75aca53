"""
Database Schemas

Each Pydantic model represents a collection in MongoDB.
Model name lowercased is the collection name.
"""

from typing import Any, Dict, List, Literal, Optional

from bson import ObjectId
from pydantic import BaseModel, ConfigDict, EmailStr, Field

ORDER_STATUSES = ("Not Processed", "Processing", "Shipped", "Delivered", "Cancelled")

OrderStatus = Literal["Not Processed", "Processing", "Shipped", "Delivered", "Cancelled"]


class User(BaseModel):
    name: str = Field(..., description="Full name")
    email: EmailStr = Field(..., description="Email address")
    password: str = Field(..., description="BCrypt hashed password")
    phone: str
    address: str
    answer: str = Field(..., description="Security answer used to reset the password")
    role: int = Field(0, description="0 = customer, 1 = admin")


class Category(BaseModel):
    name: str
    slug: str


class Photo(BaseModel):
    data: Optional[bytes] = None
    content_type: Optional[str] = None


class Product(BaseModel):
    model_config = ConfigDict(arbitrary_types_allowed=True)

    name: str
    slug: str
    description: str
    price: float = Field(..., ge=0, allow_inf_nan=False)
    category: ObjectId
    quantity: int = Field(..., ge=0)
    shipping: bool = False
    photo: Photo = Field(default_factory=Photo)


class Order(BaseModel):
    model_config = ConfigDict(arbitrary_types_allowed=True)

    products: List[ObjectId] = Field(default_factory=list)
    payment: Dict[str, Any] = Field(default_factory=dict, description="Gateway result summary")
    buyer: ObjectId
    status: OrderStatus = "Not Processed"
    idempotency_key: Optional[str] = None


class CartItem(BaseModel):
    """A cart line as the storefront sends it; ``_id`` is the product id."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    id: str = Field(..., alias="_id")
    name: str
    price: float = Field(..., ge=0, allow_inf_nan=False)
    slug: Optional[str] = None
    quantity: int = Field(1, ge=1)


# Request bodies. Fields stay optional so handlers can answer with the
# field-specific messages the storefront shows to users.

class RegisterInput(BaseModel):
    name: Optional[str] = None
    email: Optional[EmailStr] = None
    password: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    answer: Optional[str] = None


class LoginInput(BaseModel):
    email: Optional[str] = None
    password: Optional[str] = None


class ForgotPasswordInput(BaseModel):
    email: Optional[str] = None
    answer: Optional[str] = None
    newPassword: Optional[str] = None


class ProfileUpdate(BaseModel):
    name: Optional[str] = None
    email: Optional[str] = None
    password: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None


class OrderStatusUpdate(BaseModel):
    status: Optional[str] = None


class CategoryInput(BaseModel):
    name: Optional[str] = None


class FilterInput(BaseModel):
    checked: Optional[List[str]] = None
    radio: Optional[List[float]] = None


class PaymentInput(BaseModel):
    nonce: Optional[str] = None
    cart: List[CartItem] = Field(default_factory=list)
    idempotency_key: Optional[str] = None
