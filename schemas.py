"""
Database Schemas for the store

Each Pydantic model represents a collection in MongoDB.
Collection name is the lowercase of the class name.
"""
from enum import Enum, IntEnum
from typing import Any, Dict, List, Optional

from bson import ObjectId
from pydantic import BaseModel, ConfigDict, EmailStr, Field


class Role(IntEnum):
    CUSTOMER = 0
    ADMIN = 1


class OrderStatus(str, Enum):
    NOT_PROCESS = "Not Process"
    PROCESSING = "Processing"
    SHIPPED = "Shipped"
    DELIVERED = "Delivered"
    CANCEL = "cancel"


class User(BaseModel):
    model_config = ConfigDict(use_enum_values=True)

    name: str = Field(..., description="Full name")
    email: EmailStr = Field(..., description="Email address")
    password: str = Field(..., description="Hashed password")
    phone: str
    address: str
    answer: str = Field(..., description="Secret answer for password recovery")
    role: Role = Role.CUSTOMER


class Category(BaseModel):
    name: str = Field(..., min_length=1)
    slug: str = Field(..., min_length=1, description="URL-safe identifier")


class Photo(BaseModel):
    data: bytes
    content_type: str


class Product(BaseModel):
    model_config = ConfigDict(arbitrary_types_allowed=True)

    name: str = Field(..., min_length=1)
    slug: str
    description: str
    price: float = Field(..., gt=0)
    category: ObjectId
    quantity: int = Field(..., ge=0, description="Units in stock")
    shipping: bool = False
    photo: Optional[Photo] = None


class Order(BaseModel):
    model_config = ConfigDict(arbitrary_types_allowed=True, use_enum_values=True)

    products: List[ObjectId] = Field(..., min_length=1)
    payment: Dict[str, Any]
    buyer: ObjectId
    status: OrderStatus = OrderStatus.NOT_PROCESS


# Request payloads. Fields are optional so handlers can report
# the first missing one with its own message.

class RegisterPayload(BaseModel):
    name: Optional[str] = None
    email: Optional[str] = None
    password: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    answer: Optional[str] = None


class LoginPayload(BaseModel):
    email: Optional[str] = None
    password: Optional[str] = None


class ForgotPasswordPayload(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    email: Optional[str] = None
    answer: Optional[str] = None
    new_password: Optional[str] = Field(None, alias="newPassword")


class ProfilePayload(BaseModel):
    name: Optional[str] = None
    email: Optional[str] = None
    password: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None


class OrderStatusPayload(BaseModel):
    status: Optional[str] = None


class CategoryPayload(BaseModel):
    name: Optional[str] = None


class FilterPayload(BaseModel):
    checked: Any = []
    radio: Any = []


class PaymentPayload(BaseModel):
    nonce: Optional[str] = None
    cart: List[Dict[str, Any]] = []
