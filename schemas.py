"""
Database Schemas for PizzaHub

Each Pydantic model corresponds to a MongoDB collection. Collection name is the
lowercase class name.
"""
from datetime import datetime
from enum import Enum
from typing import Optional, List, Literal
from pydantic import BaseModel, Field, EmailStr

Category = Literal["base", "sauce", "cheese", "veggie", "meat"]

DEFAULT_QUANTITY = 100
DEFAULT_THRESHOLD = 20


class OrderStatus(str, Enum):
    RECEIVED = "Order Received"
    IN_KITCHEN = "In the Kitchen"
    SENT_TO_DELIVERY = "Sent to Delivery"
    DELIVERED = "Delivered"


class User(BaseModel):
    name: str = Field(..., min_length=1)
    email: EmailStr
    password_hash: str = Field(..., description="BCrypt hash of the password")
    role: Literal["user", "admin"] = "user"
    is_verified: bool = False
    verification_token: Optional[str] = Field(None, description="SHA-256 of the emailed token")
    verification_token_expire: Optional[datetime] = None
    reset_password_token: Optional[str] = Field(None, description="SHA-256 of the emailed token")
    reset_password_expire: Optional[datetime] = None


class Inventory(BaseModel):
    category: Category
    name: str = Field(..., min_length=1)
    quantity: int = DEFAULT_QUANTITY
    price: float = Field(..., ge=0, description="Unit price")
    threshold: int = Field(DEFAULT_THRESHOLD, ge=0, description="Reorder threshold")
    last_restocked: Optional[datetime] = None


class Pizza(BaseModel):
    base: str = Field(..., min_length=1)
    sauce: str = Field(..., min_length=1)
    cheese: str = Field(..., min_length=1)
    veggies: List[str] = []
    meat: List[str] = []

    def ingredients(self) -> List[tuple]:
        """(category, name) for every selected ingredient, one per unit used."""
        picked = [("base", self.base), ("sauce", self.sauce), ("cheese", self.cheese)]
        picked += [("veggie", v) for v in self.veggies]
        picked += [("meat", m) for m in self.meat]
        return picked


class StatusEntry(BaseModel):
    status: OrderStatus
    timestamp: datetime


class Order(BaseModel):
    user_id: str
    order_number: str
    pizza: Pizza
    total_price: float = Field(..., ge=0)
    payment_id: str
    payment_status: Literal["pending", "completed", "failed"] = "pending"
    status: OrderStatus = OrderStatus.RECEIVED
    status_history: List[StatusEntry]
