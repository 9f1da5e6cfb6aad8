"""
Schemas for the game-key storefront

The backend speaks camelCase JSON (finalPrice, coverImage, isAdmin, ...).
Every model accepts both the camelCase alias and the snake_case field name,
and serializes with the alias.
"""

from datetime import date
from enum import IntEnum
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator
from pydantic.alias_generators import to_camel


class GameStatus(IntEnum):
    ACTIVE = 0
    BLOCKED = 1


class OrderStatus(IntEnum):
    PENDING = 0
    COMPLETED = 1
    CANCELLED = 2


class KeyStatus(IntEnum):
    AVAILABLE = 0
    ASSIGNED = 1
    CANCELLED = 2


class UserStatus(IntEnum):
    ACTIVE = 0
    BLOCKED = 1


class ApiModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


def compute_final_price(price: float, discount: float = 0) -> float:
    return round(price * (1 - discount / 100), 2)


# ----------------------- Entities -----------------------

class Game(ApiModel):
    id: int = Field(..., gt=0, description="Game id")
    title: str = Field(..., description="Game title")
    description: str = Field("", description="Detailed description")
    price: float = Field(..., ge=0, description="Base price")
    discount: float = Field(0, ge=0, le=100, description="Discount percentage")
    inventory: int = Field(0, description="Keys in stock")
    final_price: Optional[float] = Field(None, ge=0, description="Price after discount, when the backend supplies it")
    category: str = Field("", description="Category, possibly several comma-separated tags")
    cover_image: str = Field("", description="Cover image URL")
    screenshots: Optional[List[str]] = None
    platform: Optional[List[str]] = None
    status: GameStatus = Field(GameStatus.ACTIVE, description="0 active | 1 blocked")

    @property
    def effective_price(self) -> float:
        return self.final_price if self.final_price is not None else self.price


class CartItem(ApiModel):
    game: Game
    quantity: int = Field(1, ge=1)


class GameFilters(ApiModel):
    search: Optional[str] = None
    category: Optional[str] = None
    min_price: Optional[float] = None
    max_price: Optional[float] = None
    sort: Literal["az", "za", "price_asc", "price_desc"] = "az"


class GameKey(ApiModel):
    id: int
    game_id: int
    game_title: Optional[str] = None
    key: str
    status: int = Field(KeyStatus.AVAILABLE, description="0 available | 1 assigned | 2 cancelled")
    created_at: Optional[str] = None


class OrderItem(ApiModel):
    game_id: int
    game_title: str = ""
    quantity: int
    price: float = Field(..., description="Unit price at order time")


class User(ApiModel):
    id: int
    name: str
    email: EmailStr
    is_admin: bool = False
    status: int = Field(UserStatus.ACTIVE, description="0 active | 1 blocked")
    age: Optional[int] = None
    number: Optional[str] = Field(None, description="Phone number")
    profile_image: Optional[str] = None
    birth_date: Optional[date] = None


class Order(ApiModel):
    id: int
    user_id: Optional[int] = None
    user_name: Optional[str] = None
    items: List[OrderItem] = Field(default_factory=list)
    total: float
    status: int = Field(OrderStatus.PENDING, description="0 pending | 1 completed | 2 cancelled")
    created_at: Optional[str] = None
    payment_link: Optional[str] = None
    keys: Optional[List[GameKey]] = None


# ----------------------- Requests / responses -----------------------

class LoginInput(ApiModel):
    email: EmailStr
    password: str = Field(..., min_length=6)


class LoginResponse(ApiModel):
    token: str
    user: User


class RegisterInput(ApiModel):
    name: str = Field(..., min_length=2)
    email: EmailStr
    password: str = Field(..., min_length=6)
    number: str = Field(..., min_length=8, description="Phone number")


class ProfileUpdateInput(ApiModel):
    name: str = Field(..., min_length=2)
    email: EmailStr
    number: Optional[str] = None
    birth_date: Optional[date] = None
    profile_image: Optional[str] = None
    current_password: str = Field(..., min_length=1)
    new_password: Optional[str] = None


class CreateGameInput(ApiModel):
    title: str = Field(..., min_length=1)
    description: str = Field(..., min_length=10)
    price: float = Field(..., gt=0)
    discount: float = Field(0, ge=0, le=100)
    inventory: int = Field(0, ge=0)
    category: str = Field(..., min_length=1)
    cover_image: str = Field(..., pattern=r"^https?://")
    screenshots: Optional[List[str]] = None
    platform: Optional[List[str]] = None


class UpdateGameInput(ApiModel):
    title: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = Field(None, min_length=10)
    price: Optional[float] = Field(None, gt=0)
    discount: Optional[float] = Field(None, ge=0, le=100)
    inventory: Optional[int] = Field(None, ge=0)
    category: Optional[str] = Field(None, min_length=1)
    cover_image: Optional[str] = Field(None, pattern=r"^https?://")
    screenshots: Optional[List[str]] = None
    platform: Optional[List[str]] = None


class OrderLine(ApiModel):
    game_id: int
    quantity: int = Field(..., gt=0)


class CreateOrderInput(ApiModel):
    items: List[OrderLine] = Field(..., min_length=1)


class CreateOrderResponse(ApiModel):
    order_id: int
    payment_link: str
    message: Optional[str] = None


class CreateGameKeysInput(ApiModel):
    game_id: int
    keys: List[str] = Field(..., min_length=1)

    @field_validator("keys")
    @classmethod
    def keys_not_blank(cls, v: List[str]) -> List[str]:
        if any(not k.strip() for k in v):
            raise ValueError("keys cannot be empty")
        return v


class StatusUpdate(ApiModel):
    status: int
