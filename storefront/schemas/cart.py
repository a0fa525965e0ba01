# storefront/schemas/cart.py
from __future__ import annotations

from datetime import datetime
from typing import List, Literal

from pydantic import BaseModel, ConfigDict, Field

from storefront.models.cart import CartStatus


class AddToCartRequest(BaseModel):
    item_id: int = Field(..., gt=0)
    quantity: int = Field(default=1, ge=1)


class CartLineRead(BaseModel):
    item_id: int
    quantity: int
    created_at: datetime
    updated_at: datetime | None = None

    model_config = ConfigDict(from_attributes=True)


class CartRead(BaseModel):
    id: int
    user_id: int | None
    status: CartStatus
    created_at: datetime
    updated_at: datetime | None = None
    # the session token is an owner credential and is not echoed here
    items: List[CartLineRead] = Field(default_factory=list, validation_alias="lines")

    model_config = ConfigDict(from_attributes=True)


class AddToCartResponse(BaseModel):
    message: str = "Item added to cart successfully"
    cart_id: int
    cart: CartRead
    line: CartLineRead


class CartItemView(BaseModel):
    id: int
    name: str
    price: float
    quantity: int


class CartContents(BaseModel):
    cart_id: int
    items: List[CartItemView]
    total: float


class EmptyCartResult(BaseModel):
    message: Literal["Cart is empty"] = "Cart is empty"
    cart_id: int


class NoActiveCartResult(BaseModel):
    message: Literal["No active cart found"] = "No active cart found"
    cart: None = None
