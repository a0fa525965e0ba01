# storefront/schemas/order.py
from __future__ import annotations

from datetime import datetime
from typing import List

from pydantic import BaseModel

from storefront.models.order import OrderStatus
from storefront.schemas.cart import CartItemView


class OrderRead(BaseModel):
    order_id: int
    cart_id: int
    status: OrderStatus
    created_at: datetime
    items: List[CartItemView]
    total: float


class OrderCreated(OrderRead):
    message: str = "Order created successfully"
