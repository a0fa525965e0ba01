from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends, status

from storefront.api.deps import get_current_user, get_metrics, get_order_engine
from storefront.core.metrics import Metrics
from storefront.models.user import User
from storefront.schemas.cart import CartItemView
from storefront.schemas.order import OrderCreated, OrderRead
from storefront.services.identity import AuthenticatedUser
from storefront.services.order_service import OrderEngine, OrderSummary

router = APIRouter(prefix="/orders", tags=["orders"])


def _order_payload(summary: OrderSummary) -> dict:
    return {
        "order_id": summary.order_id,
        "cart_id": summary.cart_id,
        "status": summary.status,
        "created_at": summary.created_at,
        "items": [
            CartItemView(id=line.item_id, name=line.name, price=float(line.price), quantity=line.quantity)
            for line in summary.items
        ],
        "total": float(summary.total),
    }


@router.post("", response_model=OrderCreated, status_code=status.HTTP_201_CREATED)
async def place_order(
    engine: OrderEngine = Depends(get_order_engine),
    metrics: Metrics = Depends(get_metrics),
    current_user: User = Depends(get_current_user),
):
    summary = await engine.place_order(AuthenticatedUser(user_id=current_user.id))
    metrics.record_order_placed()
    return OrderCreated(**_order_payload(summary))


@router.get("", response_model=List[OrderRead])
async def list_orders(
    engine: OrderEngine = Depends(get_order_engine),
    current_user: User = Depends(get_current_user),
):
    return [OrderRead(**_order_payload(summary)) for summary in await engine.list_orders(current_user.id)]
