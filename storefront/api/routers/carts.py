from __future__ import annotations

from typing import Union

from fastapi import APIRouter, Depends, Response

from storefront.api.deps import (
    get_cart_store,
    get_identity,
    get_metrics,
    get_optional_identity,
    get_settings,
)
from storefront.core.config import Settings
from storefront.core.metrics import Metrics
from storefront.schemas.cart import (
    AddToCartRequest,
    AddToCartResponse,
    CartContents,
    CartItemView,
    CartLineRead,
    CartRead,
    EmptyCartResult,
    NoActiveCartResult,
)
from storefront.services.cart_service import CartStore
from storefront.services.identity import Identity

router = APIRouter(prefix="/carts", tags=["carts"])


@router.post("", response_model=AddToCartResponse)
async def add_to_cart(
    payload: AddToCartRequest,
    response: Response,
    identity: Identity = Depends(get_identity),
    store: CartStore = Depends(get_cart_store),
    settings: Settings = Depends(get_settings),
    metrics: Metrics = Depends(get_metrics),
):
    result = await store.add_line(identity, payload.item_id, payload.quantity)
    metrics.record_cart_line_added(identity.kind)
    if identity.minted:
        response.headers[settings.SESSION_HEADER] = identity.session_id
    return AddToCartResponse(
        cart_id=result.cart.id,
        cart=CartRead.model_validate(result.cart),
        line=CartLineRead.model_validate(result.line),
    )


@router.get("", response_model=Union[CartContents, EmptyCartResult, NoActiveCartResult])
async def get_cart(
    identity: Identity | None = Depends(get_optional_identity),
    store: CartStore = Depends(get_cart_store),
):
    view = await store.get_cart_view(identity)
    if not view.exists:
        return NoActiveCartResult()
    if view.is_empty:
        return EmptyCartResult(cart_id=view.cart_id)
    return CartContents(
        cart_id=view.cart_id,
        items=[
            CartItemView(id=line.item_id, name=line.name, price=float(line.price), quantity=line.quantity)
            for line in view.lines
        ],
        total=float(view.total),
    )
