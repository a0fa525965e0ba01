from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends, status

from storefront.api.deps import get_catalog, get_current_user
from storefront.models.user import User
from storefront.schemas.item import ItemCreate, ItemRead
from storefront.services.catalog_service import Catalog

router = APIRouter(prefix="/items", tags=["items"])


@router.get("", response_model=List[ItemRead])
async def list_items(catalog: Catalog = Depends(get_catalog)):
    return await catalog.list_items()


@router.post("", response_model=ItemRead, status_code=status.HTTP_201_CREATED)
async def create_item(
    payload: ItemCreate,
    catalog: Catalog = Depends(get_catalog),
    current_user: User = Depends(get_current_user),
):
    return await catalog.create_item(payload.name, payload.price, payload.status)
