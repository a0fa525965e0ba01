# storefront/schemas/item.py
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field

from storefront.models.item import ItemStatus


class ItemCreate(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    price: Decimal = Field(gt=0, max_digits=12, decimal_places=2)
    status: ItemStatus = ItemStatus.available


class ItemRead(BaseModel):
    id: int
    name: str
    price: float
    status: ItemStatus

    model_config = ConfigDict(from_attributes=True)
