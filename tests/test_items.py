# tests/test_items.py
import logging

import pytest
from httpx import AsyncClient


@pytest.mark.asyncio
async def test_list_items_is_public_and_ordered(client: AsyncClient, seeded_items):
    resp = await client.get("/api/items")
    assert resp.status_code == 200
    names = [item["name"] for item in resp.json()]
    assert names == ["Laptop", "Smartphone", "Headphones", "Keyboard", "Mouse"]
    assert resp.json()[0]["price"] == 999.99


@pytest.mark.asyncio
async def test_list_items_dedupes_by_name(client: AsyncClient, auth_headers, seeded_items):
    resp = await client.post("/api/items", json={"name": "Laptop", "price": 10}, headers=auth_headers)
    assert resp.status_code == 201, resp.text

    listed = (await client.get("/api/items")).json()
    laptops = [item for item in listed if item["name"] == "Laptop"]
    assert len(laptops) == 1
    assert laptops[0]["id"] == 1


@pytest.mark.asyncio
async def test_seeding_twice_is_a_noop(catalog, seeded_items):
    assert seeded_items == 5
    assert await catalog.seed_demo_items() == 0


@pytest.mark.asyncio
async def test_create_item_requires_auth(client: AsyncClient):
    resp = await client.post("/api/items", json={"name": "Desk", "price": 120.5})
    assert resp.status_code == 401


@pytest.mark.asyncio
async def test_create_item(client: AsyncClient, auth_headers):
    resp = await client.post(
        "/api/items",
        json={"name": "Desk", "price": "120.50", "status": "unavailable"},
        headers=auth_headers,
    )
    assert resp.status_code == 201, resp.text
    body = resp.json()
    assert body["name"] == "Desk"
    assert body["price"] == 120.5
    assert body["status"] == "unavailable"


@pytest.mark.asyncio
@pytest.mark.parametrize("price", [0, -5])
async def test_create_item_rejects_non_positive_price(client: AsyncClient, auth_headers, price):
    resp = await client.post("/api/items", json={"name": "Free", "price": price}, headers=auth_headers)
    assert resp.status_code == 400
    assert resp.json()["code"] == "validation_error"


@pytest.mark.asyncio
async def test_seed_logs_created_count(catalog, caplog):
    caplog.set_level(logging.INFO, logger="storefront")
    assert await catalog.seed_demo_items() == 5

    [record] = [r for r in caplog.records if r.getMessage() == "Seeded demo catalog"]
    assert record.created_count == 5
