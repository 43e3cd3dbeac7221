"""HTTP client and its polling helpers, driven against the in-process app."""

import httpx
import pytest

from orderdesk.client import ApiError, OrderDeskClient

from tests.conftest import delivery_payload, dine_in_payload


@pytest.fixture
async def api(app, admin_token):
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as http:
        yield OrderDeskClient(client=http, token=admin_token)


async def test_place_and_track(api):
    order = await api.place_order(dine_in_payload())

    tracked = await api.track(order["trackingId"])
    assert tracked["id"] == order["id"]

    latest = await api.track_by_whatsapp("9998887776")
    assert latest["id"] == order["id"]


async def test_api_error_carries_message(api):
    with pytest.raises(ApiError) as exc:
        await api.track("0000")
    assert exc.value.status_code == 404
    assert exc.value.message == "Order not found"


async def test_login_sets_token(app, admin_token):
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as http:
        client = OrderDeskClient(client=http)
        with pytest.raises(ApiError):
            await client.list_orders()

        user = await client.login("admin@example.com", "admin-pass")
        assert user["role"] == "admin"
        assert await client.list_orders() == []


async def test_poll_order_follows_until_terminal(api):
    order = await api.place_order(dine_in_payload())
    seen = []

    async for snapshot in api.poll_order(order["trackingId"], interval=0, max_polls=20):
        seen.append((snapshot["status"], snapshot["paid"]))
        if snapshot["status"] == "pending":
            await api.update_status(order["id"], status="preparing")
        elif snapshot["status"] == "preparing":
            await api.update_status(order["id"], status="served", paid=True)

    assert seen == [("pending", False), ("preparing", False), ("served", True)]


async def test_poll_order_only_yields_changes(api):
    order = await api.place_order(dine_in_payload())

    seen = [s async for s in api.poll_order(order["trackingId"], interval=0, max_polls=3)]

    assert len(seen) == 1
    assert seen[0]["status"] == "pending"


async def test_poll_orders_yields_on_change(api):
    first = await api.place_order(dine_in_payload())
    snapshots = []

    async for orders in api.poll_orders(interval=0, max_polls=4):
        snapshots.append([o["id"] for o in orders])
        if len(snapshots) == 1:
            await api.place_order(delivery_payload())

    assert len(snapshots) == 2
    assert snapshots[0] == [first["id"]]
    assert snapshots[1][1] == first["id"]


async def test_poll_orders_passes_filters(api):
    await api.place_order(dine_in_payload())
    delivery = await api.place_order(delivery_payload())

    batches = [b async for b in api.poll_orders(interval=0, max_polls=1, orderType="home-delivery")]

    assert [[o["id"] for o in batch] for batch in batches] == [[delivery["id"]]]


async def test_get_menu_filters_availability(api, client, admin_headers):
    for payload in (
        {"name": "Masala Dosa", "price": 120, "category": "South Indian"},
        {"name": "Lime Soda", "price": 60, "category": "Drinks", "available": False},
    ):
        response = await client.post("/api/menu", json=payload, headers=admin_headers)
        assert response.status_code == 201

    assert {i["name"] for i in await api.get_menu()} == {"Masala Dosa", "Lime Soda"}
    assert [i["name"] for i in await api.get_menu(available=True)] == ["Masala Dosa"]
    assert [i["name"] for i in await api.get_menu(available=False)] == ["Lime Soda"]


async def test_logout_drops_token(api):
    await api.logout()
    assert api.token is None
    with pytest.raises(ApiError) as exc:
        await api.list_orders()
    assert exc.value.status_code == 401
