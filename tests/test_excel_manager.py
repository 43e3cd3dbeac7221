"""Excel ledger export."""

import pytest

from orderdesk.services.excel_manager import ExcelManager


@pytest.fixture(autouse=True)
def ledger_dir(monkeypatch, tmp_path):
    monkeypatch.setattr(ExcelManager, "DATA_DIR", tmp_path / "data")
    return tmp_path / "data"


def order(tracking_id="0421", **overrides):
    data = {
        "id": 1,
        "trackingId": tracking_id,
        "orderType": "home-delivery",
        "whatsappNumber": "9876543210",
        "customerName": "Meera",
        "customerPhone": "9876543210",
        "deliveryAddress": "12 MG Road",
        "items": [
            {"name": "Veg Biryani", "price": 220.0, "qty": 1},
            {"name": "Lime Soda", "price": 60.0, "qty": 2},
        ],
        "total": 340.0,
        "computedTotal": 340.0,
        "totalMismatch": False,
        "status": "pending",
        "paid": False,
        "createdAt": "2026-10-17T12:00:00",
        "updatedAt": "2026-10-17T12:00:00",
    }
    data.update(overrides)
    return data


def test_upsert_creates_ledger(ledger_dir):
    result = ExcelManager.upsert_order(order())

    assert result["success"] is True
    assert result["message"] == "Order #0421 added"
    assert ExcelManager.ledger_file().exists()

    rows = ExcelManager.get_all_orders()
    assert len(rows) == 1
    row = rows[0]
    assert row["tracking_id"] == "0421"
    assert row["items"] == "1 x Veg Biryani @ 220.0; 2 x Lime Soda @ 60.0"
    assert row["order_status"] == "pending"


def test_upsert_replaces_row_for_same_tracking_id():
    ExcelManager.upsert_order(order())
    ExcelManager.upsert_order(order("5555", id=2))
    result = ExcelManager.upsert_order(order(status="delivered", paid=True))

    assert result["message"] == "Order #0421 updated"
    rows = {row["tracking_id"]: row for row in ExcelManager.get_all_orders()}
    assert set(rows) == {"0421", "5555"}
    assert rows["0421"]["order_status"] == "delivered"
    assert rows["0421"]["paid"] is True


def test_get_all_orders_without_ledger():
    assert ExcelManager.get_all_orders() == []


def test_clear_all():
    ExcelManager.upsert_order(order())
    assert ExcelManager.clear_all() is True
    assert not ExcelManager.ledger_file().exists()
    assert ExcelManager.get_all_orders() == []


def test_older_snapshot_does_not_overwrite_newer_row():
    ExcelManager.upsert_order(order(status="served", updatedAt="2026-10-17T10:05:00"))
    result = ExcelManager.upsert_order(order(status="ready", updatedAt="2026-10-17T10:01:00"))

    assert result["success"] is True
    assert result["message"] == "Order #0421 unchanged (stale update)"
    rows = ExcelManager.get_all_orders()
    assert [row["order_status"] for row in rows] == ["served"]


def test_unreadable_ledger_is_not_overwritten(ledger_dir):
    ExcelManager.upsert_order(order("1111"))
    ledger = ExcelManager.ledger_file()
    corrupt = ledger.read_bytes()[:100]
    ledger.write_bytes(corrupt)

    result = ExcelManager.upsert_order(order("2222", id=2))

    assert result["success"] is False
    assert "Cannot read ledger" in result["message"]
    assert ledger.read_bytes() == corrupt


def test_export_task_raises_when_ledger_write_fails(monkeypatch):
    from orderdesk import tasks

    calls = []

    def failing_upsert(data):
        calls.append(data["trackingId"])
        return {"success": False, "message": "Lock timeout (10s)", "tracking_id": "0421"}

    monkeypatch.setattr(ExcelManager, "upsert_order", failing_upsert)

    result = tasks.export_order_to_ledger.apply(args=(order(),))

    assert result.failed()
    assert isinstance(result.result, tasks.LedgerExportFailed)
    assert len(calls) > 1
