"""
Excel Order Ledger with Concurrency Control

Keeps one row per order (keyed by tracking id) in an Excel workbook so
the restaurant has an offline record. Celery workers write concurrently,
so every read-modify-write happens under a file lock.
"""

import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Any

import pandas as pd
from filelock import FileLock, Timeout

from orderdesk.core.config import get_settings

settings = get_settings()
logger = logging.getLogger(__name__)


class LedgerReadError(Exception):
    """The ledger exists but could not be read; it must not be overwritten."""


class ExcelManager:
    """Process- and thread-safe Excel ledger."""

    DATA_DIR = Path(settings.data_directory)
    FILENAME = settings.ledger_filename
    LOCK_TIMEOUT = settings.ledger_lock_timeout

    LEDGER_COLUMNS = [
        "tracking_id",
        "order_id",
        "order_type",
        "date_time",
        "table_number",
        "whatsapp_number",
        "customer_name",
        "customer_phone",
        "delivery_address",
        "items",
        "total",
        "computed_total",
        "total_mismatch",
        "order_status",
        "paid",
        "updated_at",
        "exported_at",
    ]

    @classmethod
    def ledger_file(cls) -> Path:
        return cls.DATA_DIR / cls.FILENAME

    @classmethod
    def lock_file(cls) -> Path:
        return cls.DATA_DIR / f"{cls.FILENAME}.lock"

    @classmethod
    def _ensure_data_dir(cls) -> None:
        """Create data directory if needed."""
        if not cls.DATA_DIR.exists():
            cls.DATA_DIR.mkdir(parents=True, exist_ok=True)
            logger.info(f"Created data directory: {cls.DATA_DIR}")

    @classmethod
    def _load_or_create_df(cls) -> pd.DataFrame:
        """Load existing ledger or create an empty one."""
        path = cls.ledger_file()
        if not path.exists():
            return pd.DataFrame(columns=cls.LEDGER_COLUMNS)
        try:
            return pd.read_excel(path, engine="openpyxl", dtype={"tracking_id": str})
        except Exception as e:
            raise LedgerReadError(f"Cannot read ledger {path}: {e}") from e

    @staticmethod
    def _is_stale(stored: Any, incoming: Any) -> bool:
        """True when the stored row was written from a newer order snapshot."""
        stored_at = pd.to_datetime(stored, errors="coerce")
        incoming_at = pd.to_datetime(incoming, errors="coerce")
        if pd.isna(stored_at) or pd.isna(incoming_at):
            return False
        return stored_at > incoming_at

    @classmethod
    def _row(cls, order: dict[str, Any], export_time: str) -> dict[str, Any]:
        items = "; ".join(
            f"{item['qty']} x {item['name']} @ {item['price']}" for item in order.get("items", [])
        )
        return {
            "tracking_id": str(order.get("trackingId")),
            "order_id": order.get("id"),
            "order_type": order.get("orderType"),
            "date_time": order.get("createdAt", export_time),
            "table_number": order.get("tableNumber"),
            "whatsapp_number": order.get("whatsappNumber"),
            "customer_name": order.get("customerName"),
            "customer_phone": order.get("customerPhone"),
            "delivery_address": order.get("deliveryAddress"),
            "items": items,
            "total": order.get("total"),
            "computed_total": order.get("computedTotal"),
            "total_mismatch": order.get("totalMismatch", False),
            "order_status": order.get("status"),
            "paid": order.get("paid", False),
            "updated_at": order.get("updatedAt"),
            "exported_at": export_time,
        }

    @classmethod
    def upsert_order(cls, order: dict[str, Any]) -> dict[str, Any]:
        """Insert or replace the ledger row for ``order`` under the file lock."""
        cls._ensure_data_dir()

        tracking_id = str(order.get("trackingId", "unknown"))
        result = {
            "success": False,
            "message": "",
            "tracking_id": tracking_id,
            "exported_at": None,
        }

        try:
            lock = FileLock(str(cls.lock_file()), timeout=cls.LOCK_TIMEOUT)

            with lock:
                logger.debug(f"Lock acquired for Order #{tracking_id}")

                df = cls._load_or_create_df()
                export_time = datetime.now().isoformat()
                row = cls._row(order, export_time)

                existing = df["tracking_id"].astype(str) == tracking_id
                stale = existing.any() and "updated_at" in df.columns and cls._is_stale(
                    df.loc[existing, "updated_at"].iloc[-1], row["updated_at"]
                )
                if stale:
                    action = "unchanged (stale update)"
                else:
                    action = "updated" if existing.any() else "added"
                    df = pd.concat([df.loc[~existing], pd.DataFrame([row])], ignore_index=True)
                    df.to_excel(str(cls.ledger_file()), index=False, engine="openpyxl")

                logger.info(f"Order #{tracking_id} {action} in ledger")

                result["success"] = True
                result["message"] = f"Order #{tracking_id} {action}"
                result["exported_at"] = None if stale else export_time

            logger.debug(f"Lock released for Order #{tracking_id}")

        except Timeout:
            result["message"] = f"Lock timeout ({cls.LOCK_TIMEOUT}s)"
            logger.error(f"Lock timeout for Order #{tracking_id}")

        except Exception as e:
            result["message"] = str(e)
            logger.exception(f"Error exporting Order #{tracking_id}")

        return result

    @classmethod
    def get_all_orders(cls) -> list[dict[str, Any]]:
        """Get all ledger rows."""
        if not cls.ledger_file().exists():
            return []

        try:
            df = pd.read_excel(cls.ledger_file(), engine="openpyxl", dtype={"tracking_id": str})
            return json.loads(df.to_json(orient="records"))
        except Exception as e:
            logger.error(f"Error reading ledger: {e}")
            return []

    @classmethod
    def clear_all(cls) -> bool:
        """Delete the ledger and its lock file."""
        try:
            for f in [cls.ledger_file(), cls.lock_file()]:
                if f.exists():
                    f.unlink()
            logger.info("Ledger cleared")
            return True
        except OSError as e:
            logger.error(f"Error clearing ledger: {e}")
            return False
