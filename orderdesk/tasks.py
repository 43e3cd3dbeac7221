"""
Celery Tasks
Background side effects of order events: WhatsApp messages to the
customer and the Excel ledger export.
"""

import logging
import time
from datetime import datetime
from typing import Any

from kombu.exceptions import KombuError

from orderdesk.celery_worker import celery_app
from orderdesk.core.config import get_settings
from orderdesk.services.broadcast import NEW_ORDER, ORDER_UPDATED
from orderdesk.services.excel_manager import ExcelManager
from orderdesk.services.notifications import get_notification_service

logger = logging.getLogger(__name__)


class NotificationFailed(Exception):
    """Raised inside the task so Celery's autoretry kicks in."""


class LedgerExportFailed(Exception):
    """Raised when the ledger write did not happen, so the export is retried."""


@celery_app.task(
    bind=True,
    max_retries=3,
    default_retry_delay=5,
    autoretry_for=(NotificationFailed,),
    retry_backoff=True
)
def notify_customer(self, event: str, order: dict[str, Any]) -> dict[str, Any]:
    """
    Send the WhatsApp message matching ``event`` for ``order``.

    Args:
        event: newOrder or orderUpdated
        order: serialized order payload (camelCase)
    """
    task_id = self.request.id
    tracking_id = order.get("trackingId", "unknown")
    service = get_notification_service()

    if event == NEW_ORDER:
        result = service.send_order_placed(order)
    elif event == ORDER_UPDATED:
        result = service.send_status_update(order)
    else:
        raise ValueError(f"Unknown order event: {event}")

    if not result.success:
        logger.warning(f"Task {task_id}: WhatsApp for #{tracking_id} failed - {result.error_message}")
        raise NotificationFailed(result.error_message or "notification failed")

    logger.info(f"Task {task_id}: WhatsApp for #{tracking_id} sent ({result.message_id})")
    return {
        "success": True,
        "tracking_id": tracking_id,
        "message_id": result.message_id,
        "provider": result.provider,
    }


@celery_app.task(
    bind=True,
    max_retries=3,
    default_retry_delay=5,
    autoretry_for=(LedgerExportFailed,),
    retry_backoff=True
)
def export_order_to_ledger(self, order: dict[str, Any]) -> dict[str, Any]:
    """
    Upsert the order into the Excel ledger.

    Returns:
        dict: Result of the export operation
    """
    task_id = self.request.id
    tracking_id = order.get("trackingId", "unknown")
    start_time = time.time()

    result = ExcelManager.upsert_order(order)

    elapsed = round(time.time() - start_time, 3)
    result["task_id"] = task_id
    result["processing_time_seconds"] = elapsed

    if not result["success"]:
        logger.warning(f"Task {task_id}: Order #{tracking_id} export failed - {result['message']}")
        raise LedgerExportFailed(result["message"])

    logger.info(f"Task {task_id}: Order #{tracking_id} exported in {elapsed}s")
    return result


@celery_app.task
def health_check() -> dict:
    """
    Simple health check task to verify Celery is working.
    """
    return {
        'status': 'healthy',
        'worker': 'celery',
        'timestamp': datetime.now().isoformat()
    }


def queue_order_side_effects(event: str, order: dict[str, Any]) -> None:
    """
    Queue the background work for an order event.

    Called after the order is committed; a broker outage is logged and
    never fails the request that triggered it.
    """
    settings = get_settings()
    tracking_id = order.get("trackingId")

    try:
        if settings.notifications_enabled:
            notify_customer.delay(event, order)
        if settings.ledger_export_enabled:
            export_order_to_ledger.delay(order)
    except KombuError as e:
        logger.error(f"Could not queue side effects for #{tracking_id}: {e}")
