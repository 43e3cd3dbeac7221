"""
Order Lookup Service

Read paths for customers (tracking id, WhatsApp number) and the admin
dashboard (by id, full list, filters, stats). Absence is reported as
NotFoundError, never as a system fault.
"""

import logging
from datetime import datetime, time, timezone
from typing import Optional

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from orderdesk.core.config import Settings, get_settings
from orderdesk.core.exceptions import NotFoundError, ValidationError
from orderdesk.models import Order, OrderStatus, OrderType
from orderdesk.schemas import OrderStats
from orderdesk.utils import digits_only

logger = logging.getLogger(__name__)


def _escape_like(value: str) -> str:
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


class OrderLookupService:
    def __init__(self, db: AsyncSession, settings: Optional[Settings] = None):
        self.db = db
        self.settings = settings or get_settings()

    async def get_by_id(self, order_id: int) -> Order:
        order = await self.db.get(Order, order_id)
        if order is None:
            raise NotFoundError("Order not found")
        return order

    async def get_by_tracking_id(self, tracking_id: str) -> Order:
        result = await self.db.execute(
            select(Order).where(Order.tracking_id == tracking_id.strip())
        )
        order = result.scalar_one_or_none()
        if order is None:
            raise NotFoundError("Order not found")
        return order

    async def get_by_whatsapp_number(self, number: str) -> Order:
        """
        Most recent order whose WhatsApp number matches ``number``.

        Matching is on digits only. By default it is a substring match, so
        "9998887776" also finds an order stored as "+91 99988 87776"; with
        ``whatsapp_exact_match`` the digits must be equal.
        """
        digits = digits_only(number)
        if not digits:
            raise ValidationError("WhatsApp number must contain digits")

        if self.settings.whatsapp_exact_match:
            condition = Order.whatsapp_digits == digits
        else:
            condition = Order.whatsapp_digits.contains(digits, autoescape=True)

        result = await self.db.execute(
            select(Order)
            .where(condition)
            .order_by(Order.created_at.desc(), Order.id.desc())
            .limit(1)
        )
        order = result.scalar_one_or_none()
        if order is None:
            raise NotFoundError("No orders found for this WhatsApp number")
        return order

    async def list_all(
        self,
        status: Optional[OrderStatus] = None,
        order_type: Optional[OrderType] = None,
        search: Optional[str] = None,
    ) -> list[Order]:
        """Every order newest first; the optional filters narrow the dashboard view."""
        query = select(Order)

        if status is not None:
            query = query.where(Order.status == status)
        if order_type is not None:
            query = query.where(Order.order_type == order_type)
        if search and search.strip():
            pattern = f"%{_escape_like(search.strip().lower())}%"
            query = query.where(
                or_(
                    func.lower(Order.tracking_id).like(pattern, escape="\\"),
                    func.lower(Order.table_number).like(pattern, escape="\\"),
                    func.lower(Order.customer_name).like(pattern, escape="\\"),
                    func.lower(Order.whatsapp_number).like(pattern, escape="\\"),
                )
            )

        result = await self.db.execute(
            query.order_by(Order.created_at.desc(), Order.id.desc())
        )
        return list(result.scalars().all())

    async def stats(self, now: Optional[datetime] = None) -> OrderStats:
        """Dashboard aggregates: counts per status, paid split, income."""
        now = now or datetime.now(timezone.utc)
        today_start = datetime.combine(now.date(), time.min, tzinfo=now.tzinfo)

        status_rows = await self.db.execute(
            select(Order.status, func.count(Order.id)).group_by(Order.status)
        )
        by_status = {s.value: 0 for s in OrderStatus}
        for status, count in status_rows.all():
            by_status[status.value] = count
        total_orders = sum(by_status.values())

        paid_result = await self.db.execute(
            select(func.count(Order.id)).where(Order.paid.is_(True))
        )
        paid_orders = paid_result.scalar() or 0

        income_result = await self.db.execute(select(func.sum(Order.total)))
        total_income = income_result.scalar() or 0.0

        today_result = await self.db.execute(
            select(func.sum(Order.total)).where(Order.created_at >= today_start)
        )
        today_income = today_result.scalar() or 0.0

        flagged_result = await self.db.execute(
            select(func.count(Order.id)).where(Order.total_mismatch.is_(True))
        )
        flagged = flagged_result.scalar() or 0

        return OrderStats(
            total_orders=total_orders,
            by_status=by_status,
            paid_orders=paid_orders,
            unpaid_orders=total_orders - paid_orders,
            today_income=round(today_income, 2),
            total_income=round(total_income, 2),
            flagged_totals=flagged,
        )
