"""
Tracking ID Generator

Mints the short numeric id a customer uses to look up an order without
logging in. Uniqueness is checked against the store at call time; the
unique index on ``orders.tracking_id`` catches the remaining race between
two concurrent placements, which the lifecycle service retries.
"""

import logging
import random
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from orderdesk.core.config import get_settings
from orderdesk.core.exceptions import TrackingIdExhausted
from orderdesk.models import Order

logger = logging.getLogger(__name__)


class TrackingIdGenerator:
    """Draws random ids in [low, high] until one is not in use."""

    def __init__(
        self,
        low: Optional[int] = None,
        high: Optional[int] = None,
        max_attempts: Optional[int] = None,
        rng: Optional[random.Random] = None,
    ):
        settings = get_settings()
        self.low = settings.tracking_id_min if low is None else low
        self.high = settings.tracking_id_max if high is None else high
        self.max_attempts = (
            settings.tracking_id_max_attempts if max_attempts is None else max_attempts
        )
        if self.low > self.high:
            raise ValueError("tracking id range is empty")
        self.width = len(str(self.high))
        self._rng = rng or random.Random()

    def candidate(self) -> str:
        return str(self._rng.randint(self.low, self.high)).zfill(self.width)

    async def exists(self, db: AsyncSession, tracking_id: str) -> bool:
        result = await db.execute(
            select(Order.id).where(Order.tracking_id == tracking_id).limit(1)
        )
        return result.scalar_one_or_none() is not None

    async def generate(self, db: AsyncSession) -> str:
        """
        Return a tracking id not used by any stored order.

        Raises:
            TrackingIdExhausted: no free id found within ``max_attempts`` draws
        """
        for attempt in range(1, self.max_attempts + 1):
            tracking_id = self.candidate()
            if not await self.exists(db, tracking_id):
                if attempt > 1:
                    logger.debug(f"Tracking id {tracking_id} found after {attempt} draws")
                return tracking_id

        logger.error(f"No free tracking id after {self.max_attempts} draws")
        raise TrackingIdExhausted(
            "Could not allocate a tracking id, please try again"
        )
