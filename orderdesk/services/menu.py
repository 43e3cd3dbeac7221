"""
Menu Service

CRUD over the live menu. Orders hold their own name/price snapshot, so
editing or deleting an item here never changes past orders.
"""

import logging
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from orderdesk.core.exceptions import NotFoundError
from orderdesk.models import MenuItem
from orderdesk.schemas import MenuItemCreate, MenuItemUpdate

logger = logging.getLogger(__name__)


class MenuService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def list(
        self,
        available: Optional[bool] = None,
        category: Optional[str] = None,
    ) -> list[MenuItem]:
        query = select(MenuItem)
        if available is not None:
            query = query.where(MenuItem.available.is_(available))
        if category:
            query = query.where(MenuItem.category == category)
        result = await self.db.execute(
            query.order_by(MenuItem.created_at.desc(), MenuItem.id.desc())
        )
        return list(result.scalars().all())

    async def get(self, item_id: int) -> MenuItem:
        item = await self.db.get(MenuItem, item_id)
        if item is None:
            raise NotFoundError("Menu item not found")
        return item

    async def create(self, data: MenuItemCreate) -> MenuItem:
        item = MenuItem(**data.model_dump())
        self.db.add(item)
        await self.db.commit()
        await self.db.refresh(item)
        logger.info(f"Menu item {item.id} created: {item.name} ({item.price:.2f})")
        return item

    async def update(self, item_id: int, data: MenuItemUpdate) -> MenuItem:
        item = await self.get(item_id)
        for field, value in data.model_dump(exclude_unset=True).items():
            if value is None and field != "image_url":
                continue
            setattr(item, field, value)
        await self.db.commit()
        await self.db.refresh(item)
        logger.info(f"Menu item {item.id} updated")
        return item

    async def delete(self, item_id: int) -> None:
        item = await self.get(item_id)
        await self.db.delete(item)
        await self.db.commit()
        logger.info(f"Menu item {item_id} deleted")
