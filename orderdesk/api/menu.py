"""
Menu endpoints. Reads are public; writes need an admin token.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from orderdesk.core.security import require_admin
from orderdesk.database import get_db
from orderdesk.models import User
from orderdesk.schemas import ErrorResponse, MenuItemCreate, MenuItemResponse, MenuItemUpdate
from orderdesk.services.menu import MenuService

router = APIRouter(prefix="/api/menu", tags=["Menu"])


def get_menu_service(db: AsyncSession = Depends(get_db)) -> MenuService:
    return MenuService(db)


@router.get("", response_model=List[MenuItemResponse])
async def list_menu(
    available: Optional[bool] = Query(None),
    category: Optional[str] = Query(None, max_length=50),
    service: MenuService = Depends(get_menu_service),
) -> List[MenuItemResponse]:
    items = await service.list(available=available, category=category)
    return [MenuItemResponse.model_validate(item) for item in items]


@router.get(
    "/{item_id}",
    response_model=MenuItemResponse,
    responses={404: {"model": ErrorResponse}},
)
async def get_menu_item(
    item_id: int,
    service: MenuService = Depends(get_menu_service),
) -> MenuItemResponse:
    return MenuItemResponse.model_validate(await service.get(item_id))


@router.post("", response_model=MenuItemResponse, status_code=201)
async def create_menu_item(
    data: MenuItemCreate,
    service: MenuService = Depends(get_menu_service),
    _: User = Depends(require_admin),
) -> MenuItemResponse:
    return MenuItemResponse.model_validate(await service.create(data))


@router.put(
    "/{item_id}",
    response_model=MenuItemResponse,
    responses={404: {"model": ErrorResponse}},
)
async def update_menu_item(
    item_id: int,
    data: MenuItemUpdate,
    service: MenuService = Depends(get_menu_service),
    _: User = Depends(require_admin),
) -> MenuItemResponse:
    return MenuItemResponse.model_validate(await service.update(item_id, data))


@router.delete("/{item_id}", responses={404: {"model": ErrorResponse}})
async def delete_menu_item(
    item_id: int,
    service: MenuService = Depends(get_menu_service),
    _: User = Depends(require_admin),
) -> dict[str, str]:
    await service.delete(item_id)
    return {"msg": "Menu item deleted successfully"}
