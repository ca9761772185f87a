# app/routers/inventory/categories.py
from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.db import get_db
from app.services.inventory_services.product_service import create_category, get_all_categories
from app.schemas.product_schemas import CategoryCreate, CategoryResponse, CategoryListResponse
from app.utils.get_user import get_current_user
from app.utils.check_roles import require_role

router = APIRouter(prefix="/categories", tags=["Product Categories"])


@router.post("", response_model=CategoryResponse, status_code=status.HTTP_201_CREATED)
@require_role(["admin", "inventory"])
async def create_category_route(
    data: CategoryCreate,
    db: AsyncSession = Depends(get_db),
    _user=Depends(get_current_user),
):
    return await create_category(db, data, _user)


@router.get("", response_model=CategoryListResponse)
@require_role(["admin", "inventory"])
async def list_categories(db: AsyncSession = Depends(get_db), _user=Depends(get_current_user)):
    return await get_all_categories(db)
