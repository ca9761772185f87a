# app/routers/inventory/stock.py
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Optional

from app.core.db import get_db
from app.models.inventory_models import InventoryLogType
from app.models.product_models import StockStatus
from app.schemas.alert_schemas import StockAlertListResponse
from app.schemas.inventory_schemas import (
    BulkStockResponse,
    BulkStockUpdate,
    InventoryListResponse,
    InventoryLogListResponse,
    InventoryLogOut,
    ReservationRequest,
    SaleConfirmation,
    StockMovementCreate,
    StockResponse,
    StockUpdate,
)
from app.schemas.product_schemas import ProductOut
from app.services.inventory_services import stock_service
from app.services.inventory_services.alerts_service import get_low_stock_products
from app.utils.check_roles import require_role
from app.utils.get_user import get_current_user
from app.utils.pagination import page_count

router = APIRouter(prefix="/stock", tags=["Inventory Stock"])


# -----------------------------------------------------------
# LISTINGS
# -----------------------------------------------------------
@router.get("", response_model=InventoryListResponse)
@require_role(["admin", "inventory"])
async def list_inventory(
    db: AsyncSession = Depends(get_db),
    _user=Depends(get_current_user),
    search: Optional[str] = Query(None),
    stock_status: Optional[StockStatus] = Query(None),
    category_id: Optional[int] = Query(None),
    low_stock: bool = Query(False),
    page: int = Query(1, ge=1),
    page_size: int = Query(50, ge=1, le=200),
):
    """
    Stock levels of active products, lowest stock first.
    """
    total, products = await stock_service.get_inventory(
        db, search, stock_status, category_id, low_stock, page, page_size
    )
    return {
        "message": "Inventory fetched successfully",
        "total": total,
        "page": page,
        "pages": page_count(total, page_size),
        "data": [ProductOut.model_validate(p) for p in products],
    }


@router.get("/low-stock", response_model=StockAlertListResponse)
@require_role(["admin", "inventory"])
async def low_stock(db: AsyncSession = Depends(get_db), _user=Depends(get_current_user)):
    data = await get_low_stock_products(db)
    return {
        "message": f"{len(data)} products running low" if data else "All stocks are above threshold",
        "data": data,
    }


@router.get("/logs", response_model=InventoryLogListResponse)
@require_role(["admin", "inventory"])
async def list_inventory_logs(
    db: AsyncSession = Depends(get_db),
    _user=Depends(get_current_user),
    product_id: Optional[int] = Query(None),
    type: Optional[InventoryLogType] = Query(None),
    page: int = Query(1, ge=1),
    page_size: int = Query(50, ge=1, le=200),
):
    total, logs = await stock_service.get_inventory_logs(db, product_id, type, page, page_size)
    return {
        "message": "Inventory logs fetched successfully",
        "total": total,
        "page": page,
        "pages": page_count(total, page_size),
        "data": [InventoryLogOut.model_validate(log) for log in logs],
    }


# -----------------------------------------------------------
# ADJUSTMENTS
# -----------------------------------------------------------
@router.post("/bulk-update", response_model=BulkStockResponse)
@require_role(["admin", "inventory"])
async def bulk_update_stock(
    data: BulkStockUpdate,
    db: AsyncSession = Depends(get_db),
    _user=Depends(get_current_user),
):
    """
    Apply several stock counts at once. Entries that fail are reported in
    ``errors`` without undoing the others.
    """
    outcome = await stock_service.bulk_adjust_stock(db, data.updates, _user)
    return {
        "message": f"{len(outcome['results'])} updated, {len(outcome['errors'])} failed",
        **outcome,
    }


@router.put("/{product_id}", response_model=StockResponse)
@require_role(["admin", "inventory"])
async def update_stock(
    product_id: int,
    data: StockUpdate,
    db: AsyncSession = Depends(get_db),
    _user=Depends(get_current_user),
):
    product = await stock_service.adjust_stock(db, product_id, data.stock, data.reason, data.notes, _user)
    return {"message": "Stock updated successfully", "data": ProductOut.model_validate(product)}


@router.post("/{product_id}/movements", response_model=StockResponse)
@require_role(["admin", "inventory"])
async def record_movement(
    product_id: int,
    data: StockMovementCreate,
    db: AsyncSession = Depends(get_db),
    _user=Depends(get_current_user),
):
    """
    Record a restock, customer return, damage or loss.
    """
    product = await stock_service.record_stock_movement(
        db, product_id, data.type, data.quantity, data.reason, data.notes, _user
    )
    return {"message": f"{data.type.value.capitalize()} recorded", "data": ProductOut.model_validate(product)}


# -----------------------------------------------------------
# ORDER LIFECYCLE
# -----------------------------------------------------------
@router.post("/{product_id}/reserve", response_model=StockResponse)
@require_role(["admin", "inventory"])
async def reserve(
    product_id: int,
    data: ReservationRequest,
    db: AsyncSession = Depends(get_db),
    _user=Depends(get_current_user),
):
    product = await stock_service.reserve_stock(db, product_id, data.quantity)
    return {"message": "Stock reserved", "data": ProductOut.model_validate(product)}


@router.post("/{product_id}/release", response_model=StockResponse)
@require_role(["admin", "inventory"])
async def release(
    product_id: int,
    data: ReservationRequest,
    db: AsyncSession = Depends(get_db),
    _user=Depends(get_current_user),
):
    product = await stock_service.release_stock(db, product_id, data.quantity)
    return {"message": "Reservation released", "data": ProductOut.model_validate(product)}


@router.post("/{product_id}/confirm-sale", response_model=StockResponse)
@require_role(["admin", "inventory"])
async def confirm_sale(
    product_id: int,
    data: SaleConfirmation,
    db: AsyncSession = Depends(get_db),
    _user=Depends(get_current_user),
):
    product = await stock_service.confirm_sale(db, product_id, data.quantity, data.order_id, _user)
    return {"message": "Sale confirmed", "data": ProductOut.model_validate(product)}
