# app/services/inventory_services/stock_service.py
"""
Inventory tracker.

Every change to ``Product.stock`` / ``Product.reserved_stock`` goes through
this module. Each operation re-reads the product, applies its rule and commits
the product row together with its ``InventoryLog`` row; the product's version
column turns a lost race into a retry against fresh counters.
"""
import logging
from typing import List, Optional, Tuple

from fastapi import HTTPException
from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import (
    BadRequestException,
    InsufficientStockException,
    NotFoundException,
    TrackingDisabledException,
)
from app.models.inventory_models import (
    INBOUND_MOVEMENTS,
    OUTBOUND_MOVEMENTS,
    InventoryLog,
    InventoryLogType,
)
from app.models.product_models import LOW_STOCK_THRESHOLD, Product, StockStatus
from app.schemas.inventory_schemas import BulkStockItem
from app.utils.activity_helpers import Actor, actor_id, as_actor, log_actor_activity
from app.utils.concurrency import retry_versioned_write

logger = logging.getLogger(__name__)


# --------------------------
# HELPERS
# --------------------------
async def fetch_product(db: AsyncSession, product_id: int) -> Product:
    result = await db.execute(
        select(Product)
        .where(Product.id == product_id, Product.is_deleted == False)
        .execution_options(populate_existing=True)
    )
    product = result.scalars().first()
    if not product:
        raise NotFoundException("Product not found")
    return product


def _floor_at_zero(value: int, product_id: int, field: str, requested: int) -> int:
    if value < 0:
        # the caller released/sold more than it held; keep the counter sane but say so
        logger.warning(
            "%s of product %s would go negative (requested %s, short by %s); clamped to 0",
            field, product_id, requested, -value,
        )
        return 0
    return value


def _append_log(
    db: AsyncSession,
    product: Product,
    log_type: InventoryLogType,
    previous_stock: int,
    reason: str,
    notes: str = "",
    performed_by: Optional[int] = None,
    related_order: Optional[int] = None,
) -> InventoryLog:
    entry = InventoryLog(
        product_id=product.id,
        type=log_type,
        quantity_change=product.stock - previous_stock,
        previous_stock=previous_stock,
        new_stock=product.stock,
        reason=reason,
        notes=notes or "",
        performed_by=performed_by,
        related_order=related_order,
    )
    db.add(entry)
    return entry


def _error_message(detail) -> str:
    if isinstance(detail, dict):
        return detail.get("message", str(detail))
    return str(detail)


def _cap_reservations(product: Product, requested: int) -> None:
    """Stock that left the shelf cannot stay promised to orders."""
    if product.allow_backorder or product.reserved_stock <= product.stock:
        return
    logger.warning(
        "reserved_stock of product %s exceeds stock after removing %s (%s > %s); capped at stock",
        product.id, requested, product.reserved_stock, product.stock,
    )
    product.reserved_stock = product.stock


# --------------------------
# MANUAL ADJUSTMENT
# --------------------------
async def _apply_adjustment(
    db: AsyncSession,
    product_id: int,
    new_stock: int,
    reason: str,
    notes: Optional[str],
    actor: Optional[Actor],
) -> Tuple[Product, int]:
    async def apply() -> Tuple[Product, int]:
        product = await fetch_product(db, product_id)
        if not product.track_inventory:
            raise TrackingDisabledException()
        if new_stock < product.reserved_stock and not product.allow_backorder:
            raise BadRequestException(
                f"Stock cannot be set below reserved stock ({product.reserved_stock})"
            )

        previous_stock = product.stock
        product.stock = new_stock
        product.updated_by = actor_id(actor)
        product.refresh_stock_status()
        _append_log(
            db, product, InventoryLogType.manual_adjustment, previous_stock,
            reason=reason, notes=notes, performed_by=actor_id(actor),
        )
        await log_actor_activity(
            db, actor,
            f"adjusted stock of '{product.name}' (ID: {product.id}) from {previous_stock} to {new_stock}",
        )
        await db.commit()
        return product, previous_stock

    return await retry_versioned_write(db, apply, f"product {product_id}")


async def adjust_stock(
    db: AsyncSession,
    product_id: int,
    new_stock: int,
    reason: Optional[str] = None,
    notes: Optional[str] = None,
    current_user=None,
) -> Product:
    """Set a tracked product's stock to ``new_stock`` and log the difference."""
    actor = as_actor(current_user)
    try:
        product, _ = await _apply_adjustment(
            db, product_id, new_stock, reason or "Manual adjustment", notes, actor
        )
        return product
    except HTTPException:
        await db.rollback()
        raise
    except Exception as e:
        await db.rollback()
        raise HTTPException(status_code=500, detail=f"Error updating stock: {e}")


async def bulk_adjust_stock(db: AsyncSession, updates: List[BulkStockItem], current_user=None) -> dict:
    """
    Best effort: each entry commits on its own, failures are collected and the
    batch carries on.
    """
    actor = as_actor(current_user)
    results, errors = [], []

    for item in updates:
        try:
            product, previous_stock = await _apply_adjustment(
                db, item.product_id, item.stock, item.reason or "Bulk adjustment", item.notes, actor
            )
            results.append({
                "product_id": item.product_id,
                "success": True,
                "previous_stock": previous_stock,
                "new_stock": product.stock,
            })
        except HTTPException as e:
            await db.rollback()
            errors.append({"product_id": item.product_id, "error": _error_message(e.detail)})
        except Exception as e:
            await db.rollback()
            logger.exception("Bulk stock update failed for product %s", item.product_id)
            errors.append({"product_id": item.product_id, "error": str(e)})

    return {"results": results, "errors": errors}


# --------------------------
# RESTOCK / RETURN / DAMAGE / LOSS
# --------------------------
async def record_stock_movement(
    db: AsyncSession,
    product_id: int,
    movement_type: InventoryLogType,
    quantity: int,
    reason: Optional[str] = None,
    notes: Optional[str] = None,
    current_user=None,
) -> Product:
    if movement_type not in INBOUND_MOVEMENTS | OUTBOUND_MOVEMENTS:
        raise BadRequestException(f"Unsupported movement type: {movement_type.value}")
    actor = as_actor(current_user)

    async def apply() -> Product:
        product = await fetch_product(db, product_id)
        if not product.track_inventory:
            raise TrackingDisabledException()

        previous_stock = product.stock
        if movement_type in INBOUND_MOVEMENTS:
            product.stock = previous_stock + quantity
        else:
            product.stock = _floor_at_zero(previous_stock - quantity, product.id, "stock", quantity)
            _cap_reservations(product, quantity)
        product.updated_by = actor_id(actor)
        product.refresh_stock_status()
        _append_log(
            db, product, movement_type, previous_stock,
            reason=reason or movement_type.value.capitalize(), notes=notes, performed_by=actor_id(actor),
        )
        await log_actor_activity(
            db, actor,
            f"recorded {movement_type.value} of {quantity} for '{product.name}' (ID: {product.id})",
        )
        await db.commit()
        return product

    try:
        return await retry_versioned_write(db, apply, f"product {product_id}")
    except HTTPException:
        await db.rollback()
        raise
    except Exception as e:
        await db.rollback()
        raise HTTPException(status_code=500, detail=f"Error recording stock movement: {e}")


# --------------------------
# RESERVATIONS
# --------------------------
async def reserve_stock(db: AsyncSession, product_id: int, quantity: int) -> Product:
    """
    Hold ``quantity`` units for an order in flight. Untracked products are
    always available; backorder products may go past available stock.
    """
    async def apply() -> Product:
        product = await fetch_product(db, product_id)
        if not product.track_inventory:
            return product

        available = product.stock - product.reserved_stock
        if available < quantity and not product.allow_backorder:
            raise InsufficientStockException(available=available, requested=quantity)

        product.reserved_stock += quantity
        await db.commit()
        return product

    try:
        return await retry_versioned_write(db, apply, f"product {product_id}")
    except HTTPException:
        await db.rollback()
        raise
    except Exception as e:
        await db.rollback()
        raise HTTPException(status_code=500, detail=f"Error reserving stock: {e}")


async def release_stock(db: AsyncSession, product_id: int, quantity: int) -> Product:
    async def apply() -> Product:
        product = await fetch_product(db, product_id)
        if not product.track_inventory:
            return product

        product.reserved_stock = _floor_at_zero(
            product.reserved_stock - quantity, product.id, "reserved_stock", quantity
        )
        await db.commit()
        return product

    try:
        return await retry_versioned_write(db, apply, f"product {product_id}")
    except HTTPException:
        await db.rollback()
        raise
    except Exception as e:
        await db.rollback()
        raise HTTPException(status_code=500, detail=f"Error releasing stock: {e}")


async def confirm_sale(
    db: AsyncSession,
    product_id: int,
    quantity: int,
    order_id: Optional[int] = None,
    current_user=None,
) -> Product:
    """Turn a reservation into a sale: both counters drop and a sale row is logged."""
    actor = as_actor(current_user)

    async def apply() -> Product:
        product = await fetch_product(db, product_id)
        if not product.track_inventory:
            return product

        previous_stock = product.stock
        product.stock = _floor_at_zero(previous_stock - quantity, product.id, "stock", quantity)
        product.reserved_stock = _floor_at_zero(
            product.reserved_stock - quantity, product.id, "reserved_stock", quantity
        )
        product.refresh_stock_status()

        notes = ""
        if previous_stock < quantity:
            notes = f"Requested {quantity}, only {previous_stock} in stock"
        _append_log(
            db, product, InventoryLogType.sale, previous_stock,
            reason="Product sold", notes=notes, performed_by=actor_id(actor), related_order=order_id,
        )
        await db.commit()
        return product

    try:
        return await retry_versioned_write(db, apply, f"product {product_id}")
    except HTTPException:
        await db.rollback()
        raise
    except Exception as e:
        await db.rollback()
        raise HTTPException(status_code=500, detail=f"Error confirming sale: {e}")


# --------------------------
# LISTINGS
# --------------------------
async def get_inventory(
    db: AsyncSession,
    search: Optional[str] = None,
    stock_status: Optional[StockStatus] = None,
    category_id: Optional[int] = None,
    low_stock: bool = False,
    page: int = 1,
    page_size: int = 50,
) -> Tuple[int, List[Product]]:
    filters = [Product.is_deleted == False]
    if search:
        filters.append(or_(Product.name.ilike(f"%{search}%"), Product.sku.ilike(f"%{search}%")))
    if stock_status:
        filters.append(Product.stock_status == stock_status)
    if category_id:
        filters.append(Product.category_id == category_id)
    if low_stock:
        filters.append(Product.stock <= LOW_STOCK_THRESHOLD)

    total = (await db.execute(select(func.count(Product.id)).where(*filters))).scalar() or 0
    result = await db.execute(
        select(Product)
        .where(*filters)
        .order_by(Product.stock.asc(), Product.id.asc())  # lowest stock first
        .offset((page - 1) * page_size)
        .limit(page_size)
    )
    return total, result.scalars().all()


async def get_inventory_logs(
    db: AsyncSession,
    product_id: Optional[int] = None,
    log_type: Optional[InventoryLogType] = None,
    page: int = 1,
    page_size: int = 50,
) -> Tuple[int, List[InventoryLog]]:
    filters = []
    if product_id:
        filters.append(InventoryLog.product_id == product_id)
    if log_type:
        filters.append(InventoryLog.type == log_type)

    total = (await db.execute(select(func.count(InventoryLog.id)).where(*filters))).scalar() or 0
    result = await db.execute(
        select(InventoryLog)
        .where(*filters)
        .order_by(InventoryLog.created_at.desc(), InventoryLog.id.desc())
        .offset((page - 1) * page_size)
        .limit(page_size)
    )
    return total, result.scalars().all()
