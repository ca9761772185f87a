# app/services/inventory_services/product_service.py
from fastapi import HTTPException
from sqlalchemy import func, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select
from typing import Optional

from app.models.inventory_models import InventoryLog, InventoryLogType
from app.models.product_models import Category, Product, stock_status_for
from app.schemas.product_schemas import (
    CategoryCreate,
    CategoryOut,
    ProductCreate,
    ProductOut,
    ProductUpdate,
)
from app.services.inventory_services.stock_service import fetch_product
from app.utils.activity_helpers import actor_id, as_actor, log_actor_activity
from app.utils.concurrency import retry_versioned_write


# ---------------------------------------------------
# CATEGORIES
# ---------------------------------------------------
async def create_category(db: AsyncSession, data: CategoryCreate, current_user):
    try:
        existing = await db.execute(select(Category).where(func.lower(Category.name) == data.name.lower()))
        if existing.scalars().first():
            raise HTTPException(status_code=400, detail=f"Category '{data.name}' already exists")

        category = Category(**data.model_dump())
        db.add(category)
        await db.flush()

        await log_actor_activity(db, current_user, f"created category '{category.name}' (ID: {category.id})")

        await db.commit()
        return {"message": "Category created successfully", "data": CategoryOut.model_validate(category)}

    except HTTPException:
        await db.rollback()
        raise
    except Exception as e:
        await db.rollback()
        raise HTTPException(status_code=500, detail=f"Error creating category: {e}")


async def get_all_categories(db: AsyncSession) -> dict:
    result = await db.execute(select(Category).order_by(Category.name))
    return {
        "message": "Categories fetched successfully",
        "data": [CategoryOut.model_validate(c) for c in result.scalars().all()],
    }


async def _ensure_category(db: AsyncSession, category_id: Optional[int]):
    if category_id is None:
        return
    if not await db.get(Category, category_id):
        raise HTTPException(status_code=400, detail=f"Category {category_id} does not exist")


async def _ensure_unique_name(db: AsyncSession, name: str, exclude_id: Optional[int] = None):
    stmt = select(Product.id).where(Product.name == name, Product.is_deleted == False)
    if exclude_id is not None:
        stmt = stmt.where(Product.id != exclude_id)
    if (await db.execute(stmt)).first():
        raise HTTPException(status_code=400, detail=f"Product '{name}' already exists")


# ---------------------------------------------------
# CREATE PRODUCT
# ---------------------------------------------------
async def create_product(db: AsyncSession, data: ProductCreate, current_user):
    """
    Create a product with its opening stock. A tracked product that starts with
    units on hand gets a restock log row, so its log replays to the current stock.
    """
    try:
        await _ensure_unique_name(db, data.name)
        await _ensure_category(db, data.category_id)

        actor = as_actor(current_user)
        product = Product(
            **data.model_dump(),
            reserved_stock=0,
            created_by=actor_id(actor),
            updated_by=actor_id(actor),
        )
        product.stock_status = stock_status_for(product.stock)
        db.add(product)
        await db.flush()  # ensures product.id is available

        if product.track_inventory and product.stock > 0:
            db.add(InventoryLog(
                product_id=product.id,
                type=InventoryLogType.restock,
                quantity_change=product.stock,
                previous_stock=0,
                new_stock=product.stock,
                reason="Initial stock",
                performed_by=actor_id(actor),
            ))

        await log_actor_activity(db, actor, f"created product '{product.name}' (ID: {product.id})")

        await db.commit()
        await db.refresh(product)
        return {"message": "Product created successfully", "data": ProductOut.model_validate(product)}

    except HTTPException:
        await db.rollback()
        raise
    except IntegrityError:
        await db.rollback()
        raise HTTPException(status_code=400, detail="Product SKU already exists")
    except Exception as e:
        await db.rollback()
        raise HTTPException(status_code=500, detail=f"Error creating product: {e}")


# ---------------------------------------------------
# GET ALL PRODUCTS
# ---------------------------------------------------
async def get_all_products(
    db: AsyncSession,
    search: Optional[str] = None,
    category_id: Optional[int] = None,
    page: int = 1,
    page_size: int = 20,
) -> dict:
    filters = [Product.is_deleted == False]
    if search:
        filters.append(or_(Product.name.ilike(f"%{search}%"), Product.sku.ilike(f"%{search}%")))
    if category_id:
        filters.append(Product.category_id == category_id)

    total = (await db.execute(select(func.count(Product.id)).where(*filters))).scalar() or 0
    result = await db.execute(
        select(Product)
        .where(*filters)
        .order_by(Product.created_at.desc(), Product.id.desc())
        .offset((page - 1) * page_size)
        .limit(page_size)
    )
    return {
        "message": "Products fetched successfully",
        "total": total,
        "data": [ProductOut.model_validate(p) for p in result.scalars().all()],
    }


# ---------------------------------------------------
# GET SINGLE PRODUCT
# ---------------------------------------------------
async def get_product(db: AsyncSession, product_id: int) -> dict:
    product = await fetch_product(db, product_id)
    return {"message": "Product fetched successfully", "data": ProductOut.model_validate(product)}


# ---------------------------------------------------
# UPDATE PRODUCT
# ---------------------------------------------------
async def update_product(db: AsyncSession, product_id: int, data: ProductUpdate, current_user):
    """
    Update catalogue fields. Stock counters are not part of ``ProductUpdate``;
    they only move through the stock endpoints.
    """
    update_data = data.model_dump(exclude_unset=True)
    actor = as_actor(current_user)

    async def apply_update():
        product = await fetch_product(db, product_id)

        if update_data.get("name") and update_data["name"] != product.name:
            await _ensure_unique_name(db, update_data["name"], exclude_id=product.id)
        if "category_id" in update_data:
            await _ensure_category(db, update_data["category_id"])

        changes = []
        for key, value in update_data.items():
            if value is None and key not in {"sku", "description", "category_id"}:
                continue
            old_val = getattr(product, key)
            if old_val != value:
                changes.append(f"{key}: {old_val} -> {value}")
                setattr(product, key, value)

        # a product that starts being tracked needs a status that matches its stock
        product.refresh_stock_status()

        if changes:
            product.updated_by = actor_id(actor)
            await log_actor_activity(
                db, actor,
                f"updated product '{product.name}' (ID: {product.id}): {', '.join(changes)}",
            )
        await db.commit()
        return product

    try:
        product = await retry_versioned_write(db, apply_update, f"product {product_id}")
        return {"message": "Product updated successfully", "data": ProductOut.model_validate(product)}

    except HTTPException:
        await db.rollback()
        raise
    except IntegrityError:
        await db.rollback()
        raise HTTPException(status_code=400, detail="Product SKU already exists")
    except Exception as e:
        await db.rollback()
        raise HTTPException(status_code=500, detail=f"Error updating product: {e}")


# ---------------------------------------------------
# DELETE PRODUCT (Soft Delete)
# ---------------------------------------------------
async def delete_product(db: AsyncSession, product_id: int, current_user):
    actor = as_actor(current_user)

    async def apply_delete():
        product = await fetch_product(db, product_id)
        product.is_deleted = True
        product.updated_by = actor_id(actor)
        await log_actor_activity(db, actor, f"deleted product '{product.name}' (ID: {product.id})")
        await db.commit()

    try:
        await retry_versioned_write(db, apply_delete, f"product {product_id}")
        return {"message": "Product deleted successfully"}

    except HTTPException:
        await db.rollback()
        raise
    except Exception as e:
        await db.rollback()
        raise HTTPException(status_code=500, detail=f"Error deleting product: {e}")
