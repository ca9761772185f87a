from fastapi import HTTPException
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select
from typing import List

from app.models.product_models import LOW_STOCK_THRESHOLD, Product, StockStatus
from app.schemas.alert_schemas import StockAlert


async def get_low_stock_products(db: AsyncSession) -> List[StockAlert]:
    """
    Tracked, active products that are running low but not yet sold out,
    lowest stock first.
    """
    try:
        result = await db.execute(
            select(Product)
            .where(
                Product.is_deleted == False,
                Product.track_inventory == True,
                Product.stock <= LOW_STOCK_THRESHOLD,
                Product.stock_status != StockStatus.out_of_stock,
            )
            .order_by(Product.stock.asc(), Product.id.asc())
        )
        products = result.scalars().all()

        return [
            StockAlert(
                product_id=p.id,
                product_name=p.name,
                sku=p.sku,
                stock=p.stock,
                reserved_stock=p.reserved_stock,
                available_stock=p.available_stock,
                threshold=LOW_STOCK_THRESHOLD,
            )
            for p in products
        ]

    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error fetching low stock products: {e}")
