from fastapi import APIRouter

from .categories import router as categories_router
from .products import router as products_router
from .stock import router as stock_router

router = APIRouter(prefix="/inventory")

router.include_router(categories_router)
router.include_router(products_router)
router.include_router(stock_router)
