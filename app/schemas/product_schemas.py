# app/schemas/product_schemas.py
from pydantic import BaseModel, ConfigDict, Field
from typing import List, Optional
from datetime import datetime

from app.models.product_models import StockStatus


# --------------------------
# Category Schemas
# --------------------------
class CategoryCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = None


class CategoryOut(CategoryCreate):
    id: int

    model_config = ConfigDict(from_attributes=True)


class CategoryResponse(BaseModel):
    message: str
    data: CategoryOut


class CategoryListResponse(BaseModel):
    message: str
    data: List[CategoryOut]


# --------------------------
# Product Schemas
# --------------------------
class ProductCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    sku: Optional[str] = Field(default=None, max_length=64)
    description: Optional[str] = None
    price: float = Field(default=0.0, ge=0)
    category_id: Optional[int] = None
    stock: int = Field(default=0, ge=0)
    track_inventory: bool = True
    allow_backorder: bool = False


class ProductUpdate(BaseModel):
    """Catalogue fields only; stock moves through the inventory endpoints."""
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    sku: Optional[str] = Field(default=None, max_length=64)
    description: Optional[str] = None
    price: Optional[float] = Field(default=None, ge=0)
    category_id: Optional[int] = None
    track_inventory: Optional[bool] = None
    allow_backorder: Optional[bool] = None


class ProductOut(BaseModel):
    id: int
    name: str
    sku: Optional[str] = None
    description: Optional[str] = None
    price: float
    category_id: Optional[int] = None
    stock: int
    quantity: int
    reserved_stock: int
    available_stock: int
    stock_status: StockStatus
    track_inventory: bool
    allow_backorder: bool
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class ProductResponse(BaseModel):
    message: str
    data: Optional[ProductOut] = None


class ProductListResponse(BaseModel):
    message: str
    total: int
    data: List[ProductOut]


class MessageResponse(BaseModel):
    message: str
