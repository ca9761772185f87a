from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import List, Optional
from datetime import datetime

from app.models.inventory_models import InventoryLogType, INBOUND_MOVEMENTS, OUTBOUND_MOVEMENTS
from app.schemas.product_schemas import ProductOut


# --------------------------
# Stock adjustments
# --------------------------
class StockUpdate(BaseModel):
    stock: int = Field(..., ge=0)
    reason: Optional[str] = None
    notes: Optional[str] = None


class BulkStockItem(StockUpdate):
    product_id: int


class BulkStockUpdate(BaseModel):
    updates: List[BulkStockItem] = Field(..., min_length=1)


class BulkStockResult(BaseModel):
    product_id: int
    success: bool = True
    previous_stock: int
    new_stock: int


class BulkStockError(BaseModel):
    product_id: Optional[int] = None
    error: str


class BulkStockResponse(BaseModel):
    message: str
    results: List[BulkStockResult]
    errors: List[BulkStockError]


class StockMovementCreate(BaseModel):
    type: InventoryLogType
    quantity: int = Field(..., gt=0)
    reason: Optional[str] = None
    notes: Optional[str] = None

    @field_validator("type")
    @classmethod
    def movement_type_only(cls, value: InventoryLogType) -> InventoryLogType:
        if value not in INBOUND_MOVEMENTS | OUTBOUND_MOVEMENTS:
            raise ValueError("type must be one of restock, return, damage, loss")
        return value


# --------------------------
# Reservations / sales
# --------------------------
class ReservationRequest(BaseModel):
    quantity: int = Field(..., gt=0)


class SaleConfirmation(BaseModel):
    quantity: int = Field(..., gt=0)
    order_id: int


# --------------------------
# Responses
# --------------------------
class StockResponse(BaseModel):
    message: str
    data: ProductOut


class InventoryListResponse(BaseModel):
    message: str
    total: int
    page: int
    pages: int
    data: List[ProductOut]


class InventoryLogOut(BaseModel):
    id: int
    product_id: int
    type: InventoryLogType
    quantity_change: int
    previous_stock: int
    new_stock: int
    reason: str
    notes: str
    performed_by: Optional[int] = None
    related_order: Optional[int] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class InventoryLogListResponse(BaseModel):
    message: str
    total: int
    page: int
    pages: int
    data: List[InventoryLogOut]


class MessageResponse(BaseModel):
    message: str
