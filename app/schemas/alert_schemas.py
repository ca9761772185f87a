from pydantic import BaseModel, ConfigDict
from typing import List, Optional


class StockAlert(BaseModel):
    product_id: int
    product_name: str
    sku: Optional[str] = None
    stock: int
    reserved_stock: int
    available_stock: int
    threshold: int

    model_config = ConfigDict(from_attributes=True)


class StockAlertListResponse(BaseModel):
    message: str
    data: List[StockAlert]
