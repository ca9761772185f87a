# app/models/product_models.py
from sqlalchemy import (
    Column, Integer, String, Float, Boolean, CheckConstraint, Index,
    ForeignKey, DateTime, Text, Enum, func
)
from sqlalchemy.orm import relationship
from app.core.db import Base
import enum

# Products at or below this level (and above zero) are "Low Stock"
LOW_STOCK_THRESHOLD = 20


class StockStatus(str, enum.Enum):
    in_stock = "In Stock"
    low_stock = "Low Stock"
    out_of_stock = "Out of Stock"


def stock_status_for(stock: int) -> StockStatus:
    if stock <= 0:
        return StockStatus.out_of_stock
    if stock <= LOW_STOCK_THRESHOLD:
        return StockStatus.low_stock
    return StockStatus.in_stock


class Category(Base):
    __tablename__ = "categories"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), unique=True, nullable=False, index=True)
    description = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    products = relationship("Product", back_populates="category")

    def __repr__(self):
        return f"<Category(id={self.id}, name='{self.name}')>"


class Product(Base):
    __tablename__ = "products"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), index=True, nullable=False)
    sku = Column(String(64), unique=True, nullable=True)
    description = Column(Text, nullable=True)
    price = Column(Float, default=0.0, nullable=False)

    category_id = Column(Integer, ForeignKey("categories.id", ondelete="SET NULL"), nullable=True, index=True)
    category = relationship("Category", back_populates="products", lazy="selectin")

    # Inventory counters. Only the stock tracker writes these.
    stock = Column(Integer, default=0, nullable=False)
    reserved_stock = Column(Integer, default=0, nullable=False)
    stock_status = Column(
        Enum(StockStatus, name="stock_status", values_callable=lambda e: [m.value for m in e]),
        default=StockStatus.out_of_stock,
        nullable=False,
        index=True,
    )
    track_inventory = Column(Boolean, default=True, nullable=False)
    allow_backorder = Column(Boolean, default=False, nullable=False)

    is_deleted = Column(Boolean, default=False, nullable=False)
    version = Column(Integer, nullable=False, default=1)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())
    created_by = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    updated_by = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    inventory_logs = relationship("InventoryLog", back_populates="product", passive_deletes=True)

    __table_args__ = (
        CheckConstraint(price >= 0, name="check_product_price_non_negative"),
        CheckConstraint(stock >= 0, name="check_product_stock_non_negative"),
        CheckConstraint(reserved_stock >= 0, name="check_product_reserved_stock_non_negative"),
        Index("ix_product_name_category", "name", "category_id"),
    )

    # UPDATE ... WHERE version = ? ; a lost race raises StaleDataError
    __mapper_args__ = {"version_id_col": version}

    @property
    def quantity(self) -> int:
        """Legacy alias of ``stock`` kept for older API consumers."""
        return self.stock

    @property
    def available_stock(self) -> int:
        return self.stock - self.reserved_stock

    def refresh_stock_status(self) -> None:
        if self.track_inventory:
            self.stock_status = stock_status_for(self.stock)

    def __repr__(self):
        return f"<Product(id={self.id}, name='{self.name}', stock={self.stock})>"
