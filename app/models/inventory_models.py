from sqlalchemy import (
    Column, Integer, String, ForeignKey, DateTime, Text,
    CheckConstraint, Index, Enum, func
)
from sqlalchemy.orm import relationship
from app.core.db import Base
import enum

# --------------------------
# Enums
# --------------------------
class InventoryLogType(str, enum.Enum):
    manual_adjustment = "manual_adjustment"
    sale = "sale"
    return_ = "return"
    restock = "restock"
    damage = "damage"
    loss = "loss"


# Movements that add units vs. remove them
INBOUND_MOVEMENTS = {InventoryLogType.restock, InventoryLogType.return_}
OUTBOUND_MOVEMENTS = {InventoryLogType.damage, InventoryLogType.loss}


# --------------------------
# Inventory Log (append-only)
# --------------------------
class InventoryLog(Base):
    __tablename__ = "inventory_logs"

    id = Column(Integer, primary_key=True, index=True)
    product_id = Column(Integer, ForeignKey("products.id", ondelete="CASCADE"), nullable=False)
    type = Column(
        Enum(InventoryLogType, name="inventory_log_type", values_callable=lambda e: [m.value for m in e]),
        nullable=False,
    )
    quantity_change = Column(Integer, nullable=False)  # positive adds, negative removes
    previous_stock = Column(Integer, nullable=False)
    new_stock = Column(Integer, nullable=False)
    reason = Column(String(255), nullable=False, default="")
    notes = Column(Text, nullable=False, default="")
    performed_by = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    related_order = Column(Integer, nullable=True, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    product = relationship("Product", back_populates="inventory_logs", lazy="selectin")
    performer = relationship("User", foreign_keys=[performed_by], lazy="selectin")

    __table_args__ = (
        CheckConstraint(
            new_stock == previous_stock + quantity_change,
            name="check_inventory_log_arithmetic",
        ),
        Index("ix_inventory_log_product_created", "product_id", "created_at"),
        Index("ix_inventory_log_type", "type"),
    )

    def __repr__(self):
        return f"<InventoryLog(product_id={self.product_id}, type={self.type}, change={self.quantity_change})>"
