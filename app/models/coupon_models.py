from sqlalchemy import (
    Column, Integer, String, Numeric, Boolean, DateTime, Text, ForeignKey,
    Table, CheckConstraint, UniqueConstraint, Index, Enum, func
)
from sqlalchemy.orm import relationship
from app.core.db import Base
import enum


class CouponType(str, enum.Enum):
    percentage = "percentage"
    fixed = "fixed"


coupon_products = Table(
    "coupon_products",
    Base.metadata,
    Column("coupon_id", Integer, ForeignKey("coupons.id", ondelete="CASCADE"), primary_key=True),
    Column("product_id", Integer, ForeignKey("products.id", ondelete="CASCADE"), primary_key=True),
)

coupon_categories = Table(
    "coupon_categories",
    Base.metadata,
    Column("coupon_id", Integer, ForeignKey("coupons.id", ondelete="CASCADE"), primary_key=True),
    Column("category_id", Integer, ForeignKey("categories.id", ondelete="CASCADE"), primary_key=True),
)

coupon_allowed_users = Table(
    "coupon_allowed_users",
    Base.metadata,
    Column("coupon_id", Integer, ForeignKey("coupons.id", ondelete="CASCADE"), primary_key=True),
    Column("user_id", Integer, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
)


class Coupon(Base):
    __tablename__ = "coupons"

    id = Column(Integer, primary_key=True, index=True)
    code = Column(String(50), unique=True, nullable=False, index=True)  # always upper-case
    description = Column(Text, nullable=False, default="")
    type = Column(
        Enum(CouponType, name="coupon_type", values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        default=CouponType.percentage,
    )
    value = Column(Numeric(12, 2), nullable=False)
    min_purchase = Column(Numeric(12, 2), nullable=False, default=0)
    max_discount = Column(Numeric(12, 2), nullable=True)  # None = no cap
    usage_limit = Column(Integer, nullable=True)  # None = unlimited
    used_count = Column(Integer, nullable=False, default=0)
    valid_from = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    valid_until = Column(DateTime(timezone=True), nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)

    # Stored but not enforced by validation yet
    limit_to_first_purchase = Column(Boolean, nullable=False, default=False)

    created_by = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())
    version = Column(Integer, nullable=False, default=1)

    applicable_products = relationship("Product", secondary=coupon_products, lazy="selectin")
    applicable_categories = relationship("Category", secondary=coupon_categories, lazy="selectin")
    allowed_users = relationship("User", secondary=coupon_allowed_users, lazy="selectin")
    usages = relationship(
        "CouponUsage",
        back_populates="coupon",
        cascade="all, delete-orphan",
        passive_deletes=True,
        lazy="selectin",
        order_by="CouponUsage.id",
    )

    __table_args__ = (
        CheckConstraint(value >= 0, name="check_coupon_value_non_negative"),
        CheckConstraint(min_purchase >= 0, name="check_coupon_min_purchase_non_negative"),
        CheckConstraint(used_count >= 0, name="check_coupon_used_count_non_negative"),
        CheckConstraint(
            "usage_limit IS NULL OR used_count <= usage_limit",
            name="check_coupon_used_count_within_limit",
        ),
    )

    __mapper_args__ = {"version_id_col": version}

    @property
    def applicable_product_ids(self):
        return [p.id for p in self.applicable_products]

    @property
    def applicable_category_ids(self):
        return [c.id for c in self.applicable_categories]

    @property
    def allowed_user_ids(self):
        return [u.id for u in self.allowed_users]

    def __repr__(self):
        return f"<Coupon(id={self.id}, code='{self.code}')>"


class CouponUsage(Base):
    """One row per redemption."""
    __tablename__ = "coupon_usages"

    id = Column(Integer, primary_key=True, index=True)
    coupon_id = Column(Integer, ForeignKey("coupons.id", ondelete="CASCADE"), nullable=False)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    used_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    order_amount = Column(Numeric(12, 2), nullable=False)
    discount_amount = Column(Numeric(12, 2), nullable=False)
    order_id = Column(Integer, nullable=True)

    coupon = relationship("Coupon", back_populates="usages")

    __table_args__ = (
        UniqueConstraint("coupon_id", "user_id", name="uq_coupon_usage_user"),
        Index("ix_coupon_usage_coupon", "coupon_id"),
    )
