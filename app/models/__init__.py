# app/models/__init__.py
# Import all models here so SQLAlchemy registers them into Base.metadata.
from app.models.user_models import User, RefreshToken
from app.models.activity_models import UserActivity
from app.models.product_models import Category, Product, StockStatus
from app.models.inventory_models import InventoryLog, InventoryLogType
from app.models.coupon_models import Coupon, CouponUsage, CouponType
