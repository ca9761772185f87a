from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator, model_validator
from typing import Annotated, List, Optional
from datetime import datetime
from decimal import Decimal

from app.models.coupon_models import CouponType
from app.utils.dates import as_utc

NonNegativeDecimal = Annotated[Decimal, Field(ge=0, max_digits=14, decimal_places=2)]


def clean_code(value: str) -> str:
    value = value.strip().upper()
    if not value:
        raise ValueError("Coupon code cannot be blank")
    return value


# --------------------------
# Coupon CRUD
# --------------------------
class CouponBase(BaseModel):
    code: str = Field(..., min_length=1, max_length=50)
    description: str = ""
    type: CouponType = CouponType.percentage
    value: NonNegativeDecimal
    min_purchase: NonNegativeDecimal = Decimal("0")
    max_discount: Optional[NonNegativeDecimal] = None
    usage_limit: Optional[int] = Field(default=None, ge=0)
    valid_from: Optional[datetime] = None
    valid_until: datetime
    is_active: bool = True
    applicable_products: List[int] = Field(default_factory=list)
    applicable_categories: List[int] = Field(default_factory=list)
    allowed_users: List[int] = Field(default_factory=list)
    limit_to_first_purchase: bool = False

    @field_validator("code")
    @classmethod
    def normalize_code(cls, value: str) -> str:
        return clean_code(value)

    @field_validator("valid_from", "valid_until")
    @classmethod
    def normalize_dates(cls, value):
        return as_utc(value)


class CouponCreate(CouponBase):
    @model_validator(mode="after")
    def check_rules(self):
        if self.type == CouponType.percentage and self.value > 100:
            raise ValueError("Percentage discount cannot exceed 100")
        if self.valid_from and self.valid_from >= self.valid_until:
            raise ValueError("valid_from must be before valid_until")
        return self


class CouponUpdate(BaseModel):
    """All fields optional for partial updates."""
    code: Optional[str] = Field(default=None, min_length=1, max_length=50)
    description: Optional[str] = None
    type: Optional[CouponType] = None
    value: Optional[NonNegativeDecimal] = None
    min_purchase: Optional[NonNegativeDecimal] = None
    max_discount: Optional[NonNegativeDecimal] = None
    usage_limit: Optional[int] = Field(default=None, ge=0)
    valid_from: Optional[datetime] = None
    valid_until: Optional[datetime] = None
    is_active: Optional[bool] = None
    applicable_products: Optional[List[int]] = None
    applicable_categories: Optional[List[int]] = None
    allowed_users: Optional[List[int]] = None
    limit_to_first_purchase: Optional[bool] = None

    @field_validator("code")
    @classmethod
    def normalize_code(cls, value: Optional[str]) -> Optional[str]:
        return clean_code(value) if value is not None else value

    @field_validator("valid_from", "valid_until")
    @classmethod
    def normalize_dates(cls, value):
        return as_utc(value)


class CouponUsageOut(BaseModel):
    user_id: int
    used_at: datetime
    order_amount: Decimal
    discount_amount: Decimal
    order_id: Optional[int] = None

    model_config = ConfigDict(from_attributes=True)


class CouponOut(BaseModel):
    id: int
    code: str
    description: str
    type: CouponType
    value: Decimal
    min_purchase: Decimal
    max_discount: Optional[Decimal] = None
    usage_limit: Optional[int] = None
    used_count: int
    valid_from: datetime
    valid_until: datetime
    is_active: bool
    applicable_products: List[int] = Field(validation_alias=AliasChoices("applicable_product_ids", "applicable_products"))
    applicable_categories: List[int] = Field(validation_alias=AliasChoices("applicable_category_ids", "applicable_categories"))
    allowed_users: List[int] = Field(validation_alias=AliasChoices("allowed_user_ids", "allowed_users"))
    limit_to_first_purchase: bool
    used_by: List[CouponUsageOut] = Field(validation_alias=AliasChoices("usages", "used_by"))
    created_by: Optional[int] = None
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class CouponResponse(BaseModel):
    message: str
    data: Optional[CouponOut] = None


class CouponListResponse(BaseModel):
    message: str
    total: int
    page: int
    pages: int
    data: List[CouponOut]


# --------------------------
# Validation / redemption
# --------------------------
class CouponValidateRequest(BaseModel):
    code: str = Field(..., min_length=1)
    cart_total: NonNegativeDecimal
    product_ids: List[int] = Field(default_factory=list)
    category_ids: List[int] = Field(default_factory=list)


class CouponApplication(BaseModel):
    coupon_id: int
    code: str
    type: CouponType
    value: Decimal
    discount: Decimal
    final_amount: Decimal


class CouponApplicationResponse(BaseModel):
    message: str
    data: CouponApplication


class CouponRedeemRequest(BaseModel):
    user_id: int
    order_amount: NonNegativeDecimal
    order_id: Optional[int] = None


class CouponRedemption(BaseModel):
    coupon_id: int
    user_id: int
    discount: Decimal
    used_count: int


class CouponRedemptionResponse(BaseModel):
    message: str
    data: CouponRedemption


# --------------------------
# Analytics
# --------------------------
class TopCoupon(BaseModel):
    code: str
    used_count: int
    type: CouponType
    value: Decimal


class CouponAnalytics(BaseModel):
    total_coupons: int
    active_coupons: int
    expired_coupons: int
    total_usage: int
    total_savings: Decimal
    top_coupons: List[TopCoupon]


class CouponAnalyticsResponse(BaseModel):
    message: str
    data: CouponAnalytics


class MessageResponse(BaseModel):
    message: str
