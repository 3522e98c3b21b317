from uuid import UUID
from pydantic import AliasChoices, BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from datetime import datetime
from typing import List, Optional

from printvend.models import OrderStatus, Role, TransactionType

class PrintMeta(BaseModel):
    """The ``meta`` JSON sent next to the uploaded file."""
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    user_id: str = Field(..., min_length=1, alias="userId")
    user_email: Optional[str] = Field(None, validation_alias=AliasChoices("userEmail", "email"))
    order_id: Optional[str] = Field(None, max_length=32, validation_alias=AliasChoices("orderId", "order_id"))
    color: bool = False
    double_side: bool = Field(False, alias="doubleSide")
    # Validate using Field constraints: zero pages / copies never reach pricing
    copies: int = Field(1, ge=1, le=500)
    num_pages: int = Field(1, ge=1, le=5000, alias="numPages")
    coupon_code: Optional[str] = Field(None, alias="couponCode")
    use_coins: bool = Field(False, alias="useCoins")

class CheckoutOut(BaseModel):
    success: bool = True
    qr: str

class QuoteOut(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    sheets_per_copy: int
    total_sheets: int
    rate: float
    subtotal: float
    tax: float
    discount: float
    coins_redeemed: float
    final_total: float
    coins_earned: int
    is_vip: bool
    coupon_applied: bool

class OrderOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    order_id: str
    user_id: str
    user_email: Optional[str] = None
    qr_code: str
    sheets: int
    copies: int
    page_count: int
    is_color: bool
    is_duplex: bool
    total_amount: float
    coupon_code: Optional[str] = None
    coins_redeemed: float
    coins_earned: int
    status: OrderStatus
    created_at: datetime
    expires_at: datetime
    printed: bool
    printed_at: Optional[datetime] = None
    expired: bool

class WalletOut(BaseModel):
    balance: float

class UserDataOut(BaseModel):
    wallet: float
    orders: List[OrderOut]

class ConsumeIn(BaseModel):
    qr: str = Field(..., min_length=1, max_length=64)

class SuccessOut(BaseModel):
    success: bool = True

class CouponCheckIn(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    code: str = Field(..., min_length=1)
    user_id: str = Field(..., min_length=1, alias="userId")

class CouponCheckOut(BaseModel):
    success: bool = True
    percent: float

class SupportIn(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    user_id: str = Field(..., min_length=1, alias="userId")
    message: str = Field(..., min_length=1, max_length=4000)
    order_id: Optional[str] = Field(None, max_length=32, alias="orderId")

class WalletTransactionOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    user_id: str
    amount: float
    type: TransactionType
    note: Optional[str] = None
    created_at: datetime

class ProfileIn(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    user_id: str = Field(..., min_length=1, alias="userId")
    email: Optional[str] = None
    full_name: Optional[str] = Field(None, alias="fullName")

class ProfileOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    email: Optional[str] = None
    full_name: Optional[str] = None
    role: Role

class ChartPoint(BaseModel):
    name: str
    value: float

class StatsOut(BaseModel):
    dayRevenue: float
    dayCount: int
    chartData: List[ChartPoint]

class CleanupOut(BaseModel):
    cleaned: int
    orphans: int = 0
    retried: int = 0
