# printvend/models.py
from datetime import datetime, timezone
import enum
from uuid import uuid4

from sqlalchemy import (
    Boolean, CheckConstraint, Column, DateTime, Enum, Integer, Numeric,
    String, Text, UniqueConstraint, Uuid
)
from sqlalchemy.orm import declarative_base

Base = declarative_base()

class OrderStatus(str, enum.Enum):
    PAID = "PAID"
    PRINTED = "PRINTED"
    EXPIRED = "EXPIRED"

class TransactionType(str, enum.Enum):
    DEBIT = "DEBIT"
    EARN = "EARN"

class Role(str, enum.Enum):
    USER = "USER"
    VIP = "VIP"
    ADMIN = "ADMIN"

def now_utc():
    return datetime.now(timezone.utc)

def as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes; everything is stored in UTC.
    # Postgres returns timestamptz in the session time zone.
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)

class Order(Base):
    __tablename__ = "orders"

    id = Column(Uuid, primary_key=True, default=uuid4)
    order_id = Column(String(32), nullable=False, index=True)
    user_id = Column(String(64), nullable=False, index=True)
    user_email = Column(String(255), nullable=True)
    qr_code = Column(String(8), nullable=False, unique=True)
    file_path = Column(String(255), nullable=True)

    sheets = Column(Integer, nullable=False)
    copies = Column(Integer, nullable=False, default=1)
    page_count = Column(Integer, nullable=False)
    is_color = Column(Boolean, nullable=False, default=False)
    is_duplex = Column(Boolean, nullable=False, default=False)

    total_amount = Column(Numeric(12, 2), nullable=False)
    coupon_code = Column(String(64), nullable=True)
    coins_redeemed = Column(Numeric(12, 2), nullable=False, default=0)
    coins_earned = Column(Integer, nullable=False, default=0)

    status = Column(Enum(OrderStatus), nullable=False, default=OrderStatus.PAID)
    created_at = Column(DateTime(timezone=True), nullable=False, default=now_utc, index=True)
    expires_at = Column(DateTime(timezone=True), nullable=False, index=True)
    printed = Column(Boolean, nullable=False, default=False)
    printed_at = Column(DateTime(timezone=True), nullable=True)
    expired = Column(Boolean, nullable=False, default=False)

    __table_args__ = (
        CheckConstraint("sheets >= 1", name="orders_sheets_positive"),
        CheckConstraint("total_amount >= 0", name="orders_total_nonneg"),
        CheckConstraint("NOT (printed AND expired)", name="orders_single_terminal_state"),
    )

class WalletAccount(Base):
    __tablename__ = "wallets"

    user_id = Column(String(64), primary_key=True)
    balance = Column(Numeric(12, 2), nullable=False, default=0)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=now_utc, onupdate=now_utc)

    __table_args__ = (
        CheckConstraint("balance >= 0", name="wallets_balance_nonneg"),
    )

class WalletTransaction(Base):
    __tablename__ = "wallet_transactions"

    id = Column(Uuid, primary_key=True, default=uuid4)
    user_id = Column(String(64), nullable=False, index=True)
    amount = Column(Numeric(12, 2), nullable=False)  # negative = DEBIT, positive = EARN
    type = Column(Enum(TransactionType), nullable=False)
    note = Column(String(255), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=now_utc)

    __table_args__ = (
        CheckConstraint(
            "(type = 'DEBIT' AND amount < 0) OR (type = 'EARN' AND amount > 0)",
            name="wallet_tx_sign_matches_type",
        ),
    )

class Coupon(Base):
    __tablename__ = "coupons"

    code = Column(String(64), primary_key=True)
    active = Column(Boolean, nullable=False, default=True)
    discount_percent = Column(Numeric(5, 2), nullable=False)
    is_one_time = Column(Boolean, nullable=False, default=False)

    __table_args__ = (
        CheckConstraint("discount_percent >= 0 AND discount_percent <= 100", name="coupons_percent_range"),
    )

class UsedCoupon(Base):
    __tablename__ = "used_coupons"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String(64), nullable=False)
    coupon_code = Column(String(64), nullable=False)
    used_at = Column(DateTime(timezone=True), nullable=False, default=now_utc)

    __table_args__ = (
        UniqueConstraint("user_id", "coupon_code", name="used_coupons_user_code_unique"),
    )

class Profile(Base):
    __tablename__ = "profiles"

    id = Column(String(64), primary_key=True)
    email = Column(String(255), nullable=True)
    full_name = Column(String(255), nullable=True)
    role = Column(Enum(Role), nullable=False, default=Role.USER)
    created_at = Column(DateTime(timezone=True), nullable=False, default=now_utc)

class SupportTicket(Base):
    __tablename__ = "support_tickets"

    id = Column(Uuid, primary_key=True, default=uuid4)
    user_id = Column(String(64), nullable=False, index=True)
    order_id = Column(String(32), nullable=True)
    message = Column(Text, nullable=False)
    status = Column(String(16), nullable=False, default="OPEN")
    created_at = Column(DateTime(timezone=True), nullable=False, default=now_utc)
