# printvend/services/coupons.py
import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from printvend.errors import CouponAlreadyUsed, CouponInactive, CouponNotFound, PrintVendError
from printvend.models import Coupon, UsedCoupon

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CouponCheck:
    ok: bool
    code: str
    percent: Optional[Decimal] = None
    is_one_time: bool = False
    reason: Optional[PrintVendError] = None


def normalize_code(code: str) -> str:
    return (code or "").strip().upper()


def validate(db: Session, code: str, user_id: str) -> CouponCheck:
    code = normalize_code(code)
    coupon = None
    if code:
        # codes entered by hand in the admin table may be stored in any case
        coupon = db.execute(
            select(Coupon).where(func.upper(Coupon.code) == code)
        ).scalar_one_or_none()
    if not coupon:
        return CouponCheck(ok=False, code=code, reason=CouponNotFound())
    if not coupon.active:
        return CouponCheck(ok=False, code=code, reason=CouponInactive())

    if coupon.is_one_time:
        used = db.execute(
            select(UsedCoupon.id).where(
                UsedCoupon.user_id == user_id,
                UsedCoupon.coupon_code == code,
            )
        ).first()
        if used:
            return CouponCheck(ok=False, code=code, reason=CouponAlreadyUsed())

    return CouponCheck(
        ok=True, code=code, percent=Decimal(coupon.discount_percent), is_one_time=coupon.is_one_time
    )


def require_valid(db: Session, code: str, user_id: str) -> CouponCheck:
    check = validate(db, code, user_id)
    if not check.ok:
        raise check.reason
    return check


def record_usage(db: Session, user_id: str, code: str) -> None:
    """
    Record a one-time redemption inside the caller's transaction.
    The (user_id, coupon_code) unique constraint makes concurrent
    redemptions lose here rather than both applying the discount.
    """
    db.add(UsedCoupon(user_id=user_id, coupon_code=code))
    try:
        db.flush()
    except IntegrityError as e:
        logger.info("One-time coupon %s already redeemed by %s", code, user_id)
        raise CouponAlreadyUsed() from e
