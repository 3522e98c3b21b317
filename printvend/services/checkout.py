# printvend/services/checkout.py
import logging
from dataclasses import dataclass
from time import perf_counter
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from printvend.config import settings
from printvend.errors import PrintVendError, UpstreamError, ValidationError
from printvend.metrics import checkout_errors, checkout_latency, coupon_redemptions_total, orders_created_total
from printvend.models import Order
from printvend.schemas import PrintMeta
from printvend.services import coupons, identity, orders, wallet
from printvend.services.accounts import is_vip
from printvend.services.pricing import PriceBreakdown, PricingInput, PricingPolicy, compute_price
from printvend.storage import BlobStore

logger = logging.getLogger(__name__)

PDF_MAGIC = b"%PDF-"


@dataclass(frozen=True)
class Quote:
    breakdown: PriceBreakdown
    is_vip: bool
    coupon: Optional[coupons.CouponCheck]


def check_upload(data: Optional[bytes]) -> bytes:
    if not data:
        raise ValidationError("No file uploaded")
    if len(data) > settings.max_upload_bytes:
        raise ValidationError("File too large")
    if not data.startswith(PDF_MAGIC):
        raise ValidationError("Only PDF files are accepted")
    return data


def quote(db: Session, meta: PrintMeta, policy: Optional[PricingPolicy] = None) -> Quote:
    """
    Price an order against the user's current account state.
    An unusable coupon is dropped rather than failing the order;
    /check-coupon is where the user learns why.
    """
    policy = policy or PricingPolicy.from_settings(settings)
    vip = is_vip(db, meta.user_id)

    applied = None
    if meta.coupon_code and not vip:
        check = coupons.validate(db, meta.coupon_code, meta.user_id)
        if check.ok:
            applied = check
        else:
            logger.warning("Ignoring coupon %s for %s: %s", check.code, meta.user_id, check.reason)

    balance = wallet.get_balance(db, meta.user_id) if meta.use_coins and not vip else 0

    breakdown = compute_price(
        PricingInput(
            is_color=meta.color,
            is_duplex=meta.double_side,
            page_count=meta.num_pages,
            copies=meta.copies,
            is_vip=vip,
            coupon_percent=applied.percent if applied else None,
            wallet_balance=balance,
            use_coins=meta.use_coins,
        ),
        policy,
    )
    # a coupon that discounted nothing (zero total) is not spent
    if applied and breakdown.discount <= 0:
        applied = None
    return Quote(breakdown=breakdown, is_vip=vip, coupon=applied)


def process_print(db: Session, storage: BlobStore, meta: PrintMeta, data: bytes) -> Order:
    """
    Checkout:
      - validate the upload, price the order, mint the QR / file name
      - store the file first, so an order row always has its file
      - one transaction: coupon usage + order row + wallet settlement
      - on failure roll back and try to remove the stored file
    """
    start = perf_counter()
    try:
        check_upload(data)
        wallet.ensure_wallet(db, meta.user_id)
        q = quote(db, meta)
        price = q.breakdown

        ident = identity.mint(meta.color, meta.double_side)
        storage.upload(ident.file_name, data)

        try:
            if q.coupon and q.coupon.is_one_time:
                coupons.record_usage(db, meta.user_id, q.coupon.code)

            order = orders.insert_order(
                db,
                Order(
                    order_id=meta.order_id or identity.make_order_id(),
                    user_id=meta.user_id,
                    user_email=meta.user_email,
                    qr_code=ident.qr_code,
                    file_path=ident.file_name,
                    sheets=price.total_sheets,
                    copies=meta.copies,
                    page_count=meta.num_pages,
                    is_color=meta.color,
                    is_duplex=meta.double_side,
                    total_amount=price.final_total,
                    coupon_code=q.coupon.code if q.coupon else None,
                    coins_redeemed=price.coins_redeemed,
                    coins_earned=price.coins_earned,
                ),
                ttl_seconds=settings.order_ttl_seconds,
            )
            wallet.apply_settlement(
                db, meta.user_id, price.coins_redeemed, price.coins_earned, order_ref=ident.qr_code
            )
            db.commit()
        except (PrintVendError, SQLAlchemyError) as e:
            db.rollback()
            orders.discard_file(storage, ident.file_name)
            if isinstance(e, SQLAlchemyError):
                logger.exception("Saving order %s failed", ident.qr_code)
                raise UpstreamError("Saving order failed") from e
            raise

        if q.coupon:
            coupon_redemptions_total.inc()
        orders_created_total.inc()
        logger.info(
            "Order %s paid by %s: qr=%s sheets=%d total=%s",
            order.order_id, meta.user_id, ident.qr_code, price.total_sheets, price.final_total,
        )
        return order

    except PrintVendError as e:
        checkout_errors.labels(type(e).__name__).inc()
        raise
    finally:
        checkout_latency.observe(perf_counter() - start)
