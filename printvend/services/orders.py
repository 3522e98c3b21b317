# printvend/services/orders.py
import logging
from datetime import datetime, timedelta
from typing import List, Optional, Tuple

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from printvend.errors import AlreadyUsed, OrderExpired, OrderNotFound, QrCollision, UpstreamError
from printvend.metrics import (
    orders_expired_total, orphan_blobs_removed_total, prints_consumed_total, stored_file_retries_total
)
from printvend.models import Order, OrderStatus, as_utc, now_utc
from printvend.storage import BlobStore

logger = logging.getLogger(__name__)


def is_expired(order: Order, now: datetime) -> bool:
    return now >= as_utc(order.expires_at)


def discard_file(storage: BlobStore, key: Optional[str]) -> bool:
    """Best-effort blob removal. Returns True when the blob is gone."""
    if not key:
        return True
    try:
        storage.delete(key)
        return True
    except UpstreamError as e:
        logger.warning("Could not delete stored file %s: %s", key, e)
        return False


def expire_order(storage: BlobStore, order: Order, source: str) -> bool:
    """
    PAID -> EXPIRED. Shared by the kiosk path and the sweep; the caller
    commits. Terminal orders are left alone.
    """
    if order.printed or order.expired:
        return False
    order.expired = True
    order.status = OrderStatus.EXPIRED
    if discard_file(storage, order.file_path):
        order.file_path = None
    orders_expired_total.labels(source).inc()
    logger.info("Order %s (%s) expired via %s", order.order_id, order.qr_code, source)
    return True


def insert_order(db: Session, order: Order, ttl_seconds: int, now: Optional[datetime] = None) -> Order:
    """
    Add a PAID order to the caller's transaction. The file must already be
    stored under ``order.file_path``.
    """
    now = now or now_utc()
    order.status = OrderStatus.PAID
    order.printed = False
    order.expired = False
    order.created_at = now
    order.expires_at = now + timedelta(seconds=ttl_seconds)
    db.add(order)
    try:
        db.flush()
    except IntegrityError as e:
        raise QrCollision() from e
    return order


def consume(db: Session, storage: BlobStore, qr_code: str, now: Optional[datetime] = None) -> Order:
    """
    Kiosk scan. Exactly-once: the first call on a live order prints it,
    later calls fail with AlreadyUsed. A scan after expiry persists the
    EXPIRED transition before failing.
    """
    now = now or now_utc()
    order = db.execute(
        select(Order).where(Order.qr_code == qr_code).with_for_update()
    ).scalar_one_or_none()

    if not order:
        db.rollback()
        raise OrderNotFound()
    if order.printed:
        db.rollback()
        raise AlreadyUsed()
    if is_expired(order, now):
        expire_order(storage, order, source="consume")
        db.commit()
        raise OrderExpired()

    order.printed = True
    order.status = OrderStatus.PRINTED
    order.printed_at = now
    db.commit()
    prints_consumed_total.inc()
    logger.info("Order %s (%s) printed", order.order_id, qr_code)

    # the job is already released; cleanup failures are only logged
    if discard_file(storage, order.file_path):
        order.file_path = None
        db.commit()
    return order


def sweep_expired(db: Session, storage: BlobStore, now: Optional[datetime] = None) -> int:
    now = now or now_utc()
    stale = db.execute(
        select(Order)
        .where(
            Order.expires_at <= now,
            Order.expired.is_(False),
            Order.printed.is_(False),
        )
        .with_for_update(skip_locked=True)
    ).scalars().all()

    count = 0
    for order in stale:
        if expire_order(storage, order, source="sweep"):
            count += 1
    db.commit()
    if count:
        logger.info("Expired %d stale orders", count)
    return count


def reconcile_storage(
    db: Session, storage: BlobStore, grace_seconds: int, now: Optional[datetime] = None
) -> Tuple[int, int]:
    """
    Remove stored files no live order needs:
      - files of PRINTED / EXPIRED orders whose earlier delete failed
      - bucket objects no order references, once older than the grace window
        (left behind by a checkout that died between upload and insert)
    Returns (retried, orphans): how many of each kind were removed.
    """
    now = now or now_utc()
    retried = orphans = 0

    leftovers = db.execute(
        select(Order).where(
            Order.file_path.is_not(None),
            Order.status != OrderStatus.PAID,
        )
    ).scalars().all()
    for order in leftovers:
        if discard_file(storage, order.file_path):
            order.file_path = None
            retried += 1
    db.commit()

    referenced = set(
        db.execute(select(Order.file_path).where(Order.file_path.is_not(None))).scalars()
    )
    cutoff = now - timedelta(seconds=grace_seconds)
    for key, last_modified in list(storage.list_objects()):
        if key in referenced or as_utc(last_modified) > cutoff:
            continue
        if discard_file(storage, key):
            logger.info("Removed orphaned file %s", key)
            orphans += 1

    stored_file_retries_total.inc(retried)
    orphan_blobs_removed_total.inc(orphans)
    return retried, orphans


def recent_orders(db: Session, limit: int) -> List[Order]:
    return db.execute(
        select(Order).order_by(Order.created_at.desc()).limit(limit)
    ).scalars().all()


def user_orders(db: Session, user_id: str, limit: int) -> List[Order]:
    return db.execute(
        select(Order)
        .where(Order.user_id == user_id)
        .order_by(Order.created_at.desc())
        .limit(limit)
    ).scalars().all()
