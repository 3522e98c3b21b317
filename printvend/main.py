import json
import logging
from datetime import date
from typing import List, Optional

from fastapi import Depends, FastAPI, File, Form, Query, Request, UploadFile
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import ValidationError as SchemaError
from sqlalchemy.orm import Session
from contextlib import asynccontextmanager

from printvend.config import settings
from printvend.db import engine, get_db, ping_db
from printvend.errors import PrintVendError, ValidationError
from printvend.metrics import consume_errors, metrics_asgi_app
from printvend.models import Base
from printvend.schemas import (
    CheckoutOut, CleanupOut, ConsumeIn, CouponCheckIn, CouponCheckOut, OrderOut,
    PrintMeta, ProfileIn, ProfileOut, QuoteOut, StatsOut, SuccessOut, SupportIn,
    UserDataOut, WalletOut, WalletTransactionOut
)
from printvend.services import checkout, coupons, orders, stats, support, wallet
from printvend.services.accounts import ensure_profile
from printvend.storage import BlobStore, get_storage

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

@asynccontextmanager
async def lifespan(app: FastAPI):
    # runs once at startup
    Base.metadata.create_all(bind=engine)
    yield

app = FastAPI(title="PrintVend", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["*"],
)

app.mount("/metrics", metrics_asgi_app)


@app.exception_handler(PrintVendError)
async def printvend_error_handler(request: Request, exc: PrintVendError):
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})

@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(status_code=400, content={"detail": _describe(exc.errors())})

@app.exception_handler(Exception)
async def unexpected_error_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})


def _describe(errors) -> str:
    first = errors[0] if errors else {}
    where = ".".join(str(p) for p in first.get("loc", ()) if p != "body")
    msg = first.get("msg", "Invalid request")
    return f"{where}: {msg}" if where else msg

def parse_meta(raw: Optional[str]) -> PrintMeta:
    try:
        return PrintMeta.model_validate(json.loads(raw or "{}"))
    except json.JSONDecodeError as e:
        raise ValidationError("Invalid metadata") from e
    except SchemaError as e:
        raise ValidationError(f"Invalid metadata: {_describe(e.errors())}") from e


@app.get("/")
def root():
    return {"service": "printvend", "docs": "/docs"}

@app.get("/healthz")
def healthz():
    try:
        ping_db()
        return {"ok": True, "db": "up"}
    except Exception:
        return {"ok": False, "db": "down"}

@app.post("/process-print", response_model=CheckoutOut, tags=["orders"])
def process_print(
    file: Optional[UploadFile] = File(None),
    meta: Optional[str] = Form(None),
    db: Session = Depends(get_db),
    storage: BlobStore = Depends(get_storage),
):
    if file is None:
        raise ValidationError("No file uploaded")
    payload = parse_meta(meta)
    order = checkout.process_print(db, storage, payload, file.file.read())
    return {"success": True, "qr": order.qr_code}

@app.post("/quote", response_model=QuoteOut, tags=["orders"])
def get_quote(payload: PrintMeta, db: Session = Depends(get_db)):
    q = checkout.quote(db, payload)
    b = q.breakdown
    return QuoteOut(
        sheets_per_copy=b.sheets_per_copy,
        total_sheets=b.total_sheets,
        rate=b.rate,
        subtotal=b.subtotal,
        tax=b.tax,
        discount=b.discount,
        coins_redeemed=b.coins_redeemed,
        final_total=b.final_total,
        coins_earned=b.coins_earned,
        is_vip=q.is_vip,
        coupon_applied=q.coupon is not None,
    )

@app.get("/user-data/{uid}", response_model=UserDataOut, tags=["users"])
def user_data(uid: str, db: Session = Depends(get_db)):
    return {
        "wallet": wallet.get_balance(db, uid),
        "orders": orders.user_orders(db, uid, settings.user_orders_limit),
    }

@app.post("/profile", response_model=ProfileOut, tags=["users"])
def sync_profile(payload: ProfileIn, db: Session = Depends(get_db)):
    return ensure_profile(db, payload.user_id, payload.email, payload.full_name)

@app.post("/print/consume", response_model=SuccessOut, tags=["kiosk"])
def consume(payload: ConsumeIn, db: Session = Depends(get_db), storage: BlobStore = Depends(get_storage)):
    try:
        orders.consume(db, storage, payload.qr.strip().upper())
    except PrintVendError as e:
        consume_errors.labels(type(e).__name__).inc()
        raise
    return {"success": True}

@app.get("/admin/stats", response_model=StatsOut, tags=["admin"])
def admin_stats(day: Optional[str] = Query(None, alias="date"), db: Session = Depends(get_db)):
    return stats.daily_stats(db, _parse_day(day))

def _parse_day(value: Optional[str]) -> Optional[date]:
    if not value:
        return None
    try:
        return date.fromisoformat(value)
    except ValueError as e:
        raise ValidationError("date must be YYYY-MM-DD") from e

@app.get("/admin/orders", response_model=List[OrderOut], tags=["admin"])
def admin_orders(db: Session = Depends(get_db)):
    return orders.recent_orders(db, settings.admin_orders_limit)

@app.post("/check-coupon", response_model=CouponCheckOut, tags=["coupons"])
def check_coupon(payload: CouponCheckIn, db: Session = Depends(get_db)):
    check = coupons.require_valid(db, payload.code, payload.user_id)
    return {"success": True, "percent": check.percent}

@app.post("/support", response_model=SuccessOut, tags=["support"])
def open_support_ticket(payload: SupportIn, db: Session = Depends(get_db)):
    support.open_ticket(db, payload.user_id, payload.message, payload.order_id)
    return {"success": True}

@app.get("/wallet/{uid}", response_model=WalletOut, tags=["wallet"])
def wallet_balance(uid: str, db: Session = Depends(get_db)):
    return {"balance": wallet.get_balance(db, uid)}

@app.get("/wallet/history/{uid}", response_model=List[WalletTransactionOut], tags=["wallet"])
def wallet_history(uid: str, db: Session = Depends(get_db)):
    return wallet.history(db, uid)

@app.get("/cleanup", response_model=CleanupOut, tags=["admin"])
def cleanup(db: Session = Depends(get_db), storage: BlobStore = Depends(get_storage)):
    cleaned = orders.sweep_expired(db, storage)
    retried, orphans = orders.reconcile_storage(db, storage, settings.orphan_grace_seconds)
    return {"cleaned": cleaned, "orphans": orphans, "retried": retried}
