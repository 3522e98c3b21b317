# tests/conftest.py
import json
import os
from datetime import datetime, timedelta
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient

# Tests run against a throwaway SQLite file unless DATABASE_URL says otherwise
os.environ.setdefault("DATABASE_URL", "sqlite:///./printvend_test.db")

from printvend.main import app  # noqa
from printvend.db import engine, SessionLocal
from printvend.errors import UpstreamError
from printvend.models import (
    Base, Coupon, Order, OrderStatus, Profile, Role, TransactionType,
    WalletAccount, WalletTransaction, now_utc
)
from printvend.storage import BlobStore, get_storage

PDF_BYTES = b"%PDF-1.4\n1 0 obj<<>>endobj\ntrailer<<>>\n%%EOF\n"


class MemoryBlobStore(BlobStore):
    """Bucket kept in a dict; flip the fail_* flags to simulate outages."""

    def __init__(self):
        super().__init__(client=None, bucket="test-prints")
        self.objects = {}
        self.fail_uploads = False
        self.fail_deletes = False

    def put(self, key, data=PDF_BYTES, last_modified=None):
        self.objects[key] = (data, last_modified or now_utc())

    def upload(self, key, data, content_type="application/pdf"):
        if self.fail_uploads:
            raise UpstreamError("File upload failed")
        self.put(key, data)

    def delete(self, key):
        if self.fail_deletes:
            raise UpstreamError(f"File delete failed for {key}")
        self.objects.pop(key, None)

    def list_objects(self):
        for key, (_, last_modified) in list(self.objects.items()):
            yield key, last_modified


@pytest.fixture(autouse=True)
def create_schema_and_clean_db():
    # Fresh tables per test so they don't interfere
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield


@pytest.fixture
def storage():
    return MemoryBlobStore()


@pytest.fixture
def client(storage):
    app.dependency_overrides[get_storage] = lambda: storage
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def db():
    with SessionLocal() as session:
        yield session


@pytest.fixture
def checkout(client):
    """POST /process-print with sensible defaults; keyword args override meta."""
    def _checkout(file_bytes=PDF_BYTES, **meta):
        body = {"userId": "user-1", "userEmail": "u1@campus.edu", "numPages": 1, "copies": 1}
        body.update(meta)
        return client.post(
            "/process-print",
            files={"file": ("doc.pdf", file_bytes, "application/pdf")},
            data={"meta": json.dumps(body)},
        )
    return _checkout


def add_coupon(db, code, percent, active=True, one_time=False):
    db.add(Coupon(code=code, discount_percent=Decimal(percent), active=active, is_one_time=one_time))
    db.commit()


def fund_wallet(db, user_id, coins):
    """Give a user coins the way the ledger would: one EARN row plus the balance."""
    db.add(WalletAccount(user_id=user_id, balance=Decimal(coins)))
    db.add(WalletTransaction(
        user_id=user_id, amount=Decimal(coins), type=TransactionType.EARN, note="seed",
        created_at=now_utc() - timedelta(days=1),
    ))
    db.commit()


def set_role(db, user_id, role: Role):
    db.add(Profile(id=user_id, role=role))
    db.commit()


def make_order(db, qr_code="ABCDEF00", **overrides):
    created = overrides.pop("created_at", now_utc())
    fields = dict(
        order_id="INPVD0000000000",
        user_id="user-1",
        user_email="u1@campus.edu",
        qr_code=qr_code,
        file_path=f"{qr_code}_1.pdf",
        sheets=1,
        copies=1,
        page_count=1,
        is_color=False,
        is_duplex=False,
        total_amount=Decimal("1.77"),
        coins_redeemed=Decimal("0"),
        coins_earned=0,
        status=OrderStatus.PAID,
        created_at=created,
        expires_at=created + timedelta(hours=1),
        printed=False,
        expired=False,
    )
    fields.update(overrides)
    order = Order(**fields)
    db.add(order)
    db.commit()
    return order


def load_order(db, qr_code) -> Order:
    db.expire_all()
    return db.query(Order).filter_by(qr_code=qr_code).one()


def hours_ago(n) -> datetime:
    return now_utc() - timedelta(hours=n)
