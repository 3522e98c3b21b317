# tests/test_admin_and_support.py
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from unittest.mock import MagicMock

from conftest import add_coupon, fund_wallet, make_order, set_role
from printvend.config import settings
from printvend.models import OrderStatus, Role, SupportTicket, as_utc, now_utc
from printvend.services import stats


def _at(day, hour=12):
    return datetime(2026, 10, day, hour, 0, tzinfo=timezone.utc)


def test_admin_stats_for_a_day(client, db):
    make_order(db, "DAY14A00", created_at=_at(14, 9), total_amount=Decimal("10.50"))
    make_order(db, "DAY14B00", created_at=_at(14, 23), total_amount=Decimal("4.50"))
    make_order(db, "DAY12000", created_at=_at(12), total_amount=Decimal("3.00"))
    # outside the seven-day window
    make_order(db, "DAY07000", created_at=_at(7), total_amount=Decimal("99.00"))
    make_order(db, "DAY15000", created_at=_at(15), total_amount=Decimal("99.00"))

    r = client.get("/admin/stats", params={"date": "2026-10-14"})
    assert r.status_code == 200
    body = r.json()
    assert body["dayRevenue"] == 15.0
    assert body["dayCount"] == 2

    chart = body["chartData"]
    # Oct 8 (Thu) .. Oct 14 (Wed)
    assert [p["name"] for p in chart] == ["Thu", "Fri", "Sat", "Sun", "Mon", "Tue", "Wed"]
    assert [p["value"] for p in chart] == [0.0, 0.0, 0.0, 0.0, 3.0, 0.0, 15.0]


def test_admin_stats_defaults_to_today(client, db):
    make_order(db, "TODAY000", total_amount=Decimal("2.36"))
    body = client.get("/admin/stats").json()
    assert body["dayCount"] == 1
    assert body["dayRevenue"] == 2.36
    assert len(body["chartData"]) == 7


def test_admin_stats_rejects_bad_date(client):
    r = client.get("/admin/stats", params={"date": "14/10/2026"})
    assert r.status_code == 400


def test_support_ticket_is_stored(client, db):
    r = client.post("/support", json={"userId": "user-1", "message": "Printer jammed", "orderId": "INPVD181026101512"})
    assert r.status_code == 200 and r.json() == {"success": True}

    ticket = db.query(SupportTicket).one()
    assert ticket.user_id == "user-1"
    assert ticket.order_id == "INPVD181026101512"
    assert ticket.status == "OPEN"


def test_support_ticket_needs_a_message(client, db):
    assert client.post("/support", json={"userId": "user-1", "message": ""}).status_code == 400
    assert client.post("/support", json={"userId": "user-1", "message": "   "}).status_code == 400
    assert db.query(SupportTicket).count() == 0


def test_quote_matches_what_checkout_charges(client, checkout, db):
    fund_wallet(db, "user-1", 50)
    add_coupon(db, "TENOFF", 10)
    meta = {"userId": "user-1", "numPages": 11, "copies": 2, "doubleSide": True,
            "couponCode": "TENOFF", "useCoins": True}

    q = client.post("/quote", json=meta).json()
    assert q["totalSheets"] == 12
    assert q["subtotal"] == 12.0
    assert q["tax"] == 2.16
    assert q["coinsRedeemed"] == 50.0
    assert q["finalTotal"] == 7.74
    assert q["coinsEarned"] == 1
    assert q["couponApplied"] is True and q["isVip"] is False

    qr = checkout(**meta).json()["qr"]
    assert client.get("/user-data/user-1").json()["orders"][0]["qr_code"] == qr
    assert client.get("/user-data/user-1").json()["orders"][0]["total_amount"] == q["finalTotal"]


def test_quote_for_vip(client, db):
    set_role(db, "vip-1", Role.VIP)
    q = client.post("/quote", json={"userId": "vip-1", "numPages": 50, "color": True}).json()
    assert q["finalTotal"] == 0.0 and q["coinsEarned"] == 0 and q["isVip"] is True


def test_stats_bucket_aware_timestamps_by_utc_day():
    # 01:30 on the 15th in +05:30 is 20:00 on the 14th in UTC
    ist = timezone(timedelta(hours=5, minutes=30))
    db = MagicMock()
    db.execute.return_value.all.return_value = [
        (Decimal("5.00"), datetime(2026, 10, 15, 1, 30, tzinfo=ist)),
    ]

    body = stats.daily_stats(db, date(2026, 10, 14))
    assert body["dayRevenue"] == 5.0
    assert body["dayCount"] == 1
    assert as_utc(datetime(2026, 10, 15, 1, 30, tzinfo=ist)) == datetime(2026, 10, 14, 20, 0, tzinfo=timezone.utc)


def test_admin_orders_lists_everyone_most_recent_first(client, db):
    base = now_utc() - timedelta(hours=2)
    make_order(db, "OLDEST00", created_at=base)
    make_order(db, "MIDDLE00", created_at=base + timedelta(minutes=10), user_id="user-2")
    make_order(
        db, "NEWEST00", created_at=base + timedelta(minutes=20), user_id="user-3",
        printed=True, status=OrderStatus.PRINTED, file_path=None,
    )

    r = client.get("/admin/orders")
    assert r.status_code == 200
    rows = r.json()
    assert [o["qr_code"] for o in rows] == ["NEWEST00", "MIDDLE00", "OLDEST00"]
    assert rows[0]["status"] == "PRINTED" and rows[0]["user_id"] == "user-3"


def test_admin_orders_is_capped(client, db, monkeypatch):
    monkeypatch.setattr(settings, "admin_orders_limit", 3)
    base = now_utc() - timedelta(hours=1)
    for i in range(5):
        make_order(db, f"CAP{i:05d}", created_at=base + timedelta(minutes=i))

    qrs = [o["qr_code"] for o in client.get("/admin/orders").json()]
    assert qrs == ["CAP00004", "CAP00003", "CAP00002"]
