# printvend/services/stats.py
from datetime import date, datetime, time, timedelta, timezone
from decimal import Decimal
from typing import Dict, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from printvend.models import Order, as_utc, now_utc

WEEKDAYS = ["Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"]
CHART_DAYS = 7


def _day_start(day: date) -> datetime:
    return datetime.combine(day, time.min, tzinfo=timezone.utc)


def daily_stats(db: Session, day: Optional[date] = None) -> Dict:
    """
    Revenue and order count for one UTC day, plus revenue for the
    seven days ending on it (oldest first, labelled by weekday).
    """
    day = day or now_utc().date()
    first = day - timedelta(days=CHART_DAYS - 1)

    rows = db.execute(
        select(Order.total_amount, Order.created_at).where(
            Order.created_at >= _day_start(first),
            Order.created_at < _day_start(day + timedelta(days=1)),
        )
    ).all()

    revenue = {first + timedelta(days=i): Decimal("0") for i in range(CHART_DAYS)}
    day_count = 0
    for amount, created_at in rows:
        created = as_utc(created_at).date()
        revenue[created] += Decimal(amount or 0)
        if created == day:
            day_count += 1

    return {
        "dayRevenue": float(revenue[day]),
        "dayCount": day_count,
        "chartData": [
            {"name": WEEKDAYS[d.weekday()], "value": float(v)}
            for d, v in sorted(revenue.items())
        ],
    }
