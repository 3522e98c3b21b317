# printvend/services/identity.py
import random
import secrets
import time
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from printvend.models import now_utc


@dataclass(frozen=True)
class OrderIdentity:
    qr_code: str
    file_name: str


def mint(is_color: bool, is_duplex: bool, now_ms: Optional[int] = None) -> OrderIdentity:
    """
    QR code: 6 random upper-case hex chars, then one digit for color and one
    for duplex. Uniqueness is probabilistic; the orders table enforces it.
    The millisecond suffix keeps file names unique even on a qr collision.
    """
    random6 = secrets.token_hex(3).upper()
    qr_code = f"{random6}{'1' if is_color else '0'}{'1' if is_duplex else '0'}"
    if now_ms is None:
        now_ms = int(time.time() * 1000)
    return OrderIdentity(qr_code=qr_code, file_name=f"{qr_code}_{now_ms}.pdf")


def make_order_id(now: Optional[datetime] = None) -> str:
    # e.g. INPVD1810262315042: day, month, 2-digit year, hour, minute, 3 random digits
    now = now or now_utc()
    return f"INPVD{now.strftime('%d%m%y%H%M')}{random.randint(100, 999)}"
