# tests/test_identity.py
import re
from datetime import datetime, timezone

from printvend.services.identity import make_order_id, mint

QR_PATTERN = re.compile(r"^[0-9A-F]{6}[01][01]$")


def test_qr_encodes_color_and_duplex_flags():
    assert mint(True, True).qr_code.endswith("11")
    assert mint(True, False).qr_code.endswith("10")
    assert mint(False, True).qr_code.endswith("01")
    assert mint(False, False).qr_code.endswith("00")


def test_qr_shape_and_file_name():
    ident = mint(False, True, now_ms=1760000000123)
    assert QR_PATTERN.match(ident.qr_code)
    assert ident.file_name == f"{ident.qr_code}_1760000000123.pdf"


def test_qr_prefix_is_random():
    prefixes = {mint(False, False).qr_code[:6] for _ in range(50)}
    # 2^24 space; 50 draws colliding down to a handful would mean no randomness
    assert len(prefixes) > 40


def test_order_id_format():
    oid = make_order_id(datetime(2026, 10, 18, 9, 5, tzinfo=timezone.utc))
    assert re.match(r"^INPVD1810260905\d{3}$", oid)
