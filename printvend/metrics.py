# printvend/metrics.py
from prometheus_client import Counter, Histogram, make_asgi_app

# Counters
orders_created_total = Counter("orders_created_total", "Orders paid and stored")
prints_consumed_total = Counter("prints_consumed_total", "QR codes consumed at a kiosk")
orders_expired_total = Counter(
    "orders_expired_total",
    "Orders transitioned to EXPIRED",
    ["source"],  # consume | sweep
)
coupon_redemptions_total = Counter("coupon_redemptions_total", "Coupons applied at checkout")
orphan_blobs_removed_total = Counter(
    "orphan_blobs_removed_total", "Unreferenced stored files removed by reconciliation"
)
stored_file_retries_total = Counter(
    "stored_file_retries_total", "File deletes retried for printed or expired orders"
)

checkout_errors = Counter("checkout_errors_total", "Checkout errors", ["type"])
consume_errors = Counter("consume_errors_total", "Kiosk consume errors", ["type"])

# Latency
checkout_latency = Histogram("checkout_latency_seconds", "Checkout latency in seconds")

# ASGI app for /metrics
metrics_asgi_app = make_asgi_app()
