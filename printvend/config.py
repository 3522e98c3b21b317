from decimal import Decimal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):
    # Map the env var named DATABASE_URL to this field
    database_url: str = Field(alias="DATABASE_URL")

    # S3-compatible bucket that holds uploaded PDFs
    s3_endpoint_url: str | None = Field(default=None, alias="S3_ENDPOINT_URL")
    s3_access_key_id: str | None = Field(default=None, alias="S3_ACCESS_KEY_ID")
    s3_secret_access_key: str | None = Field(default=None, alias="S3_SECRET_ACCESS_KEY")
    s3_region: str = Field(default="us-east-1", alias="S3_REGION")
    storage_bucket: str = Field(default="prints", alias="STORAGE_BUCKET")

    # Per-sheet rates
    rate_bw_single: Decimal = Field(default=Decimal("1.5"), alias="RATE_BW_SINGLE")
    rate_bw_double: Decimal = Field(default=Decimal("1.0"), alias="RATE_BW_DOUBLE")
    rate_col_single: Decimal = Field(default=Decimal("5.0"), alias="RATE_COL_SINGLE")
    rate_col_double: Decimal = Field(default=Decimal("4.5"), alias="RATE_COL_DOUBLE")

    tax_rate: Decimal = Field(default=Decimal("0.18"), alias="TAX_RATE")
    # 1 coin = 0.1 currency unit
    coin_value: Decimal = Field(default=Decimal("0.1"), alias="COIN_VALUE")
    # 1 coin earned per CASHBACK_DIVISOR units of subtotal
    cashback_divisor: int = Field(default=10, gt=0, alias="CASHBACK_DIVISOR")

    order_ttl_seconds: int = Field(default=3600, gt=0, alias="ORDER_TTL_SECONDS")
    user_orders_limit: int = Field(default=10, gt=0, alias="USER_ORDERS_LIMIT")
    admin_orders_limit: int = Field(default=100, gt=0, alias="ADMIN_ORDERS_LIMIT")
    max_upload_bytes: int = Field(default=20 * 1024 * 1024, alias="MAX_UPLOAD_BYTES")
    orphan_grace_seconds: int = Field(default=6 * 3600, alias="ORPHAN_GRACE_SECONDS")

    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    # Pydantic v2-style config: read .env and ignore extra env vars
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

settings = Settings()
