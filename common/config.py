import os
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from pathlib import Path
import json
from typing import Optional

from dotenv import load_dotenv


@dataclass
class AppConfig:
    database_url: str
    secret_key: str
    log_level: str
    currency: str
    shipping_fee: Decimal
    api_base_url: str
    api_timeout: float
    page_cache_ttl: int
    cart_snapshot_file: str


def validate_currency(value: Optional[str]) -> str:
    v = (value or "USD").strip().upper()
    if len(v) != 3:
        raise ValueError("Invalid currency code: expected ISO4217 length 3")
    return v


def validate_shipping_fee(value) -> Decimal:
    if value is None or value == "":
        return Decimal("2.00")
    try:
        fee = Decimal(str(value))
    except InvalidOperation as exc:
        raise ValueError(f"Invalid shipping fee: {value!r}") from exc
    if fee < 0:
        raise ValueError("shipping fee must be >= 0")
    return fee.quantize(Decimal("0.01"))


def _load_settings_file() -> dict:
    path = Path(__file__).resolve().parents[1] / "data" / "settings.json"
    if not path.exists():
        return {}
    try:
        payload = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise ValueError(f"settings file is not valid JSON: {path}") from exc
    return payload if isinstance(payload, dict) else {}


def load_env() -> AppConfig:
    # data/settings.json wins, environment (and .env) is the fallback
    load_dotenv()
    s = _load_settings_file()

    def pick(key: str, default: Optional[str] = None) -> Optional[str]:
        return s.get(key) or os.getenv(key) or default

    return AppConfig(
        database_url=pick("DATABASE_URL", "sqlite:///data/storefront.db"),
        secret_key=pick("SECRET_KEY", "dev_secret"),
        log_level=pick("LOG_LEVEL", "INFO"),
        currency=validate_currency(pick("CURRENCY")),
        shipping_fee=validate_shipping_fee(pick("SHIPPING_FEE")),
        api_base_url=pick("API_BASE_URL", "http://127.0.0.1:5000").rstrip("/"),
        api_timeout=float(pick("API_TIMEOUT", "10")),
        page_cache_ttl=int(pick("PAGE_CACHE_TTL", "60")),
        cart_snapshot_file=pick("CART_SNAPSHOT_FILE", "data/cart-storage.json"),
    )
