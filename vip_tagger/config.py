# config.py
import os
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Mapping, Optional

from dotenv import load_dotenv

from .errors import ConfigError

VIP_TAG = "VIP-Customer"
DEFAULT_THRESHOLD = Decimal("11000")


def _env(environ: Mapping[str, str], name: str, default: Optional[str] = None) -> Optional[str]:
    v = environ.get(name)
    return v if v is not None and v.strip() != "" else default


def _flag(environ, name: str, default: bool) -> bool:
    v = _env(environ, name)
    if v is None:
        return default
    return v.strip().lower() in ("1", "true", "yes", "on")


def _int(environ, name: str, default: int, minimum: int = 1) -> int:
    raw = _env(environ, name)
    if raw is None:
        return default
    try:
        value = int(raw)
    except ValueError:
        raise ConfigError(f"{name} must be an integer, got {raw!r}")
    if value < minimum:
        raise ConfigError(f"{name} must be >= {minimum}, got {value}")
    return value


@dataclass(frozen=True)
class Config:
    """Settings read once at startup and handed to every component."""
    shopify_store: str
    shopify_token: str
    api_version: str = "2023-10"
    connect_timeout: int = 10
    read_timeout: int = 60
    vip_threshold: Decimal = DEFAULT_THRESHOLD
    vip_tag: str = VIP_TAG
    currency_symbol: str = "₹"
    webhook_secret: str = ""
    sweep_cron: str = "0 0 * * *"
    sweep_on_startup: bool = True
    sweep_workers: int = 1
    webhook_workers: int = 4
    page_size: int = 250
    dry_run: bool = False
    port: int = 5000

    @property
    def base_url(self) -> str:
        return f"https://{self.shopify_store}/admin/api/{self.api_version}"

    @property
    def timeout(self) -> tuple:
        return (self.connect_timeout, self.read_timeout)

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Config":
        if environ is None:
            load_dotenv()
            environ = os.environ

        store = _env(environ, "SHOPIFY_STORE")
        token = _env(environ, "SHOPIFY_TOKEN") or _env(environ, "SHOPIFY_ACCESS_TOKEN")
        if not store or not token:
            raise ConfigError("Missing SHOPIFY_STORE or SHOPIFY_TOKEN in environment.")

        raw_threshold = _env(environ, "VIP_SPEND_THRESHOLD")
        threshold = DEFAULT_THRESHOLD
        if raw_threshold is not None:
            try:
                threshold = Decimal(raw_threshold.strip())
            except InvalidOperation:
                raise ConfigError(f"VIP_SPEND_THRESHOLD is not a number: {raw_threshold!r}")
            if not threshold.is_finite() or threshold < 0:
                raise ConfigError(f"VIP_SPEND_THRESHOLD must be a non-negative number: {raw_threshold!r}")

        return cls(
            shopify_store=store.strip().rstrip("/"),
            shopify_token=token.strip(),
            api_version=_env(environ, "SHOPIFY_API_VERSION", "2023-10"),
            connect_timeout=_int(environ, "SHOPIFY_CONNECT_TIMEOUT", 10),
            read_timeout=_int(environ, "SHOPIFY_HTTP_TIMEOUT", 60),
            vip_threshold=threshold,
            currency_symbol=_env(environ, "VIP_CURRENCY_SYMBOL", "₹"),
            webhook_secret=_env(environ, "SHOPIFY_WEBHOOK_SECRET", ""),
            sweep_cron=_env(environ, "VIP_SWEEP_CRON", "0 0 * * *"),
            sweep_on_startup=_flag(environ, "VIP_SWEEP_ON_STARTUP", True),
            sweep_workers=_int(environ, "VIP_SWEEP_WORKERS", 1),
            webhook_workers=_int(environ, "VIP_WEBHOOK_WORKERS", 4),
            page_size=_int(environ, "VIP_PAGE_SIZE", 250),
            dry_run=_flag(environ, "VIP_DRY_RUN", False),
            port=_int(environ, "PORT", 5000),
        )
