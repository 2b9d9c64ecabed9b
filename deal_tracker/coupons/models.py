from __future__ import annotations

import math
import re
from datetime import datetime, time

from pydantic import BaseModel, ConfigDict, Field, field_validator

# Leading number of a price string, the way a browser's parseFloat reads it.
# A single leading currency sign is tolerated ("$7.99" -> 7.99).
_PRICE_RE = re.compile(r"^\s*\$?\s*([+-]?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][+-]?\d+)?)")

_DATE_FORMATS = ("%Y-%m-%d", "%m/%d/%Y", "%m/%d/%y", "%Y/%m/%d")


def parse_price(raw: str | float | int | None) -> float:
    """Return the numeric value of a coupon price, 0.0 when absent or unparseable."""
    if raw is None:
        return 0.0
    if isinstance(raw, (int, float)):
        value = float(raw)
    else:
        match = _PRICE_RE.match(str(raw))
        if not match:
            return 0.0
        value = float(match.group(1))
    if not math.isfinite(value):
        return 0.0
    return max(0.0, value)


def parse_expiration(date_text: str | None, time_text: str | None = None) -> datetime | None:
    """Parse a coupon expiration into a naive local datetime, or None."""
    if not date_text:
        return None
    raw = str(date_text).strip()

    parsed: datetime | None = None
    try:
        parsed = datetime.fromisoformat(raw)
    except ValueError:
        for fmt in _DATE_FORMATS:
            try:
                parsed = datetime.strptime(raw, fmt)
                break
            except ValueError:
                continue
    if parsed is None:
        return None

    if parsed.tzinfo is not None:
        parsed = parsed.astimezone().replace(tzinfo=None)

    if time_text:
        try:
            parsed = datetime.combine(parsed.date(), time.fromisoformat(str(time_text).strip()))
        except ValueError:
            pass
    return parsed


def _as_text(value: object) -> str | None:
    if value is None:
        return None
    return str(value)


def _as_flag(value: object) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ("true", "1", "yes")
    return bool(value)


def _as_list(value: object, sep: str) -> list[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [part.strip() for part in value.split(sep) if part.strip()]
    return [str(part) for part in value]


class Coupon(BaseModel):
    """A promotional offer as returned by the store menu lookup.

    Every field is optional; missing or malformed values are defaulted here so
    scoring code never has to guard against them.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: str = Field(default="", alias="ID")
    name: str = Field(default="", alias="Name")
    description: str = Field(default="", alias="Description")
    price: str | None = Field(default=None, alias="Price")
    tags: list[str] = Field(default_factory=list, alias="Tags")
    local: bool = Field(default=False, alias="Local")
    bundle: bool = Field(default=False, alias="Bundle")
    bundle_price: str | None = Field(default=None, alias="BundlePrice")
    code: str | None = Field(default=None, alias="Code")
    virtual_code: str | None = Field(default=None, alias="VirtualCode")
    expiration_date: str | None = Field(default=None, alias="ExpirationDate")
    expiration_time: str | None = Field(default=None, alias="ExpirationTime")
    eligible_products: list[str] = Field(default_factory=list, alias="EligibleProducts")
    eligible_categories: list[str] = Field(default_factory=list, alias="EligibleCategories")
    minimum_order: str | None = Field(default=None, alias="MinimumOrder")
    service_method: str | None = Field(default=None, alias="ServiceMethod")
    valid_service_methods: list[str] = Field(default_factory=list, alias="ValidServiceMethods")
    time_restriction: str | None = Field(default=None, alias="TimeRestriction")
    valid_hours: str | None = Field(default=None, alias="ValidHours")
    menu_item_hints: list[str] = Field(default_factory=list, alias="MenuItemHints")

    @field_validator("id", "name", "description", mode="before")
    @classmethod
    def _coerce_text(cls, v: object) -> str:
        return "" if v is None else str(v)

    @field_validator(
        "price",
        "bundle_price",
        "code",
        "virtual_code",
        "expiration_date",
        "expiration_time",
        "minimum_order",
        "service_method",
        "time_restriction",
        "valid_hours",
        mode="before",
    )
    @classmethod
    def _coerce_optional_text(cls, v: object) -> str | None:
        return _as_text(v)

    @field_validator("local", "bundle", mode="before")
    @classmethod
    def _coerce_flag(cls, v: object) -> bool:
        return _as_flag(v)

    @field_validator("tags", "menu_item_hints", mode="before")
    @classmethod
    def _coerce_comma_list(cls, v: object) -> list[str]:
        return _as_list(v, ",")

    @field_validator("eligible_products", "eligible_categories", "valid_service_methods", mode="before")
    @classmethod
    def _coerce_colon_list(cls, v: object) -> list[str]:
        return _as_list(v, ":")

    @property
    def estimated_savings(self) -> float:
        return parse_price(self.price)

    @property
    def expires_at(self) -> datetime | None:
        return parse_expiration(self.expiration_date, self.expiration_time)

    @property
    def text(self) -> str:
        """Lower-cased name and description, the input to keyword matching."""
        return f"{self.name} {self.description}".lower()


class StoreInfo(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    store_id: str = Field(..., min_length=1, alias="StoreID")
    address: str | None = Field(default=None, alias="AddressDescription")
    phone: str | None = Field(default=None, alias="Phone")
    hours: str | None = Field(default=None, alias="HoursDescription")
    is_delivery_store: bool = Field(default=False, alias="IsDeliveryStore")
    is_open: bool = Field(default=False, alias="IsOpen")
    is_online_capable: bool = Field(default=False, alias="IsOnlineCapable")
    business_date: str | None = Field(default=None, alias="BusinessDate")
    market: str | None = Field(default=None, alias="Market")
    status: int | str | None = Field(default=None, alias="Status")
    language_code: str | None = Field(default=None, alias="LanguageCode")

    @field_validator("store_id", mode="before")
    @classmethod
    def _coerce_store_id(cls, v: object) -> str:
        return "" if v is None else str(v).strip()

    @field_validator("is_delivery_store", "is_open", "is_online_capable", mode="before")
    @classmethod
    def _coerce_flag(cls, v: object) -> bool:
        return _as_flag(v)
