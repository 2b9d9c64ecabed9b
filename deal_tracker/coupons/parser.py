from __future__ import annotations

import logging
import re
from typing import Any

from pydantic import ValidationError

from .models import Coupon

logger = logging.getLogger(__name__)

# Menu keywords surfaced as hints (more specific phrases first).
MENU_ITEM_KEYWORDS: list[str] = [
    "large pizza", "medium pizza", "small pizza",
    "specialty pizza", "cheese pizza", "pepperoni pizza",
    "hand tossed", "thin crust", "pan pizza",
    "boneless wings", "traditional wings",
    "cheesy bread", "bread",
    "pizza", "wings", "pasta", "sandwich", "sandwiches",
    "breadsticks", "soda", "drink", "beverages",
    "dessert", "cookie", "brownies", "salad", "sides",
    "supreme", "pepperoni", "chicken", "beef", "italian sausage",
    "delivery", "carryout", "pickup", "topping", "toppings",
]

TIME_SENSITIVE_TERMS: list[str] = [
    "today only", "limited time", "ends tonight", "ends at midnight",
    "ends today", "while supplies last", "limited offer",
    "ends soon", "expires today", "flash sale", "hourly special",
    "lunch special", "dinner special", "happy hour",
]

_PRICE_MENTION_RE = re.compile(r"\$\d+\.?\d*")
_QUANTITY_RE = re.compile(r"\b(\d+)\s*(piece|pc|order|item)", re.IGNORECASE)


def _tag_value(tags: str, key: str) -> str | None:
    match = re.search(rf"(?<![A-Za-z]){key}=([^,]+)", tags)
    return match.group(1).strip() if match else None


def parse_coupon_tags(tags: str, has_code: bool = False) -> dict[str, Any]:
    """
    Extract coupon metadata from a ``Key=Value,Key=Value`` tags string.

    Returns a dict keyed by Coupon field aliases; keys that are absent from
    the tags are absent from the result. A bare ``Code=`` tag is only used as
    the virtual code when the coupon has no ``Code`` of its own.
    """
    fields: dict[str, Any] = {}
    if not tags:
        return fields

    expires_on = re.search(r"ExpiresOn=(\d{4}-\d{2}-\d{2})", tags)
    if expires_on:
        fields["ExpirationDate"] = expires_on.group(1)
        expires_at = re.search(r"ExpiresAt=(\d{2}:\d{2}:\d{2})", tags)
        if expires_at:
            fields["ExpirationTime"] = expires_at.group(1)
    else:
        expiration = _tag_value(tags, "ExpireDate") or _tag_value(tags, "Expiration")
        if expiration:
            fields["ExpirationDate"] = expiration

    code_keys = ["VirtualCode", "OnlineCode", "WebCode"]
    if not has_code:
        code_keys.append("Code")
    for key in code_keys:
        code = _tag_value(tags, key)
        if code:
            fields["VirtualCode"] = code
            break

    colon_lists = {
        "ProductCodes": "EligibleProducts",
        "CategoryCodes": "EligibleCategories",
        "ValidServiceMethods": "ValidServiceMethods",
    }
    for key, alias in colon_lists.items():
        value = _tag_value(tags, key)
        if value:
            fields[alias] = value.split(":")

    scalars = {
        "MinOrder": "MinimumOrder",
        "ServiceMethod": "ServiceMethod",
        "TimeRestriction": "TimeRestriction",
        "ValidHours": "ValidHours",
    }
    for key, alias in scalars.items():
        value = _tag_value(tags, key)
        if value:
            fields[alias] = value

    return fields


def extract_menu_item_hints(description: str) -> list[str]:
    """Return de-duplicated menu, price, quantity and urgency hints for a coupon text."""
    if not description:
        return []

    hints: list[str] = []
    lower = description.lower()

    hints.extend(item for item in MENU_ITEM_KEYWORDS if item in lower)
    hints.extend(f"Price: {price}" for price in _PRICE_MENTION_RE.findall(description))
    hints.extend(f"Quantity: {m.group(0)}" for m in _QUANTITY_RE.finditer(description))
    hints.extend(f"⏰ {term}" for term in TIME_SENSITIVE_TERMS if term in lower)

    return list(dict.fromkeys(hints))


def _row_to_record(columns: list[str], row: list[Any]) -> dict[str, Any]:
    record: dict[str, Any] = dict(zip(columns, row))

    raw_tags = record.get("Tags")
    if isinstance(raw_tags, str):
        record.update(parse_coupon_tags(raw_tags, has_code=bool(record.get("Code"))))

    if not record.get("ExpirationDate"):
        record["ExpirationDate"] = record.get("ExpiresOn") or record.get("ExpireDate")

    text = " ".join(str(record[k]) for k in ("Name", "Description") if record.get(k))
    if text:
        record["MenuItemHints"] = extract_menu_item_hints(text)
    return record


def parse_coupon_data(payload: dict[str, Any]) -> list[Coupon]:
    """
    Convert a store menu payload into Coupon records.

    The payload carries coupons as ``{"Columns": [...], "Data": [[...], ...]}``
    under ``Coupons`` (or ``coupons`` / ``Coupon``). Rows that fail validation
    are skipped and logged.
    """
    section = payload.get("Coupons") or payload.get("coupons") or payload.get("Coupon") or {}
    columns = section.get("Columns")
    rows = section.get("Data")
    if not columns or not rows:
        return []

    coupons: list[Coupon] = []
    for row in rows:
        if not isinstance(row, (list, tuple)):
            logger.warning("Skipping malformed coupon row: %r", row)
            continue
        record = _row_to_record(columns, row)
        try:
            coupons.append(Coupon.model_validate(record))
        except ValidationError:
            logger.warning("Skipping malformed coupon row: %r", record.get("ID"), exc_info=True)
    return coupons
