"""
Price and identifier extraction.

Each store ships its records with different field names and price encodings
(plain numbers, localized "R$ 12,34" strings, nested pricing objects). The
rules below are tried in order; the first one that yields a usable value wins.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from numbers import Number
from typing import Any, Mapping, Optional, Tuple

from .config import MIN_IDENTIFIER_LENGTH
from .models import Product

# -------------------------------------------------------------------
# Extraction rules
# -------------------------------------------------------------------

ANY = "any"
NUMBER = "number"
TEXT = "text"


@dataclass(frozen=True)
class PriceRule:
    path: Tuple[str, ...]
    accepts: str  # ANY | NUMBER | TEXT


PRICE_RULES = (
    PriceRule(("pricing", "promotionalPrice"), ANY),
    PriceRule(("pricing", "price"), ANY),
    PriceRule(("promotionalPrice",), NUMBER),
    PriceRule(("price",), NUMBER),
    PriceRule(("special",), TEXT),
    PriceRule(("price",), TEXT),
    PriceRule(("promotionalPrice",), TEXT),
)

IDENTIFIER_FIELDS = ("gtin", "ean", "barcode", "code")

_CURRENCY_NOISE = re.compile(r"[^\d,.\-]")


# -------------------------------------------------------------------
# Prices
# -------------------------------------------------------------------

def parse_price_text(text: str) -> Optional[float]:
    """Parse a localized price string: "R$ 1.234,56" -> 1234.56."""
    if not isinstance(text, str):
        return None

    s = _CURRENCY_NOISE.sub("", text.strip())
    if not s:
        return None

    if "," in s:
        # Brazilian format: dots group thousands, comma is the decimal mark
        s = s.replace(".", "").replace(",", ".")

    try:
        return float(s)
    except ValueError:
        return None


def _is_number(value: Any) -> bool:
    return isinstance(value, Number) and not isinstance(value, bool)


def _lookup(record: Mapping[str, Any], path: Tuple[str, ...]) -> Any:
    value: Any = record
    for key in path:
        if not isinstance(value, Mapping):
            return None
        value = value.get(key)
    return value


def _apply_rule(rule: PriceRule, value: Any) -> Optional[float]:
    if value is None:
        return None

    price = None
    if _is_number(value) and rule.accepts in (ANY, NUMBER):
        price = float(value)
    elif isinstance(value, str) and rule.accepts in (ANY, TEXT):
        price = parse_price_text(value)

    # Zero or negative prices mean "no price" in every scraped source
    if price is None or price != price or price <= 0:
        return None
    return price


def extract_price(record: Mapping[str, Any]) -> Optional[float]:
    """Effective price of a record, preferring promotional prices."""
    if not isinstance(record, Mapping):
        return None

    for rule in PRICE_RULES:
        price = _apply_rule(rule, _lookup(record, rule.path))
        if price is not None:
            return price
    return None


# -------------------------------------------------------------------
# Identifiers
# -------------------------------------------------------------------

def normalize_identifier(value: Any) -> Optional[str]:
    """Trim a barcode-like value; degenerate codes are treated as absent."""
    if value is None or isinstance(value, bool):
        return None

    s = str(value).strip()
    if not s or s == "0" or len(s) < MIN_IDENTIFIER_LENGTH:
        return None
    return s


def extract_identifier(record: Mapping[str, Any]) -> Optional[str]:
    if not isinstance(record, Mapping):
        return None

    for field_name in IDENTIFIER_FIELDS:
        identifier = normalize_identifier(record.get(field_name))
        if identifier:
            return identifier
    return None


def extract_name(record: Mapping[str, Any]) -> str:
    name = record.get("name") if isinstance(record, Mapping) else None
    if not isinstance(name, str):
        return ""
    return name.strip()


def to_product(store: str, position: int, record: Mapping[str, Any]) -> Product:
    """Canonical (name, price, identifier) view of one scraped record."""
    return Product(
        store=store,
        position=position,
        name=extract_name(record),
        price=extract_price(record),
        identifier=extract_identifier(record),
        raw=record,
    )
