"""
Package size extraction and the quantity gate.

"Refrigerante 350ml" and "Refrigerante 2L" read almost the same, so text
similarity alone would pair them. Sizes are parsed from the name, converted
to ml / g / un, and compared before any similarity scoring happens.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Optional

from .config import QUANTITY_TOLERANCE
from .text import strip_accents_lower


@dataclass(frozen=True)
class Quantity:
    value: float
    unit: str  # "ml" | "g" | "un"


# unit spelling -> (standard unit, multiplier)
UNIT_CONVERSIONS = {
    "ml": ("ml", 1.0),
    "l": ("ml", 1000.0),
    "lt": ("ml", 1000.0),
    "lts": ("ml", 1000.0),
    "litro": ("ml", 1000.0),
    "litros": ("ml", 1000.0),
    "g": ("g", 1.0),
    "gr": ("g", 1.0),
    "grs": ("g", 1.0),
    "grama": ("g", 1.0),
    "gramas": ("g", 1.0),
    "kg": ("g", 1000.0),
    "kgs": ("g", 1000.0),
    "quilo": ("g", 1000.0),
    "quilos": ("g", 1000.0),
    "un": ("un", 1.0),
    "und": ("un", 1.0),
    "unid": ("un", 1.0),
    "unidade": ("un", 1.0),
    "unidades": ("un", 1.0),
}

# Longest spellings first so "litros" is not read as "l"
_UNIT_ALTERNATION = "|".join(sorted(UNIT_CONVERSIONS, key=len, reverse=True))

QUANTITY_PATTERN = re.compile(
    rf"(\d+(?:[.,]\d+)?)\s*({_UNIT_ALTERNATION})\b",
    re.IGNORECASE,
)


def extract_quantity(name: str) -> Optional[Quantity]:
    """First size expression in the name, or None (unconstrained)."""
    if not name:
        return None

    match = QUANTITY_PATTERN.search(strip_accents_lower(name))
    if not match:
        return None

    value = float(match.group(1).replace(",", "."))
    unit, multiplier = UNIT_CONVERSIONS[match.group(2)]
    return Quantity(value=value * multiplier, unit=unit)


def quantities_match(q1: Optional[Quantity], q2: Optional[Quantity],
                     tolerance: float = QUANTITY_TOLERANCE) -> bool:
    """
    Check whether two package sizes can belong to the same product.

    A sized listing never matches an unsized one.
    """
    if q1 is None and q2 is None:
        return True
    if q1 is None or q2 is None:
        return False

    if q1.unit != q2.unit:
        return False

    larger = max(q1.value, q2.value)
    if larger == 0:
        return q1.value == q2.value

    return abs(q1.value - q2.value) / larger <= tolerance
