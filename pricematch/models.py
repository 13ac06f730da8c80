"""
Data model shared by every matching stage.

Products are immutable views over the raw scraped records; groups are the
unit of output ("same product in N >= 2 stores").
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Tuple

MATCH_IDENTIFIER = "identifier"
MATCH_DESCRIPTION = "description"
MATCH_SEMANTIC = "semantic"

MATCH_TYPES = (MATCH_IDENTIFIER, MATCH_DESCRIPTION, MATCH_SEMANTIC)


class CatalogError(ValueError):
    """Raised when the comparison input does not have the expected shape."""


@dataclass(frozen=True)
class Product:
    store: str
    position: int
    name: str
    price: Optional[float]
    identifier: Optional[str]
    raw: Mapping[str, Any] = field(default_factory=dict, compare=False, repr=False)

    @property
    def key(self) -> Tuple[str, int]:
        return (self.store, self.position)


@dataclass(frozen=True)
class StoreOffer:
    price: float
    name: str
    identifier: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {"price": self.price, "name": self.name, "identifier": self.identifier}


@dataclass
class MatchedGroup:
    representative_name: str
    identifier: Optional[str]
    per_store: Dict[str, StoreOffer]
    match_type: str
    match_score: float
    members: Tuple[Product, ...] = ()
    best_store: Optional[str] = None
    best_price: Optional[float] = None
    worst_store: Optional[str] = None
    worst_price: Optional[float] = None

    @property
    def stores(self) -> List[str]:
        return list(self.per_store.keys())

    def to_dict(self) -> Dict[str, Any]:
        return {
            "representativeName": self.representative_name,
            "identifier": self.identifier,
            "perStore": {store: offer.to_dict() for store, offer in self.per_store.items()},
            "stores": self.stores,
            "bestStore": self.best_store,
            "bestPrice": self.best_price,
            "worstStore": self.worst_store,
            "worstPrice": self.worst_price,
            "matchType": self.match_type,
            "matchScore": round(self.match_score, 4),
        }


@dataclass(frozen=True)
class UnmatchedProduct:
    identifier: Optional[str]
    name: str
    price: Optional[float]
    store: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "identifier": self.identifier,
            "name": self.name,
            "price": self.price,
            "store": self.store,
        }


# Remaining products per store, in input order
Pools = Dict[str, List[Product]]


@dataclass
class StageResult:
    """What a matching stage hands to the next one."""
    groups: List[MatchedGroup]
    remaining: Pools


@dataclass
class ComparisonResult:
    compared_products: List[MatchedGroup]
    unmatched_products: List[UnmatchedProduct]
    stats: Dict[str, Any]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "comparedProducts": [g.to_dict() for g in self.compared_products],
            "unmatchedProducts": [p.to_dict() for p in self.unmatched_products],
            "stats": self.stats,
        }
