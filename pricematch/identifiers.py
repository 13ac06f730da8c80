"""
Exact matching on barcode-like identifiers (GTIN/EAN).

Highest-confidence stage: a code held by at least two stores with a usable
price becomes a group. Every record carrying a claimed code is removed from
the pools handed to the text stages.
"""

from __future__ import annotations

import logging
from typing import Dict, List, Tuple

from .config import STORES
from .models import MATCH_IDENTIFIER, MatchedGroup, Pools, Product, StageResult, StoreOffer
from .report import finalize_group

logger = logging.getLogger(__name__)


def index_by_identifier(products: List[Product]) -> Tuple[Dict[str, Product], List[Product]]:
    """
    Index one store's products by identifier.
    Returns: (identifier -> product, products without identifier)

    Duplicated identifiers keep the last record seen.
    """
    index: Dict[str, Product] = {}
    no_identifier: List[Product] = []

    for product in products:
        if product.identifier:
            index[product.identifier] = product
        else:
            no_identifier.append(product)

    return index, no_identifier


def _representative_name(holders: Dict[str, Product]) -> str:
    for store in STORES:
        product = holders.get(store)
        if product and product.name:
            return product.name
    return ""


def match_by_identifier(pools: Pools) -> StageResult:
    indexes = {}
    for store in STORES:
        indexes[store], _ = index_by_identifier(pools.get(store, []))

    # Union of identifiers in first-seen order (store A, then B, then C)
    all_identifiers: Dict[str, None] = {}
    for store in STORES:
        for identifier in indexes[store]:
            all_identifiers.setdefault(identifier, None)

    groups: List[MatchedGroup] = []
    claimed = set()

    for identifier in all_identifiers:
        holders = {
            store: indexes[store][identifier]
            for store in STORES
            if identifier in indexes[store]
        }
        priced = {store: p for store, p in holders.items() if p.price is not None}

        if len(priced) < 2:
            continue

        groups.append(finalize_group(MatchedGroup(
            representative_name=_representative_name(holders),
            identifier=identifier,
            per_store={
                store: StoreOffer(price=p.price, name=p.name, identifier=p.identifier)
                for store, p in priced.items()
            },
            match_type=MATCH_IDENTIFIER,
            match_score=1.0,
            members=tuple(priced.values()),
        )))
        claimed.add(identifier)

    remaining = {
        store: [p for p in pools.get(store, []) if p.identifier not in claimed]
        for store in STORES
    }

    logger.info(
        "Identifier stage: %d groups, remaining %s",
        len(groups), {store: len(items) for store, items in remaining.items()},
    )
    return StageResult(groups=groups, remaining=remaining)
