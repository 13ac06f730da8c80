"""
Group assembly and the final report.

Nothing here matches products: it turns the claims made by the matching
stages into priced groups, ranks them and lists what stayed unmatched.
"""

from __future__ import annotations

import hashlib
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from .config import STORES
from .models import (
    MATCH_IDENTIFIER,
    MATCH_TYPES,
    ComparisonResult,
    MatchedGroup,
    Product,
    StoreOffer,
    UnmatchedProduct,
)


def synthetic_identifier(prefix: str, members: Sequence[Product]) -> str:
    """Stable placeholder id for groups formed without a real identifier."""
    key = "|".join(f"{p.store}:{p.position}" for p in members)
    return f"{prefix}-{hashlib.sha1(key.encode('utf-8')).hexdigest()[:8].upper()}"


def assemble_group(anchor: Product, links: Sequence[Tuple[Product, float]],
                   match_type: str, id_prefix: str) -> Optional[MatchedGroup]:
    """
    Build a group from an anchor and the products linked to it.

    Only priced members are kept; fewer than two means there is nothing to
    compare and None is returned. The score is the weakest kept link.
    """
    candidates = [(anchor, None)] + list(links)
    priced = [(p, score) for p, score in candidates if p.price is not None]
    if len(priced) < 2:
        return None

    members = sorted((p for p, _ in priced), key=lambda p: STORES.index(p.store))
    scores = [score for _, score in priced if score is not None]
    # An unpriced anchor is left out, so the name comes from a kept member
    named_by = anchor if anchor.price is not None else members[0]

    group = MatchedGroup(
        representative_name=named_by.name,
        identifier=synthetic_identifier(id_prefix, members),
        per_store={
            p.store: StoreOffer(price=p.price, name=p.name, identifier=p.identifier)
            for p in members
        },
        match_type=match_type,
        match_score=min(scores),
        members=tuple(members),
    )
    return finalize_group(group)


def finalize_group(group: MatchedGroup) -> MatchedGroup:
    """Recompute best/worst store and price, lowest price first."""
    ranked = sorted(
        group.per_store.items(),
        key=lambda item: (item[1].price, STORES.index(item[0]) if item[0] in STORES else len(STORES)),
    )
    group.best_store, best = ranked[0]
    group.worst_store, worst = ranked[-1]
    group.best_price = best.price
    group.worst_price = worst.price
    return group


def _sort_key(group: MatchedGroup):
    return (
        group.representative_name.casefold(),
        MATCH_TYPES.index(group.match_type),
        group.identifier or "",
    )


def build_stats(groups: List[MatchedGroup], unmatched: List[UnmatchedProduct],
                catalogs: Mapping[str, Sequence[Product]]) -> Dict[str, Any]:
    by_type = {match_type: 0 for match_type in MATCH_TYPES}
    wins = {store: 0 for store in STORES}
    text_scores = []

    for group in groups:
        by_type[group.match_type] += 1
        if group.best_store in wins:
            wins[group.best_store] += 1
        if group.match_type != MATCH_IDENTIFIER:
            text_scores.append(group.match_score)

    return {
        "totalMatches": len(groups),
        "matchesByType": by_type,
        "unmatchedCount": len(unmatched),
        "winsByStore": wins,
        "inputCounts": {store: len(catalogs.get(store, ())) for store in STORES},
        "averageMatchScore": round(sum(text_scores) / len(text_scores), 4) if text_scores else 0,
    }


def build_report(catalogs: Mapping[str, Sequence[Product]],
                 groups: List[MatchedGroup]) -> ComparisonResult:
    """Merge the stage outputs into the ranked, deterministic final result."""
    compared = sorted((finalize_group(g) for g in groups), key=_sort_key)

    claimed = {p.key for group in compared for p in group.members}
    unmatched = [
        UnmatchedProduct(identifier=p.identifier, name=p.name, price=p.price, store=p.store)
        for store in STORES
        for p in catalogs.get(store, ())
        if p.key not in claimed
    ]

    return ComparisonResult(
        compared_products=compared,
        unmatched_products=unmatched,
        stats=build_stats(compared, unmatched, catalogs),
    )
