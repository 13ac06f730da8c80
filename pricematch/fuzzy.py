"""
Description (fuzzy) matching for products without a shared identifier.

Candidates come from the inverted token index, pass the quantity gate, and
are scored with a token-set Dice coefficient. Assignment is greedy: the first
group to claim a product keeps it.

Pass order:
1. marcon <-> alfa, anchored on marcon (plus an italo match for the anchor)
2. italo <-> marcon, anchored on italo (plus an alfa match for the anchor)
3. italo <-> alfa, anchored on italo
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Set, Tuple

from .config import QUANTITY_TOLERANCE, STORES, MatchSettings
from .models import MATCH_DESCRIPTION, MatchedGroup, Pools, Product, StageResult
from .quantity import Quantity, extract_quantity, quantities_match
from .report import assemble_group
from .text import SynonymDictionary, build_token_index, find_candidates, match_tokens

logger = logging.getLogger(__name__)

ITALO, MARCON, ALFA = STORES

# (anchor store, partner store, opportunistic third store)
MATCH_PASSES = (
    (MARCON, ALFA, ITALO),
    (ITALO, MARCON, ALFA),
    (ITALO, ALFA, None),
)


@dataclass
class Entry:
    product: Product
    tokens: Set[str]
    quantity: Optional[Quantity]


class StorePool:
    """Unmatched products of one store plus their token index."""

    def __init__(self, products: Sequence[Product], synonyms: Optional[SynonymDictionary] = None):
        self.entries = [
            Entry(product=p, tokens=match_tokens(p.name, synonyms), quantity=extract_quantity(p.name))
            for p in products
        ]
        self.index = build_token_index([e.tokens for e in self.entries])
        self.claimed: Set[int] = set()

    def remaining(self) -> List[Product]:
        return [e.product for i, e in enumerate(self.entries) if i not in self.claimed]


def calculate_similarity(tokens_a: Set[str], tokens_b: Set[str]) -> float:
    """Dice coefficient over token sets: 2|A&B| / (|A| + |B|)."""
    if not tokens_a or not tokens_b:
        return 0.0
    common = len(tokens_a & tokens_b)
    return 2.0 * common / (len(tokens_a) + len(tokens_b))


def find_best_match(entry: Entry, candidates: List[int], targets: List[Entry],
                    threshold: float, exclude: Set[int] = frozenset(),
                    tolerance: float = QUANTITY_TOLERANCE) -> Optional[Tuple[int, float]]:
    """
    Best-scoring candidate for `entry` among `targets[candidates]`.
    Returns: (target position, score) or None below the threshold.
    """
    best: Optional[Tuple[int, float]] = None

    for position in candidates:
        if position in exclude:
            continue

        target = targets[position]
        # Quantity gate runs before any scoring
        if not quantities_match(entry.quantity, target.quantity, tolerance):
            continue

        score = calculate_similarity(entry.tokens, target.tokens)
        if best is None or score > best[1]:
            best = (position, score)

    if best is None or best[1] < threshold:
        return None
    return best


def _search(entry: Entry, pool: StorePool, settings: MatchSettings) -> Optional[Tuple[int, float]]:
    candidates = find_candidates(
        entry.tokens, pool.index,
        max_candidates=settings.max_candidates,
        min_shared=settings.min_shared_tokens,
    )
    return find_best_match(
        entry, candidates, pool.entries, settings.fuzzy_threshold,
        exclude=pool.claimed, tolerance=settings.quantity_tolerance,
    )


def _run_pass(pools: Dict[str, StorePool], anchor_store: str, partner_store: str,
              extra_store: Optional[str], settings: MatchSettings) -> List[MatchedGroup]:
    groups = []
    anchor_pool = pools[anchor_store]

    for position, entry in enumerate(anchor_pool.entries):
        if position in anchor_pool.claimed or not entry.tokens:
            continue

        partner = _search(entry, pools[partner_store], settings)
        if partner is None:
            continue

        links = {partner_store: partner}
        if extra_store is not None:
            extra = _search(entry, pools[extra_store], settings)
            # The third member must also fit the partner's size, not only the anchor's
            if extra is not None and quantities_match(
                pools[partner_store].entries[partner[0]].quantity,
                pools[extra_store].entries[extra[0]].quantity,
                settings.quantity_tolerance,
            ):
                links[extra_store] = extra

        group = assemble_group(
            entry.product,
            [(pools[store].entries[pos].product, score) for store, (pos, score) in links.items()],
            MATCH_DESCRIPTION,
            "DESC",
        )
        if group is None:
            # Text matched but there are not two prices to compare
            continue

        for member in group.members:
            pool = pools[member.store]
            if member.store == anchor_store:
                pool.claimed.add(position)
            else:
                pool.claimed.add(links[member.store][0])
        groups.append(group)

    return groups


def match_by_description(pools: Pools, synonyms: Optional[SynonymDictionary] = None,
                         settings: Optional[MatchSettings] = None) -> StageResult:
    settings = settings or MatchSettings()
    store_pools = {store: StorePool(pools.get(store, []), synonyms) for store in STORES}

    groups: List[MatchedGroup] = []
    for anchor_store, partner_store, extra_store in MATCH_PASSES:
        found = _run_pass(store_pools, anchor_store, partner_store, extra_store, settings)
        logger.info("Description pass %s<->%s: %d groups", anchor_store, partner_store, len(found))
        groups.extend(found)

    remaining = {store: store_pools[store].remaining() for store in STORES}
    return StageResult(groups=groups, remaining=remaining)
