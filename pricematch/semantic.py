"""
Optional semantic matching through an external chat-completion service.

The engine only knows the SemanticMatcher interface; ChatCompletionMatcher is
the HTTP adapter. A failed batch contributes no matches and never aborts the
comparison, so the deterministic stages always produce a valid result.
"""

from __future__ import annotations

import json
import logging
import math
import time
from typing import Any, Callable, List, Optional, Protocol, Sequence, Set, Tuple

import requests

from .config import (
    AI_API_URL,
    AI_MODEL,
    AI_TIMEOUT,
    SEMANTIC_MIN_SCORE,
    STORES,
    MatchSettings,
)
from .models import MATCH_SEMANTIC, MatchedGroup, Pools, Product, StageResult
from .quantity import extract_quantity, quantities_match
from .report import assemble_group
from .text import SynonymDictionary

logger = logging.getLogger(__name__)

Proposal = Tuple[int, int, float]

SYSTEM_PROMPT = (
    "Você é um especialista em produtos de supermercado brasileiros. "
    "Sua tarefa é identificar quais produtos de duas listas são EXATAMENTE o mesmo "
    "produto físico (mesma marca, mesmo sabor/variação e mesmo tamanho de embalagem), "
    "mesmo quando os nomes são escritos de forma diferente em cada loja. "
    "Responda APENAS com um objeto JSON, sem texto adicional, no formato: "
    '{"matches": [{"idx1": <número na lista 1>, "idx2": <número na lista 2>, "score": <0.0 a 1.0>}]}. '
    "Inclua somente pares com score >= 0.85."
)

_DECODER = json.JSONDecoder()


class SemanticMatcher(Protocol):
    def propose_matches(self, names_a: Sequence[str], names_b: Sequence[str]) -> List[Proposal]:
        """Pairs (index in names_a, index in names_b, score). Never raises on service errors."""
        ...


# -------------------------------------------------------------------
# Response parsing
# -------------------------------------------------------------------

def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def parse_matches(content: str, size_a: int, size_b: int,
                  min_score: float = SEMANTIC_MIN_SCORE) -> List[Proposal]:
    """
    Extract {"matches": [{"idx1", "idx2", "score"}]} from a model reply.

    Indices on the wire are 1-based. Entries with a bad shape, out-of-range
    indices or a low score are dropped one by one; an unparsable reply yields [].
    """
    if not isinstance(content, str):
        return []

    start = content.find("{")
    if start < 0:
        return []

    # First complete object; trailing prose or braces after it are ignored
    try:
        data, _ = _DECODER.raw_decode(content, start)
    except json.JSONDecodeError as e:
        logger.warning("Semantic reply is not valid JSON: %s", e)
        return []

    matches = data.get("matches") if isinstance(data, dict) else None
    if not isinstance(matches, list):
        return []

    proposals = []
    for item in matches:
        if not isinstance(item, dict):
            continue
        idx1, idx2, score = item.get("idx1"), item.get("idx2"), item.get("score")
        if not (_is_int(idx1) and _is_int(idx2)):
            continue
        if isinstance(score, bool) or not isinstance(score, (int, float)):
            continue
        if not math.isfinite(score):
            continue
        if not (1 <= idx1 <= size_a and 1 <= idx2 <= size_b):
            continue
        if score < min_score or score > 1:
            continue
        proposals.append((idx1 - 1, idx2 - 1, float(score)))

    return proposals


# -------------------------------------------------------------------
# HTTP adapter
# -------------------------------------------------------------------

class ChatCompletionMatcher:
    """SemanticMatcher backed by an OpenAI-compatible chat-completions endpoint."""

    def __init__(self, api_key: str, url: str = AI_API_URL, model: str = AI_MODEL,
                 timeout: float = AI_TIMEOUT, session: Optional[requests.Session] = None,
                 synonyms: Optional[SynonymDictionary] = None,
                 min_score: float = SEMANTIC_MIN_SCORE):
        self.api_key = api_key
        self.url = url
        self.model = model
        self.timeout = timeout
        self.session = session or requests.Session()
        self.synonyms = synonyms
        self.min_score = min_score

    def build_prompt(self, names_a: Sequence[str], names_b: Sequence[str]) -> str:
        lines = ["Lista 1:"]
        lines += [f"{i}. {name}" for i, name in enumerate(names_a, start=1)]
        lines += ["", "Lista 2:"]
        lines += [f"{i}. {name}" for i, name in enumerate(names_b, start=1)]

        if self.synonyms:
            hints = "; ".join(" = ".join(group) for group in self.synonyms.pairs())
            lines += ["", f"Sinônimos conhecidos (mesmo produto): {hints}"]

        lines += ["", "Quais itens da Lista 1 são o mesmo produto que itens da Lista 2?"]
        return "\n".join(lines)

    def build_payload(self, names_a: Sequence[str], names_b: Sequence[str]) -> dict:
        return {
            "model": self.model,
            "messages": [
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": self.build_prompt(names_a, names_b)},
            ],
        }

    def propose_matches(self, names_a: Sequence[str], names_b: Sequence[str]) -> List[Proposal]:
        if not names_a or not names_b:
            return []

        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

        try:
            response = self.session.post(
                self.url,
                headers=headers,
                json=self.build_payload(names_a, names_b),
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            logger.warning("Semantic request failed: %s", e)
            return []

        if not response.ok:
            logger.warning("Semantic API error: %s", response.status_code)
            return []

        try:
            data = response.json()
            content = data["choices"][0]["message"]["content"]
        except (ValueError, KeyError, IndexError, TypeError) as e:
            logger.warning("Unexpected semantic response shape: %s", e)
            return []

        return parse_matches(content, len(names_a), len(names_b), self.min_score)


# -------------------------------------------------------------------
# Stage
# -------------------------------------------------------------------

def _chunks(items: List[Product], size: int):
    for start in range(0, len(items), size):
        yield items[start:start + size]


def _collect_proposals(pools: Pools, matcher: SemanticMatcher, settings: MatchSettings,
                       sleep: Callable[[float], None]) -> List[Tuple[Product, Product, float]]:
    proposals = []
    first_batch = True

    for store_a, store_b in settings.semantic_store_pairs:
        side_a = [p for p in pools.get(store_a, []) if p.name and p.price is not None]
        side_b = [p for p in pools.get(store_b, []) if p.name and p.price is not None]
        side_a = side_a[:settings.semantic_max_items]
        side_b = side_b[:settings.semantic_max_items]
        if not side_a or not side_b:
            continue

        logger.info("Semantic pass %s<->%s: %d x %d items", store_a, store_b, len(side_a), len(side_b))

        for chunk_a in _chunks(side_a, settings.semantic_batch_a):
            for chunk_b in _chunks(side_b, settings.semantic_batch_b):
                if not first_batch:
                    sleep(settings.semantic_batch_delay)
                first_batch = False

                batch = matcher.propose_matches([p.name for p in chunk_a], [p.name for p in chunk_b])
                for idx_a, idx_b, score in batch:
                    if 0 <= idx_a < len(chunk_a) and 0 <= idx_b < len(chunk_b):
                        proposals.append((chunk_a[idx_a], chunk_b[idx_b], score))

    return proposals


def match_semantically(pools: Pools, matcher: SemanticMatcher,
                       settings: Optional[MatchSettings] = None,
                       sleep: Callable[[float], None] = time.sleep) -> StageResult:
    settings = settings or MatchSettings()
    proposals = _collect_proposals(pools, matcher, settings, sleep)

    groups: List[MatchedGroup] = []
    claimed: Set[Tuple[str, int]] = set()

    for product_a, product_b, score in proposals:
        if score < settings.semantic_min_score:
            continue
        if product_a.key in claimed or product_b.key in claimed:
            continue
        if not quantities_match(extract_quantity(product_a.name), extract_quantity(product_b.name),
                                settings.quantity_tolerance):
            continue

        group = assemble_group(product_a, [(product_b, score)], MATCH_SEMANTIC, "SEM")
        if group is None:
            continue

        claimed.update(p.key for p in group.members)
        groups.append(group)

    remaining = {
        store: [p for p in pools.get(store, []) if p.key not in claimed]
        for store in STORES
    }

    logger.info("Semantic stage: %d proposals, %d groups", len(proposals), len(groups))
    return StageResult(groups=groups, remaining=remaining)
