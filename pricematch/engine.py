"""
Comparison orchestrator.

raw catalogs -> identifier stage -> description stage -> semantic stage
(optional) -> report. Each stage receives the pools left by the previous one
and returns its groups plus the pools it did not claim.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Mapping, Optional, Sequence

from .config import STORE_PAYLOAD_FIELDS, STORES, MatchSettings, get_ai_api_key
from .extraction import to_product
from .fuzzy import match_by_description
from .identifiers import match_by_identifier
from .models import CatalogError, ComparisonResult, Pools
from .report import build_report
from .semantic import ChatCompletionMatcher, SemanticMatcher, match_semantically
from .text import SynonymDictionary, default_synonyms

logger = logging.getLogger(__name__)


def load_catalog(store: str, records: Any) -> list:
    """Validate one store's records and wrap them as Products."""
    if records is None:
        raise CatalogError(f"Missing product list for store '{store}'")
    if not isinstance(records, (list, tuple)):
        raise CatalogError(
            f"Product list for store '{store}' must be an array, got {type(records).__name__}"
        )

    products = []
    for position, record in enumerate(records):
        if not isinstance(record, Mapping):
            raise CatalogError(
                f"Product #{position} of store '{store}' must be an object, got {type(record).__name__}"
            )
        products.append(to_product(store, position, record))
    return products


def _resolve_semantic_matcher(use_semantic_ai: bool, matcher: Optional[SemanticMatcher],
                              synonyms: SynonymDictionary) -> Optional[SemanticMatcher]:
    if not use_semantic_ai:
        return None
    if matcher is not None:
        return matcher

    api_key = get_ai_api_key()
    if not api_key:
        logger.warning("Semantic matching requested but no API key is configured; skipping")
        return None
    return ChatCompletionMatcher(api_key, synonyms=synonyms)


def compare_catalogs(italo: Sequence[Mapping[str, Any]],
                     marcon: Sequence[Mapping[str, Any]],
                     alfa: Sequence[Mapping[str, Any]],
                     use_semantic_ai: bool = False,
                     semantic_matcher: Optional[SemanticMatcher] = None,
                     synonyms: Optional[SynonymDictionary] = None,
                     settings: Optional[MatchSettings] = None) -> ComparisonResult:
    """Reconcile three store catalogs into matched groups and leftovers."""
    settings = settings or MatchSettings()
    if synonyms is None:
        synonyms = default_synonyms()

    raw = dict(zip(STORES, (italo, marcon, alfa)))
    catalogs: Pools = {store: load_catalog(store, raw[store]) for store in STORES}

    logger.info(
        "Starting comparison: %s, semantic AI %s",
        ", ".join(f"{store}={len(items)}" for store, items in catalogs.items()),
        "enabled" if use_semantic_ai else "disabled",
    )

    by_identifier = match_by_identifier(catalogs)
    by_description = match_by_description(by_identifier.remaining, synonyms, settings)
    groups = by_identifier.groups + by_description.groups

    matcher = _resolve_semantic_matcher(use_semantic_ai, semantic_matcher, synonyms)
    if matcher is not None:
        by_meaning = match_semantically(by_description.remaining, matcher, settings)
        groups += by_meaning.groups

    result = build_report(catalogs, groups)
    logger.info("Comparison complete: %s", result.stats)
    return result


def run_comparison(payload: Any, semantic_matcher: Optional[SemanticMatcher] = None,
                   synonyms: Optional[SynonymDictionary] = None,
                   settings: Optional[MatchSettings] = None) -> Dict[str, Any]:
    """
    Caller-facing wrapper: {"success": True, ...result} or
    {"success": False, "error": message}, never a partial result.
    """
    try:
        if not isinstance(payload, Mapping):
            raise CatalogError("Request body must be a JSON object")

        result = compare_catalogs(
            *(payload.get(STORE_PAYLOAD_FIELDS[store]) for store in STORES),
            use_semantic_ai=payload.get("useSemanticAI") is True,
            semantic_matcher=semantic_matcher,
            synonyms=synonyms,
            settings=settings,
        )
    except CatalogError as e:
        logger.warning("Rejected comparison input: %s", e)
        return {"success": False, "error": str(e)}
    except Exception as e:
        logger.exception("Comparison failed")
        return {"success": False, "error": str(e) or e.__class__.__name__}

    response = {"success": True}
    response.update(result.to_dict())
    return response
