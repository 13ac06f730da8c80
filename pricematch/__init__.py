"""Cross-store grocery product matching and price comparison."""

from .engine import compare_catalogs, run_comparison
from .models import CatalogError, ComparisonResult, MatchedGroup, UnmatchedProduct
from .semantic import ChatCompletionMatcher, SemanticMatcher
from .text import SynonymDictionary

__all__ = [
    "CatalogError",
    "ChatCompletionMatcher",
    "ComparisonResult",
    "MatchedGroup",
    "SemanticMatcher",
    "SynonymDictionary",
    "UnmatchedProduct",
    "compare_catalogs",
    "run_comparison",
]
