"""
Price comparison engine - Shared Configuration
File: pricematch/config.py
"""
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Tuple

# -------------- PATHS -------------- #

PACKAGE_DIR = Path(__file__).resolve().parent
DATA_DIR = PACKAGE_DIR / "data"

SYNONYMS_FILE = Path(os.getenv("PRICEMATCH_SYNONYMS_FILE", str(DATA_DIR / "synonyms.json")))

# -------------- STORES -------------- #

# Order matters: store A, store B, store C
STORES = ("italo", "marcon", "alfa")

STORE_PAYLOAD_FIELDS = {
    "italo": "italoProducts",
    "marcon": "marconProducts",
    "alfa": "alfaProducts",
}

# -------------- EXTRACTION -------------- #

MIN_IDENTIFIER_LENGTH = 8

# -------------- TEXT MATCHING -------------- #

FUZZY_MATCH_THRESHOLD = 0.55  # Dice coefficient (0.0-1.0)
MAX_CANDIDATES = 50           # Per query product, from the token index
MIN_SHARED_TOKENS = 2
QUANTITY_TOLERANCE = 0.15     # Relative to the larger quantity

# -------------- SEMANTIC MATCHING -------------- #

AI_API_URL = os.getenv("PRICEMATCH_AI_API_URL", "https://ai.gateway.lovable.dev/v1/chat/completions")
AI_MODEL = os.getenv("PRICEMATCH_AI_MODEL", "google/gemini-2.5-flash")
AI_TIMEOUT = float(os.getenv("PRICEMATCH_AI_TIMEOUT", "30"))

SEMANTIC_MIN_SCORE = 0.85
SEMANTIC_BATCH_A = 15
SEMANTIC_BATCH_B = 30
SEMANTIC_MAX_ITEMS = 100      # Per side, per store pair
SEMANTIC_BATCH_DELAY = 0.2    # Seconds between batches
SEMANTIC_STORE_PAIRS = (("italo", "marcon"), ("italo", "alfa"))


def get_ai_api_key():
    """Credential for the semantic stage, or None when not configured."""
    return os.getenv("PRICEMATCH_AI_API_KEY") or os.getenv("LOVABLE_API_KEY") or None


@dataclass(frozen=True)
class MatchSettings:
    """Tunables for a single comparison run."""
    fuzzy_threshold: float = FUZZY_MATCH_THRESHOLD
    max_candidates: int = MAX_CANDIDATES
    min_shared_tokens: int = MIN_SHARED_TOKENS
    quantity_tolerance: float = QUANTITY_TOLERANCE
    semantic_min_score: float = SEMANTIC_MIN_SCORE
    semantic_batch_a: int = SEMANTIC_BATCH_A
    semantic_batch_b: int = SEMANTIC_BATCH_B
    semantic_max_items: int = SEMANTIC_MAX_ITEMS
    semantic_batch_delay: float = SEMANTIC_BATCH_DELAY
    semantic_store_pairs: Tuple[Tuple[str, str], ...] = field(default=SEMANTIC_STORE_PAIRS)
