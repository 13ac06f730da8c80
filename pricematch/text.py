"""
Text normalization, synonym expansion and the inverted token index.

The token index keeps the fuzzy stage away from all-pairs comparison: a
product is only scored against products sharing at least two tokens with it.
"""

from __future__ import annotations

import json
import logging
import re
import unicodedata
from collections import defaultdict
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Set, Union

from .config import MAX_CANDIDATES, MIN_SHARED_TOKENS, SYNONYMS_FILE

logger = logging.getLogger(__name__)

# -------------------------------------------------------------------
# Normalization
# -------------------------------------------------------------------

UNIT_WORDS = {
    "g", "gr", "grs", "grama", "gramas", "kg", "kgs", "quilo", "quilos",
    "ml", "l", "lt", "lts", "litro", "litros",
    "un", "und", "unid", "unidade", "unidades",
    "pct", "pacote", "cx", "caixa",
}

NOISE_WORDS = {
    "promocao", "promo", "oferta", "leve", "pague", "gratis", "novo",
    "exclusivo", "especial", "super", "mega", "ultra", "premium", "gold",
    "plus", "extra",
}

_SIZE_EXPRESSION = re.compile(
    r"\b\d+(?:[.,]\d+)?\s*(?:%s)\b" % "|".join(sorted(UNIT_WORDS, key=len, reverse=True))
)


def strip_accents_lower(s: str) -> str:
    """Remove accents and lowercase."""
    s = unicodedata.normalize("NFKD", s)
    s = "".join(ch for ch in s if not unicodedata.combining(ch))
    return s.lower()


def normalize(name: str) -> str:
    """Lowercase, unaccented name without sizes, units, symbols or marketing noise."""
    if not name:
        return ""

    s = strip_accents_lower(name)
    s = _SIZE_EXPRESSION.sub(" ", s)
    s = re.sub(r"[^a-z0-9]+", " ", s)

    words = [w for w in s.split() if w not in UNIT_WORDS and w not in NOISE_WORDS]
    return " ".join(words)


def normalize_extended(name: str) -> str:
    """normalize() without digits; sizes are checked by the quantity gate instead."""
    s = re.sub(r"\d+", " ", normalize(name))
    return re.sub(r"\s+", " ", s).strip()


def get_tokens(text: str) -> Set[str]:
    return {token for token in text.split() if len(token) > 2}


# -------------------------------------------------------------------
# Synonyms
# -------------------------------------------------------------------

class SynonymDictionary:
    """
    Symmetric word equivalences ("chiclete" <-> "goma").

    Loaded from a JSON file shaped like {"groups": [["a", "b"], ...]} so it
    can grow without touching the matching code.
    """

    def __init__(self, groups: Iterable[Iterable[str]] = ()):
        self._equivalents: Dict[str, Set[str]] = defaultdict(set)
        self.groups: List[List[str]] = []
        for group in groups:
            self.add_group(group)

    def add_group(self, group: Iterable[str]) -> None:
        words = [normalize(w) for w in group]
        words = [w for w in words if w]
        if len(words) < 2:
            return
        self.groups.append(words)
        for word in words:
            self._equivalents[word].update(w for w in words if w != word)

    def equivalents(self, token: str) -> Set[str]:
        return set(self._equivalents.get(token, ()))

    def pairs(self) -> List[List[str]]:
        return [list(g) for g in self.groups]

    def __len__(self) -> int:
        return len(self.groups)

    @classmethod
    def from_file(cls, path: Union[str, Path]) -> "SynonymDictionary":
        with Path(path).open("r", encoding="utf-8") as f:
            data = json.load(f)
        groups = data.get("groups", []) if isinstance(data, dict) else data
        dictionary = cls(groups)
        logger.debug("Loaded %d synonym groups from %s", len(dictionary), path)
        return dictionary


_default_synonyms: Optional[SynonymDictionary] = None


def default_synonyms() -> SynonymDictionary:
    global _default_synonyms
    if _default_synonyms is None:
        _default_synonyms = SynonymDictionary.from_file(SYNONYMS_FILE)
    return _default_synonyms


def get_tokens_with_synonyms(text: str, synonyms: Optional[SynonymDictionary]) -> Set[str]:
    tokens = get_tokens(text)
    if not synonyms:
        return tokens

    expanded = set(tokens)
    for token in tokens:
        expanded.update(synonyms.equivalents(token))
    return expanded


def match_tokens(name: str, synonyms: Optional[SynonymDictionary] = None) -> Set[str]:
    """Token set used by the fuzzy stage for both indexing and querying."""
    return get_tokens_with_synonyms(normalize_extended(name), synonyms)


# -------------------------------------------------------------------
# Token index
# -------------------------------------------------------------------

def build_token_index(token_sets: List[Set[str]]) -> Dict[str, Set[int]]:
    """Inverted index: token -> positions of the token sets containing it."""
    index: Dict[str, Set[int]] = defaultdict(set)
    for position, tokens in enumerate(token_sets):
        for token in tokens:
            index[token].add(position)
    return index


def find_candidates(tokens: Set[str], index: Dict[str, Set[int]],
                    max_candidates: int = MAX_CANDIDATES,
                    min_shared: int = MIN_SHARED_TOKENS) -> List[int]:
    """Positions sharing at least `min_shared` tokens, most shared first."""
    shared: Dict[int, int] = defaultdict(int)
    for token in tokens:
        for position in index.get(token, ()):
            shared[position] += 1

    ranked = sorted(
        (position for position, count in shared.items() if count >= min_shared),
        key=lambda position: (-shared[position], position),
    )
    return ranked[:max_candidates]
