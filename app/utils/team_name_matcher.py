from __future__ import annotations

import re
import unicodedata

from fuzzywuzzy import fuzz


_WHITESPACE_RE = re.compile(r"\s+")
_PUNCT_RE = re.compile(r"[^\w\s]+", re.UNICODE)

# Club-form tokens that providers add or drop ("AFC Bournemouth" vs "Bournemouth")
_CLUB_TOKENS = {"fc", "afc", "cf", "sc", "ac"}

_TEAM_TRANSLATION_TABLE = str.maketrans(
    {
        "&": " and ",
        "ß": "ss",
        "ø": "o",
        "æ": "ae",
        "đ": "d",
        "ł": "l",
    }
)


def _strip_accents(value: str) -> str:
    decomposed = unicodedata.normalize("NFKD", value)
    return "".join(ch for ch in decomposed if not unicodedata.combining(ch))


def normalize_team_name(value: str | None) -> str:
    """Normalize team names for deterministic matching."""
    if not value:
        return ""
    normalized = _strip_accents(value.casefold().translate(_TEAM_TRANSLATION_TABLE))
    normalized = _PUNCT_RE.sub(" ", normalized)
    normalized = _WHITESPACE_RE.sub(" ", normalized).strip()
    return normalized


def strip_club_tokens(value: str | None) -> str:
    """Normalized name without leading/trailing club-form tokens."""
    tokens = normalize_team_name(value).split()
    while len(tokens) > 1 and tokens[0] in _CLUB_TOKENS:
        tokens = tokens[1:]
    while len(tokens) > 1 and tokens[-1] in _CLUB_TOKENS:
        tokens = tokens[:-1]
    return " ".join(tokens)


def team_name_similarity(left: str | None, right: str | None) -> int:
    """Fuzzy similarity 0..100, insensitive to word order and club-form tokens."""
    a = strip_club_tokens(left)
    b = strip_club_tokens(right)
    if not a or not b:
        return 0
    if a == b:
        return 100
    return fuzz.token_sort_ratio(a, b)
