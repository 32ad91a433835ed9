"""Accent and case insensitive text helpers used by every search path"""
from __future__ import annotations
import math
import re
import unicodedata
from typing import List

STOPWORDS = frozenset([
    "de", "del", "la", "el", "los", "las", "un", "una", "unos", "unas",
    "para", "por", "que", "esta", "estoy", "busco", "buscar", "quiero",
    "necesito", "puedes", "ayudarme", "encontrar",
])

_NON_ALNUM = re.compile(r"[^a-z0-9\s]")
_SPACES = re.compile(r"\s+")


def strip_accents(text: str) -> str:
    decomposed = unicodedata.normalize("NFD", text)
    return "".join(ch for ch in decomposed if not unicodedata.combining(ch))


def normalize(text: str) -> str:
    """Lowercase, drop diacritics and punctuation, collapse whitespace

    normalize(normalize(x)) == normalize(x)
    """
    t = strip_accents((text or "").lower())
    t = _NON_ALNUM.sub(" ", t)
    return _SPACES.sub(" ", t).strip()


def singularize(token: str) -> str:
    # Naive Spanish plural handling, good enough for anillos -> anillo
    if len(token) > 3 and token.endswith("s"):
        return token[:-1]
    return token


def tokenize(text: str) -> List[str]:
    tokens = [singularize(t) for t in normalize(text).split(" ")]
    return [t for t in tokens if len(t) >= 2 and t not in STOPWORDS]


def canonical_number(value) -> str:
    """Render a numeric-looking value as a plain string, "" when it is not a finite number

    50 -> "50", "12,5" -> "12.5", "abc" -> "", True -> ""
    """
    if value is None or isinstance(value, bool):
        return ""
    if isinstance(value, (int, float)):
        try:
            n = float(value)
        except OverflowError:
            return ""
    elif isinstance(value, str):
        raw = value.strip().replace(",", ".")
        if not raw:
            return ""
        try:
            n = float(raw)
        except ValueError:
            return ""
    else:
        return ""
    if not math.isfinite(n):
        return ""
    if n.is_integer():
        return str(int(n))
    return repr(n)
