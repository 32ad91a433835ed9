"""Rule based parsing of shopping requests

Turns a free text utterance such as "busca anillos de plata hasta 200" into FilterCriteria
without calling any external service. The LLM path in resolver.py is the primary route,
these rules are the deterministic fallback when the model gives us nothing usable.

All the vocabulary lives in tables at the top of the module so adding a synonym never
means touching the parsing code.
"""

from __future__ import annotations
import re
from functools import lru_cache
from typing import List, Optional, Sequence, Tuple
from .models import FilterCriteria, CATEGORY_NAMES
from .text import canonical_number, normalize, strip_accents

# Single keyword table for product types, materials and stones
# (key, kind, surface forms, canonical category or None)
KEYWORDS: List[Tuple[str, str, Tuple[str, ...], Optional[str]]] = [
    ("anillo", "type", ("anillo", "anillos", "sortija", "sortijas"), "Anillo"),
    ("collar", "type", ("collar", "collares", "gargantilla", "gargantillas"), "Collar"),
    ("pulsera", "type", ("pulsera", "pulseras", "brazalete", "brazaletes"), "Pulsera"),
    ("arete", "type", ("arete", "aretes", "pendiente", "pendientes", "aros", "piercing"), "Arete"),
    ("cadena", "type", ("cadena", "cadenas"), None),
    ("oro", "material", ("oro", "dorado", "dorada", "dorados", "doradas"), None),
    ("plata", "material", ("plata", "plateado", "plateada", "plateados", "plateadas"), None),
    ("acero", "material", ("acero", "acero inoxidable", "acero quirurgico"), None),
    ("rodio", "material", ("rodio", "rodinado", "rodinada"), None),
    ("perla", "stone", ("perla", "perlas"), None),
    ("diamante", "stone", ("diamante", "diamantes"), None),
    ("esmeralda", "stone", ("esmeralda", "esmeraldas"), None),
    ("zafiro", "stone", ("zafiro", "zafiros"), None),
    ("rubi", "stone", ("rubi", "rubies"), None),
]

SEARCH_INTENT_WORDS = (
    "busca", "buscar", "busco", "muestrame", "mostrar", "quiero", "necesito",
    "tienen", "tienes", "hay", "existen", "dame", "ver",
)

STOCK_PHRASES = (
    "en stock", "disponible", "disponibles", "hay", "existencia", "existencias",
    "tienen", "tienes", "disponibilidad",
)

# (phrases, sortBy, sortOrder), first rule that matches wins
SORT_RULES: List[Tuple[Tuple[str, ...], str, str]] = [
    (("mas caro", "mas caros", "mas cara", "mas caras", "mayor precio", "precio alto"), "price", "desc"),
    (("mas barato", "mas baratos", "mas barata", "mas baratas", "menor precio", "precio bajo"), "price", "asc"),
    (("nuevo", "nuevos", "nueva", "nuevas", "reciente", "recientes"), "stock", "desc"),
]

_NUM = r"\$?\s*(\d+(?:[.,]\d+)?)"

# Patterns that set both bounds, tried before the single bound ones
PRICE_RANGE_PATTERNS = [
    re.compile(rf"\bentre\s+{_NUM}\s+y\s+{_NUM}"),
    re.compile(rf"\bde\s+{_NUM}\s+a\s+{_NUM}"),
    re.compile(rf"\bdesde\s+{_NUM}\s+hasta\s+{_NUM}"),
]
PRICE_MAX_PATTERN = re.compile(rf"\b(?:hasta|menos\s+de|maximo|precio\s+maximo)\s+(?:de\s+)?{_NUM}")
PRICE_MIN_PATTERN = re.compile(rf"\b(?:desde|minimo|precio\s+minimo|mas\s+de|mayor\s+que)\s+(?:de\s+)?{_NUM}")

PRICE_WORDS = (
    "entre", "hasta", "menos", "mas de", "maximo", "minimo", "desde", "mayor que",
    "precio", "precios", "pesos", "dolares", "rango",
)

SORT_WORDS = (
    "mas caro", "mas caros", "mas cara", "mas caras", "mas barato", "mas baratos", "mas barata",
    "mas baratas", "mayor precio", "menor precio", "precio alto", "precio bajo", "nuevo", "nuevos",
    "nueva", "nuevas", "reciente", "recientes", "nombre", "ordenado", "ordenados", "ordenar", "por",
    "z a", "za", "a z", "az",
)

FILLER_WORDS = (
    "busca", "buscar", "busco", "muestrame", "mostrar", "muestra", "quiero", "necesito", "tienen",
    "tienes", "hay", "existen", "dame", "ver", "me", "en", "y", "a", "al", "o", "u", "con", "es",
    "son", "stock", "algo", "algun", "alguno", "algunos", "alguna", "algunas", "hola", "favor",
    "porfa", "que", "cual", "cuales", "mas", "muy", "de", "del", "la", "el", "los", "las", "un",
    "una", "unos", "unas", "para", "esta", "estoy", "puedes", "ayudarme", "encontrar",
)


@lru_cache(maxsize=64)
def _phrase_regex(phrases: Tuple[str, ...]) -> re.Pattern:
    # Longest phrases first so "collares" wins over "collar"
    ordered = sorted(set(phrases), key=len, reverse=True)
    body = "|".join(r"\s+".join(re.escape(w) for w in p.split()) for p in ordered)
    return re.compile(rf"\b(?:{body})\b")


def _contains_any(text: str, phrases: Sequence[str]) -> bool:
    return bool(_phrase_regex(tuple(phrases)).search(text))


def _strip(text: str, phrases: Sequence[str]) -> str:
    return _phrase_regex(tuple(phrases)).sub(" ", text)


def match_keywords(text: str, kinds: Sequence[str] = ("type", "material", "stone")) -> List[str]:
    """Keyword keys found in the utterance, in table order"""
    t = normalize(text)
    return [key for key, kind, forms, _ in KEYWORDS if kind in kinds and _contains_any(t, forms)]


def keywords_from_message(text: str) -> List[str]:
    return match_keywords(text)


def product_type_keywords(text: str) -> List[str]:
    return match_keywords(text, kinds=("type",))


def detect_category(text: str) -> str:
    """Canonical category for the first matching surface form, "" when none matches"""
    t = normalize(text)
    for _, kind, forms, category in KEYWORDS:
        if category and _contains_any(t, forms):
            return category
    return ""


def canonical_category(value: str) -> str:
    # Map any spelling the model or the user might use onto one of the four names
    t = normalize(value)
    if not t:
        return ""
    for name in CATEGORY_NAMES:
        if normalize(name) == t:
            return name
    for _, kind, forms, category in KEYWORDS:
        if category and t in forms:
            return category
    return ""


def _detect_material(text: str) -> str:
    found = match_keywords(text, kinds=("material",))
    return found[0] if found else ""


def _parse_price(text: str) -> Tuple[str, str]:
    """Parse a price band from free text

    Supports "entre 50 y 150", "de 50 a 150", "hasta 200", "menos de $100", "desde 30"
    """
    t = strip_accents((text or "").lower())
    for pattern in PRICE_RANGE_PATTERNS:
        m = pattern.search(t)
        if m:
            return canonical_number(m.group(1)), canonical_number(m.group(2))
    min_price = ""
    max_price = ""
    m = PRICE_MAX_PATTERN.search(t)
    if m:
        max_price = canonical_number(m.group(1))
    m = PRICE_MIN_PATTERN.search(t)
    if m:
        min_price = canonical_number(m.group(1))
    return min_price, max_price


def _parse_sort(text: str) -> Tuple[str, str]:
    t = normalize(text)
    for phrases, sort_by, sort_order in SORT_RULES:
        if _contains_any(t, phrases):
            return sort_by, sort_order
    if _contains_any(t, ("nombre",)):
        descending = "z-a" in (text or "").lower() or _contains_any(t, ("z a", "za"))
        return "name", "desc" if descending else "asc"
    return "name", "asc"


def _search_text(text: str, category: str, material: str) -> str:
    t = normalize(text)
    t = re.sub(r"\b\d+\b", " ", t)
    t = _strip(t, SORT_WORDS)
    t = _strip(t, PRICE_WORDS)
    if category:
        forms = [f for _, _, fs, c in KEYWORDS if c == category for f in fs]
        t = _strip(t, forms + [normalize(category)])
    t = _strip(t, STOCK_PHRASES)
    t = _strip(t, FILLER_WORDS)
    search = " ".join(t.split())
    if not search:
        search = category or material
    return search


def infer_filter_action(text: str) -> Optional[FilterCriteria]:
    """Return FilterCriteria using only rules, or None when the text is not a catalog query

    Small talk ("hola, buen día") must stay None so callers never invent a filter
    """
    t = normalize(text)
    if not t:
        return None
    has_intent = _contains_any(t, SEARCH_INTENT_WORDS)
    has_term = bool(match_keywords(t))
    if not has_intent and not has_term:
        return None

    category = detect_category(t)
    material = _detect_material(t)
    min_price, max_price = _parse_price(text)
    sort_by, sort_order = _parse_sort(text)
    return FilterCriteria(
        search=_search_text(text, category, material),
        category=category,
        min_price=min_price,
        max_price=max_price,
        in_stock=_contains_any(t, STOCK_PHRASES),
        sort_by=sort_by,
        sort_order=sort_order,
    )
