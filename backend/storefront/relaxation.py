"""Never leave the shopper looking at an empty catalog

When the filters the assistant settled on match nothing, loosen them in two steps and
answer with concrete in-stock suggestions instead:

1. keep only the product type words of the utterance, in stock, no prices or category
2. drop everything except in stock and recommend the best stocked items
"""
from __future__ import annotations
import re
from typing import List, Optional, Union

from .catalog import CatalogStore, query_from_filters, search_products
from .logger import get_logger
from .models import ApplyFiltersAction, AssistantReply, FilterCriteria, OpenProductAction, ProductQuery, ProductSummary
from .router import keywords_from_message, product_type_keywords
from .text import canonical_number

logger = get_logger("relaxation")

RELAXED_LIMIT = 3


def compact_product_line(p: ProductSummary) -> str:
    # "Anillo Sol • Anillo $120 (4 en stock)", empty bits left out
    cat = f"• {p.category}" if p.category else ""
    price = canonical_number(p.price)
    price = f"${price}" if price else ""
    stock = f"({p.stock} en stock)"
    return re.sub(r"\s+", " ", f"{p.name} {cat} {price} {stock}").strip()


def _lines(items: List[ProductSummary]) -> str:
    return " | ".join(compact_product_line(p) for p in items)


def relaxed_search_text(utterance: str, fallback: str) -> str:
    kinds = product_type_keywords(utterance)
    if kinds:
        return " ".join(kinds)
    return " ".join(keywords_from_message(utterance)) or fallback


def relax_if_empty(
    store: CatalogStore,
    utterance: str,
    action: Optional[Union[ApplyFiltersAction, OpenProductAction]],
    response_text: str,
) -> AssistantReply:
    """Check the filter action against the live catalog and relax it when it finds nothing"""
    if not isinstance(action, ApplyFiltersAction):
        return AssistantReply(response=response_text, action=action)

    found = search_products(store, query_from_filters(action.filters, limit=RELAXED_LIMIT))
    if found:
        return AssistantReply(response=response_text, action=action)

    relaxed_text = relaxed_search_text(utterance, action.filters.search)
    found = search_products(store, ProductQuery(
        text=relaxed_text,
        in_stock=True,
        sort_by="stock",
        sort_order="desc",
        limit=RELAXED_LIMIT,
    ))
    if found:
        logger.info("No exact matches, relaxed search to %r", relaxed_text)
        relaxed = FilterCriteria(search=relaxed_text, in_stock=True, sort_by="stock", sort_order="desc")
        return AssistantReply(
            response=f"No encontré exactos. Opciones similares en stock: {_lines(found)}.",
            action=ApplyFiltersAction(filters=relaxed, open_filters=True),
        )

    found = search_products(store, ProductQuery(in_stock=True, sort_by="stock", sort_order="desc", limit=RELAXED_LIMIT))
    logger.info("Relaxed search empty too, recommending %d in-stock items", len(found))
    if found:
        text = f"No encontré coincidencias. Te recomiendo: {_lines(found)}."
    else:
        text = "No encontré coincidencias y no hay productos disponibles en este momento."
    cleared = FilterCriteria(in_stock=True, sort_by="stock", sort_order="desc")
    return AssistantReply(response=text, action=ApplyFiltersAction(filters=cleared, open_filters=True))
