"""Validation of actions coming from the model before they reach the UI

Nothing the model returns is trusted: every field is coerced into its declared type
and enum, and anything we cannot make sense of becomes None.
"""
from __future__ import annotations
from collections.abc import Mapping
from typing import Any, Optional, Union

from .models import ApplyFiltersAction, FilterCriteria, OpenProductAction
from .router import canonical_category
from .text import canonical_number

SORT_BY_VALUES = ("name", "price", "stock", "category")
SORT_ORDER_VALUES = ("asc", "desc")


def _enum(value: Any, allowed, default: str) -> str:
    if isinstance(value, str) and value in allowed:
        return value
    return default


def _truthy(value: Any) -> bool:
    try:
        return bool(value)
    except Exception:
        return False


def sanitize_filters(raw: Any) -> FilterCriteria:
    f = raw if isinstance(raw, Mapping) else {}
    search = f.get("search")
    category = f.get("category")
    return FilterCriteria(
        search=search.strip() if isinstance(search, str) else "",
        category=canonical_category(category) if isinstance(category, str) else "",
        min_price=canonical_number(f.get("minPrice")),
        max_price=canonical_number(f.get("maxPrice")),
        in_stock=_truthy(f.get("inStock")),
        sort_by=_enum(f.get("sortBy"), SORT_BY_VALUES, "name"),
        sort_order=_enum(f.get("sortOrder"), SORT_ORDER_VALUES, "asc"),
    )


def sanitize_action(raw: Any) -> Optional[Union[ApplyFiltersAction, OpenProductAction]]:
    """Coerce a loosely typed action into ApplyFiltersAction / OpenProductAction, or None

    Never raises, whatever shape the input has
    """
    if not isinstance(raw, Mapping):
        return None
    try:
        kind = raw.get("type")
        if kind == "open_product":
            pid = raw.get("id")
            if isinstance(pid, str) and pid.strip():
                return OpenProductAction(id=pid.strip())
            return None
        if kind == "apply_filters":
            open_filters = raw.get("openFilters")
            return ApplyFiltersAction(
                filters=sanitize_filters(raw.get("filters")),
                open_filters=True if open_filters is None else _truthy(open_filters),
            )
    except Exception:
        # broken Mapping implementations
        return None
    return None
