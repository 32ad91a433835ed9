"""Catalog management behind the admin panel: categories and products"""
from __future__ import annotations
from typing import Any, Dict, List

import pandas as pd

from .catalog import CatalogStore, list_categories
from .errors import InvalidRequestError
from .logger import get_logger
from .models import AdminProduct, Category, ProductInput

logger = get_logger("admin")


def _text(value: Any) -> str:
    if value is None or (isinstance(value, float) and pd.isna(value)):
        return ""
    return str(value)


def _to_admin(row: Dict[str, Any]) -> AdminProduct:
    return AdminProduct(
        id=_text(row.get("id")),
        name=_text(row.get("name")),
        description=_text(row.get("description")),
        price=float(row.get("price") or 0.0),
        stock=int(float(row.get("stock") or 0)),
        category=_text(row.get("category_name")),
        image_url=_text(row.get("image_url")),
        category_id=_text(row.get("category_id")) or None,
        created_at=_text(row.get("created_at")) or None,
    )


def list_admin_categories(store: CatalogStore) -> List[Category]:
    return list_categories(store)


def create_category(store: CatalogStore, name: str) -> Category:
    name = (name or "").strip()
    if not name:
        raise InvalidRequestError("name is required")
    row = store.insert_category(name)
    logger.info("Created category %s (%s)", name, row["id"])
    return Category(id=str(row["id"]), name=str(row["name"]))


def delete_category(store: CatalogStore, cid: str) -> None:
    store.delete_category(cid)
    logger.info("Deleted category %s", cid)


def list_admin_products(store: CatalogStore) -> List[AdminProduct]:
    """Every product, newest first, with its category name"""
    df = store.products_frame()
    if df.empty:
        return []
    df = df.sort_values("created_at", ascending=False, kind="stable", na_position="last")
    return [_to_admin(r) for r in df.to_dict("records")]


def create_product(store: CatalogStore, data: ProductInput) -> AdminProduct:
    row = data.model_dump()
    row["name"] = row["name"].strip()
    if not row["name"]:
        raise InvalidRequestError("Missing required fields")
    product = _to_admin(store.insert_product(row))
    logger.info("Created product %s (%s)", product.name, product.id)
    return product


def delete_product(store: CatalogStore, pid: str) -> None:
    store.delete_product(pid)
    logger.info("Deleted product %s", pid)
