"""CatalogStore backed by the Supabase REST (PostgREST) API"""
from __future__ import annotations
from typing import Any, Dict, List, Optional, Tuple

import httpx
import pandas as pd

from .catalog import CatalogStore, PRODUCT_COLUMNS
from .errors import StoreError
from .logger import get_logger
from .text import canonical_number

logger = get_logger("supabase_store")

PRODUCT_SELECT = "id,name,description,price,stock,image_url,category_id,created_at,categories(name)"


def _ilike_value(pattern: str) -> str:
    value = f"*{pattern}*"
    # Spaces are fine in PostgREST values but need quoting inside or=()
    return f'"{value}"' if " " in value else value


def build_product_params(
    patterns: List[str],
    category_id: Optional[str],
    min_price: Optional[float],
    max_price: Optional[float],
    in_stock: bool,
    sort_by: str,
    sort_order: str,
    limit: int,
) -> List[Tuple[str, str]]:
    """Translate a product lookup into PostgREST query parameters

    A list of pairs rather than a dict because price can carry two conditions
    """
    params: List[Tuple[str, str]] = [("select", PRODUCT_SELECT)]
    if patterns:
        clauses = []
        for p in patterns:
            clauses.append(f"name.ilike.{_ilike_value(p)}")
            clauses.append(f"description.ilike.{_ilike_value(p)}")
        params.append(("or", f"({','.join(clauses)})"))
    if category_id:
        params.append(("category_id", f"eq.{category_id}"))
    if min_price is not None:
        params.append(("price", f"gte.{canonical_number(min_price)}"))
    if max_price is not None:
        params.append(("price", f"lte.{canonical_number(max_price)}"))
    if in_stock:
        params.append(("stock", "gt.0"))
    if sort_by == "category":
        # No category name column on products, newest first instead
        params.append(("order", "created_at.desc"))
    else:
        params.append(("order", f"{sort_by}.{sort_order}"))
    params.append(("limit", str(limit)))
    return params


def _flatten(row: Dict[str, Any]) -> Dict[str, Any]:
    out = dict(row)
    cat = out.pop("categories", None)
    out["category_name"] = (cat.get("name") or "") if isinstance(cat, dict) else ""
    return out


class SupabaseStore(CatalogStore):
    """Lightweight client for the tables the storefront reads and writes"""

    def __init__(self, url: str, key: str, client: Optional[httpx.Client] = None):
        self.url = url.rstrip("/")
        headers = {
            "apikey": key,
            "Authorization": f"Bearer {key}",
            "Content-Type": "application/json",
            "Prefer": "return=representation",
        }
        self.client = client or httpx.Client(base_url=self.url, headers=headers, timeout=30.0)

    def _request(self, method: str, table: str, params=None, json=None) -> Any:
        try:
            response = self.client.request(method, f"/rest/v1/{table}", params=params, json=json)
            response.raise_for_status()
        except httpx.HTTPError as e:
            logger.error("Supabase %s on %s failed: %s", method, table, e)
            raise StoreError(f"{table}: {e}") from e
        if not response.content:
            return None
        return response.json()

    def find_category_id(self, name: str) -> Optional[str]:
        target = name.strip().replace("*", "").replace("%", "")
        if not target:
            return None
        try:
            rows = self._request("GET", "categories", params={"select": "id,name", "name": f"ilike.{target}", "limit": "1"})
        except StoreError:
            # A failed lookup only loses the category filter
            return None
        if not rows:
            return None
        return str(rows[0]["id"])

    def select_products(self, patterns, category_id, min_price, max_price, in_stock, sort_by, sort_order, limit):
        params = build_product_params(patterns, category_id, min_price, max_price, in_stock, sort_by, sort_order, limit)
        return [_flatten(r) for r in self._request("GET", "products", params=params) or []]

    def get_product_row(self, pid: str) -> Optional[Dict[str, Any]]:
        rows = self._request("GET", "products", params={"select": PRODUCT_SELECT, "id": f"eq.{pid}", "limit": "1"})
        if not rows:
            return None
        return _flatten(rows[0])

    def list_category_rows(self) -> List[Dict[str, Any]]:
        return self._request("GET", "categories", params={"select": "id,name", "order": "name.asc"}) or []

    def products_frame(self) -> pd.DataFrame:
        rows = self._request("GET", "products", params={"select": PRODUCT_SELECT, "order": "name.asc"}) or []
        df = pd.DataFrame([_flatten(r) for r in rows], columns=PRODUCT_COLUMNS + ["category_name"])
        df["id"] = df["id"].astype(str)
        df["description"] = df["description"].fillna("").astype(str)
        df["image_url"] = df["image_url"].fillna("").astype(str)
        df["category_name"] = df["category_name"].fillna("").astype(str)
        df["price"] = pd.to_numeric(df["price"], errors="coerce").fillna(0.0).astype(float)
        df["stock"] = pd.to_numeric(df["stock"], errors="coerce").fillna(0).astype(int)
        return df

    def insert_category(self, name: str) -> Dict[str, Any]:
        created = self._request("POST", "categories", params={"select": "id,name"}, json=[{"name": name}]) or []
        if not created:
            raise StoreError("categories: insert returned no row")
        return created[0]

    def delete_category(self, cid: str) -> None:
        self._request("DELETE", "categories", params={"id": f"eq.{cid}"})

    def insert_product(self, row: Dict[str, Any]) -> Dict[str, Any]:
        created = self._request("POST", "products", params={"select": PRODUCT_SELECT}, json=[row]) or []
        if not created:
            raise StoreError("products: insert returned no row")
        return _flatten(created[0])

    def delete_product(self, pid: str) -> None:
        self._request("DELETE", "products", params={"id": f"eq.{pid}"})

    def insert_order(self, row: Dict[str, Any]) -> str:
        created = self._request("POST", "orders", params={"select": "id"}, json=[row]) or []
        if not created:
            raise StoreError("orders: insert returned no id")
        return str(created[0]["id"])

    def insert_order_items(self, rows: List[Dict[str, Any]]) -> None:
        self._request("POST", "order_items", json=rows)

    def insert_notification(self, row: Dict[str, Any]) -> None:
        self._request("POST", "notifications", json=[row])

    def list_notification_rows(self, limit: int) -> List[Dict[str, Any]]:
        return self._request("GET", "notifications", params={"select": "*", "order": "created_at.desc", "limit": str(limit)}) or []

    def mark_notification_read(self, nid: str) -> None:
        self._request("PATCH", "notifications", params={"id": f"eq.{nid}"}, json={"read": True})
