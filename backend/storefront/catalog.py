from __future__ import annotations
import os
import threading
import uuid
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import pandas as pd

from .logger import get_logger
from .models import Category, FilterCriteria, ProductDetail, ProductQuery, ProductSummary
from .text import normalize, tokenize

logger = get_logger("catalog")

MAX_SEARCH_TOKENS = 4
MAX_LIMIT = 6

PRODUCT_COLUMNS = ["id", "name", "description", "price", "stock", "image_url", "category_id", "created_at"]


class CatalogStore(ABC):
    """Read side of the storage backend plus the few writes checkout needs

    Rows are plain dicts with the product columns and a flattened category_name
    """

    @abstractmethod
    def find_category_id(self, name: str) -> Optional[str]: ...

    @abstractmethod
    def select_products(
        self,
        patterns: List[str],
        category_id: Optional[str],
        min_price: Optional[float],
        max_price: Optional[float],
        in_stock: bool,
        sort_by: str,
        sort_order: str,
        limit: int,
    ) -> List[Dict[str, Any]]: ...

    @abstractmethod
    def get_product_row(self, pid: str) -> Optional[Dict[str, Any]]: ...

    @abstractmethod
    def list_category_rows(self) -> List[Dict[str, Any]]: ...

    @abstractmethod
    def products_frame(self) -> pd.DataFrame: ...

    @abstractmethod
    def insert_category(self, name: str) -> Dict[str, Any]: ...

    @abstractmethod
    def delete_category(self, cid: str) -> None: ...

    @abstractmethod
    def insert_product(self, row: Dict[str, Any]) -> Dict[str, Any]: ...

    @abstractmethod
    def delete_product(self, pid: str) -> None: ...

    @abstractmethod
    def insert_order(self, row: Dict[str, Any]) -> str: ...

    @abstractmethod
    def insert_order_items(self, rows: List[Dict[str, Any]]) -> None: ...

    @abstractmethod
    def insert_notification(self, row: Dict[str, Any]) -> None: ...

    @abstractmethod
    def list_notification_rows(self, limit: int) -> List[Dict[str, Any]]: ...

    @abstractmethod
    def mark_notification_read(self, nid: str) -> None: ...


def _read_csv(path: str) -> pd.DataFrame:
    # Same forgiving load as the catalog loader always had: strings first, types later
    try:
        return pd.read_csv(path, dtype=str, keep_default_na=False, engine="c")
    except Exception:
        logger.warning("Falling back to the python CSV parser for %s", path)
        return pd.read_csv(path, dtype=str, keep_default_na=False, engine="python", on_bad_lines="skip")


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class LocalCatalogStore(CatalogStore):
    """Catalog kept in pandas DataFrames, loaded from products.csv and categories.csv

    Orders and notifications stay in memory, which is enough for local development and tests
    """

    def __init__(self, products: pd.DataFrame, categories: pd.DataFrame):
        self.categories = categories.copy()
        for col in ["id", "name"]:
            if col not in self.categories.columns:
                self.categories[col] = ""
        self.categories["id"] = self.categories["id"].astype(str)

        df = products.copy()
        # Normalize missing columns that the rest of the code depends on
        for col in PRODUCT_COLUMNS:
            if col not in df.columns:
                df[col] = ""
        df["id"] = df["id"].astype(str)
        df["category_id"] = df["category_id"].astype(str)
        df["description"] = df["description"].fillna("").astype(str)
        df["image_url"] = df["image_url"].fillna("").astype(str)
        df["price"] = pd.to_numeric(df["price"], errors="coerce").fillna(0.0).astype(float)
        df["stock"] = pd.to_numeric(df["stock"], errors="coerce").fillna(0).astype(int)
        names = dict(zip(self.categories["id"], self.categories["name"]))
        df["category_name"] = df["category_id"].map(names).fillna("")
        self.df = df.reset_index(drop=True)

        self._lock = threading.Lock()
        self._orders: List[Dict[str, Any]] = []
        self._order_items: List[Dict[str, Any]] = []
        self._notifications: List[Dict[str, Any]] = []

    @classmethod
    def from_dir(cls, catalog_dir: str) -> "LocalCatalogStore":
        products_path = os.path.join(catalog_dir, "products.csv")
        categories_path = os.path.join(catalog_dir, "categories.csv")
        if not os.path.isfile(products_path):
            raise FileNotFoundError(products_path)
        categories = _read_csv(categories_path) if os.path.isfile(categories_path) else pd.DataFrame(columns=["id", "name"])
        store = cls(_read_csv(products_path), categories)
        logger.info("Loaded %d products and %d categories from %s", len(store.df), len(store.categories), catalog_dir)
        return store

    def find_category_id(self, name: str) -> Optional[str]:
        target = name.strip().lower()
        if not target:
            return None
        hit = self.categories[self.categories["name"].str.lower() == target]
        if hit.empty:
            return None
        return str(hit.iloc[0]["id"])

    def select_products(self, patterns, category_id, min_price, max_price, in_stock, sort_by, sort_order, limit):
        out = self.df
        if patterns:
            # OR across every token and both text columns, like ILIKE '%tok%'
            hit = pd.Series(False, index=out.index)
            for p in patterns:
                hit |= out["name"].str.contains(p, case=False, regex=False, na=False)
                hit |= out["description"].str.contains(p, case=False, regex=False, na=False)
            out = out[hit]
        if category_id:
            out = out[out["category_id"] == str(category_id)]
        if min_price is not None:
            out = out[out["price"] >= float(min_price)]
        if max_price is not None:
            out = out[out["price"] <= float(max_price)]
        if in_stock:
            out = out[out["stock"] > 0]
        if sort_by == "category":
            out = out.sort_values("created_at", ascending=False, kind="stable")
        elif sort_by == "name":
            out = out.sort_values("name", ascending=sort_order == "asc", kind="stable", key=lambda s: s.str.lower())
        else:
            out = out.sort_values(sort_by, ascending=sort_order == "asc", kind="stable")
        return out.head(limit).to_dict("records")

    def get_product_row(self, pid: str) -> Optional[Dict[str, Any]]:
        row = self.df[self.df["id"] == pid]
        if row.empty:
            return None
        return row.iloc[0].to_dict()

    def list_category_rows(self) -> List[Dict[str, Any]]:
        return self.categories.sort_values("name", kind="stable")[["id", "name"]].to_dict("records")

    def products_frame(self) -> pd.DataFrame:
        return self.df

    def insert_category(self, name: str) -> Dict[str, Any]:
        row = {"id": str(uuid.uuid4()), "name": name}
        with self._lock:
            self.categories = pd.concat([self.categories, pd.DataFrame([row])], ignore_index=True)
        return row

    def delete_category(self, cid: str) -> None:
        with self._lock:
            self.categories = self.categories[self.categories["id"] != cid].reset_index(drop=True)
            # Products keep existing without a category, like ON DELETE SET NULL
            orphaned = self.df["category_id"] == cid
            df = self.df.copy()
            df.loc[orphaned, "category_id"] = ""
            df.loc[orphaned, "category_name"] = ""
            self.df = df

    def insert_product(self, row: Dict[str, Any]) -> Dict[str, Any]:
        names = dict(zip(self.categories["id"], self.categories["name"]))
        cid = str(row.get("category_id") or "")
        new = {
            "id": str(uuid.uuid4()),
            "name": str(row.get("name") or ""),
            "description": str(row.get("description") or ""),
            "price": float(row.get("price") or 0.0),
            "stock": int(row.get("stock") or 0),
            "image_url": str(row.get("image_url") or ""),
            "category_id": cid,
            "created_at": _now(),
            "category_name": names.get(cid, ""),
        }
        with self._lock:
            self.df = pd.concat([self.df, pd.DataFrame([new])], ignore_index=True)
        return new

    def delete_product(self, pid: str) -> None:
        with self._lock:
            self.df = self.df[self.df["id"] != pid].reset_index(drop=True)

    def insert_order(self, row: Dict[str, Any]) -> str:
        oid = str(uuid.uuid4())
        with self._lock:
            self._orders.append({**row, "id": oid, "created_at": _now()})
        return oid

    def insert_order_items(self, rows: List[Dict[str, Any]]) -> None:
        with self._lock:
            self._order_items.extend(dict(r) for r in rows)

    def insert_notification(self, row: Dict[str, Any]) -> None:
        with self._lock:
            self._notifications.append({"read": False, **row, "id": str(uuid.uuid4()), "created_at": _now()})

    def list_notification_rows(self, limit: int) -> List[Dict[str, Any]]:
        with self._lock:
            rows = sorted(self._notifications, key=lambda r: r["created_at"], reverse=True)
        return [dict(r) for r in rows[:limit]]

    def mark_notification_read(self, nid: str) -> None:
        with self._lock:
            for r in self._notifications:
                if r["id"] == nid:
                    r["read"] = True


def _to_summary(row: Dict[str, Any]) -> ProductSummary:
    return ProductSummary(
        id=str(row.get("id", "")),
        name=str(row.get("name", "")),
        price=float(row.get("price") or 0.0),
        stock=int(float(row.get("stock") or 0)),
        category=str(row.get("category_name") or ""),
        image_url=str(row.get("image_url") or ""),
    )


def search_patterns(text: str) -> List[str]:
    """Substring patterns for a free text query, at most four tokens

    Falls back to the whole normalized string when every word was a stopword
    """
    query = (text or "").strip()
    if not query:
        return []
    tokens = tokenize(query)[:MAX_SEARCH_TOKENS]
    used = tokens if tokens else [normalize(query)]
    return [p for p in (t.replace("%", "").replace("_", "") for t in used) if p]


def search_products(store: CatalogStore, query: ProductQuery) -> List[ProductSummary]:
    limit = max(1, min(MAX_LIMIT, int(query.limit)))
    category_id = None
    if query.category_name.strip():
        # Unknown category names are dropped rather than returning nothing
        category_id = store.find_category_id(query.category_name)
        if category_id is None:
            logger.debug("Ignoring unknown category %r", query.category_name)
    rows = store.select_products(
        patterns=search_patterns(query.text),
        category_id=category_id,
        min_price=query.min_price,
        max_price=query.max_price,
        in_stock=query.in_stock,
        sort_by=query.sort_by,
        sort_order=query.sort_order,
        limit=limit,
    )
    return [_to_summary(r) for r in rows]


def query_from_filters(criteria: FilterCriteria, limit: int = 3) -> ProductQuery:
    def bound(v: str) -> Optional[float]:
        return float(v) if v else None

    return ProductQuery(
        text=criteria.search,
        category_name=criteria.category,
        min_price=bound(criteria.min_price),
        max_price=bound(criteria.max_price),
        in_stock=criteria.in_stock,
        sort_by=criteria.sort_by,
        sort_order=criteria.sort_order,
        limit=limit,
    )


def get_product(store: CatalogStore, pid: str) -> Optional[ProductDetail]:
    pid = (pid or "").strip()
    if not pid:
        return None
    row = store.get_product_row(pid)
    if row is None:
        return None
    summary = _to_summary(row)
    return ProductDetail(**summary.model_dump(), description=str(row.get("description") or ""))


def get_stock(store: CatalogStore, pid: str) -> Dict[str, Any]:
    pid = (pid or "").strip()
    if not pid:
        return {"id": "", "stock": None}
    row = store.get_product_row(pid)
    return {"id": pid, "stock": int(float(row.get("stock") or 0)) if row else None}


def list_categories(store: CatalogStore) -> List[Category]:
    return [Category(id=str(r["id"]), name=str(r["name"])) for r in store.list_category_rows()]


def filter_catalog(df: pd.DataFrame, f: FilterCriteria) -> pd.DataFrame:
    """Apply the browse filters to a products frame

    Search tokens must all appear in name + description + category (AND), while the
    assistant's search_products is deliberately looser (OR)
    """
    out = df
    tokens = tokenize(f.search) if f.search else []
    if tokens:
        haystack = (out["name"].astype(str) + " " + out["description"].astype(str) + " " + out["category_name"].astype(str)).map(normalize)
        keep = pd.Series(True, index=out.index)
        for t in tokens:
            keep &= haystack.str.contains(t, regex=False)
        out = out[keep]
    if f.category:
        target = normalize(f.category)
        cats = out["category_name"].astype(str).map(normalize)
        out = out[cats.str.contains(target, regex=False)]
    if f.min_price:
        out = out[out["price"] >= float(f.min_price)]
    if f.max_price:
        out = out[out["price"] <= float(f.max_price)]
    if f.in_stock:
        out = out[out["stock"] > 0]
    ascending = f.sort_order == "asc"
    if f.sort_by in ("price", "stock"):
        out = out.sort_values(f.sort_by, ascending=ascending, kind="stable")
    else:
        col = "category_name" if f.sort_by == "category" else "name"
        out = out.sort_values(col, ascending=ascending, kind="stable", key=lambda s: s.astype(str).map(normalize))
    return out
