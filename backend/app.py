# FastAPI backend for the jewelry storefront
# Catalog browsing, checkout, the admin panel and the shopping assistant endpoint
from typing import Any, Dict, Optional

from fastapi import Body, FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from storefront import admin
from storefront.assistant import AssistantService
from storefront.catalog import CatalogStore, LocalCatalogStore, filter_catalog, get_product, list_categories
from storefront.config import load_settings, Settings
from storefront.errors import AllModelsFailedError, ConfigurationError, InvalidRequestError, StoreError
from storefront.intents import InMemoryIntentStore
from storefront.llm import GeminiClient
from storefront.logger import get_logger
from storefront.models import (
    AdminCategoryResponse, AdminProductResponse, AdminProductsResponse,
    AssistantReply, AssistantRequest, CategoriesResponse, ErrorResponse, LastIntent, NotificationsResponse,
    OrderRequest, OrderResponse, ProductDetail, ProductInput, ProductsResponse,
)
from storefront.orders import list_notifications, mark_notification_read, place_order
from storefront.resolver import IntentResolver
from storefront.sanitizer import sanitize_filters
from storefront.supabase_store import SupabaseStore

APP_VERSION = "1.0.0"
app = FastAPI(title="Jewelry Storefront API", version=APP_VERSION)
logger = get_logger("app")

SETTINGS: Settings = load_settings()

# CORS setup for the storefront frontend
app.add_middleware(
    CORSMiddleware,
    allow_origins=SETTINGS.allowed_origins + ["http://localhost:8000"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Global state, filled at startup
STORE: Optional[CatalogStore] = None
SERVICE: Optional[AssistantService] = None
INTENTS = InMemoryIntentStore()


def build_store(settings: Settings) -> CatalogStore:
    if settings.use_supabase:
        logger.info("Using Supabase store at %s", settings.supabase_url)
        return SupabaseStore(settings.supabase_url, settings.supabase_key)
    return LocalCatalogStore.from_dir(str(settings.catalog_dir))


def build_service(settings: Settings, store: CatalogStore) -> AssistantService:
    client = GeminiClient(settings.gemini_api_key)
    resolver = IntentResolver(
        client,
        store,
        settings.models,
        temperature=settings.temperature,
        max_output_tokens=settings.max_output_tokens,
        max_rounds=settings.max_tool_rounds,
    )
    return AssistantService(resolver, store, INTENTS)


@app.on_event("startup")
def startup():
    global STORE, SERVICE
    try:
        STORE = build_store(SETTINGS)
    except Exception as e:
        raise RuntimeError(f"Failed to initialize catalog store: {e}")
    try:
        SERVICE = build_service(SETTINGS, STORE)
    except ConfigurationError as e:
        # The catalog still works without the assistant
        logger.warning("Assistant disabled: %s", e)


def _store() -> CatalogStore:
    if STORE is None:
        raise HTTPException(status_code=500, detail="Store not ready")
    return STORE


def _error(status: int, error: str, details: Optional[str] = None) -> JSONResponse:
    body = ErrorResponse(error=error, details=details or None)
    return JSONResponse(status_code=status, content=body.model_dump(exclude_none=True))


@app.get("/health")
def health():
    return {"status": "ok", "store": type(STORE).__name__ if STORE else None, "assistant": SERVICE is not None, "version": APP_VERSION}


@app.get("/version")
def version():
    return {"version": APP_VERSION}


@app.post("/assistant", response_model=AssistantReply, responses={400: {}, 500: {}})
def assistant(payload: Optional[Dict[str, Any]] = Body(None)):
    try:
        req = AssistantRequest.model_validate(payload or {})
    except ValidationError:
        return _error(400, "El mensaje está vacío")
    if not req.message.strip():
        return _error(400, "El mensaje está vacío")
    if SERVICE is None:
        return _error(500, "Configuración faltante")
    try:
        return SERVICE.handle(req.message, session_id=req.session_id or None)
    except InvalidRequestError as e:
        return _error(400, str(e))
    except (AllModelsFailedError, StoreError) as e:
        logger.error("Assistant request failed: %s", e)
        return _error(500, "Error al procesar la solicitud", str(e))
    except Exception as e:
        logger.exception("Unexpected assistant error")
        return _error(500, "Error al procesar la solicitud", str(e) or type(e).__name__)


@app.get("/assistant/last-intent/{session_id}", response_model=LastIntent)
def last_intent(session_id: str):
    intent = INTENTS.load(session_id)
    if intent is None:
        raise HTTPException(status_code=404, detail="Not found")
    return intent


@app.delete("/assistant/last-intent/{session_id}")
def dismiss_last_intent(session_id: str):
    INTENTS.clear(session_id)
    return {"success": True}


@app.get("/products", response_model=ProductsResponse)
def products(
    search: str = "",
    category: str = "",
    min_price: str = Query("", alias="minPrice"),
    max_price: str = Query("", alias="maxPrice"),
    in_stock: bool = Query(False, alias="inStock"),
    sort_by: str = Query("name", alias="sortBy"),
    sort_order: str = Query("asc", alias="sortOrder"),
):
    # Query params go through the same sanitizer as assistant actions
    criteria = sanitize_filters({
        "search": search,
        "category": category,
        "minPrice": min_price,
        "maxPrice": max_price,
        "inStock": in_stock,
        "sortBy": sort_by,
        "sortOrder": sort_order,
    })
    try:
        df = filter_catalog(_store().products_frame(), criteria)
    except StoreError as e:
        raise HTTPException(status_code=500, detail=str(e))
    items = [
        ProductDetail(
            id=str(r["id"]),
            name=str(r["name"]),
            description=str(r["description"]),
            price=float(r["price"]),
            stock=int(r["stock"]),
            category=str(r["category_name"]),
            image_url=str(r["image_url"]),
        )
        for r in df.to_dict("records")
    ]
    return {"products": items}


@app.get("/products/{pid}", response_model=ProductDetail)
def product(pid: str):
    p = get_product(_store(), pid)
    if p is None:
        raise HTTPException(status_code=404, detail="Not found")
    return p


@app.get("/categories", response_model=CategoriesResponse)
def categories():
    return {"categories": list_categories(_store())}


@app.post("/orders", response_model=OrderResponse, responses={400: {}, 500: {}})
def orders(payload: Optional[Dict[str, Any]] = Body(None)):
    try:
        req = OrderRequest.model_validate(payload or {})
    except ValidationError:
        return _error(400, "Datos de pedido inválidos")
    try:
        order = place_order(_store(), req)
    except StoreError as e:
        logger.error("Order failed: %s", e)
        return _error(500, "Error al crear pedido")
    return OrderResponse(order_id=order.id)


@app.get("/notifications", response_model=NotificationsResponse)
def notifications():
    try:
        return {"notifications": list_notifications(_store())}
    except StoreError:
        return _error(500, "Error interno")


@app.post("/notifications/mark-read", responses={400: {}, 500: {}})
def notifications_mark_read(payload: Optional[Dict[str, Any]] = Body(None)):
    nid = (payload or {}).get("id")
    if not nid:
        return _error(400, "Falta id")
    try:
        mark_notification_read(_store(), str(nid))
    except StoreError:
        return _error(500, "Error interno")
    return {"success": True}


# Admin catalog management

@app.get("/admin/categories", response_model=CategoriesResponse)
def admin_categories():
    try:
        return {"categories": admin.list_admin_categories(_store())}
    except StoreError:
        return _error(500, "Error interno")


@app.post("/admin/categories", response_model=AdminCategoryResponse, responses={400: {}, 500: {}})
def admin_create_category(payload: Optional[Dict[str, Any]] = Body(None)):
    name = (payload or {}).get("name")
    try:
        category = admin.create_category(_store(), name if isinstance(name, str) else "")
    except InvalidRequestError as e:
        return _error(400, str(e))
    except StoreError as e:
        logger.error("Creating category failed: %s", e)
        return _error(500, "Error interno")
    return {"category": category}


@app.delete("/admin/categories", responses={400: {}, 500: {}})
def admin_delete_category(payload: Optional[Dict[str, Any]] = Body(None)):
    cid = (payload or {}).get("id")
    if not cid:
        return _error(400, "id is required")
    try:
        admin.delete_category(_store(), str(cid))
    except StoreError as e:
        logger.error("Deleting category failed: %s", e)
        return _error(500, "Error interno")
    return {"success": True}


@app.get("/admin/products", response_model=AdminProductsResponse)
def admin_products():
    try:
        return {"products": admin.list_admin_products(_store())}
    except StoreError:
        return _error(500, "Error interno")


@app.post("/admin/products", response_model=AdminProductResponse, responses={400: {}, 500: {}})
def admin_create_product(payload: Optional[Dict[str, Any]] = Body(None)):
    try:
        data = ProductInput.model_validate(payload or {})
        product = admin.create_product(_store(), data)
    except (ValidationError, InvalidRequestError):
        return _error(400, "Missing required fields")
    except StoreError as e:
        logger.error("Creating product failed: %s", e)
        return _error(500, "Error al crear producto")
    return {"product": product}


@app.delete("/admin/products", responses={400: {}, 500: {}})
def admin_delete_product(payload: Optional[Dict[str, Any]] = Body(None)):
    pid = (payload or {}).get("id")
    if not pid:
        return _error(400, "id is required")
    try:
        admin.delete_product(_store(), str(pid))
    except StoreError as e:
        logger.error("Deleting product failed: %s", e)
        return _error(500, "Error interno")
    return {"success": True}
