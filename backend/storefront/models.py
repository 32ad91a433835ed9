from __future__ import annotations
from typing import Annotated, List, Optional, Dict, Any, Literal, Union
from pydantic import BaseModel, ConfigDict, Field

# These are the data structures that hold everything together
# Wire names are camelCase because that is what the storefront UI sends and reads

SortBy = Literal["name", "price", "stock", "category"]
SortOrder = Literal["asc", "desc"]

CATEGORY_NAMES = ["Anillo", "Arete", "Collar", "Pulsera"]


class WireModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class FilterCriteria(WireModel):
    # What the shopper wants to see in the catalog; all defaults means no filtering
    search: str = ""
    category: str = ""
    min_price: str = Field(default="", alias="minPrice")
    max_price: str = Field(default="", alias="maxPrice")
    in_stock: bool = Field(default=False, alias="inStock")
    sort_by: SortBy = Field(default="name", alias="sortBy")
    sort_order: SortOrder = Field(default="asc", alias="sortOrder")


class ApplyFiltersAction(WireModel):
    type: Literal["apply_filters"] = "apply_filters"
    filters: FilterCriteria = Field(default_factory=FilterCriteria)
    open_filters: bool = Field(default=True, alias="openFilters")


class OpenProductAction(WireModel):
    type: Literal["open_product"] = "open_product"
    id: str


Action = Annotated[Union[ApplyFiltersAction, OpenProductAction], Field(discriminator="type")]


class ProductQuery(BaseModel):
    # Arguments of a catalog lookup, shared by the LLM tool and the relaxation stages
    text: str = ""
    category_name: str = ""
    min_price: Optional[float] = None
    max_price: Optional[float] = None
    in_stock: bool = False
    sort_by: SortBy = "name"
    sort_order: SortOrder = "asc"
    limit: int = 3


class ProductSummary(BaseModel):
    # Compact product view, never the raw storage row
    id: str
    name: str
    price: float
    stock: int
    category: str = ""
    image_url: str = ""


class ProductDetail(ProductSummary):
    description: str = ""


class Category(BaseModel):
    id: str
    name: str


class AdminProduct(ProductDetail):
    category_id: Optional[str] = None
    created_at: Optional[str] = None


class ProductInput(BaseModel):
    # Admin form fields; the image is already hosted, only its URL is stored
    name: str = Field(min_length=1)
    description: Optional[str] = None
    price: float = Field(ge=0)
    stock: int = Field(ge=0)
    category_id: Optional[str] = None
    image_url: Optional[str] = None


class AssistantRequest(WireModel):
    message: str = ""
    session_id: Optional[str] = Field(default=None, alias="sessionId")


class AssistantReply(BaseModel):
    # What we send back to the frontend
    response: str
    action: Optional[Action] = None


class ErrorResponse(BaseModel):
    error: str
    details: Optional[str] = None


class LastIntent(BaseModel):
    ts: float
    transcript: str
    action: Action


class OrderItem(WireModel):
    product_id: Optional[str] = Field(default=None, alias="productId")
    product_name: str = Field(alias="productName", min_length=1)
    quantity: int = Field(ge=1)
    price: float = Field(ge=0)


class OrderRequest(WireModel):
    customer_name: str = Field(alias="customerName", min_length=1)
    customer_email: str = Field(alias="customerEmail", min_length=1)
    customer_phone: Optional[str] = Field(default=None, alias="customerPhone")
    items: List[OrderItem] = Field(min_length=1)


class Order(BaseModel):
    id: str
    customer_name: str
    customer_email: str
    customer_phone: Optional[str] = None
    total_amount: float
    status: str = "pending"


class OrderResponse(WireModel):
    success: bool = True
    order_id: str = Field(alias="orderId")


class Notification(BaseModel):
    id: str
    type: str
    payload: Dict[str, Any] = Field(default_factory=dict)
    read: bool = False
    created_at: Optional[str] = None



class ProductsResponse(BaseModel):
    products: List[ProductDetail]


class CategoriesResponse(BaseModel):
    categories: List[Category]


class NotificationsResponse(BaseModel):
    notifications: List[Notification]


class AdminProductsResponse(BaseModel):
    products: List[AdminProduct]


class AdminProductResponse(BaseModel):
    product: AdminProduct


class AdminCategoryResponse(BaseModel):
    category: Category
