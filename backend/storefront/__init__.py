from .models import (
    FilterCriteria, ApplyFiltersAction, OpenProductAction, ProductQuery, ProductSummary,
    ProductDetail, Category, AssistantReply, OrderRequest, Order, Notification,
)
from .text import normalize, tokenize
from .router import infer_filter_action, keywords_from_message, product_type_keywords
from .sanitizer import sanitize_action
from .catalog import CatalogStore, LocalCatalogStore, search_products, filter_catalog
from .resolver import IntentResolver, parse_model_reply
from .relaxation import relax_if_empty
from .assistant import AssistantService

__all__ = [
    'FilterCriteria','ApplyFiltersAction','OpenProductAction','ProductQuery','ProductSummary',
    'ProductDetail','Category','AssistantReply','OrderRequest','Order','Notification',
    'normalize','tokenize',
    'infer_filter_action','keywords_from_message','product_type_keywords',
    'sanitize_action',
    'CatalogStore','LocalCatalogStore','search_products','filter_catalog',
    'IntentResolver','parse_model_reply',
    'relax_if_empty',
    'AssistantService',
]
