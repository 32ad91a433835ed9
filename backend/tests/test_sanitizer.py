from storefront.models import ApplyFiltersAction, OpenProductAction
from storefront.sanitizer import sanitize_action

# Bad enum values fall back to the defaults instead of rejecting the action
def test_invalid_sort_defaults():
    a = sanitize_action({"type": "apply_filters", "filters": {"sortBy": "bogus"}})
    assert isinstance(a, ApplyFiltersAction)
    assert a.filters.sort_by == "name"
    assert a.filters.sort_order == "asc"
    assert a.open_filters is True

def test_whitespace_id_rejected():
    assert sanitize_action({"type": "open_product", "id": "   "}) is None
    assert sanitize_action({"type": "open_product", "id": 42}) is None
    assert sanitize_action({"type": "open_product"}) is None

def test_open_product_id_trimmed():
    a = sanitize_action({"type": "open_product", "id": "  p-001 "})
    assert a == OpenProductAction(id="p-001")

def test_filter_fields_coerced():
    a = sanitize_action({
        "type": "apply_filters",
        "openFilters": False,
        "filters": {
            "search": " plata ",
            "category": "collares",
            "minPrice": 50,
            "maxPrice": "abc",
            "inStock": 1,
            "sortBy": "price",
            "sortOrder": "desc",
        },
    })
    f = a.filters
    assert f.search == "plata"
    assert f.category == "Collar"
    assert f.min_price == "50"
    assert f.max_price == ""
    assert f.in_stock is True
    assert (f.sort_by, f.sort_order) == ("price", "desc")
    assert a.open_filters is False

def test_missing_filters_means_defaults():
    a = sanitize_action({"type": "apply_filters", "filters": "nope", "openFilters": None})
    assert a.filters.search == ""
    assert a.filters.min_price == ""
    assert a.filters.in_stock is False
    assert a.open_filters is True

def test_unknown_category_cleared():
    a = sanitize_action({"type": "apply_filters", "filters": {"category": "Relojes"}})
    assert a.filters.category == ""

# Anything else is rejected, and nothing ever raises
def test_garbage_inputs():
    for raw in [None, "apply_filters", 3, [], {"type": "navigate"}, {"filters": {}}, {"type": None}]:
        assert sanitize_action(raw) is None

def test_wire_names_on_output():
    a = sanitize_action({"type": "apply_filters", "filters": {"maxPrice": 100.0}})
    dumped = a.model_dump(by_alias=True)
    assert dumped["openFilters"] is True
    assert dumped["filters"]["maxPrice"] == "100"
    assert dumped["filters"]["sortBy"] == "name"
