import pandas as pd
import pytest

from storefront.admin import (
    create_category, create_product, delete_category, delete_product, list_admin_categories, list_admin_products,
)
from storefront.catalog import LocalCatalogStore, search_products
from storefront.errors import InvalidRequestError
from storefront.models import ProductInput, ProductQuery

def make_store():
    categories = pd.DataFrame([{"id": "c1", "name": "Anillo"}, {"id": "c2", "name": "Collar"}])
    products = pd.DataFrame([
        {"id": "a", "name": "Anillo Sol", "description": "plata", "price": "120", "stock": "4", "image_url": "", "category_id": "c1", "created_at": "2024-01-01"},
        {"id": "c", "name": "Collar Corazón", "description": "plata", "price": "95", "stock": "6", "image_url": "", "category_id": "c2", "created_at": "2024-02-01"},
    ])
    return LocalCatalogStore(products, categories)

def test_categories_create_and_delete():
    store = make_store()
    cat = create_category(store, "  Pulsera ")
    assert cat.name == "Pulsera"
    assert [c.name for c in list_admin_categories(store)] == ["Anillo", "Collar", "Pulsera"]
    with pytest.raises(InvalidRequestError):
        create_category(store, "   ")
    delete_category(store, cat.id)
    assert [c.name for c in list_admin_categories(store)] == ["Anillo", "Collar"]

def test_deleting_a_category_keeps_its_products():
    store = make_store()
    delete_category(store, "c1")
    sol = [p for p in list_admin_products(store) if p.id == "a"][0]
    assert sol.category == ""
    assert sol.category_id is None

def test_products_newest_first():
    store = make_store()
    assert [p.id for p in list_admin_products(store)] == ["c", "a"]
    new = create_product(store, ProductInput(name="Pulsera Tenis", price=210, stock=3, category_id="c2", image_url="http://img/t.jpg"))
    listed = list_admin_products(store)
    assert listed[0].id == new.id
    assert listed[0].category == "Collar"
    assert listed[0].image_url == "http://img/t.jpg"
    assert listed[0].description == ""

def test_new_products_are_searchable_and_deletable():
    store = make_store()
    new = create_product(store, ProductInput(name="Pulsera Tenis", price=210, stock=3))
    assert [p.id for p in search_products(store, ProductQuery(text="tenis"))] == [new.id]
    delete_product(store, new.id)
    assert search_products(store, ProductQuery(text="tenis")) == []
    assert [p.id for p in list_admin_products(store)] == ["c", "a"]

def test_product_input_validation():
    with pytest.raises(ValueError):
        ProductInput(name="", price=1, stock=1)
    with pytest.raises(ValueError):
        ProductInput(name="x", price=-1, stock=1)
    with pytest.raises(ValueError):
        ProductInput(name="x", price=1)
