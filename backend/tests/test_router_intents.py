from storefront.models import FilterCriteria
from storefront.router import (
    canonical_category, infer_filter_action, keywords_from_message, product_type_keywords,
)

# Category, price range and stock in one sentence
def test_range_and_stock():
    f = infer_filter_action("busca anillos entre 50 y 150 en stock")
    assert f.category == "Anillo"
    assert f.min_price == "50"
    assert f.max_price == "150"
    assert f.in_stock is True
    # nothing left after stripping, so the category becomes the search text
    assert f.search == "Anillo"

# Small talk is not a catalog query
def test_smalltalk_returns_none():
    assert infer_filter_action("hola, buen día") is None
    assert infer_filter_action("") is None
    assert infer_filter_action("   ") is None

def test_category_material_and_max_price():
    f = infer_filter_action("muéstrame collares de plata menos de 100")
    assert f == FilterCriteria(
        category="Collar", search="plata", min_price="", max_price="100",
        in_stock=False, sort_by="name", sort_order="asc",
    )

# Materials alone are enough to treat the text as a catalog question
def test_material_question_still_parses():
    f = infer_filter_action("qué es más bonito, el oro o la plata")
    assert f is not None
    assert f.category == ""
    assert f.search == "bonito oro plata"

def test_material_stays_in_search():
    f = infer_filter_action("quiero algo de plata")
    assert f.search == "plata"
    assert f.category == ""

def test_sort_rules():
    f = infer_filter_action("anillos más baratos")
    assert (f.sort_by, f.sort_order) == ("price", "asc")
    f = infer_filter_action("collares más caros")
    assert (f.sort_by, f.sort_order) == ("price", "desc")
    assert f.search == "Collar"
    f = infer_filter_action("quiero pulseras nuevas")
    assert (f.sort_by, f.sort_order) == ("stock", "desc")
    f = infer_filter_action("aretes por nombre z-a")
    assert (f.sort_by, f.sort_order) == ("name", "desc")
    f = infer_filter_action("aretes por nombre")
    assert (f.sort_by, f.sort_order) == ("name", "asc")

def test_single_bounds_can_combine():
    f = infer_filter_action("quiero pulseras desde 200")
    assert (f.min_price, f.max_price) == ("200", "")
    f = infer_filter_action("necesito un collar de más de 100 y hasta 300")
    assert (f.min_price, f.max_price) == ("100", "300")
    f = infer_filter_action("anillos hasta $99,90")
    assert f.max_price == "99.9"

def test_de_x_a_y_range():
    f = infer_filter_action("busco aretes de 20 a 80")
    assert (f.min_price, f.max_price) == ("20", "80")
    assert f.category == "Arete"

def test_stock_phrases():
    assert infer_filter_action("tienen aretes disponibles").in_stock is True
    assert infer_filter_action("quiero un collar").in_stock is False

# Surface forms map onto the four canonical categories
def test_synonyms():
    assert infer_filter_action("busco una sortija").category == "Anillo"
    assert infer_filter_action("quiero una gargantilla").category == "Collar"
    assert infer_filter_action("dame brazaletes").category == "Pulsera"
    assert infer_filter_action("tienes piercing").category == "Arete"

def test_keyword_tables():
    assert product_type_keywords("busco sortijas y cadenas de oro") == ["anillo", "cadena"]
    assert keywords_from_message("busco sortijas y cadenas de oro") == ["anillo", "cadena", "oro"]
    assert keywords_from_message("hola") == []

def test_canonical_category():
    assert canonical_category("anillos") == "Anillo"
    assert canonical_category("PULSERA") == "Pulsera"
    assert canonical_category("Árete") == "Arete"
    assert canonical_category("relojes") == ""
