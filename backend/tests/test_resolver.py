import pandas as pd
import pytest
from google.api_core import exceptions as google_exceptions

from storefront.catalog import LocalCatalogStore
from storefront.errors import AllModelsFailedError
from storefront.llm import ModelTurn, ToolCall, generate_with_fallback, is_fallback_error
from storefront.models import ApplyFiltersAction, OpenProductAction
from storefront.resolver import (
    IntentResolver, extract_first_json_object, parse_model_reply, strip_code_fences,
)

def make_store():
    categories = pd.DataFrame([{"id": "c1", "name": "Anillo"}, {"id": "c2", "name": "Collar"}])
    products = pd.DataFrame([
        {"id": "a", "name": "Anillo Sol", "description": "plata", "price": "120", "stock": "4", "image_url": "", "category_id": "c1", "created_at": "2024-01-01"},
        {"id": "c", "name": "Collar Corazón", "description": "plata", "price": "95", "stock": "6", "image_url": "", "category_id": "c2", "created_at": "2024-02-01"},
    ])
    return LocalCatalogStore(products, categories)

class FakeClient:
    """Returns scripted turns (or raises scripted errors) per model name"""

    def __init__(self, script):
        self.script = script
        self.calls = []

    def generate(self, model, contents, **kwargs):
        self.calls.append((model, list(contents)))
        step = self.script[model]
        outcome = step.pop(0) if isinstance(step, list) else step
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome

class StatusError(Exception):
    def __init__(self, status):
        super().__init__(f"status {status}")
        self.status = status

def resolver_for(client, models=("m1",)):
    return IntentResolver(client, make_store(), list(models))

# Parsing model output

def test_strip_code_fences():
    assert strip_code_fences('```json\n{"response": "hola"}\n```') == '{"response": "hola"}'

def test_first_json_object_ignores_trailing_prose_and_braces_in_strings():
    text = 'Claro: {"response": "usa {llaves}", "action": {"type": "open_product", "id": "a"}} y algo más }'
    assert extract_first_json_object(text) == '{"response": "usa {llaves}", "action": {"type": "open_product", "id": "a"}}'
    assert extract_first_json_object("sin json") is None
    assert extract_first_json_object('{"abierto": ') is None

def test_parse_reply_layers():
    assert parse_model_reply('```json\n{"response": "Hola", "action": {"type": "x"}}\n```') == ("Hola", {"type": "x"})
    # broken JSON but the response field is still readable
    assert parse_model_reply('{"response": "Tenemos anillos", "action": {') == ("Tenemos anillos", None)
    assert parse_model_reply("no entiendo") == ("Listo.", None)
    assert parse_model_reply("") == ("Listo.", None)
    assert parse_model_reply('{"response": ""}') == ("Listo.", None)

# Model fallback

def test_rate_limited_model_falls_through_to_next():
    ok = ModelTurn(text='{"response": "de B"}')
    client = FakeClient({
        "A": google_exceptions.ResourceExhausted("quota"),
        "B": ok,
        "C": ModelTurn(text='{"response": "de C"}'),
    })
    model, turn = generate_with_fallback(client, ["A", "B", "C"], [])
    assert model == "B"
    assert turn is ok
    assert [m for m, _ in client.calls] == ["A", "B"]

def test_not_found_status_attribute_also_falls_through():
    client = FakeClient({"A": StatusError(404), "B": ModelTurn(text="ok")})
    model, _ = generate_with_fallback(client, ["A", "B"], [])
    assert model == "B"

def test_other_errors_propagate_immediately():
    client = FakeClient({"A": StatusError(500), "B": ModelTurn(text="ok")})
    with pytest.raises(StatusError):
        generate_with_fallback(client, ["A", "B"], [])
    assert [m for m, _ in client.calls] == ["A"]

def test_all_models_failing_raises_aggregate():
    client = FakeClient({"A": StatusError(429), "B": google_exceptions.NotFound("gone")})
    with pytest.raises(AllModelsFailedError) as info:
        generate_with_fallback(client, ["A", "B"], [])
    assert info.value.attempted == ["A", "B"]
    assert isinstance(info.value.last_error, google_exceptions.NotFound)

def test_is_fallback_error():
    assert is_fallback_error(google_exceptions.TooManyRequests("slow down"))
    assert not is_fallback_error(ValueError("nope"))

# Tool loop

def test_tool_results_are_fed_back():
    client = FakeClient({"m1": [
        ModelTurn(tool_calls=[ToolCall(name="search_products", args={"query": "collar", "inStock": True})]),
        ModelTurn(text='{"response": "Tenemos el Collar Corazón", "action": {"type": "open_product", "id": " c "}}'),
    ]})
    res = resolver_for(client).resolve("¿tienen collares?")
    assert res.response_text == "Tenemos el Collar Corazón"
    assert res.action == OpenProductAction(id="c")
    assert res.rounds == 2
    # second call sees the user turn, the function call and its response
    history = client.calls[1][1]
    assert len(history) == 3
    response_part = history[2]["parts"][0]["function_response"]
    assert response_part["name"] == "search_products"
    assert [p["id"] for p in response_part["response"]["items"]] == ["c"]

def test_loop_is_bounded_to_three_rounds():
    call = ModelTurn(tool_calls=[ToolCall(name="get_categories")])
    client = FakeClient({"m1": call})
    res = resolver_for(client).resolve("busca anillos")
    assert len(client.calls) == 3
    assert res.rounds == 3
    # no text ever came back, the rules fill in the action
    assert res.response_text == "Listo."
    assert isinstance(res.action, ApplyFiltersAction)
    assert res.action.filters.category == "Anillo"

def test_call_tool_variants():
    r = resolver_for(FakeClient({}))
    assert r.call_tool("get_stock", {"id": "a"}) == {"id": "a", "stock": 4}
    assert r.call_tool("get_product_by_id", {"id": "nope"}) == {"product": None}
    assert r.call_tool("get_product_by_id", {"id": "a"})["product"]["name"] == "Anillo Sol"
    assert [c["name"] for c in r.call_tool("get_categories", {})["categories"]] == ["Anillo", "Collar"]
    assert r.call_tool("delete_everything", {}) == {"error": "Tool no soportada"}
    out = r.call_tool("search_products", {"sortBy": "weird", "limit": 1, "minPrice": "cheap"})
    assert len(out["items"]) == 1

# Sanitizer and rule based fallback

def test_invalid_action_falls_back_to_rules():
    client = FakeClient({"m1": ModelTurn(text='{"response": "Claro", "action": {"type": "open_product", "id": ""}}')})
    res = resolver_for(client).resolve("muéstrame collares de plata menos de 100")
    assert res.response_text == "Claro"
    assert res.action.filters.category == "Collar"
    assert res.action.filters.max_price == "100"

def test_model_action_is_authoritative_when_valid():
    text = '{"response": "Mira estos", "action": {"type": "apply_filters", "filters": {"search": "oro", "sortBy": "price", "sortOrder": "desc"}}}'
    client = FakeClient({"m1": ModelTurn(text=text)})
    res = resolver_for(client).resolve("qué es más bonito, el oro o la plata")
    assert res.action.filters.search == "oro"
    assert res.action.filters.sort_by == "price"
    assert res.action.open_filters is True

def test_smalltalk_without_action_stays_without_action():
    client = FakeClient({"m1": ModelTurn(text='{"response": "¡Hola! ¿En qué te ayudo?"}')})
    res = resolver_for(client).resolve("hola, buen día")
    assert res.action is None
    assert res.response_text == "¡Hola! ¿En qué te ayudo?"

class CountingResolver(IntentResolver):
    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.tool_calls = []

    def call_tool(self, name, args):
        self.tool_calls.append(name)
        return super().call_tool(name, args)

def test_last_round_tool_calls_are_not_executed():
    client = FakeClient({"m1": ModelTurn(tool_calls=[ToolCall(name="get_categories")])})
    resolver = CountingResolver(client, make_store(), ["m1"])
    resolver.resolve("busca anillos")
    assert len(client.calls) == 3
    # only the first two rounds have a later model call to consume their results
    assert resolver.tool_calls == ["get_categories", "get_categories"]
