"""LLM side of the assistant

The model gets the utterance, a short set of rules and four data lookup tools. Tool
calls are executed against the catalog and fed back, for at most MAX_TOOL_ROUNDS model
calls. Whatever text comes out last is parsed as loosely as possible: models like to
wrap JSON in code fences or add a sentence after it.
"""
from __future__ import annotations
import json
import math
import re
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

from .catalog import CatalogStore, get_product, get_stock, list_categories, search_products
from .llm import ToolCall, generate_with_fallback
from .logger import get_logger
from .models import ApplyFiltersAction, OpenProductAction, ProductQuery
from .router import infer_filter_action
from .sanitizer import SORT_BY_VALUES, SORT_ORDER_VALUES, sanitize_action

logger = get_logger("resolver")

MAX_TOOL_ROUNDS = 3
DEFAULT_REPLY = "Listo."

SYSTEM_INSTRUCTION = """Asistente de tienda de joyería. Responde SIEMPRE en JSON: {"response":string,"action"?:object}.
Reglas:
1) Respuesta muy corta (<=40 palabras).
2) Si preguntan por catálogo/precio/stock usa tools.
3) Máximo 3 productos.
4) Si el usuario pide un producto o filtrar/buscar, devuelve action {type:'apply_filters',filters:{search:string,inStock?:boolean,category?:string,minPrice?:string,maxPrice?:string,sortBy?:string,sortOrder?:string},openFilters:true}. Si pide ver un producto concreto devuelve {type:'open_product',id:string}. Las categorías válidas son: "Anillo", "Arete", "Collar", "Pulsera".
5) No inventes stock/precios."""

TOOL_DECLARATIONS: List[Dict[str, Any]] = [
    {
        "name": "search_products",
        "description": "Busca productos del catálogo con filtros. Devuelve pocos resultados resumidos.",
        "parameters": {
            "type": "object",
            "properties": {
                "query": {"type": "string"},
                "categoryName": {"type": "string"},
                "minPrice": {"type": "number"},
                "maxPrice": {"type": "number"},
                "inStock": {"type": "boolean"},
                "sortBy": {"type": "string", "enum": list(SORT_BY_VALUES)},
                "sortOrder": {"type": "string", "enum": list(SORT_ORDER_VALUES)},
                "limit": {"type": "number"},
            },
        },
    },
    {
        "name": "get_product_by_id",
        "description": "Obtiene un producto por id.",
        "parameters": {"type": "object", "properties": {"id": {"type": "string"}}, "required": ["id"]},
    },
    {
        "name": "get_stock",
        "description": "Obtiene el stock de un producto por id.",
        "parameters": {"type": "object", "properties": {"id": {"type": "string"}}, "required": ["id"]},
    },
    {
        "name": "get_categories",
        "description": "Lista las categorías disponibles.",
    },
]

_FENCE_START = re.compile(r"^```[a-zA-Z]*\s*", re.MULTILINE)
_FENCE_END = re.compile(r"```\s*$", re.MULTILINE)
_RESPONSE_FIELD = re.compile(r'"response"\s*:\s*"([^"]*)"')


def strip_code_fences(text: str) -> str:
    cleaned = _FENCE_START.sub("", text or "", count=1)
    cleaned = _FENCE_END.sub("", cleaned, count=1)
    return cleaned.strip()


def extract_first_json_object(text: str) -> Optional[str]:
    """First balanced {...} block, found by counting braces outside of strings"""
    start = text.find("{")
    if start < 0:
        return None
    depth = 0
    in_string = False
    escaped = False
    for i in range(start, len(text)):
        ch = text[i]
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
            continue
        if ch == '"':
            in_string = True
        elif ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0:
                return text[start:i + 1]
    return None


def parse_json_safely(text: str) -> Any:
    cleaned = strip_code_fences(text)
    candidate = extract_first_json_object(cleaned) or cleaned
    try:
        return json.loads(candidate)
    except ValueError:
        return None


def parse_model_reply(text: str) -> Tuple[str, Any]:
    """Return (response text, raw action) from whatever the model wrote

    Falls back to a regex on the "response" field, then to a generic acknowledgement
    """
    parsed = parse_json_safely(text)
    obj = parsed if isinstance(parsed, dict) else None
    response = obj.get("response") if obj else None
    if not isinstance(response, str) or not response:
        m = _RESPONSE_FIELD.search(text or "")
        response = m.group(1) if m and m.group(1) else DEFAULT_REPLY
    action = obj.get("action") if obj else None
    return response, action


@dataclass
class Resolution:
    response_text: str
    action: Optional[Union[ApplyFiltersAction, OpenProductAction]] = None
    model: Optional[str] = None
    rounds: int = 0


def _number(value: Any) -> Optional[float]:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return float(value) if math.isfinite(value) else None


def _text(value: Any) -> str:
    return value if isinstance(value, str) else ""


class IntentResolver:
    def __init__(
        self,
        client: Any,
        store: CatalogStore,
        models: Sequence[str],
        temperature: float = 0.2,
        max_output_tokens: int = 160,
        max_rounds: int = MAX_TOOL_ROUNDS,
    ):
        self.client = client
        self.store = store
        self.models = list(models)
        self.temperature = temperature
        self.max_output_tokens = max_output_tokens
        self.max_rounds = max_rounds

    def call_tool(self, name: str, args: Dict[str, Any]) -> Dict[str, Any]:
        """Run one model requested lookup and return a JSON friendly result"""
        if name == "search_products":
            sort_by = _text(args.get("sortBy"))
            sort_order = _text(args.get("sortOrder"))
            limit = _number(args.get("limit"))
            query = ProductQuery(
                text=_text(args.get("query")),
                category_name=_text(args.get("categoryName")),
                min_price=_number(args.get("minPrice")),
                max_price=_number(args.get("maxPrice")),
                in_stock=bool(args.get("inStock")),
                sort_by=sort_by if sort_by in SORT_BY_VALUES else "name",
                sort_order=sort_order if sort_order in SORT_ORDER_VALUES else "asc",
                limit=int(limit) if limit is not None else 3,
            )
            return {"items": [p.model_dump() for p in search_products(self.store, query)]}
        if name == "get_product_by_id":
            product = get_product(self.store, _text(args.get("id")))
            return {"product": product.model_dump() if product else None}
        if name == "get_stock":
            return get_stock(self.store, _text(args.get("id")))
        if name == "get_categories":
            return {"categories": [c.model_dump() for c in list_categories(self.store)]}
        return {"error": "Tool no soportada"}

    def _tool_round(self, calls: List[ToolCall]) -> List[Dict[str, Any]]:
        entries: List[Dict[str, Any]] = []
        for call in calls:
            if not call.name:
                continue
            result = self.call_tool(call.name, call.args)
            logger.debug("Tool %s(%s) -> %s", call.name, call.args, result)
            entries.append({"role": "model", "parts": [{"function_call": {"name": call.name, "args": call.args}}]})
            entries.append({"role": "user", "parts": [{"function_response": {"name": call.name, "response": result}}]})
        return entries

    def run_conversation(self, utterance: str) -> Tuple[str, Optional[str], int]:
        """Drive the model/tool loop; returns (last text, model used, rounds)"""
        history: List[Dict[str, Any]] = [{"role": "user", "parts": [{"text": utterance}]}]
        last_text = ""
        model = None
        rounds = 0
        while rounds < self.max_rounds:
            rounds += 1
            model, turn = generate_with_fallback(
                self.client,
                self.models,
                history,
                system_instruction=SYSTEM_INSTRUCTION,
                tools=TOOL_DECLARATIONS,
                temperature=self.temperature,
                max_output_tokens=self.max_output_tokens,
            )
            if turn.text:
                last_text = turn.text
            # No model call is left to read the results of the last round
            if not turn.tool_calls or rounds >= self.max_rounds:
                break
            history = history + self._tool_round(turn.tool_calls)
        return last_text, model, rounds

    def resolve(self, utterance: str) -> Resolution:
        last_text, model, rounds = self.run_conversation(utterance)
        response_text, raw_action = parse_model_reply(last_text)
        action = sanitize_action(raw_action)
        if action is None:
            inferred = infer_filter_action(utterance)
            if inferred is not None:
                logger.info("Model gave no usable action, using rule based filters")
                action = ApplyFiltersAction(filters=inferred, open_filters=True)
        return Resolution(response_text=response_text, action=action, model=model, rounds=rounds)
