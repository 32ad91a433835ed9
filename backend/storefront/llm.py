from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Tuple

import google.generativeai as genai
from google.api_core import exceptions as google_exceptions

from .errors import AllModelsFailedError, ConfigurationError
from .logger import get_logger

logger = get_logger("llm")

# Rate limited or unknown model: worth trying the next model in the list
FALLBACK_EXCEPTIONS = (
    google_exceptions.ResourceExhausted,
    google_exceptions.TooManyRequests,
    google_exceptions.NotFound,
)
FALLBACK_STATUS_CODES = (429, 404)


@dataclass
class ToolCall:
    name: str
    args: Dict[str, Any] = field(default_factory=dict)


@dataclass
class ModelTurn:
    """One model answer: either plain text, tool call requests, or both"""
    text: str = ""
    tool_calls: List[ToolCall] = field(default_factory=list)


class GeminiClient:
    """Thin wrapper around the Gemini SDK with model caching and function calling"""

    def __init__(self, api_key: str) -> None:
        if not api_key:
            raise ConfigurationError("GEMINI_API_KEY is required")
        genai.configure(api_key=api_key)
        self._models: Dict[Tuple[str, str], genai.GenerativeModel] = {}

    def _model(self, name: str, system_instruction: str) -> genai.GenerativeModel:
        key = (_normalize_model_name(name), system_instruction)
        if key not in self._models:
            self._models[key] = genai.GenerativeModel(key[0], system_instruction=system_instruction or None)
        return self._models[key]

    def generate(
        self,
        model: str,
        contents: List[Dict[str, Any]],
        system_instruction: str = "",
        tools: Optional[List[Dict[str, Any]]] = None,
        temperature: float = 0.2,
        max_output_tokens: int = 160,
    ) -> ModelTurn:
        kwargs: Dict[str, Any] = {
            "generation_config": {
                "temperature": temperature,
                "max_output_tokens": max_output_tokens,
            },
        }
        if tools:
            kwargs["tools"] = [{"function_declarations": tools}]
        response = self._model(model, system_instruction).generate_content(contents, **kwargs)
        return _to_turn(response)


def _to_turn(response: Any) -> ModelTurn:
    # response.text raises when the answer holds function calls, so walk the parts instead
    texts: List[str] = []
    calls: List[ToolCall] = []
    for candidate in (getattr(response, "candidates", None) or [])[:1]:
        content = getattr(candidate, "content", None)
        for part in getattr(content, "parts", None) or []:
            fc = getattr(part, "function_call", None)
            if fc is not None and getattr(fc, "name", ""):
                calls.append(ToolCall(name=fc.name, args=_plain(fc.args)))
                continue
            text = getattr(part, "text", "")
            if text:
                texts.append(text)
    return ModelTurn(text="".join(texts).strip(), tool_calls=calls)


def _plain(value: Any) -> Any:
    # Proto map/list composites into plain dicts and lists
    if value is None:
        return {}
    if hasattr(value, "items"):
        return {str(k): _plain_value(v) for k, v in value.items()}
    return {}


def _plain_value(value: Any) -> Any:
    if hasattr(value, "items"):
        return {str(k): _plain_value(v) for k, v in value.items()}
    if isinstance(value, (str, bytes)):
        return value
    if hasattr(value, "__iter__"):
        return [_plain_value(v) for v in value]
    return value


def _normalize_model_name(name: Optional[str]) -> str:
    # "models/gemini-2.5-flash" -> "gemini-2.5-flash"
    if not name:
        return ""
    cleaned = name.strip()
    if cleaned.startswith("models/"):
        return cleaned.split("/", 1)[1]
    return cleaned


def _status_of(exc: BaseException) -> Optional[int]:
    for attr in ("code", "status_code", "status"):
        value = getattr(exc, attr, None)
        if isinstance(value, int) and not isinstance(value, bool):
            return value
    return None


def is_fallback_error(exc: BaseException) -> bool:
    return isinstance(exc, FALLBACK_EXCEPTIONS) or _status_of(exc) in FALLBACK_STATUS_CODES


def generate_with_fallback(client: Any, models: Sequence[str], contents: List[Dict[str, Any]], **kwargs) -> Tuple[str, ModelTurn]:
    """Try each model in order and return (model, turn) for the first one that answers

    Only rate limit and not found errors move on to the next model, anything else propagates
    """
    last_error: Optional[BaseException] = None
    attempted: List[str] = []
    for model in models:
        attempted.append(model)
        try:
            return model, client.generate(model, contents, **kwargs)
        except Exception as e:
            if not is_fallback_error(e):
                raise
            logger.warning("Model %s unavailable (%s), trying the next one", model, e)
            last_error = e
    raise AllModelsFailedError(attempted, last_error)
