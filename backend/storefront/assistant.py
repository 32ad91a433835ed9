from __future__ import annotations
import time
from typing import Optional

from .catalog import CatalogStore
from .errors import InvalidRequestError
from .intents import IntentStore
from .logger import get_logger
from .models import AssistantReply, LastIntent
from .relaxation import relax_if_empty
from .resolver import IntentResolver

logger = get_logger("assistant")


class AssistantService:
    """One assistant turn: resolve with the model, sanitize, relax, remember"""

    def __init__(self, resolver: IntentResolver, store: CatalogStore, intents: Optional[IntentStore] = None):
        self.resolver = resolver
        self.store = store
        self.intents = intents

    def handle(self, message: str, session_id: Optional[str] = None) -> AssistantReply:
        text = (message or "").strip()
        if not text:
            raise InvalidRequestError("El mensaje está vacío")

        resolution = self.resolver.resolve(text)
        logger.info(
            "Resolved %r with %s in %d round(s), action=%s",
            text, resolution.model, resolution.rounds,
            resolution.action.type if resolution.action else None,
        )
        reply = relax_if_empty(self.store, text, resolution.action, resolution.response_text)

        if session_id and self.intents is not None and reply.action is not None:
            self.intents.save(session_id, LastIntent(ts=time.time(), transcript=text, action=reply.action))
        return reply
