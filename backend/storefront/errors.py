"""Exceptions raised by the storefront core

The HTTP layer in app.py maps these to status codes
"""
from __future__ import annotations
from typing import List, Optional


class StorefrontError(Exception):
    pass


class InvalidRequestError(StorefrontError):
    # Bad input from the client, rejected before touching any external service
    pass


class ConfigurationError(StorefrontError):
    pass


class StoreError(StorefrontError):
    # The storage backend failed to answer a query
    pass


class AllModelsFailedError(StorefrontError):
    """Every model in the fallback list failed with a retryable error"""

    def __init__(self, attempted: List[str], last_error: Optional[BaseException] = None):
        self.attempted = list(attempted)
        self.last_error = last_error
        detail = f": {last_error}" if last_error else ""
        super().__init__(f"Todos los modelos fallaron ({', '.join(self.attempted)}){detail}")
