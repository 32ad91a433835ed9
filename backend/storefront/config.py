"""Runtime configuration read from environment variables"""
from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

BASE_DIR = Path(__file__).resolve().parent.parent

DEFAULT_MODELS = ["gemini-2.5-flash", "gemini-2.5-pro", "gemini-2.0-flash-lite"]


@dataclass(frozen=True)
class Settings:
    """Configuration for the LLM, the storage backend and the HTTP layer"""
    gemini_api_key: str
    models: List[str] = field(default_factory=lambda: list(DEFAULT_MODELS))
    temperature: float = 0.2
    max_output_tokens: int = 160
    max_tool_rounds: int = 3
    supabase_url: Optional[str] = None
    supabase_key: Optional[str] = None
    catalog_dir: Path = BASE_DIR / "data"
    allowed_origins: List[str] = field(default_factory=lambda: ["http://localhost:3000", "http://127.0.0.1:3000"])

    @property
    def use_supabase(self) -> bool:
        return bool(self.supabase_url and self.supabase_key)


def _split_csv(raw: str) -> List[str]:
    return [part.strip() for part in raw.split(",") if part.strip()]


def load_settings() -> Settings:
    """Build Settings from the environment

    Invalid numeric values raise ValueError at startup rather than later
    """
    models = _split_csv(os.getenv("GEMINI_MODELS", "")) or list(DEFAULT_MODELS)
    catalog_dir = os.getenv("CATALOG_DIR")
    origins = os.getenv("ALLOWED_ORIGINS", "http://localhost:3000,http://127.0.0.1:3000")
    return Settings(
        gemini_api_key=os.getenv("GEMINI_API_KEY") or os.getenv("GOOGLE_API_KEY", ""),
        models=models,
        temperature=float(os.getenv("LLM_TEMPERATURE", "0.2")),
        max_output_tokens=int(os.getenv("LLM_MAX_OUTPUT_TOKENS", "160")),
        supabase_url=os.getenv("SUPABASE_URL") or None,
        supabase_key=os.getenv("SUPABASE_KEY") or None,
        catalog_dir=Path(catalog_dir) if catalog_dir else BASE_DIR / "data",
        allowed_origins=_split_csv(origins),
    )
