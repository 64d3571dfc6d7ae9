"""
Runtime settings.

Values come from environment variables; CLI flags override them.

    PROSEM_DATA_DIR   root folder of the JSON documents (default: prosem/data)
    PROSEM_USER       teacher id; empty means the master (admin) copy
    API_KEY           comma-separated Gemini API keys (GEMINI_API_KEYS also works)
    GEMINI_MODEL      model name for the optional AI suggestions
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Mapping, Optional

from prosem.gemini import DEFAULT_MODEL


def _default_data_dir() -> Path:
    """
    Data folder inside the package, next to this file.

    A function instead of a constant so tests can point elsewhere.
    """
    return Path(__file__).resolve().parent / "data"


def split_keys(raw: str) -> list[str]:
    return [k.strip() for k in (raw or "").split(",") if k.strip()]


@dataclass
class Settings:
    data_dir: Path = field(default_factory=_default_data_dir)
    user_id: Optional[str] = None
    api_keys: list[str] = field(default_factory=list)
    gemini_model: str = DEFAULT_MODEL


def load_settings(env: Optional[Mapping[str, str]] = None) -> Settings:
    env = os.environ if env is None else env

    data_dir = env.get("PROSEM_DATA_DIR", "").strip()
    keys = split_keys(env.get("API_KEY", "")) or split_keys(env.get("GEMINI_API_KEYS", ""))

    return Settings(
        data_dir=Path(data_dir) if data_dir else _default_data_dir(),
        user_id=env.get("PROSEM_USER", "").strip() or None,
        api_keys=keys,
        gemini_model=env.get("GEMINI_MODEL", "").strip() or DEFAULT_MODEL,
    )
