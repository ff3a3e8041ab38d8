"""engine.config

Engine configuration. Built from the environment by load_config(); the
Streamlit app may override keys from st.secrets before passing it in.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Mapping, Optional

from content.providers.openrouter import DEFAULT_BASE_URL

OPENROUTER = "openrouter"
GEMINI = "gemini"
OFFLINE = "offline"
PROVIDERS = (OPENROUTER, GEMINI, OFFLINE)


@dataclass(frozen=True)
class EngineConfig:
    provider: str = OPENROUTER
    api_key: str = ""
    base_url: str = DEFAULT_BASE_URL
    site_url: str = ""
    default_model: str = ""
    timeout_seconds: float = 4.0
    max_tokens: int = 900
    temperature: float = 0.8
    max_candidates: int = 3
    random_arrests: bool = True
    save_path: str = ".modern_trail_save.json"
    seed: Optional[int] = None
    log_level: str = "INFO"


def _float(raw: Optional[str], default: float) -> float:
    try:
        return float(raw) if raw not in (None, "") else default
    except ValueError:
        return default


def _int_or_none(raw: Optional[str]) -> Optional[int]:
    try:
        return int(raw) if raw not in (None, "") else None
    except ValueError:
        return None


def load_config(env: Optional[Mapping[str, str]] = None) -> EngineConfig:
    env = os.environ if env is None else env
    provider = (env.get("TRAIL_PROVIDER") or OPENROUTER).strip().lower()
    if provider not in PROVIDERS:
        provider = OPENROUTER

    if provider == GEMINI:
        api_key = env.get("GEMINI_API_KEY") or env.get("GOOGLE_API_KEY") or ""
    else:
        api_key = env.get("OPENROUTER_API_KEY") or ""

    return EngineConfig(
        provider=provider,
        api_key=api_key.strip(),
        base_url=env.get("OPENROUTER_BASE_URL") or DEFAULT_BASE_URL,
        site_url=env.get("SITE_URL") or "",
        default_model=env.get("TRAIL_MODEL") or "",
        timeout_seconds=_float(env.get("TRAIL_TIMEOUT_SECONDS"), 4.0),
        random_arrests=(env.get("TRAIL_RANDOM_ARRESTS") or "1").strip().lower() not in ("0", "false", "no"),
        save_path=env.get("TRAIL_SAVE_PATH") or ".modern_trail_save.json",
        seed=_int_or_none(env.get("TRAIL_SEED")),
        log_level=(env.get("TRAIL_LOG_LEVEL") or "INFO").upper(),
    )
