"""content.providers.openrouter

OpenRouter provider (OpenAI-style chat completions over httpx).

- Only free models are offered in the model directory.
- Every failure (transport, non-200, unparsable body, empty reply) surfaces as
  ProviderError so the generator can move on to the next candidate.

UI-agnostic: keys and URLs are passed in, nothing is read from Streamlit here.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Sequence

import httpx

from ..prompts import is_probe_ok, probe_messages
from .base import ChatResult, ModelInfo, ProbeResult, ProviderError, ProviderStatus

LOG = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://openrouter.ai/api/v1"
APP_TITLE = "Modern American Trail"
TOP_P = 0.95
PROBE_MAX_TOKENS = 5
PROBE_DEFAULT_TOKENS = 5

# Known to be listed as free but not actually served.
EXCLUDED_MODELS = frozenset({"meta-llama/llama-3.1-8b-instruct:free"})

_ZEROISH = {"0", "0.0", "0.000000"}


def _is_zero(x: Any) -> bool:
    if isinstance(x, bool):
        return False
    if isinstance(x, (int, float)):
        return x == 0
    return isinstance(x, str) and x.strip() in _ZEROISH


def is_free_model(entry: Dict[str, Any]) -> bool:
    model_id = str(entry.get("id") or "")
    pricing = entry.get("pricing") or {}
    if not isinstance(pricing, dict):
        pricing = {}
    return ":free" in model_id or (_is_zero(pricing.get("prompt")) and _is_zero(pricing.get("completion")))


def filter_free_models(entries: Sequence[Any]) -> List[ModelInfo]:
    """Free, de-duplicated, sorted by display name."""
    seen = set()
    out: List[ModelInfo] = []
    for e in entries:
        if not isinstance(e, dict) or not e.get("id"):
            continue
        mid = str(e["id"])
        if mid in EXCLUDED_MODELS or mid in seen or not is_free_model(e):
            continue
        seen.add(mid)
        out.append(ModelInfo(id=mid, name=str(e.get("name") or mid)))
    out.sort(key=lambda m: m.name.lower())
    return out


def _error_text(resp: httpx.Response) -> str:
    try:
        body = resp.json()
    except ValueError:
        return resp.text[:500]
    err = body.get("error") if isinstance(body, dict) else None
    if isinstance(err, dict):
        return str(err.get("message") or err)
    return str(err or body)[:500]


class OpenRouterProvider:
    def __init__(
        self,
        api_key: str,
        *,
        base_url: str = DEFAULT_BASE_URL,
        site_url: str = "",
        timeout_seconds: float = 4.0,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.api_key = (api_key or "").strip()
        self.base_url = (base_url or DEFAULT_BASE_URL).rstrip("/")
        self.site_url = site_url or ""
        self.timeout_seconds = max(0.5, float(timeout_seconds))
        self.last_error = ""
        self.model_in_use = ""
        self._client = httpx.Client(timeout=self.timeout_seconds, transport=transport)

    def close(self) -> None:
        self._client.close()

    def _headers(self) -> Dict[str, str]:
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "X-Title": APP_TITLE,
            "Content-Type": "application/json",
        }
        if self.site_url:
            headers["HTTP-Referer"] = self.site_url
        return headers

    def status(self) -> ProviderStatus:
        if not self.api_key:
            return ProviderStatus(False, "openrouter", "", error="Missing OPENROUTER_API_KEY")
        return ProviderStatus(True, "openrouter", self.model_in_use, error=self.last_error)

    def chat(
        self,
        model: str,
        messages: Sequence[Dict[str, Any]],
        *,
        max_tokens: int = 900,
        temperature: float = 0.8,
    ) -> ChatResult:
        if not self.api_key:
            raise ProviderError("Missing OPENROUTER_API_KEY")
        payload = {
            "model": model,
            "messages": list(messages),
            "max_tokens": int(max_tokens),
            "temperature": float(temperature),
            "top_p": TOP_P,
        }
        try:
            resp = self._client.post(f"{self.base_url}/chat/completions", json=payload, headers=self._headers())
        except httpx.HTTPError as e:
            self.last_error = f"{type(e).__name__}: {e}"
            LOG.warning("openrouter chat failed for %s: %s", model, self.last_error)
            raise ProviderError(self.last_error) from e

        if resp.status_code != 200:
            self.last_error = f"HTTP {resp.status_code}: {_error_text(resp)}"
            LOG.warning("openrouter chat failed for %s: %s", model, self.last_error)
            raise ProviderError(self.last_error)

        try:
            data = resp.json()
            text = data["choices"][0]["message"]["content"]
        except (ValueError, KeyError, IndexError, TypeError) as e:
            self.last_error = f"Bad response body: {e}"
            LOG.warning("openrouter chat failed for %s: %s", model, self.last_error)
            raise ProviderError(self.last_error) from e

        if not isinstance(text, str) or not text.strip():
            self.last_error = "Empty response"
            raise ProviderError(self.last_error)

        usage = data.get("usage") if isinstance(data.get("usage"), dict) else {}
        self.model_in_use = model
        self.last_error = ""
        return ChatResult(
            text=text,
            usage={k: int(v) for k, v in usage.items() if isinstance(v, (int, float)) and not isinstance(v, bool)},
        )

    def list_models(self) -> List[ModelInfo]:
        try:
            resp = self._client.get(f"{self.base_url}/models", headers=self._headers())
            resp.raise_for_status()
            data = resp.json()
        except (httpx.HTTPError, ValueError) as e:
            self.last_error = f"{type(e).__name__}: {e}"
            LOG.warning("openrouter model directory unavailable: %s", self.last_error)
            raise ProviderError(self.last_error) from e
        entries = data.get("data") if isinstance(data, dict) else None
        return filter_free_models(entries if isinstance(entries, list) else [])

    def probe(self, model: str) -> ProbeResult:
        try:
            res = self.chat(model, probe_messages(), max_tokens=PROBE_MAX_TOKENS, temperature=0.0)
        except ProviderError as e:
            return ProbeResult(ok=False, model=model, error=str(e))
        reply = res.text.strip()
        tokens = res.total_tokens or PROBE_DEFAULT_TOKENS
        if not is_probe_ok(reply):
            return ProbeResult(ok=False, model=model, reply=reply, tokens=tokens, error=f"Unexpected reply: {reply[:40]}")
        return ProbeResult(ok=True, model=model, reply=reply, tokens=tokens)

    def list_candidate_models(self) -> List[ModelInfo]:
        """Directory entries with a live health flag from one probe each."""
        out: List[ModelInfo] = []
        for m in self.list_models():
            out.append(ModelInfo(id=m.id, name=m.name, healthy=self.probe(m.id).ok))
        return out
