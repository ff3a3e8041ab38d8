"""content.providers.gemini

Gemini provider (LLM) over google-genai.

- Speaks the same chat protocol as OpenRouter; messages are flattened into a
  single prompt since every game prompt is one user turn.
- Multiple comma-separated keys rotate on failure.

Important: This provider is UI-agnostic (no Streamlit dependency).
Secrets/env loading is done in the Streamlit app.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Sequence

from ..prompts import is_probe_ok, probe_messages
from .base import ChatResult, ModelInfo, ProbeResult, ProviderError, ProviderStatus

LOG = logging.getLogger(__name__)

GEMINI_MODELS = (
    "gemini-2.5-flash",
    "gemini-2.0-flash",
    "gemini-2.5-pro",
)


def _flatten(messages: Sequence[Dict[str, Any]]) -> str:
    return "\n\n".join(str(m.get("content") or "") for m in messages if m.get("content"))


def _usage(resp: Any) -> Dict[str, int]:
    meta = getattr(resp, "usage_metadata", None)
    if meta is None:
        return {}
    prompt = int(getattr(meta, "prompt_token_count", 0) or 0)
    completion = int(getattr(meta, "candidates_token_count", 0) or 0)
    total = int(getattr(meta, "total_token_count", 0) or (prompt + completion))
    return {"prompt_tokens": prompt, "completion_tokens": completion, "total_tokens": total}


class GeminiProvider:
    def __init__(self, api_keys: List[str], *, timeout_seconds: float = 4.0, client: Any = None):
        self.api_keys = [k.strip() for k in (api_keys or []) if str(k).strip()]
        self.timeout_seconds = max(0.5, float(timeout_seconds))
        self.model_in_use = ""
        self.last_error = ""
        self._client = client
        if self._client is None:
            self._init_client()

    @staticmethod
    def from_api_key_string(raw: str, **kwargs: Any) -> "GeminiProvider":
        keys = [x.strip() for x in str(raw or "").split(",") if x.strip()]
        return GeminiProvider(keys, **kwargs)

    def _init_client(self) -> None:
        self._client = None
        if not self.api_keys:
            self.last_error = "Missing GEMINI_API_KEY"
            return
        from google import genai

        self._client = genai.Client(
            api_key=self.api_keys[0],
            http_options={"timeout": int(self.timeout_seconds * 1000)},
        )
        self.last_error = ""

    def _rotate_key(self) -> None:
        if len(self.api_keys) <= 1:
            return
        self.api_keys = self.api_keys[1:] + self.api_keys[:1]
        self._init_client()

    def status(self) -> ProviderStatus:
        if self._client is None:
            return ProviderStatus(False, "none", "", error=self.last_error)
        return ProviderStatus(True, "genai", self.model_in_use, error=self.last_error)

    def chat(
        self,
        model: str,
        messages: Sequence[Dict[str, Any]],
        *,
        max_tokens: int = 900,
        temperature: float = 0.8,
    ) -> ChatResult:
        if self._client is None:
            raise ProviderError(self.last_error or "Gemini client unavailable")
        prompt = _flatten(messages)
        cfg = {"temperature": float(temperature), "max_output_tokens": int(max_tokens)}
        last_err: Optional[Exception] = None
        for _ in range(max(1, len(self.api_keys))):
            try:
                resp = self._client.models.generate_content(model=model, contents=prompt, config=cfg)
                text = (getattr(resp, "text", "") or "").strip()
                if text:
                    self.model_in_use = model
                    self.last_error = ""
                    return ChatResult(text=text, usage=_usage(resp))
                last_err = ProviderError("Empty response")
            except Exception as e:  # SDK raises a wide range of error types
                last_err = e
            LOG.warning("gemini call failed for %s: %s", model, last_err)
            self._rotate_key()
        self.last_error = f"{type(last_err).__name__}: {last_err}"
        raise ProviderError(self.last_error) from last_err

    def list_models(self) -> List[ModelInfo]:
        return [ModelInfo(id=m, name=m) for m in GEMINI_MODELS]

    def probe(self, model: str) -> ProbeResult:
        try:
            res = self.chat(model, probe_messages(), max_tokens=5, temperature=0.0)
        except ProviderError as e:
            return ProbeResult(ok=False, model=model, error=str(e))
        reply = res.text.strip()
        if not is_probe_ok(reply):
            return ProbeResult(ok=False, model=model, reply=reply, tokens=res.total_tokens, error=f"Unexpected reply: {reply[:40]}")
        return ProbeResult(ok=True, model=model, reply=reply, tokens=res.total_tokens or 5)
