"""content.providers.base

Provider interfaces.

A provider's job is to turn chat messages into text. It knows nothing about
events or game state; the generator owns parsing, validation and fallback.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Protocol, Sequence

# Used when the model directory cannot be fetched.
FALLBACK_FREE_MODELS: tuple = (
    "mistralai/mistral-7b-instruct:free",
    "huggingfaceh4/zephyr-7b-beta:free",
    "microsoft/phi-3-mini-128k-instruct:free",
    "qwen/qwen-2-7b-instruct:free",
    "openchat/openchat-7b:free",
)


class ProviderError(RuntimeError):
    """A single provider call failed (network, HTTP status, empty body)."""


@dataclass(frozen=True)
class ProviderStatus:
    ok: bool
    backend: str
    model: str
    note: str = ""
    error: str = ""


@dataclass(frozen=True)
class ChatResult:
    text: str
    usage: Dict[str, int] = field(default_factory=dict)

    @property
    def prompt_tokens(self) -> int:
        return int(self.usage.get("prompt_tokens", 0) or 0)

    @property
    def completion_tokens(self) -> int:
        return int(self.usage.get("completion_tokens", 0) or 0)

    @property
    def total_tokens(self) -> int:
        return int(self.usage.get("total_tokens", 0) or (self.prompt_tokens + self.completion_tokens))


@dataclass(frozen=True)
class ModelInfo:
    id: str
    name: str = ""
    healthy: bool = True


@dataclass(frozen=True)
class ProbeResult:
    ok: bool
    model: str
    reply: str = ""
    tokens: int = 0
    error: str = ""

    @property
    def no_endpoints(self) -> bool:
        return "no endpoints found" in (self.error or "").lower()


class NarrativeProvider(Protocol):
    def status(self) -> ProviderStatus: ...

    def chat(
        self,
        model: str,
        messages: Sequence[Dict[str, Any]],
        *,
        max_tokens: int = 900,
        temperature: float = 0.8,
    ) -> ChatResult:
        """Raise ProviderError on failure."""
        ...

    def list_models(self) -> List[ModelInfo]: ...

    def probe(self, model: str) -> ProbeResult: ...
