"""content.parsing

Permissive JSON parsing for LLM outputs.

Models wrap their JSON in code fences or chatty preambles. We do NOT execute
anything; we only:
- strip code fence markers
- json.loads the remainder
- on failure, slice from the first "{" to the last "}" and json.loads once more
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass
from typing import Any, Dict, Optional


@dataclass(frozen=True)
class ParseResult:
    data: Optional[Dict[str, Any]]
    raw: str
    cleaned: str
    error: str = ""


_FENCE_RE = re.compile(r"```(?:json)?", re.IGNORECASE)


def strip_code_fences(s: str) -> str:
    return _FENCE_RE.sub("", s or "").strip()


def extract_first_object(s: str) -> str:
    """Slice from the first "{" to the last "}" (best effort)."""
    s = (s or "").strip()
    i = s.find("{")
    j = s.rfind("}")
    if i < 0 or j <= i:
        return ""
    return s[i : j + 1]


def _loads_object(s: str) -> Dict[str, Any]:
    obj = json.loads(s)
    if not isinstance(obj, dict):
        raise ValueError("JSON root is not an object")
    return obj


def try_parse_json(raw: Any) -> ParseResult:
    """Best-effort parse. Returns ParseResult(data=None, error=...) on failure."""
    if not isinstance(raw, str) or not raw.strip():
        return ParseResult(data=None, raw="", cleaned="", error="Empty response")
    raw = raw.strip()
    s = strip_code_fences(raw)

    try:
        return ParseResult(data=_loads_object(s), raw=raw, cleaned=s)
    except ValueError as e_json:
        err1 = f"json.loads: {type(e_json).__name__}: {e_json}"

    sliced = extract_first_object(s)
    if not sliced:
        return ParseResult(data=None, raw=raw, cleaned=s, error=f"{err1} | no object found")
    try:
        return ParseResult(data=_loads_object(sliced), raw=raw, cleaned=sliced)
    except ValueError as e_slice:
        return ParseResult(data=None, raw=raw, cleaned=sliced, error=f"{err1} | slice: {e_slice}")


def must_parse_json(raw: Any) -> Dict[str, Any]:
    res = try_parse_json(raw)
    if res.data is None:
        raise ValueError(res.error or "Could not parse JSON from model response")
    return res.data
