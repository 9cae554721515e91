"""LLM client wrapper: OpenAI, Groq (free tier), Gemini or Ollama (local, free), plus an HTTP proxy transport."""
import json
import os
import re
from pathlib import Path
from typing import Any, List, Tuple
import requests
from openai import OpenAI
from dotenv import load_dotenv

# Load .env from project root (parent of purepick/) so it works when run as python -m purepick.run
_project_root = Path(__file__).resolve().parent.parent
load_dotenv(_project_root / ".env")

# Provider: openai (default), groq (free tier), gemini, ollama (local, free)
GROQ_BASE = "https://api.groq.com/openai/v1"
GEMINI_BASE = "https://generativelanguage.googleapis.com/v1beta/openai/"
OLLAMA_BASE = "http://localhost:11434/v1"

DEFAULT_TIMEOUT = 25.0
DEFAULT_TEMPERATURE = 0.3


def get_provider() -> str:
    return (os.getenv("LLM_PROVIDER") or "openai").strip().lower()


def get_timeout() -> float:
    """Seconds to wait for the oracle before giving up (ORACLE_TIMEOUT, default 25)."""
    try:
        return float(os.getenv("ORACLE_TIMEOUT") or DEFAULT_TIMEOUT)
    except ValueError:
        return DEFAULT_TIMEOUT


def get_temperature() -> float:
    try:
        return float(os.getenv("ORACLE_TEMPERATURE") or DEFAULT_TEMPERATURE)
    except ValueError:
        return DEFAULT_TEMPERATURE


def get_client(timeout: float | None = None) -> OpenAI:
    """Return OpenAI-compatible client based on LLM_PROVIDER in .env. Never retries on its own."""
    provider = get_provider()
    opts = {"timeout": timeout or get_timeout(), "max_retries": 0}

    if provider == "groq":
        key = os.getenv("GROQ_API_KEY")
        if not key or key.startswith("gsk_REPLACE"):
            raise ValueError(
                "Groq API key not set. Set LLM_PROVIDER=groq and GROQ_API_KEY=your-key in .env. "
                "Get a free key at https://console.groq.com/"
            )
        return OpenAI(api_key=key, base_url=GROQ_BASE, **opts)

    if provider == "gemini":
        key = os.getenv("GEMINI_API_KEY")
        if not key:
            raise ValueError("Gemini API key not set. Set LLM_PROVIDER=gemini and GEMINI_API_KEY=your-key in .env.")
        return OpenAI(api_key=key, base_url=GEMINI_BASE, **opts)

    if provider == "ollama":
        # Ollama has no auth; use a placeholder key. Ensure Ollama is running: ollama run llama3.2
        return OpenAI(api_key="ollama", base_url=OLLAMA_BASE, **opts)

    # default: openai
    key = os.getenv("OPENAI_API_KEY")
    if not key or key.startswith("sk-REPLACE"):
        raise ValueError(
            "OpenAI API key not set. Create .env and set OPENAI_API_KEY=your-key, "
            "or use a free option: LLM_PROVIDER=groq + GROQ_API_KEY (get at https://console.groq.com/) "
            "or LLM_PROVIDER=ollama (run 'ollama run llama3.2' first)."
        )
    return OpenAI(api_key=key, **opts)


def get_model() -> str:
    """Return model name from env or default for current provider."""
    provider = get_provider()
    if provider == "groq":
        return os.getenv("GROQ_MODEL", "llama-3.1-8b-instant")
    if provider == "gemini":
        return os.getenv("GEMINI_MODEL", "gemini-2.5-flash")
    if provider == "ollama":
        return os.getenv("OLLAMA_MODEL", "llama3.2")
    return os.getenv("OPENAI_MODEL", "gpt-4o-mini")


def complete(system: str, user: str, model: str | None = None, timeout: float | None = None) -> str:
    """
    Single completion, bounded by timeout. Returns the assistant message content.
    Raises on transport errors, timeouts and non-2xx responses.
    """
    client = get_client(timeout)
    model = model or get_model()
    resp = client.chat.completions.create(
        model=model,
        messages=[
            {"role": "system", "content": system},
            {"role": "user", "content": user},
        ],
        temperature=get_temperature(),
    )
    msg = resp.choices[0].message
    return msg.content or ""


def post_json(url: str, payload: dict, timeout: float | None = None) -> str:
    """POST a JSON payload to an analysis proxy and return the response body. Raises on non-2xx."""
    resp = requests.post(url, json=payload, timeout=timeout or get_timeout())
    resp.raise_for_status()
    return resp.text


def strip_code_fences(text: str) -> str:
    """Return the content of a ```json ... ``` block (closing fence optional), else the stripped text."""
    text = text.strip()
    if "```json" in text:
        start = text.index("```json") + 7
    elif "```" in text:
        start = text.index("```") + 3
    else:
        return text
    end = text.find("```", start)
    return text[start:end if end != -1 else len(text)].strip()


def _json_candidate(text: str) -> str:
    """Fence-free text starting at the first { when the model put prose before the JSON."""
    text = strip_code_fences(text)
    if text and text[0] not in "{[":
        first = text.find("{")
        if first != -1:
            text = text[first:]
    return text


def extract_json_from_response(text: str) -> Any:
    """
    Try to find a JSON document in the response (between ```json ... ``` or raw).
    Text after a complete document is ignored. Returns the parsed value or raises ValueError.
    """
    value, _ = json.JSONDecoder().raw_decode(_json_candidate(text))
    return value


# --- Bounded repair of truncated JSON ---

_STRING = r'"(?:[^"\\]|\\.)*"'
_VALUE = rf"(?:{_STRING}|-?\d+(?:\.\d+)?(?:[eE][+-]?\d+)?|true|false|null|[\[{{][\s\S]*[\]}}])"
_COMPLETE_MEMBER = re.compile(rf"^{_STRING}\s*:\s*{_VALUE}$")
_COMPLETE_ELEMENT = re.compile(rf"^{_VALUE}$")
_CLOSERS = {"{": "}", "[": "]"}


def _scan(text: str) -> Tuple[List[str], List[Tuple[int, str, str | None]], bool]:
    """Open-bracket stack, structural boundaries (offset, char, enclosing container) and in-string flag."""
    stack: List[str] = []
    boundaries: List[Tuple[int, str, str | None]] = []
    in_string = False
    escaped = False
    for i, ch in enumerate(text):
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
            continue
        if ch == '"':
            in_string = True
        elif ch in "{[":
            stack.append(ch)
            boundaries.append((i, ch, ch))
        elif ch in "}]":
            if stack:
                stack.pop()
        elif ch == ",":
            boundaries.append((i, ch, stack[-1] if stack else None))
    return stack, boundaries, in_string


def _tail_is_complete(tail: str, container: str | None) -> bool:
    tail = tail.strip()
    if not tail:
        return True
    if container == "{":
        return bool(_COMPLETE_MEMBER.match(tail))
    return bool(_COMPLETE_ELEMENT.match(tail))


def repair_truncated_json(text: str) -> str:
    """
    Best-effort fix for a response cut off mid-object: drop a trailing incomplete key/value
    pair, drop a trailing comma, then append the closing ] / } still open. One pass, no loops
    over the input; the caller re-parses once and gives up if that fails.
    """
    text = _json_candidate(text).rstrip()
    _, boundaries, in_string = _scan(text)

    closed = not in_string and text.endswith(("}", "]"))
    if boundaries and not closed:
        pos, ch, container = boundaries[-1]
        tail = text[pos + 1:]
        if in_string or not _tail_is_complete(tail, container):
            text = text[:pos] if ch == "," else text[:pos + 1]

    text = text.rstrip()
    while text.endswith(","):
        text = text[:-1].rstrip()

    stack, _, _ = _scan(text)
    return text + "".join(_CLOSERS[c] for c in reversed(stack))
