from __future__ import annotations

import os
from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class OpenAICompatibleSettings:
    model: str
    base_url: str
    api_key: str | None
    timeout_s: float = 60.0


def settings_from_env(*, default_model: str = "gpt-4o-mini") -> OpenAICompatibleSettings:
    return OpenAICompatibleSettings(
        model=os.environ.get("OPENAI_MODEL", default_model),
        # For Ollama, typically http://127.0.0.1:11434/v1
        base_url=os.environ.get("OPENAI_BASE_URL") or "https://api.openai.com/v1",
        api_key=os.environ.get("OPENAI_API_KEY"),
        timeout_s=float(os.environ.get("LLM_TIMEOUT_S") or 60.0),
    )


def request_headers(s: OpenAICompatibleSettings) -> dict[str, str]:
    # Many OpenAI-compatible servers ignore the key but some require the header.
    api_key = s.api_key or ("ollama" if "api.openai.com" not in s.base_url else None)
    if not api_key:
        raise RuntimeError(
            "Set OPENAI_API_KEY for hosted OpenAI, or set OPENAI_BASE_URL for a local OpenAI-compatible server"
        )
    return {"Authorization": f"Bearer {api_key}", "Content-Type": "application/json"}
