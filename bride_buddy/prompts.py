from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path

ONBOARDING_PROMPT = "onboarding_interview.txt"
ASSISTANT_PROMPT = "wedding_assistant.txt"
PRICING_VARIANTS = ("early_adopter", "standard")


class PromptLoadError(RuntimeError):
    pass


def prompts_dir() -> Path:
    """`BRIDE_BUDDY_PROMPTS_DIR` if set, else `prompts/` at the repo root."""

    override = os.environ.get("BRIDE_BUDDY_PROMPTS_DIR")
    if override:
        return Path(override)
    # bride_buddy/prompts.py -> bride_buddy/ -> project root
    return Path(__file__).resolve().parents[1] / "prompts"


@lru_cache(maxsize=32)
def _read_prompt(path: Path) -> str:
    return path.read_text(encoding="utf-8").strip() + "\n"


def load_prompt(name: str) -> str:
    """Load a prompt text file by name, e.g. `load_prompt(ASSISTANT_PROMPT)`."""

    path = prompts_dir() / name
    try:
        return _read_prompt(path)
    except FileNotFoundError as e:
        raise PromptLoadError(f"Prompt not found: {path}") from e


def pricing_prompt(variant: str) -> str:
    if variant not in PRICING_VARIANTS:
        raise PromptLoadError(f"Unknown pricing variant: {variant!r}")
    return load_prompt(f"pricing_{variant}.txt")
