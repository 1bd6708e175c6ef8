from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True, slots=True)
class BaseAgentContext:
    """Mode instructions: onboarding interview or ongoing assistant."""

    system_prompt: str
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class UserContext:
    """Per-user facts rendered as a WEDDING CONTEXT block."""

    user_id: str
    facts_text: str = ""


@dataclass(frozen=True, slots=True)
class PricingContext:
    """Upsell overlay; only the ongoing assistant carries one."""

    variant: str
    prompt: str


@dataclass(frozen=True, slots=True)
class RenderedContext:
    """Final, merged context passed into the completion call."""

    system_prompt: str
    # Request-level tags (mode, user_id, pricing variant); never sent as prompt text.
    metadata: dict[str, Any] = field(default_factory=dict)

    def as_messages(self) -> list[dict[str, str]]:
        return [{"role": "system", "content": self.system_prompt}]


def compose_context(
    *,
    base: BaseAgentContext,
    user: UserContext,
    pricing: PricingContext | None = None,
) -> RenderedContext:
    parts: list[str] = []
    parts.append(base.system_prompt.strip())

    if user.facts_text.strip():
        parts.append(user.facts_text.strip())

    if pricing is not None and pricing.prompt.strip():
        parts.append(pricing.prompt.strip())

    system_prompt = "\n\n".join([p for p in parts if p.strip()]).strip()
    metadata: dict[str, Any] = {**base.metadata, "user_id": user.user_id}
    if pricing is not None:
        metadata["pricing"] = pricing.variant
    return RenderedContext(system_prompt=system_prompt, metadata=metadata)
