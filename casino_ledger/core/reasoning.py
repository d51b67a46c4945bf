"""Structured justification attached to agent actions.

The ledger stores reasoning opaquely inside event payloads; it validates the
shape so analytics collaborators can rely on it, and never interprets it.
"""

from __future__ import annotations

from typing import Annotated, Any

from pydantic import BaseModel, Field, ValidationError

ReasoningItem = Annotated[str, Field(min_length=1, max_length=180)]


class Reasoning(BaseModel):
    intent: str = Field(..., min_length=1, max_length=240)
    plan: str = Field(..., min_length=1, max_length=400)
    confidence: float = Field(..., ge=0.0, le=1.0)
    why_now: str = Field(..., min_length=1, max_length=240)

    claim: str | None = Field(None, max_length=240)
    evidence: list[ReasoningItem] | None = Field(None, max_length=10)
    alternatives: list[ReasoningItem] | None = Field(None, max_length=10)
    risk: str | None = Field(None, max_length=240)

    def to_payload(self) -> dict[str, Any]:
        return self.model_dump(exclude_none=True)


def summarize_reasoning(raw: Any) -> dict[str, Any] | None:
    """Short display form of a stored reasoning dict, or None if malformed."""
    try:
        reasoning = raw if isinstance(raw, Reasoning) else Reasoning.model_validate(raw)
    except ValidationError:
        return None
    return {
        "intent": reasoning.intent,
        "plan": reasoning.plan,
        "why_now": reasoning.why_now,
        "confidence_pct": round(reasoning.confidence * 100),
    }
