"""Model context-window limits and budget checks.

WHY: The point of reducing a bundle is to make it fit a model's context
window. Callers want to know, for a given token total, whether it fits a
chosen model and how much headroom remains.

HOW: MODEL_LIMITS is plain data (id, display name, limit, provider).
check_budget() looks a model up and reports usage against its limit.

RULES:
- Limits are context-window sizes in tokens
- Unknown model ids raise ValueError from check_budget(); find_model()
  returns None instead
- percent_used is rounded to one decimal place
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional


@dataclass(frozen=True)
class ModelLimit:
    id: str
    name: str
    limit: int
    provider: str


MODEL_LIMITS: List[ModelLimit] = [
    # OpenAI
    ModelLimit("gpt-3.5-turbo", "GPT-3.5 Turbo", 16_385, "OpenAI"),
    ModelLimit("gpt-4o", "GPT-4o", 128_000, "OpenAI"),
    ModelLimit("gpt-5.2", "GPT-5.2", 400_000, "OpenAI"),
    # Anthropic
    ModelLimit("claude-3-5-sonnet", "Claude 3.5 Sonnet", 200_000, "Anthropic"),
    ModelLimit("claude-4.5-opus", "Claude 4.5 Opus", 200_000, "Anthropic"),
    # Google
    ModelLimit("gemini-1.5-pro", "Gemini 1.5 Pro", 2_000_000, "Google"),
    ModelLimit("gemini-3-pro", "Gemini 3 Pro", 2_000_000, "Google"),
]

PROVIDERS = ("OpenAI", "Anthropic", "Google")


@dataclass(frozen=True)
class BudgetReport:
    """Usage of one model's context window by a token total."""

    model: ModelLimit
    tokens: int
    limit: int
    percent_used: float
    fits: bool
    remaining: int


def find_model(model_id: str) -> Optional[ModelLimit]:
    """Look up a model by id (case-insensitive)."""
    wanted = model_id.strip().lower()
    for model in MODEL_LIMITS:
        if model.id == wanted:
            return model
    return None


def check_budget(tokens: int, model_id: str) -> BudgetReport:
    """Report how ``tokens`` fits into ``model_id``'s context window.

    Raises:
        ValueError: If the model id is unknown.
    """
    model = find_model(model_id)
    if model is None:
        available = ", ".join(m.id for m in MODEL_LIMITS)
        raise ValueError(
            "Unknown model '{}'. Available: {}".format(model_id, available)
        )
    return BudgetReport(
        model=model,
        tokens=tokens,
        limit=model.limit,
        percent_used=round(tokens / model.limit * 100, 1),
        fits=tokens <= model.limit,
        remaining=model.limit - tokens,
    )
