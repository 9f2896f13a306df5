"""Collection statistics embedded in export documents."""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal

from ..models import Prompt
from .models import Statistics


def _as_record(item) -> dict:
    return item.to_dict() if isinstance(item, Prompt) else item


def _round2(value: float) -> float:
    return float(Decimal(value).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))


def calculate_statistics(prompts: list) -> Statistics:
    """Summarize prompts (Prompt objects or raw export records)."""
    if not prompts:
        return Statistics()

    records = [_as_record(p) for p in prompts]

    total_rating = sum(r.get("rating") or 0 for r in records)
    average_rating = _round2(total_rating / len(records))

    # dicts keep insertion order, so max() resolves ties to the first model seen
    model_counts: dict[str, int] = {}
    for r in records:
        model = (r.get("metadata") or {}).get("model") or "Unknown"
        model_counts[model] = model_counts.get(model, 0) + 1
    most_used_model = max(model_counts, key=model_counts.__getitem__)

    total_notes = sum(len(r.get("notes") or []) for r in records)
    favorites_count = sum(1 for r in records if r.get("isFavorite"))

    tokens_min = tokens_max = 0
    for r in records:
        estimate = (r.get("metadata") or {}).get("tokenEstimate")
        if estimate:
            tokens_min += estimate.get("min", 0)
            tokens_max += estimate.get("max", 0)

    return Statistics(
        total_prompts=len(records),
        average_rating=average_rating,
        most_used_model=most_used_model,
        total_notes=total_notes,
        favorites_count=favorites_count,
        total_tokens_min=tokens_min,
        total_tokens_max=tokens_max,
    )
