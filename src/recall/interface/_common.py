"""Helpers shared by the CLI commands."""

import math
from typing import Any

from recall.application.config import AppConfig, resolve_config
from recall.domain.constants import MS_PER_DAY
from recall.domain.models import Card


def _resolve_with_overrides(**overrides: Any) -> AppConfig:
    """Resolve config, letting explicitly passed CLI values win."""
    return resolve_config({k: v for k, v in overrides.items() if v is not None})


def days_until_due(card: Card, now: int) -> int:
    """Whole days until the card is due, 0 once it is due."""
    return max(0, math.ceil((card.next_review - now) / MS_PER_DAY))


def truncate(text: str, limit: int = 60) -> str:
    return text if len(text) <= limit else text[:limit] + "…"


def format_card_line(card: Card, now: int) -> str:
    marks = ("P" if card.pinned else " ") + ("*" if card.is_starred else " ")
    return f"{marks} {days_until_due(card, now):>4}d  {card.id}  {truncate(card.question or card.display_title)}"


def card_summary(card: Card) -> dict[str, Any]:
    return {
        "id": card.id,
        "title": card.display_title,
        "question": card.question,
        "interval": card.interval,
        "repetitions": card.repetitions,
        "ease_factor": card.ease_factor,
        "next_review": card.next_review,
        "pinned": card.pinned,
        "order": card.order,
        "is_starred": card.is_starred,
        "last_reviewed": card.last_reviewed,
    }
