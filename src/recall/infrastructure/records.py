"""
Conversion between Card objects and their stored representations.

Three shapes exist:
- export records: camelCase dicts, as written by ``recall export``
- progress rows: snake_case dicts keyed by (card_id, user_id)
- feed entries: content-only dicts from a cards.json / cards.yaml feed

This is the boundary where malformed values are defaulted, so the scheduler
only ever sees cards that satisfy the Card invariants.
"""

import logging
from typing import Any

from recall.domain.constants import DEFAULT_EASE_FACTOR, MAX_EASE_FACTOR, MIN_EASE_FACTOR
from recall.domain.models import Card

logger = logging.getLogger(__name__)


def card_from_record(record: dict[str, Any], now: int, index: int = 0) -> Card | None:
    """
    Build a Card from an export record.

    Missing scheduling fields fall back to the card-creation defaults, a
    missing ``order`` falls back to ``index``. Records without an id are
    skipped (None).
    """
    card_id = record.get("id")
    if not card_id:
        logger.warning(f"Skipping record #{index} without an id")
        return None
    card_id = str(card_id)

    card = Card(
        id=card_id,
        next_review=_int(record, "nextReview", now, card_id),
        interval=max(0, _int(record, "interval", 0, card_id)),
        repetitions=max(0, _int(record, "repetitions", 0, card_id)),
        ease_factor=_ease(record.get("easeFactor"), card_id),
        pinned=bool(record.get("pinned", False)),
        order=_int(record, "order", index, card_id),
        is_starred=bool(record.get("isStarred", False)),
        starred_at=_optional_int(record.get("starredAt")),
        last_reviewed=_optional_int(record.get("lastReviewed")),
        title=record.get("title") or None,
        question=record.get("question") or "",
        answer=record.get("answer") or "",
        audio_file=record.get("audioData") or record.get("audioFile") or None,
    )
    return card


def card_to_record(card: Card) -> dict[str, Any]:
    return {
        "id": card.id,
        "title": card.title,
        "question": card.question,
        "answer": card.answer,
        "audioData": card.audio_file,
        "interval": card.interval,
        "repetitions": card.repetitions,
        "easeFactor": card.ease_factor,
        "nextReview": card.next_review,
        "pinned": card.pinned,
        "order": card.order,
        "isStarred": card.is_starred,
        "starredAt": card.starred_at,
        "lastReviewed": card.last_reviewed,
    }


def card_to_progress_row(card: Card, user_id: str) -> dict[str, Any]:
    return {
        "card_id": card.id,
        "user_id": user_id,
        "interval": card.interval,
        "repetitions": card.repetitions,
        "ease_factor": card.ease_factor,
        "next_review": card.next_review,
        "is_starred": card.is_starred,
        "starred_at": card.starred_at,
        "last_reviewed": card.last_reviewed,
    }


def card_from_feed(
    entry: dict[str, Any],
    progress: dict[str, Any] | None,
    now: int,
    index: int,
) -> Card | None:
    """
    Merge a content feed entry with its (optional) progress row.

    Cards without progress start fresh and are due ``now``. Manual order
    follows the feed unless the progress row carries its own.
    """
    card_id = entry.get("id")
    if not card_id:
        logger.warning(f"Skipping feed entry #{index} without an id")
        return None
    card_id = str(card_id)
    progress = progress or {}

    return Card(
        id=card_id,
        title=entry.get("title") or card_id,
        question=entry.get("question") or "",
        answer=entry.get("answer") or "",
        audio_file=entry.get("audioFile") or entry.get("audioData") or None,
        interval=max(0, _int(progress, "interval", 0, card_id)),
        repetitions=max(0, _int(progress, "repetitions", 0, card_id)),
        ease_factor=_ease(progress.get("ease_factor"), card_id),
        next_review=_int(progress, "next_review", now, card_id),
        is_starred=bool(progress.get("is_starred", False)),
        starred_at=_optional_int(progress.get("starred_at")),
        last_reviewed=_optional_int(progress.get("last_reviewed")),
        pinned=bool(progress.get("pinned", False)),
        order=_int(progress, "order", index, card_id),
    )


def card_to_feed(card: Card) -> dict[str, Any]:
    entry: dict[str, Any] = {"id": card.id, "question": card.question, "answer": card.answer}
    if card.title and card.title != card.id:
        entry["title"] = card.title
    if card.audio_file:
        entry["audioFile"] = card.audio_file
    return entry


def _int(record: dict[str, Any], key: str, default: int, card_id: str) -> int:
    value = record.get(key)
    if value is None or isinstance(value, bool):
        return default
    try:
        return int(value)
    except (TypeError, ValueError, OverflowError):
        logger.warning(f"Card {card_id}: invalid {key}={value!r}, using {default}")
        return default


def _optional_int(value: Any) -> int | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError, OverflowError):
        return None


def _ease(value: Any, card_id: str) -> float:
    if value is None:
        return DEFAULT_EASE_FACTOR
    try:
        ease = float(value)
    except (TypeError, ValueError, OverflowError):
        logger.warning(f"Card {card_id}: invalid ease factor {value!r}, using default")
        return DEFAULT_EASE_FACTOR
    if ease != ease:  # NaN
        return DEFAULT_EASE_FACTOR
    if not MIN_EASE_FACTOR <= ease <= MAX_EASE_FACTOR:
        logger.warning(f"Card {card_id}: ease factor {ease} out of range, clamping")
    return min(max(ease, MIN_EASE_FACTOR), MAX_EASE_FACTOR)
