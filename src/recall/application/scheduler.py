"""
Two-outcome SM-2 scheduler.

A card is rated either "easy" or "hard":
1. Hard resets the learning cycle and lowers the ease factor
2. Easy grows the interval (1 day, 3 days, then interval * ease)
3. The next review is always ``now + interval`` days

This is a pure computation module with no I/O.
"""

import math
import time

from recall.domain.constants import (
    EASY_EASE_BONUS,
    FIRST_INTERVAL,
    HARD_EASE_PENALTY,
    MAX_EASE_FACTOR,
    MIN_EASE_FACTOR,
    MS_PER_DAY,
    RELEARN_INTERVAL,
    SECOND_INTERVAL,
)
from recall.domain.models import Card


def rate(card: Card, is_easy: bool, now: int | None = None) -> None:
    """
    Apply a rating to ``card`` in place.

    Only ``interval``, ``repetitions``, ``ease_factor`` and ``next_review``
    change. Persisting the card is the caller's job.

    Args:
        card: Card to update.
        is_easy: True for "easy", False for "hard".
        now: Epoch milliseconds of the rating; defaults to the wall clock.
    """
    if now is None:
        now = int(time.time() * 1000)

    if not is_easy:
        card.repetitions = 0
        card.interval = RELEARN_INTERVAL
        card.ease_factor = max(MIN_EASE_FACTOR, card.ease_factor - HARD_EASE_PENALTY)
    else:
        if card.repetitions == 0:
            card.interval = FIRST_INTERVAL
        elif card.repetitions == 1:
            card.interval = SECOND_INTERVAL
        else:
            card.interval = _round_half_up(card.interval * card.ease_factor)
        card.repetitions += 1
        card.ease_factor = min(card.ease_factor + EASY_EASE_BONUS, MAX_EASE_FACTOR)

    card.next_review = now + card.interval * MS_PER_DAY


def _round_half_up(value: float) -> int:
    # round() is banker's rounding; 7.5 must become 8 and 12.5 must become 13.
    return int(math.floor(value + 0.5))
