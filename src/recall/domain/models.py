"""
Domain models for flashcards and their scheduling state.

These are pure data structures with no I/O or external dependencies.
"""

from dataclasses import dataclass, field
from enum import Enum

from .constants import DEFAULT_EASE_FACTOR


class ReviewMode(str, Enum):
    """Presentation order used for the browsing list."""

    PINNED_MANUAL = "pinned_manual"
    ALPHABETICAL_CLUSTERED = "alphabetical_clustered"


@dataclass
class Card:
    """
    A flashcard with its spaced-repetition state.

    Attributes:
        id: Opaque identifier, stable for the card's lifetime.
        interval: Days until the next review after a successful recall.
        repetitions: Consecutive "easy" ratings since the last reset.
        ease_factor: Interval growth multiplier, kept within [1.3, 2.5].
        next_review: Epoch milliseconds at or after which the card is due.
        pinned: Pinned cards head the manual ordering.
        order: Manual sort key, dense within the pinned and unpinned groups.
        is_starred: Bookmark flag, unrelated to scheduling.
        starred_at: Epoch milliseconds the bookmark was set.
        last_reviewed: Epoch milliseconds of the last presentation.
    """

    id: str
    next_review: int
    interval: int = 0
    repetitions: int = 0
    ease_factor: float = DEFAULT_EASE_FACTOR
    pinned: bool = False
    order: int = 0
    is_starred: bool = False
    starred_at: int | None = None
    last_reviewed: int | None = None

    # Content (carried for display, unused by scheduling)
    title: str | None = None
    question: str = ""
    answer: str = ""
    audio_file: str | None = None

    @classmethod
    def new(
        cls,
        card_id: str,
        now: int,
        *,
        question: str = "",
        answer: str = "",
        title: str | None = None,
        audio_file: str | None = None,
        order: int = 0,
    ) -> "Card":
        """Create a card with fresh scheduling state, due immediately."""
        return cls(
            id=card_id,
            next_review=now,
            order=order,
            title=title,
            question=question,
            answer=answer,
            audio_file=audio_file,
        )

    @property
    def display_title(self) -> str:
        return self.title or self.id


@dataclass
class CardCluster:
    """Consecutive run of alphabetically sorted cards sharing a first letter."""

    letter: str
    cards: list[Card] = field(default_factory=list)


@dataclass(frozen=True)
class SaveResult:
    """Outcome of a store write. Stores report failures here instead of raising."""

    success: bool
    error: str | None = None
    saved: int = 0

    @classmethod
    def ok(cls, saved: int = 1) -> "SaveResult":
        return cls(success=True, saved=saved)

    @classmethod
    def failed(cls, error: str) -> "SaveResult":
        return cls(success=False, error=error)
