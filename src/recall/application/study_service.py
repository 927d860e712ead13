"""
Study Service: Application layer orchestrator.

Owns the in-memory card collection and coordinates the scheduler, the queue
builder and the card store: every mutation is followed by the matching save.
"""

import logging
from dataclasses import dataclass
from typing import Any

from recall.application import queue_builder
from recall.application.id_service import generate_card_id
from recall.application.scheduler import rate
from recall.domain.constants import DEFAULT_RECENT_LIMIT
from recall.domain.errors import ReadOnlyStoreError, StoreError
from recall.domain.models import Card, CardCluster, ReviewMode, SaveResult
from recall.domain.ports import CardStore, Clock
from recall.infrastructure.clock import SystemClock
from recall.infrastructure.records import card_from_record, card_to_record

logger = logging.getLogger(__name__)

_UNSET: Any = object()


@dataclass
class StudyStats:
    total: int
    due: int
    new: int
    starred: int
    pinned: int


class StudyService:
    """
    Application service for a single user's study session.

    Follows Dependency Inversion: depends on the CardStore and Clock
    abstractions, not concrete adapters. Not safe for concurrent use; callers
    serialize access.

    A failed save raises StoreError after the in-memory change is applied, so
    callers can report it; reloading from the store discards the change.
    """

    def __init__(
        self,
        store: CardStore,
        clock: Clock | None = None,
        mode: ReviewMode | str = ReviewMode.PINNED_MANUAL,
    ):
        """
        Args:
            store: The repository (port) cards are loaded from and saved to.
            clock: Time source; wall clock if not provided.
            mode: Browsing-list order for this deployment.
        """
        self._store = store
        self._clock = clock or SystemClock()
        self.mode = ReviewMode(mode)
        self.cards: list[Card] = []

    async def load(self) -> list[Card]:
        """Load the collection from the store and normalize manual order."""
        self.cards = await self._store.load()
        queue_builder.normalize_orders(self.cards)
        logger.info(f"Loaded {len(self.cards)} cards")
        return self.cards

    # ---------- Study ----------

    def due(self) -> list[Card]:
        return queue_builder.due_cards(self.cards, self._clock.now())

    def due_count(self) -> int:
        return len(self.due())

    def next_card(self) -> Card | None:
        """The earliest-due card, or None when nothing is due."""
        due = self.due()
        return due[0] if due else None

    async def rate(self, card_id: str, is_easy: bool) -> Card:
        """
        Rate a card, then persist its progress.

        Raises:
            CardNotFoundError: No card with ``card_id``.
        """
        card = self.get(card_id)
        now = self._clock.now()
        rate(card, is_easy, now)
        card.last_reviewed = now
        logger.debug(
            f"Rated {card_id} {'easy' if is_easy else 'hard'}: interval={card.interval} "
            f"reps={card.repetitions} ease={card.ease_factor:.2f}"
        )
        await self._save_progress(card)
        return card

    async def open_card(self, card_id: str) -> Card:
        """Present a card from the browsing list, recording when it was seen."""
        card = self.get(card_id)
        card.last_reviewed = self._clock.now()
        await self._save_progress(card)
        return card

    async def skip_day(self) -> SaveResult:
        queue_builder.skip_one_day(self.cards)
        return await self._save_all()

    # ---------- Organisation ----------

    async def toggle_pin(self, card_id: str) -> Card:
        card = queue_builder.toggle_pin(self.cards, card_id)
        await self._save_all()
        return card

    async def move(self, card_id: str, target_id: str | None = None) -> Card:
        card = queue_builder.move_card(self.cards, card_id, target_id)
        await self._save_all()
        return card

    async def toggle_star(self, card_id: str) -> Card:
        card = self.get(card_id)
        card.is_starred = not card.is_starred
        card.starred_at = self._clock.now() if card.is_starred else None
        await self._save_progress(card)
        return card

    # ---------- Editing ----------

    async def add_card(
        self,
        question: str,
        answer: str,
        title: str | None = None,
        audio_file: str | None = None,
    ) -> Card:
        """Create a card due immediately, appended to the unpinned group."""
        self._require_content_edits()
        next_order = max((c.order for c in self.cards), default=-1) + 1
        card = Card.new(
            generate_card_id(),
            self._clock.now(),
            question=question,
            answer=answer,
            title=title,
            audio_file=audio_file,
            order=next_order,
        )
        self.cards.append(card)
        queue_builder.normalize_orders(self.cards)
        await self._save_all()
        logger.info(f"Added card {card.id}")
        return card

    async def update_card(
        self,
        card_id: str,
        question: str | None = None,
        answer: str | None = None,
        title: str | None = None,
        audio_file: str | None = _UNSET,
    ) -> Card:
        """Edit card content. Scheduling state is left alone."""
        self._require_content_edits()
        card = self.get(card_id)
        if question is not None:
            card.question = question
        if answer is not None:
            card.answer = answer
        if title is not None:
            card.title = title
        if audio_file is not _UNSET:
            card.audio_file = audio_file
        await self._save_all()
        return card

    async def delete_card(self, card_id: str) -> None:
        self._require_content_edits()
        card = self.get(card_id)
        self.cards.remove(card)
        queue_builder.normalize_orders(self.cards)
        await self._save_all()
        logger.info(f"Deleted card {card_id}")

    # ---------- Import / export ----------

    async def import_cards(self, records: list[dict[str, Any]]) -> SaveResult:
        """Replace the collection with exported records."""
        self._require_content_edits()
        now = self._clock.now()
        imported: list[Card] = []
        for index, record in enumerate(records):
            if not isinstance(record, dict):
                logger.warning(f"Skipping non-object import record #{index}")
                continue
            card = card_from_record(record, now, index)
            if card is not None:
                imported.append(card)

        self.cards = imported
        queue_builder.normalize_orders(self.cards)
        logger.info(f"Imported {len(self.cards)} of {len(records)} records")
        return await self._save_all()

    def export_cards(self) -> list[dict[str, Any]]:
        return [card_to_record(c) for c in self.cards]

    # ---------- Lists ----------

    def get(self, card_id: str) -> Card:
        return queue_builder.find_card(self.cards, card_id)

    def listing(self) -> list[Card]:
        return queue_builder.review_order(self.cards, self.mode)

    def clusters(self) -> list[CardCluster]:
        return queue_builder.cluster_cards(self.cards)

    def recent(self, limit: int = DEFAULT_RECENT_LIMIT) -> list[Card]:
        return queue_builder.recent_cards(self.cards, limit)

    def starred(self) -> list[Card]:
        return queue_builder.starred_cards(self.cards)

    def stats(self) -> StudyStats:
        return StudyStats(
            total=len(self.cards),
            due=self.due_count(),
            new=sum(1 for c in self.cards if c.repetitions == 0 and c.last_reviewed is None),
            starred=sum(1 for c in self.cards if c.is_starred),
            pinned=sum(1 for c in self.cards if c.pinned),
        )

    def _require_content_edits(self) -> None:
        if not self._store.supports_content_edits:
            raise ReadOnlyStoreError(
                f"{type(self._store).__name__} serves a read-only content feed; "
                "cards cannot be added, edited or deleted"
            )

    async def _save_progress(self, card: Card) -> SaveResult:
        result = await self._store.save_progress(card)
        if not result.success:
            logger.warning(f"Progress for {card.id} not saved: {result.error}")
            raise StoreError(f"Progress for {card.id} not saved: {result.error}")
        return result

    async def _save_all(self) -> SaveResult:
        result = await self._store.save_all(self.cards)
        if not result.success:
            logger.warning(f"Collection not saved: {result.error}")
            raise StoreError(f"Collection not saved: {result.error}")
        return result
