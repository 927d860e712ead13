"""
Ports (interfaces) for card persistence and time.

These define the contract that infrastructure adapters must implement.
Application services depend on these abstractions, not concrete implementations.
"""

from abc import ABC, abstractmethod

from .models import Card, SaveResult


class CardStore(ABC):
    """
    Port for loading cards and persisting their progress.

    Implementations:
        - LocalCardStore: JSON/YAML content feed plus a JSON progress file.
        - RestCardStore: HTTP content feed plus a REST progress table.

    Writes are keyed upserts by (card id, user id), so retrying a save is safe.
    Stores whose content is read-only set ``supports_content_edits = False``;
    their ``save_all`` persists progress only.
    """

    supports_content_edits: bool = True

    @abstractmethod
    async def load(self) -> list[Card]:
        """
        Load every card with its progress merged in.

        Raises:
            StoreError: The underlying source could not be read.
        """
        pass

    @abstractmethod
    async def save_progress(self, card: Card) -> SaveResult:
        """Upsert the progress of a single card."""
        pass

    @abstractmethod
    async def save_all(self, cards: list[Card]) -> SaveResult:
        """
        Persist the whole collection.

        Cards missing from ``cards`` are removed when the store supports
        content edits.
        """
        pass


class Clock(ABC):
    """Port for the current time, substitutable in tests."""

    @abstractmethod
    def now(self) -> int:
        """Current time in epoch milliseconds."""
        pass
