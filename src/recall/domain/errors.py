"""Exception types raised outside the scheduling core."""


class RecallError(Exception):
    """Base class for recall errors."""


class CardNotFoundError(RecallError, KeyError):
    def __init__(self, card_id: str):
        self.card_id = card_id
        super().__init__(card_id)

    def __str__(self) -> str:
        return f"Card not found: {self.card_id}"


class StoreError(RecallError):
    """A card store could not be read."""


class ReadOnlyStoreError(StoreError):
    """The store serves card content it cannot change (add, edit, delete)."""
