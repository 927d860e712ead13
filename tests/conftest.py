import copy

import pytest

from recall.domain.models import Card, SaveResult
from recall.domain.ports import CardStore
from recall.infrastructure.clock import FixedClock

# 2023-11-14T22:13:20Z
NOW = 1_700_000_000_000


class InMemoryCardStore(CardStore):
    """Keeps cards in memory and records every save."""

    def __init__(self, cards: list[Card] | None = None, fail: bool = False, read_only: bool = False):
        self.cards = cards or []
        self.fail = fail
        self.supports_content_edits = not read_only
        self.progress_saves: list[Card] = []
        self.full_saves: list[list[Card]] = []

    async def load(self) -> list[Card]:
        return [copy.copy(c) for c in self.cards]

    async def save_progress(self, card: Card) -> SaveResult:
        if self.fail:
            return SaveResult.failed("store offline")
        self.progress_saves.append(copy.copy(card))
        return SaveResult.ok()

    async def save_all(self, cards: list[Card]) -> SaveResult:
        if self.fail:
            return SaveResult.failed("store offline")
        self.full_saves.append([copy.copy(c) for c in cards])
        return SaveResult.ok(saved=len(cards))


@pytest.fixture
def clock():
    return FixedClock(NOW)


@pytest.fixture
def mock_home(tmp_path, monkeypatch):
    """Mocks Path.home() to point to a temp dir."""
    home = tmp_path / "home"
    home.mkdir()

    # Mocking HOME to a temp directory to isolate config/logs
    monkeypatch.setenv("HOME", str(home))
    return home


@pytest.fixture
def isolated_config(tmp_path, monkeypatch):
    """No config file, data and logs under tmp_path."""
    monkeypatch.setattr("recall.application.config.CONFIG_FILES", [])
    for var in ("RECALL_BACKEND", "RECALL_CONTENT_PATH", "RECALL_PROGRESS_PATH", "RECALL_REVIEW_ORDER"):
        monkeypatch.delenv(var, raising=False)
    data_dir = tmp_path / "data"
    monkeypatch.setenv("RECALL_DATA_DIR", str(data_dir))
    monkeypatch.setenv("RECALL_LOG_DIR", str(tmp_path / "logs"))
    return data_dir


@pytest.fixture
def make_store():
    """Factory for in-memory stores seeded with cards."""
    return InMemoryCardStore
