"""
Local Card Store: Infrastructure adapter for files on disk.

Implements CardStore with two files:
- a content feed (cards.json or cards.yaml) holding question/answer content
- a progress file holding one row per (user, card), upserted by key
"""

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any

import yaml  # type: ignore

from recall.domain.constants import DEFAULT_USER_ID
from recall.domain.errors import StoreError
from recall.domain.models import Card, SaveResult
from recall.domain.ports import CardStore, Clock
from recall.infrastructure.clock import SystemClock
from recall.infrastructure.records import card_from_feed, card_to_feed, card_to_progress_row

logger = logging.getLogger(__name__)

YAML_SUFFIXES = {".yaml", ".yml"}


class LocalCardStore(CardStore):
    """
    Stores cards as a content feed plus a JSON progress file.

    Progress rows carry the scheduling fields plus ``pinned`` and ``order``
    so the manual ordering survives restarts.
    """

    def __init__(
        self,
        content_path: Path,
        progress_path: Path,
        user_id: str = DEFAULT_USER_ID,
        clock: Clock | None = None,
    ):
        self.content_path = Path(content_path)
        self.progress_path = Path(progress_path)
        self.user_id = user_id
        self.clock = clock or SystemClock()

    async def load(self) -> list[Card]:
        entries = self._read_feed()
        progress = self._read_progress()
        now = self.clock.now()

        cards: list[Card] = []
        for index, entry in enumerate(entries):
            if not isinstance(entry, dict):
                logger.warning(f"Skipping malformed feed entry #{index} in {self.content_path}")
                continue
            card = card_from_feed(entry, progress.get(self._key(str(entry.get("id")))), now, index)
            if card is not None:
                cards.append(card)

        logger.debug(f"Loaded {len(cards)} cards from {self.content_path}")
        return cards

    async def save_progress(self, card: Card) -> SaveResult:
        try:
            progress = self._read_progress()
            progress[self._key(card.id)] = self._row(card)
            self._write_json(self.progress_path, progress)
        except (OSError, StoreError) as e:
            logger.warning(f"Failed to save progress for {card.id}: {e}")
            return SaveResult.failed(str(e))
        return SaveResult.ok()

    async def save_all(self, cards: list[Card]) -> SaveResult:
        try:
            progress = self._read_progress()
            prefix = f"{self.user_id}:"
            progress = {k: v for k, v in progress.items() if not k.startswith(prefix)}
            for card in cards:
                progress[self._key(card.id)] = self._row(card)

            self._write_feed([card_to_feed(c) for c in cards])
            self._write_json(self.progress_path, progress)
        except (OSError, StoreError) as e:
            logger.warning(f"Failed to save {len(cards)} cards: {e}")
            return SaveResult.failed(str(e))
        return SaveResult.ok(saved=len(cards))

    def _key(self, card_id: str) -> str:
        return f"{self.user_id}:{card_id}"

    def _row(self, card: Card) -> dict[str, Any]:
        row = card_to_progress_row(card, self.user_id)
        row["pinned"] = card.pinned
        row["order"] = card.order
        return row

    def _read_feed(self) -> list[Any]:
        if not self.content_path.exists():
            return []
        try:
            text = self.content_path.read_text(encoding="utf-8")
            if self.content_path.suffix.lower() in YAML_SUFFIXES:
                data = yaml.safe_load(text)
            else:
                data = json.loads(text) if text.strip() else None
        except (OSError, ValueError, yaml.YAMLError) as e:
            raise StoreError(f"Cannot read content feed {self.content_path}: {e}") from e

        if data is None:
            return []
        if isinstance(data, dict):
            data = data.get("cards", [])
        if not isinstance(data, list):
            raise StoreError(f"Content feed {self.content_path} must hold a list of cards")
        return data

    def _write_feed(self, entries: list[dict[str, Any]]) -> None:
        payload = {"cards": entries}
        if self.content_path.suffix.lower() in YAML_SUFFIXES:
            self._write_text(
                self.content_path,
                yaml.safe_dump(payload, allow_unicode=True, sort_keys=False),
            )
        else:
            self._write_json(self.content_path, payload)

    def _read_progress(self) -> dict[str, dict[str, Any]]:
        if not self.progress_path.exists():
            return {}
        try:
            data = json.loads(self.progress_path.read_text(encoding="utf-8") or "{}")
        except (OSError, ValueError) as e:
            raise StoreError(f"Cannot read progress file {self.progress_path}: {e}") from e
        if not isinstance(data, dict):
            raise StoreError(f"Progress file {self.progress_path} must hold an object")
        return data

    def _write_json(self, path: Path, data: Any) -> None:
        self._write_text(path, json.dumps(data, indent=2, ensure_ascii=False))

    def _write_text(self, path: Path, text: str) -> None:
        # Temp file in the same directory, then os.replace over the target.
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(text)
            os.replace(tmp, path)
        except BaseException:
            if os.path.exists(tmp):
                os.unlink(tmp)
            raise
