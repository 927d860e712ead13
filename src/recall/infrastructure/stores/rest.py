"""
REST Card Store: Infrastructure adapter for a hosted progress table.

Content comes from a JSON feed served over HTTP; per-user progress lives in a
PostgREST-style ``card_progress`` table upserted on (card_id, user_id).
"""

import logging
from typing import Any

import httpx

from recall.domain.constants import DEFAULT_USER_ID, PROGRESS_TABLE, REQUEST_TIMEOUT
from recall.domain.errors import StoreError
from recall.domain.models import Card, SaveResult
from recall.domain.ports import CardStore, Clock
from recall.infrastructure.clock import SystemClock
from recall.infrastructure.records import card_from_feed, card_to_progress_row


class RestCardStore(CardStore):
    """
    Loads the content feed and progress rows over HTTP.

    The feed is served read-only, so only progress rows are ever written.
    """

    supports_content_edits = False

    def __init__(
        self,
        base_url: str,
        content_url: str,
        api_key: str | None = None,
        user_id: str = DEFAULT_USER_ID,
        timeout: float = REQUEST_TIMEOUT,
        clock: Clock | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.content_url = content_url
        self.api_key = api_key
        self.user_id = user_id
        self.timeout = timeout
        self.clock = clock or SystemClock()
        self._transport = transport
        self.logger = logging.getLogger(__name__)

    def _client(self) -> httpx.AsyncClient:
        headers = {"Accept": "application/json"}
        if self.api_key:
            headers["apikey"] = self.api_key
            headers["Authorization"] = f"Bearer {self.api_key}"
        return httpx.AsyncClient(headers=headers, timeout=self.timeout, transport=self._transport)

    @property
    def progress_url(self) -> str:
        return f"{self.base_url}/{PROGRESS_TABLE}"

    async def load(self) -> list[Card]:
        async with self._client() as client:
            entries = await self._fetch_feed(client)
            progress = await self._fetch_progress(client)

        now = self.clock.now()
        cards: list[Card] = []
        for index, entry in enumerate(entries):
            if not isinstance(entry, dict):
                self.logger.warning(f"Skipping malformed feed entry #{index}")
                continue
            card = card_from_feed(entry, progress.get(str(entry.get("id"))), now, index)
            if card is not None:
                cards.append(card)

        self.logger.debug(f"Loaded {len(cards)} cards ({len(progress)} with progress)")
        return cards

    async def save_progress(self, card: Card) -> SaveResult:
        return await self._upsert([card_to_progress_row(card, self.user_id)])

    async def save_all(self, cards: list[Card]) -> SaveResult:
        if not cards:
            return SaveResult.ok(saved=0)
        return await self._upsert([card_to_progress_row(c, self.user_id) for c in cards])

    async def _fetch_feed(self, client: httpx.AsyncClient) -> list[Any]:
        try:
            response = await client.get(self.content_url, headers={"Cache-Control": "no-store"})
            response.raise_for_status()
            data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            raise StoreError(f"Failed to fetch cards from {self.content_url}: {e}") from e

        if isinstance(data, dict):
            data = data.get("cards", [])
        if not isinstance(data, list):
            raise StoreError(f"Content feed at {self.content_url} must hold a list of cards")
        return data

    async def _fetch_progress(self, client: httpx.AsyncClient) -> dict[str, dict[str, Any]]:
        try:
            response = await client.get(
                self.progress_url,
                params={"select": "*", "user_id": f"eq.{self.user_id}"},
            )
            response.raise_for_status()
            rows = response.json()
        except (httpx.HTTPError, ValueError) as e:
            raise StoreError(f"Failed to fetch progress: {e}") from e

        if not isinstance(rows, list):
            raise StoreError("Progress endpoint returned a non-list payload")
        return {str(row["card_id"]): row for row in rows if isinstance(row, dict) and "card_id" in row}

    async def _upsert(self, rows: list[dict[str, Any]]) -> SaveResult:
        try:
            async with self._client() as client:
                response = await client.post(
                    self.progress_url,
                    params={"on_conflict": "card_id,user_id"},
                    headers={"Prefer": "resolution=merge-duplicates,return=minimal"},
                    json=rows,
                )
                response.raise_for_status()
        except httpx.HTTPError as e:
            self.logger.warning(f"Failed to save progress for {len(rows)} card(s): {e}")
            return SaveResult.failed(str(e))
        return SaveResult.ok(saved=len(rows))
