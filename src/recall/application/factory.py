"""
Card Store Factory
Centralizes the logic for selecting the appropriate card store.
"""

import logging

from recall.application.config import AppConfig
from recall.domain.ports import CardStore, Clock
from recall.infrastructure.stores.local import LocalCardStore
from recall.infrastructure.stores.rest import RestCardStore

logger = logging.getLogger(__name__)


def get_card_store(config: AppConfig, clock: Clock | None = None) -> CardStore:
    """
    Returns the CardStore implementation selected by ``config.backend``.

    Raises:
        ValueError: The REST backend is selected without its URLs.
    """
    if config.backend == "rest":
        if not config.rest_url or not config.content_url:
            raise ValueError("The rest backend needs both rest_url and content_url")
        logger.debug(f"Store: REST ({config.rest_url})")
        return RestCardStore(
            base_url=config.rest_url,
            content_url=config.content_url,
            api_key=config.rest_api_key,
            user_id=config.user_id,
            timeout=config.request_timeout,
            clock=clock,
        )

    logger.debug(f"Store: local ({config.content_path})")
    return LocalCardStore(
        content_path=config.content_path,
        progress_path=config.progress_path,
        user_id=config.user_id,
        clock=clock,
    )
