"""
Queue builder for study sessions and the browsing list.

Decides which cards are due and in what order they are presented:
1. Due queue: cards whose next review has passed, earliest first
2. Pinned-manual order: pinned group then unpinned group, by manual order
3. Alphabetical-clustered order: by title, grouped by first letter

All functions take the collection as a parameter; nothing here keeps state.
"""

import locale
import logging
import unicodedata
from collections.abc import Iterable

from recall.domain.constants import DEFAULT_RECENT_LIMIT, MS_PER_DAY, UNTITLED_CLUSTER
from recall.domain.errors import CardNotFoundError
from recall.domain.models import Card, CardCluster, ReviewMode

logger = logging.getLogger(__name__)


def due_cards(cards: Iterable[Card], now: int) -> list[Card]:
    """
    Cards with ``next_review <= now``, earliest due first.

    Ties keep their collection order. The next card to study is the first
    element of the result.
    """
    due = [c for c in cards if c.next_review <= now]
    due.sort(key=lambda c: c.next_review)
    return due


def skip_one_day(cards: Iterable[Card]) -> None:
    """Pull every card's next review one day earlier."""
    for card in cards:
        card.next_review -= MS_PER_DAY


def review_order(cards: Iterable[Card], mode: ReviewMode | str) -> list[Card]:
    """
    Order the browsing list according to ``mode``.

    Args:
        cards: The card collection.
        mode: ``pinned_manual`` or ``alphabetical_clustered``.

    Returns:
        A new list; the collection itself is not reordered.
    """
    mode = ReviewMode(mode)
    if mode is ReviewMode.ALPHABETICAL_CLUSTERED:
        return _alphabetical(cards)

    pinned, unpinned = _partition(cards)
    return pinned + unpinned


def cluster_cards(cards: Iterable[Card]) -> list[CardCluster]:
    """
    Group the alphabetical order into runs sharing an uppercased first letter.

    Clusters come out in the same ascending order as the sorted cards.
    """
    clusters: list[CardCluster] = []
    for card in _alphabetical(cards):
        letter = _cluster_letter(card)
        if not clusters or clusters[-1].letter != letter:
            clusters.append(CardCluster(letter=letter))
        clusters[-1].cards.append(card)
    return clusters


def normalize_orders(cards: list[Card]) -> None:
    """
    Re-derive dense manual order keys in place.

    The list is rearranged to pinned cards then unpinned cards (each by their
    current ``order``) and every card gets ``order = index``.
    """
    pinned, unpinned = _partition(cards)
    cards[:] = pinned + unpinned
    for idx, card in enumerate(cards):
        card.order = idx


def toggle_pin(cards: list[Card], card_id: str) -> Card:
    """
    Flip a card's pinned flag and normalize.

    A newly pinned card heads the pinned group; an unpinned card trails the
    unpinned group.
    """
    card = find_card(cards, card_id)
    card.pinned = not card.pinned
    if card.pinned:
        others = [c.order for c in cards if c.pinned and c.id != card.id]
        card.order = min(others) - 1 if others else 0
    else:
        card.order = max(c.order for c in cards) + 1
    normalize_orders(cards)
    return card


def move_card(cards: list[Card], card_id: str, target_id: str | None = None) -> Card:
    """
    Move a card next to ``target_id`` and normalize.

    Within a group the card lands at the index the target held before the
    move. Across groups a pinned card goes to the end of the pinned group and
    an unpinned card to the start of the unpinned group. Without a (known)
    target the card goes to the end of its own group.
    """
    dragged = find_card(cards, card_id)
    target = next((c for c in cards if c.id == target_id), None) if target_id else None
    if target is dragged:
        normalize_orders(cards)
        return dragged

    pinned, unpinned = _partition(cards)
    group = pinned if dragged.pinned else unpinned
    to_index = group.index(target) if target is not None and target.pinned == dragged.pinned else None
    group.remove(dragged)

    if target is None:
        if target_id:
            logger.debug(f"Move target {target_id} not found, moving {card_id} to group end")
        group.append(dragged)
    elif target.pinned != dragged.pinned:
        if dragged.pinned:
            group.append(dragged)
        else:
            group.insert(0, dragged)
    else:
        group.insert(to_index, dragged)

    cards[:] = pinned + unpinned
    for idx, card in enumerate(cards):
        card.order = idx
    return dragged


def recent_cards(cards: Iterable[Card], limit: int = DEFAULT_RECENT_LIMIT) -> list[Card]:
    """Cards presented at least once, most recently presented first."""
    seen = [c for c in cards if c.last_reviewed is not None]
    seen.sort(key=lambda c: c.last_reviewed, reverse=True)
    return seen[:limit]


def starred_cards(cards: Iterable[Card]) -> list[Card]:
    """Starred cards, most recently starred first."""
    starred = [c for c in cards if c.is_starred]
    starred.sort(key=lambda c: c.starred_at or 0, reverse=True)
    return starred


def find_card(cards: Iterable[Card], card_id: str) -> Card:
    for card in cards:
        if card.id == card_id:
            return card
    raise CardNotFoundError(card_id)


def _partition(cards: Iterable[Card]) -> tuple[list[Card], list[Card]]:
    cards = list(cards)
    pinned = sorted((c for c in cards if c.pinned), key=lambda c: c.order)
    unpinned = sorted((c for c in cards if not c.pinned), key=lambda c: c.order)
    return pinned, unpinned


def _sort_name(card: Card) -> str:
    return card.display_title.strip()


def _fold(name: str) -> str:
    """Casefold and drop combining marks: "Émile" -> "emile"."""
    decomposed = unicodedata.normalize("NFKD", name.casefold())
    return "".join(ch for ch in decomposed if not unicodedata.combining(ch))


def _alphabetical(cards: Iterable[Card]) -> list[Card]:
    # Accent-insensitive first, so the C locale still files "É" under "E".
    def key(card: Card) -> tuple[str, str]:
        name = _sort_name(card)
        return locale.strxfrm(_fold(name)), locale.strxfrm(name.casefold())

    return sorted(cards, key=key)


def _cluster_letter(card: Card) -> str:
    name = _fold(_sort_name(card))
    return name[0].upper() if name else UNTITLED_CLUSTER
