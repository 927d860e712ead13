import pytest

from recall.application import queue_builder
from recall.domain.constants import MS_PER_DAY
from recall.domain.errors import CardNotFoundError
from recall.domain.models import Card, ReviewMode

T = 1_700_000_000_000


def ids(cards):
    return [c.id for c in cards]


def orders(cards):
    return {c.id: c.order for c in cards}


# --- Due queue ---


def test_due_cards_filters_and_sorts():
    offsets = [-1000, 5000, -500, 0, 1]
    cards = [Card(id=f"c{i}", next_review=T + off) for i, off in enumerate(offsets)]

    due = queue_builder.due_cards(cards, T)

    assert [c.next_review for c in due] == [T - 1000, T - 500, T]
    assert ids(due) == ["c0", "c2", "c3"]


def test_due_cards_ties_keep_collection_order():
    cards = [Card(id=name, next_review=T) for name in ["b", "a", "c"]]
    assert ids(queue_builder.due_cards(cards, T)) == ["b", "a", "c"]


def test_due_cards_empty():
    assert queue_builder.due_cards([], T) == []
    assert queue_builder.due_cards([Card(id="x", next_review=T + 1)], T) == []


def test_skip_one_day_shifts_only_next_review():
    cards = [
        Card(id="a", next_review=T, interval=3, repetitions=2, ease_factor=2.1),
        Card(id="b", next_review=T + 5 * MS_PER_DAY, interval=5, repetitions=1, ease_factor=1.3),
    ]
    queue_builder.skip_one_day(cards)

    assert [c.next_review for c in cards] == [T - MS_PER_DAY, T + 4 * MS_PER_DAY]
    assert [(c.interval, c.repetitions, c.ease_factor) for c in cards] == [(3, 2, 2.1), (5, 1, 1.3)]


def test_skip_one_day_makes_tomorrow_due():
    card = Card(id="a", next_review=T + MS_PER_DAY)
    assert queue_builder.due_cards([card], T) == []
    queue_builder.skip_one_day([card])
    assert queue_builder.due_cards([card], T) == [card]


# --- Ordering ---


@pytest.fixture
def mixed():
    return [
        Card(id="u1", next_review=T, order=5),
        Card(id="p1", next_review=T, order=9, pinned=True),
        Card(id="u0", next_review=T, order=2),
        Card(id="p0", next_review=T, order=1, pinned=True),
    ]


def test_pinned_manual_order(mixed):
    result = queue_builder.review_order(mixed, "pinned_manual")
    assert ids(result) == ["p0", "p1", "u0", "u1"]
    # A new list; the collection is untouched.
    assert ids(mixed) == ["u1", "p1", "u0", "p0"]


def test_alphabetical_order_ignores_case_and_falls_back_to_id():
    cards = [
        Card(id="z-id", next_review=T, title="banana"),
        Card(id="apple", next_review=T),
        Card(id="c", next_review=T, title="Cherry"),
        Card(id="b2", next_review=T, title="Blueberry"),
    ]
    result = queue_builder.review_order(cards, ReviewMode.ALPHABETICAL_CLUSTERED)
    assert [c.display_title for c in result] == ["apple", "banana", "Blueberry", "Cherry"]


def test_alphabetical_order_files_accents_with_base_letter():
    cards = [Card(id=t, next_review=T) for t in ["zebra", "Émile", "apple", "echo"]]
    result = queue_builder.review_order(cards, ReviewMode.ALPHABETICAL_CLUSTERED)
    assert ids(result) == ["apple", "echo", "Émile", "zebra"]

    clusters = queue_builder.cluster_cards(cards)
    assert [cl.letter for cl in clusters] == ["A", "E", "Z"]
    assert ids(clusters[1].cards) == ["echo", "Émile"]


def test_leading_spaces_do_not_break_cluster_order():
    cards = [
        Card(id="1", next_review=T, title="beta"),
        Card(id="2", next_review=T, title="  zulu"),
        Card(id="3", next_review=T, title="alpha"),
    ]
    clusters = queue_builder.cluster_cards(cards)
    assert [cl.letter for cl in clusters] == ["A", "B", "Z"]


def test_review_order_rejects_unknown_mode(mixed):
    with pytest.raises(ValueError):
        queue_builder.review_order(mixed, "random")


def test_cluster_cards_groups_by_first_letter():
    cards = [
        Card(id="1", next_review=T, title="beta"),
        Card(id="2", next_review=T, title="Alpha"),
        Card(id="3", next_review=T, title="bravo"),
        Card(id="4", next_review=T, title="  "),
    ]
    clusters = queue_builder.cluster_cards(cards)

    assert [cl.letter for cl in clusters] == ["#", "A", "B"]
    assert [ids(cl.cards) for cl in clusters] == [["4"], ["2"], ["1", "3"]]


def test_normalize_orders_pinned_first_and_dense(mixed):
    queue_builder.normalize_orders(mixed)

    assert ids(mixed) == ["p0", "p1", "u0", "u1"]
    assert [c.order for c in mixed] == [0, 1, 2, 3]
    pinned = [c.order for c in mixed if c.pinned]
    unpinned = [c.order for c in mixed if not c.pinned]
    assert max(pinned) < min(unpinned)


def test_normalize_orders_is_idempotent(mixed):
    queue_builder.normalize_orders(mixed)
    first = orders(mixed)
    queue_builder.normalize_orders(mixed)
    assert orders(mixed) == first


def test_normalize_orders_empty():
    cards: list[Card] = []
    queue_builder.normalize_orders(cards)
    assert cards == []


def test_toggle_pin_puts_card_at_head_of_pinned(mixed):
    queue_builder.normalize_orders(mixed)
    card = queue_builder.toggle_pin(mixed, "u1")

    assert card.pinned is True
    assert ids(mixed) == ["u1", "p0", "p1", "u0"]
    assert card.order == 0


def test_toggle_pin_first_pin():
    cards = [Card(id="a", next_review=T, order=0), Card(id="b", next_review=T, order=1)]
    queue_builder.toggle_pin(cards, "b")
    assert ids(cards) == ["b", "a"]


def test_unpin_moves_card_to_end(mixed):
    queue_builder.normalize_orders(mixed)
    card = queue_builder.toggle_pin(mixed, "p0")

    assert card.pinned is False
    assert ids(mixed) == ["p1", "u0", "u1", "p0"]
    assert card.order == 3


def test_toggle_pin_unknown_card(mixed):
    with pytest.raises(CardNotFoundError):
        queue_builder.toggle_pin(mixed, "nope")


# --- Move ---


@pytest.fixture
def ordered():
    cards = [
        Card(id="p0", next_review=T, pinned=True),
        Card(id="p1", next_review=T, pinned=True),
        Card(id="u0", next_review=T),
        Card(id="u1", next_review=T),
        Card(id="u2", next_review=T),
    ]
    for i, c in enumerate(cards):
        c.order = i
    return cards


def test_move_within_group_takes_target_position(ordered):
    queue_builder.move_card(ordered, "u2", "u0")
    assert ids(ordered) == ["p0", "p1", "u2", "u0", "u1"]
    assert [c.order for c in ordered] == [0, 1, 2, 3, 4]


def test_move_down_within_group_lands_on_target_index(ordered):
    queue_builder.move_card(ordered, "u0", "u2")
    assert ids(ordered) == ["p0", "p1", "u1", "u2", "u0"]
    assert [c.order for c in ordered] == [0, 1, 2, 3, 4]


def test_move_survives_renormalization(ordered):
    queue_builder.move_card(ordered, "u2", "u0")
    queue_builder.normalize_orders(ordered)
    assert ids(ordered) == ["p0", "p1", "u2", "u0", "u1"]


def test_move_three_cards_down():
    cards = [Card(id=x, next_review=T, order=i) for i, x in enumerate("abc")]
    queue_builder.move_card(cards, "a", "c")
    assert ids(cards) == ["b", "c", "a"]


def test_move_unpinned_onto_pinned_goes_to_unpinned_start(ordered):
    queue_builder.move_card(ordered, "u2", "p0")
    assert ids(ordered) == ["p0", "p1", "u2", "u0", "u1"]


def test_move_pinned_onto_unpinned_goes_to_pinned_end(ordered):
    queue_builder.move_card(ordered, "p0", "u1")
    assert ids(ordered) == ["p1", "p0", "u0", "u1", "u2"]


def test_move_without_target_goes_to_group_end(ordered):
    queue_builder.move_card(ordered, "u0")
    assert ids(ordered) == ["p0", "p1", "u1", "u2", "u0"]


def test_move_unknown_target_goes_to_group_end(ordered):
    queue_builder.move_card(ordered, "p0", "ghost")
    assert ids(ordered) == ["p1", "p0", "u0", "u1", "u2"]


def test_move_onto_itself_is_a_no_op(ordered):
    queue_builder.move_card(ordered, "u1", "u1")
    assert ids(ordered) == ["p0", "p1", "u0", "u1", "u2"]


# --- Recent / starred ---


def test_recent_cards_newest_first_and_limited():
    cards = [
        Card(id="a", next_review=T, last_reviewed=T - 300),
        Card(id="b", next_review=T),
        Card(id="c", next_review=T, last_reviewed=T - 100),
        Card(id="d", next_review=T, last_reviewed=T - 200),
    ]
    assert ids(queue_builder.recent_cards(cards)) == ["c", "d", "a"]
    assert ids(queue_builder.recent_cards(cards, limit=2)) == ["c", "d"]


def test_starred_cards_newest_star_first():
    cards = [
        Card(id="a", next_review=T, is_starred=True, starred_at=10),
        Card(id="b", next_review=T),
        Card(id="c", next_review=T, is_starred=True, starred_at=30),
    ]
    assert ids(queue_builder.starred_cards(cards)) == ["c", "a"]


def test_find_card():
    card = Card(id="a", next_review=T)
    assert queue_builder.find_card([card], "a") is card
    with pytest.raises(CardNotFoundError) as exc_info:
        queue_builder.find_card([card], "b")
    assert exc_info.value.card_id == "b"
