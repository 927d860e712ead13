import json

import pytest

from recall.application.content import (
    build_content_feed,
    find_file_pairs,
    natural_key,
    parse_text_file,
)
from recall.application.id_service import generate_card_id, slugify_card_id


@pytest.fixture
def lesson_dir(tmp_path):
    src = tmp_path / "source"
    src.mkdir()
    for name in ["lesson10", "lesson2", "lesson1"]:
        (src / f"{name}.mp3").write_bytes(b"ID3" + name.encode())
        (src / f"{name}.txt").write_text(f"Question {name}\nAnswer line 1\nAnswer line 2\n")
    (src / "orphan.wav").write_bytes(b"RIFF")
    (src / "notes.md").write_text("ignored")
    return src


def test_natural_key_orders_numbers_numerically():
    names = ["lesson10", "lesson2", "Lesson1"]
    assert sorted(names, key=natural_key) == ["Lesson1", "lesson2", "lesson10"]


def test_find_file_pairs(lesson_dir):
    complete, incomplete = find_file_pairs(lesson_dir)

    assert [p.name for p in complete] == ["lesson1", "lesson2", "lesson10"]
    assert [p.name for p in incomplete] == ["orphan"]
    assert incomplete[0].audio is not None
    assert incomplete[0].text is None


def test_parse_text_file():
    assert parse_text_file("  Q?\nline a\nline b\n\n") == ("Q?", "line a\nline b")
    assert parse_text_file("Only a question") == ("Only a question", "")
    assert parse_text_file("") == ("", "")


def test_build_content_feed(lesson_dir, tmp_path):
    dest = tmp_path / "content"
    result = build_content_feed(lesson_dir, dest)

    assert [c["id"] for c in result.cards] == ["lesson1", "lesson2", "lesson10"]
    assert result.cards[0] == {
        "id": "lesson1",
        "question": "Question lesson1",
        "answer": "Answer line 1\nAnswer line 2",
        "audioFile": "lesson1.mp3",
    }
    assert [p.name for p in result.incomplete] == ["orphan"]
    assert (dest / "audio" / "lesson10.mp3").read_bytes() == b"ID3lesson10"
    assert not (dest / "audio" / "orphan.wav").exists()

    feed = json.loads(result.feed_path.read_text())
    assert feed == {"cards": result.cards}


def test_build_content_feed_skips_empty_questions(tmp_path):
    src = tmp_path / "src"
    src.mkdir()
    (src / "a.mp3").write_bytes(b"x")
    (src / "a.txt").write_text("\n\n")
    (src / "b.ogg").write_bytes(b"y")
    (src / "b.txt").write_text("Q\nA")

    result = build_content_feed(src, tmp_path / "out")
    assert [c["id"] for c in result.cards] == ["b"]
    assert result.skipped == ["a"]


def test_build_content_feed_missing_source(tmp_path):
    with pytest.raises(FileNotFoundError):
        build_content_feed(tmp_path / "nope", tmp_path / "out")


def test_build_content_feed_without_pairs(tmp_path):
    src = tmp_path / "src"
    src.mkdir()
    (src / "only.txt").write_text("Q")
    with pytest.raises(ValueError, match="No complete"):
        build_content_feed(src, tmp_path / "out")


def test_slugify_card_id():
    assert slugify_card_id("Lesson 001 (Intro)") == "lesson-001-intro"
    assert slugify_card_id("--Already_slugged--") == "already-slugged"


def test_generate_card_id_is_unique():
    a, b = generate_card_id(), generate_card_id()
    assert a.startswith("card_")
    assert len(a) == len("card_") + 26
    assert a != b
