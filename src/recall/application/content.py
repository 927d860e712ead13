"""
Content feed generation from audio + text file pairs.

A source folder holds ``lesson001.mp3`` next to ``lesson001.txt``; the first
line of the text file is the question, the remaining lines the answer. The
feed is written as ``<dest>/cards.json`` with the audio copied to
``<dest>/audio/``.
"""

import json
import logging
import re
import shutil
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from recall.application.id_service import slugify_card_id
from recall.domain.constants import AUDIO_DIRNAME, AUDIO_EXTENSIONS, FEED_FILENAME, TEXT_EXTENSIONS

logger = logging.getLogger(__name__)


@dataclass
class FilePair:
    name: str
    audio: Path | None = None
    text: Path | None = None

    @property
    def complete(self) -> bool:
        return self.audio is not None and self.text is not None


@dataclass
class FeedBuildResult:
    """Result of a feed generation run."""

    cards: list[dict[str, Any]]
    feed_path: Path
    incomplete: list[FilePair] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)  # names with an empty question


def natural_key(name: str) -> list[Any]:
    """Sort key comparing digit runs numerically: lesson2 < lesson10."""
    return [int(part) if part.isdigit() else part.lower() for part in re.split(r"(\d+)", name)]


def find_file_pairs(folder: Path) -> tuple[list[FilePair], list[FilePair]]:
    """
    Pair audio and text files by their stem.

    Returns:
        (complete pairs naturally sorted by name, incomplete pairs)
    """
    pairs: dict[str, FilePair] = {}
    for path in folder.iterdir():
        if not path.is_file():
            continue
        ext = path.suffix.lower()
        if ext not in AUDIO_EXTENSIONS and ext not in TEXT_EXTENSIONS:
            continue
        pair = pairs.setdefault(path.stem, FilePair(name=path.stem))
        if ext in AUDIO_EXTENSIONS:
            pair.audio = path
        else:
            pair.text = path

    complete = sorted((p for p in pairs.values() if p.complete), key=lambda p: natural_key(p.name))
    incomplete = sorted((p for p in pairs.values() if not p.complete), key=lambda p: natural_key(p.name))
    return complete, incomplete


def parse_text_file(content: str) -> tuple[str, str]:
    """First line is the question, the rest (joined) is the answer."""
    lines = content.strip().split("\n")
    question = lines[0].strip() if lines else ""
    answer = "\n".join(lines[1:]).strip()
    return question, answer


def build_content_feed(source: Path, dest: Path) -> FeedBuildResult:
    """
    Generate a card feed from ``source`` into ``dest``.

    Raises:
        FileNotFoundError: ``source`` is not a directory.
        ValueError: No complete audio + text pair was found.
    """
    if not source.is_dir():
        raise FileNotFoundError(f"Source folder not found: {source}")

    complete, incomplete = find_file_pairs(source)
    for pair in incomplete:
        kind = "audio" if pair.audio else "text"
        logger.warning(f"Skipping incomplete pair {pair.name}: has {kind} only")

    if not complete:
        raise ValueError(f"No complete audio+text pairs found in {source}")

    audio_dir = dest / AUDIO_DIRNAME
    audio_dir.mkdir(parents=True, exist_ok=True)

    cards: list[dict[str, Any]] = []
    skipped: list[str] = []
    for i, pair in enumerate(complete, start=1):
        progress = f"[{i}/{len(complete)}]"
        question, answer = parse_text_file(pair.text.read_text(encoding="utf-8"))
        if not question:
            logger.info(f"{progress} Skipping {pair.name}: empty question")
            skipped.append(pair.name)
            continue

        shutil.copyfile(pair.audio, audio_dir / pair.audio.name)
        cards.append(
            {
                "id": slugify_card_id(pair.name),
                "question": question,
                "answer": answer,
                "audioFile": pair.audio.name,
            }
        )
        logger.debug(f"{progress} {pair.name}")

    feed_path = dest / FEED_FILENAME
    feed_path.write_text(json.dumps({"cards": cards}, indent=2, ensure_ascii=False), encoding="utf-8")
    logger.info(f"Generated {len(cards)} cards into {feed_path}")

    return FeedBuildResult(cards=cards, feed_path=feed_path, incomplete=incomplete, skipped=skipped)
