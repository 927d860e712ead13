"""Service for generating stable card IDs."""

import re

from ulid import ULID


def generate_card_id() -> str:
    """Generate a stable card ID using ULID."""
    return f"card_{ULID()}"


def slugify_card_id(name: str) -> str:
    """
    Turn a content file name into a URL-safe card ID.

    "Lesson 001 (Intro)" -> "lesson-001-intro"
    """
    slug = re.sub(r"[^a-z0-9]+", "-", name.lower())
    return slug.strip("-")
