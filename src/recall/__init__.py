"""recall: spaced-repetition flashcard study tool."""

from recall.consts import VERSION

__version__ = VERSION
