"""Centralized constants for recall.

All scheduling policy numbers and configuration defaults live here so every
layer imports from a single source of truth.
"""

# ---------- Time ----------
MS_PER_DAY = 24 * 60 * 60 * 1000

# ---------- Scheduler ----------
DEFAULT_EASE_FACTOR = 2.5
MIN_EASE_FACTOR = 1.3
MAX_EASE_FACTOR = 2.5
EASY_EASE_BONUS = 0.05
HARD_EASE_PENALTY = 0.15
FIRST_INTERVAL = 1  # days, first "easy"
SECOND_INTERVAL = 3  # days, second consecutive "easy"
RELEARN_INTERVAL = 1  # days, after "hard"

# ---------- Lists ----------
DEFAULT_RECENT_LIMIT = 20
UNTITLED_CLUSTER = "#"

# ---------- Content feed ----------
AUDIO_EXTENSIONS = [".mp3", ".m4a", ".wav", ".ogg", ".webm"]
TEXT_EXTENSIONS = [".txt"]
FEED_FILENAME = "cards.json"
AUDIO_DIRNAME = "audio"

# ---------- Stores / HTTP ----------
REQUEST_TIMEOUT = 20.0
PROGRESS_TABLE = "card_progress"
DEFAULT_USER_ID = "local"
