"""Centralized constants for vocabflow.

All magic numbers and configuration defaults live here so every layer
imports from a single source of truth.
"""

# ---------- SM-2 ----------
DEFAULT_EASE_FACTOR = 2.5
MIN_EASE_FACTOR = 1.3
MIN_QUALITY = 0
MAX_QUALITY = 5
CORRECT_QUALITY_THRESHOLD = 3
FIRST_INTERVAL_DAYS = 1
SECOND_INTERVAL_DAYS = 6
LAPSE_INTERVAL_DAYS = 1

# ---------- Ledger ----------
DEFAULT_DAILY_GOAL = 10
DEFAULT_PLAYBACK_SPEED = 1.0
ANSWER_CHOICES = ("A", "B", "C", "D")

# ---------- Persistence ----------
STORAGE_KEY = "learn-progress"
STATE_VERSION = 1

# ---------- Server ----------
DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 8787
