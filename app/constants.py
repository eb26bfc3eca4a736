"""Application-wide constants and configuration values.

This module centralizes the fixed tables and magic numbers used throughout
the application, making them easier to maintain and adjust.
"""

# Kana rows
ROW_ORDER = ["a", "k", "s", "t", "n", "h", "m", "y", "r", "w", "special"]
"""Traditional display order of the kana rows (gojūon order)."""

SPECIAL_ROW = "special"
"""Residual row for characters that fit no consonant family."""

ROW_FAMILIES = {
    "a": "a", "i": "a", "u": "a", "e": "a", "o": "a",
    "k": "k", "g": "k",
    "s": "s", "z": "s",
    "t": "t", "d": "t",
    "n": "n",
    "h": "h", "b": "h", "p": "h",
    "m": "m",
    "y": "y",
    "r": "r",
    "w": "w",
}
"""Leading letter -> row. Voiced and semi-voiced letters join their unvoiced family."""

ROW_DISPLAY_NAMES = {
    "a": "A (あ行)",
    "k": "K (か行/が行)",
    "s": "S (さ行/ざ行)",
    "t": "T (た行/だ行)",
    "n": "N (な行)",
    "h": "H (は行/ば行/ぱ行)",
    "m": "M (ま行)",
    "y": "Y (や行)",
    "r": "R (ら行)",
    "w": "W (わ行)",
    "special": "Special",
}
"""Human-readable labels for the study view."""

VOWEL_ORDER = {"a": 0, "i": 1, "u": 2, "e": 3, "o": 4}
"""Japanese vowel sequence used to order characters inside a row."""

# Quiz Configuration
OPTION_COUNT = 4
"""Number of answer options shown with each question, including the correct one."""

DISTRACTOR_COUNT = OPTION_COUNT - 1
"""Number of incorrect answer options to show with each question."""

# Stats Store
STATS_KEY = "kana-quiz-stats"
"""Fixed key of the durable quiz statistics slot."""

# Cookie Configuration
COOKIE_NAME = "kana_uid"
"""Name of the cookie used to store the anonymous learner id."""

LEARNER_ID_PREFIX = "kana_"
"""Prefix of generated learner ids."""

# Rate Limiting
DEFAULT_RATE_LIMIT = "100/minute"
"""Default request budget per client address."""

# Logging
DEFAULT_LOG_LEVEL = "INFO"
"""Default logging level for the application."""
