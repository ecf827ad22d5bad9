"""Configuration constants, segmentation defaults, and .env loading.

WHY: Centralizes every tunable value so it is easy to find, update, and
override: the default segmentation options, the export encoding of the
ignored marker, and the HTTP server's session limits. Plain data at
module level, not buried in logic.

HOW: python-dotenv loads the .env file on import. Constants read their
defaults from environment variables. load_default_options() turns the
configured granularity and punctuation names into SegmentationOptions
and fails loudly on unknown names.

RULES:
- Every default can be overridden via an environment variable
- Unknown granularity / punctuation names raise ValueError
- IGNORED_TIME_TEXT must never be a valid MM:SS.mmm time
"""

from __future__ import annotations

import os

from dotenv import load_dotenv

from granular_aligner.core.ir import GRANULARITIES, PunctuationMode, SegmentationOptions

# Load .env from the project root (where the script is run from)
load_dotenv()

# ---------------------------------------------------------------------------
# Segmentation defaults
# ---------------------------------------------------------------------------

DEFAULT_GRANULARITY = os.getenv("GRANULAR_ALIGNER_GRANULARITY", "word")
DEFAULT_PUNCTUATION = os.getenv("GRANULAR_ALIGNER_PUNCTUATION", PunctuationMode.IGNORE.value)
SEGMENTATION_WORKERS = int(os.getenv("GRANULAR_ALIGNER_WORKERS", "1"))

# ---------------------------------------------------------------------------
# Export format
# ---------------------------------------------------------------------------

IGNORED_TIME_TEXT = "--:--.---"
"""Export spelling of a manually ignored timestamp (distinct from "" and 00:00.000)."""

TRANSCRIPT_SUFFIXES: set[str] = {".txt", ".lrc", ".gst"}
"""Input file extensions the CLI accepts (lowercase, with dot)."""

# ---------------------------------------------------------------------------
# HTTP server
# ---------------------------------------------------------------------------

SERVER_HOST = os.getenv("GRANULAR_ALIGNER_HOST", "127.0.0.1")
SERVER_PORT = int(os.getenv("GRANULAR_ALIGNER_PORT", "8000"))
SESSION_TTL_SECONDS = int(os.getenv("GRANULAR_ALIGNER_SESSION_TTL", "3600"))
MAX_SESSIONS = int(os.getenv("GRANULAR_ALIGNER_MAX_SESSIONS", "100"))


def load_default_options() -> SegmentationOptions:
    """Build SegmentationOptions from the configured defaults.

    RULES:
    - Raises ValueError if the configured names are not recognized
    """
    if DEFAULT_GRANULARITY not in GRANULARITIES:
        raise ValueError(
            "GRANULAR_ALIGNER_GRANULARITY must be one of {}, got '{}'".format(
                ", ".join(GRANULARITIES), DEFAULT_GRANULARITY
            )
        )
    return SegmentationOptions.from_granularity(DEFAULT_GRANULARITY, DEFAULT_PUNCTUATION)
