"""Granular Aligner - sub-word transcript/audio synchronization.

WHY: Timing a transcript against a recording word by word (or syllable by
syllable) is done by a human tapping along with playback. That needs two
things: a transcript split into sensible tokens, and a recording model
whose start/end/undo/skip controls behave predictably across lines.

HOW: Two independent stages. The segmentation engine (core.segmenter)
turns raw transcript text plus manual markup into lines of tokens. The
recording state machine (core.recording) is seeded once from those lines
and then only mutates token timestamps. Formatters export the result;
the server exposes sessions over HTTP.

RULES:
- Segmentation is pure and deterministic
- The recording state is a value: every transition returns a new one
- All timestamps are supplied by the user, never derived from audio
"""

__version__ = "0.1.0"
