"""Shared test fixtures for the granular_aligner test suite.

WHY: Segmentation tests and state machine tests both need the same
option presets and small hand-built documents. Centralizing them keeps
every test module on the same vocabulary.

HOW: Module-level option constants mirror the six combinations of
automatic splitting and punctuation mode. Helper functions build lines
from plain strings; fixtures provide ready-made documents.

RULES:
- Helpers never run the segmentation engine; recording tests stay
  independent of Unicode segmentation details
- Every fixture returns a fresh object (no shared mutable state)
"""

from typing import List

import pytest

from granular_aligner.core.ir import Line, PunctuationMode, SegmentationOptions, Token

NO_AUTO = SegmentationOptions(split_on_character=False, split_on_word=False, punctuation=PunctuationMode.IGNORE)
NO_AUTO_MERGE = SegmentationOptions(split_on_character=False, split_on_word=False, punctuation=PunctuationMode.MERGE)
CHAR_IGNORE = SegmentationOptions(split_on_character=True, split_on_word=False, punctuation=PunctuationMode.IGNORE)
CHAR_MERGE = SegmentationOptions(split_on_character=True, split_on_word=False, punctuation=PunctuationMode.MERGE)
WORD_IGNORE = SegmentationOptions(split_on_character=False, split_on_word=True, punctuation=PunctuationMode.IGNORE)
WORD_MERGE = SegmentationOptions(split_on_character=False, split_on_word=True, punctuation=PunctuationMode.MERGE)

ALL_OPTIONS = [NO_AUTO, NO_AUTO_MERGE, CHAR_IGNORE, CHAR_MERGE, WORD_IGNORE, WORD_MERGE]


def make_line(*words: str) -> Line:
    """Build a line of significant tokens separated by insignificant spaces."""
    tokens: List[Token] = []
    for i, word in enumerate(words):
        if i:
            tokens.append(Token(text=" ", is_significant=False))
        tokens.append(Token(text=word, is_significant=True))
    return Line(tokens=tokens)


def blank_line() -> Line:
    """A line with only insignificant content."""
    return Line(tokens=[Token(text="...", is_significant=False)])


@pytest.fixture
def two_single_token_lines():
    """Two significant lines with one token each."""
    return [make_line("Hello"), make_line("world")]


@pytest.fixture
def mixed_lines():
    """Lines: [Hello world] [...] [] [How are you]."""
    return [
        make_line("Hello", "world"),
        blank_line(),
        Line(tokens=[]),
        make_line("How", "are", "you"),
    ]
