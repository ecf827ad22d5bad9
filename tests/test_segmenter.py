"""Tests for the segmentation pipeline: boundaries, punctuation, collapsing.

WHY: Token boundaries decide what the user has to tap. The expected
outputs here are the behaviour users rely on when they write transcripts
with split (|) and suppression (\\) markers.

HOW: Stage-level tests exercise analyse_text(), compute_boundaries(),
plan_punctuation_edits() and collapse_tokens() on short strings.
Pipeline tests compare segment_text() output to expected token texts
and significance for each option preset, then check the properties that
hold for any input (coverage, determinism, ordering).

RULES:
- Word-mode expectations for ideographs assume ICU dictionary word
  breaking, which keeps runs such as 字字 together
"""

import unicodedata

import pytest

from granular_aligner.core.boundaries import TextAnalysis, analyse_text, compute_boundaries
from granular_aligner.core.collapse import collapse_tokens
from granular_aligner.core.ir import PunctuationMode, SegmentationOptions
from granular_aligner.core.markup import parse_markup
from granular_aligner.core.punctuation import plan_punctuation_edits, resolve_punctuation
from granular_aligner.core.segmenter import segment_text, segment_transcript, split_lines

from conftest import (
    ALL_OPTIONS,
    CHAR_IGNORE,
    CHAR_MERGE,
    NO_AUTO,
    NO_AUTO_MERGE,
    WORD_IGNORE,
    WORD_MERGE,
)


def _texts(tokens):
    return [t.text for t in tokens]


def _flags(tokens):
    return [t.is_significant for t in tokens]


# ---------------------------------------------------------------------------
# Stage: analysis and boundary sources
# ---------------------------------------------------------------------------


class TestAnalyseText:
    """analyse_text() exposes word-like flags and break opportunities."""

    def test_word_like_flags(self):
        analysis = analyse_text("Hello world.")
        assert analysis.word_like == (True,) * 5 + (False,) + (True,) * 5 + (False,)

    def test_segment_starts_and_line_breaks(self):
        analysis = analyse_text("Hello world.")
        assert analysis.segment_starts == (0, 5, 6, 11)
        assert analysis.line_breaks == (0, 6, 12)

    def test_numbers_are_word_like(self):
        analysis = analyse_text("42")
        assert analysis.word_like == (True, True)

    def test_offsets_are_code_points_outside_the_bmp(self):
        analysis = analyse_text("𝐀 b")
        assert analysis.segment_starts == (0, 1, 2)
        assert analysis.word_like == (True, False, True)

    def test_ideograph_run_is_one_segment(self):
        analysis = analyse_text("字字。")
        assert analysis.segment_starts == (0, 2)
        assert analysis.word_like == (True, True, False)

    def test_out_of_range_counts_as_word_like(self):
        analysis = analyse_text("..")
        assert analysis.is_word_like(-1) is True
        assert analysis.is_word_like(2) is True
        assert analysis.is_word_like(0) is False

    def test_empty_text(self):
        analysis = analyse_text("")
        assert analysis.word_like == ()
        assert analysis.line_breaks == (0,)


class TestComputeBoundaries:
    """compute_boundaries() unions the enabled sources."""

    def test_manual_only(self):
        analysis = analyse_text("Hello world.")
        assert compute_boundaries(analysis, {0, 3, 12}, NO_AUTO) == {0, 3, 12}

    def test_word_source(self):
        analysis = analyse_text("Hello world.")
        assert compute_boundaries(analysis, {0, 12}, WORD_IGNORE) == {0, 5, 6, 11, 12}

    def test_character_source(self):
        analysis = analyse_text("Hello world.")
        assert compute_boundaries(analysis, {0, 12}, CHAR_IGNORE) == {0, 6, 12}

    def test_always_contains_ends(self):
        analysis = analyse_text("abc")
        assert compute_boundaries(analysis, set(), NO_AUTO) == {0, 3}


# ---------------------------------------------------------------------------
# Stage: punctuation
# ---------------------------------------------------------------------------


class TestPunctuation:
    """plan_punctuation_edits() isolates or merges non-word-like runs."""

    def test_edits_only_at_punctuated_opportunities(self):
        analysis = analyse_text("Hello world.")
        edits = plan_punctuation_edits({0, 5, 6, 11, 12}, analysis, PunctuationMode.IGNORE)
        assert [e.opportunity for e in edits] == [6, 12]
        assert edits[0].removed == frozenset({5, 6})
        assert edits[0].added == frozenset({5, 6})
        assert edits[1].added == frozenset({11, 12})

    def test_merge_mode_keeps_only_opportunity_boundaries(self):
        analysis = analyse_text("Hello world.")
        resolved = resolve_punctuation({0, 5, 6, 11, 12}, analysis, PunctuationMode.MERGE)
        assert resolved == {0, 6, 12}

    def test_resolution_does_not_mutate_input(self):
        analysis = analyse_text("Hello world.")
        boundaries = {0, 5, 6, 11, 12}
        resolve_punctuation(boundaries, analysis, PunctuationMode.MERGE)
        assert boundaries == {0, 5, 6, 11, 12}


# ---------------------------------------------------------------------------
# Stage: collapsing
# ---------------------------------------------------------------------------


def _analysis(text, word_like):
    return TextAnalysis(
        text=text,
        word_like=tuple(word_like),
        segment_starts=(0,),
        line_breaks=(0, len(text)),
    )


class TestCollapse:
    """collapse_tokens() merges insignificant runs and honours suppression."""

    def test_consecutive_insignificant_spans_collapse(self):
        analysis = _analysis("a, b", [True, False, False, True])
        tokens = collapse_tokens(analysis, {0, 1, 2, 3, 4}, set())
        assert _texts(tokens) == ["a", ", ", "b"]
        assert _flags(tokens) == [True, False, True]

    def test_suppression_at_significant_start_merges_backwards(self):
        analysis = _analysis("ab", [True, True])
        tokens = collapse_tokens(analysis, {0, 1, 2}, {1})
        assert _texts(tokens) == ["ab"]

    def test_suppression_in_insignificant_span_glues_neighbours(self):
        analysis = _analysis("a b", [True, False, True])
        tokens = collapse_tokens(analysis, {0, 1, 2, 3}, {1})
        assert _texts(tokens) == ["a b"]
        assert _flags(tokens) == [True]

    def test_suppression_at_line_start_keeps_leading_text(self):
        analysis = _analysis("a b", [True, False, True])
        tokens = collapse_tokens(analysis, {0, 1, 2, 3}, {0})
        assert "".join(_texts(tokens)) == "a b"
        assert tokens[0].text == "a"
        assert tokens[0].is_significant is True

    def test_out_of_range_boundaries_are_ignored(self):
        analysis = _analysis("ab", [True, True])
        tokens = collapse_tokens(analysis, {-1, 0, 1, 2, 5}, set())
        assert _texts(tokens) == ["a", "b"]

    def test_empty_text(self):
        assert collapse_tokens(_analysis("", []), {0}, set()) == []


# ---------------------------------------------------------------------------
# Pipeline: segment_text
# ---------------------------------------------------------------------------


class TestSegmentText:
    """End-to-end expectations for a single line."""

    @pytest.mark.parametrize(
        "options, expected",
        [
            (WORD_IGNORE, ["Hello", " ", "world", "."]),
            (CHAR_IGNORE, ["Hello", " ", "world", "."]),
            (NO_AUTO, ["Hello world", "."]),
            (WORD_MERGE, ["Hello ", "world."]),
        ],
    )
    def test_hello_world(self, options, expected):
        assert _texts(segment_text("Hello world.", options)) == expected

    def test_significance_flags(self):
        tokens = segment_text("Hello world.", WORD_IGNORE)
        assert _flags(tokens) == [True, False, True, False]

    @pytest.mark.parametrize(
        "options, expected",
        [
            (NO_AUTO, ["(", "Hello, world", "!)"]),
            (NO_AUTO_MERGE, ["(Hello, world!)"]),
            (WORD_IGNORE, ["(", "Hello", ", ", "world", "!)"]),
            (WORD_MERGE, ["(Hello, ", "world!)"]),
        ],
    )
    def test_brackets_and_punctuation(self, options, expected):
        assert _texts(segment_text("(Hello, world!)", options)) == expected

    def test_spaced_brackets_ignore(self):
        tokens = segment_text(")) a ((", NO_AUTO)
        assert _texts(tokens) == [")) ", "a", " (("]
        assert _flags(tokens) == [False, True, False]

    def test_spaced_brackets_merge(self):
        tokens = segment_text(")) a ((", NO_AUTO_MERGE)
        assert _texts(tokens) == [")) ", "a ", "(("]
        assert _flags(tokens) == [False, True, False]

    def test_manual_split_markers_around_brackets(self):
        tokens = segment_text("(a|) (|) ()| (a)", NO_AUTO)
        assert _texts(tokens) == ["(", "a", ") () () (", "a", ")"]
        assert _flags(tokens) == [False, True, False, True, False]

    def test_manual_split_inside_word(self):
        assert _texts(segment_text("Hel|lo", NO_AUTO)) == ["Hel", "lo"]

    @pytest.mark.parametrize(
        "raw",
        ["Hong\\ Kong", "Hong \\Kong", "Hong\\ \\Kong", "Hong| \\Kong", "Hong\\ |Kong"],
    )
    def test_suppression_keeps_phrase_together(self, raw):
        tokens = segment_text(raw, WORD_IGNORE)
        assert _texts(tokens) == ["Hong Kong"]
        assert _flags(tokens) == [True]

    def test_suppression_across_punctuation(self):
        assert _texts(segment_text("a\\))a", WORD_IGNORE)) == ["a))a"]

    def test_escapes_are_resolved_in_tokens(self):
        tokens = segment_text("a`|b", NO_AUTO)
        assert _texts(tokens) == ["a|b"]

    @pytest.mark.parametrize(
        "options, expected",
        [
            (CHAR_IGNORE, ["「", "字", "字", "，", "字", "。」"]),
            (CHAR_MERGE, ["「字", "字，", "字。」"]),
            (NO_AUTO, ["「", "字字，字", "。」"]),
            (NO_AUTO_MERGE, ["「字字，字。」"]),
            (WORD_IGNORE, ["「", "字字", "，", "字", "。」"]),
            (WORD_MERGE, ["「字字，", "字。」"]),
        ],
    )
    def test_ideographs_in_brackets(self, options, expected):
        assert _texts(segment_text("「字字，字。」", options)) == expected

    @pytest.mark.parametrize(
        "raw, expected",
        [
            ("Hello字字English。", ["Hello", "字字", "English", "。"]),
            ("字字English字字。", ["字字", "English", "字字", "。"]),
            ("字字English，字字。", ["字字", "English", "，", "字字", "。"]),
            ("Hello world.字字。", ["Hello", " ", "world", ".", "字字", "。"]),
        ],
    )
    def test_word_mode_keeps_ideograph_runs_together(self, raw, expected):
        assert _texts(segment_text(raw, WORD_IGNORE)) == expected

    @pytest.mark.parametrize("raw", ["字字，字字", "字字|，字字", "字字，|字字", "字字|，|字字"])
    def test_word_mode_ideographs_with_split_markers(self, raw):
        tokens = segment_text(raw, WORD_IGNORE)
        assert _texts(tokens) == ["字字", "，", "字字"]
        assert _flags(tokens) == [True, False, True]

    @pytest.mark.parametrize("options", [NO_AUTO, NO_AUTO_MERGE])
    def test_fullwidth_brackets_around_ideograph(self, options):
        tokens = segment_text("））字（（", options)
        assert _texts(tokens) == ["））", "字", "（（"]
        assert _flags(tokens) == [False, True, False]

    def test_punctuation_only_line_is_insignificant(self):
        tokens = segment_text("...!", WORD_IGNORE)
        assert tokens
        assert not any(t.is_significant for t in tokens)
        assert "".join(_texts(tokens)) == "...!"

    def test_whitespace_only_line(self):
        tokens = segment_text("   ", WORD_IGNORE)
        assert _texts(tokens) == ["   "]
        assert _flags(tokens) == [False]

    def test_markers_only_give_no_tokens(self):
        assert segment_text("|", WORD_IGNORE) == []
        assert segment_text("", WORD_IGNORE) == []


# ---------------------------------------------------------------------------
# Pipeline: properties for arbitrary input
# ---------------------------------------------------------------------------


SAMPLES = [
    "Hello world.",
    "(Hello, world!)",
    "  leading and trailing  ",
    "It's 5 o'clock -- time for tea?!",
    "\\Leading suppression, then words.",
    "tab`tseparated|manual|splits",
    "ça va? Très bien!",
    "...",
    "x",
    "「字字，字。」",
    "Hong\\ Kong \\- (\\the city)",
]


def _contains_word_like(text):
    return any(unicodedata.category(c)[0] in ("L", "N") for c in text)


class TestProperties:
    """Invariants that hold for every input and option preset."""

    @pytest.mark.parametrize("raw", SAMPLES)
    @pytest.mark.parametrize("options", ALL_OPTIONS)
    def test_tokens_cover_text_exactly(self, raw, options):
        tokens = segment_text(raw, options)
        assert "".join(_texts(tokens)) == parse_markup(raw).text
        assert all(t.text for t in tokens)

    @pytest.mark.parametrize("raw", [s for s in SAMPLES if "\\" not in s])
    @pytest.mark.parametrize("options", ALL_OPTIONS)
    def test_significance_matches_content(self, raw, options):
        for token in segment_text(raw, options):
            assert token.is_significant == _contains_word_like(token.text)

    @pytest.mark.parametrize("raw", SAMPLES)
    def test_segmentation_is_deterministic(self, raw):
        first = segment_text(raw, WORD_MERGE)
        second = segment_text(raw, WORD_MERGE)
        assert first == second

    def test_no_two_adjacent_insignificant_tokens(self):
        for raw in SAMPLES:
            for options in ALL_OPTIONS:
                flags = _flags(segment_text(raw, options))
                for a, b in zip(flags, flags[1:]):
                    assert a or b, (raw, options)


# ---------------------------------------------------------------------------
# Transcripts
# ---------------------------------------------------------------------------


class TestSegmentTranscript:
    """segment_transcript() splits lines and keeps their order."""

    def test_split_lines_handles_all_line_endings(self):
        assert split_lines("a\r\nb\rc\nd") == ["a", "b", "c", "d"]

    def test_trailing_newline_gives_empty_last_line(self):
        assert split_lines("a\n") == ["a", ""]

    def test_empty_lines_have_no_tokens(self):
        lines = segment_transcript("Hello\n\nworld", WORD_IGNORE)
        assert len(lines) == 3
        assert lines[1].tokens == []
        assert lines[1].is_significant is False
        assert lines[0].is_significant and lines[2].is_significant

    def test_parallel_matches_sequential(self):
        raw = "\n".join(SAMPLES * 3)
        sequential = segment_transcript(raw, WORD_IGNORE)
        parallel = segment_transcript(raw, WORD_IGNORE, max_workers=4)
        assert parallel == sequential

    def test_from_granularity_presets(self):
        options = SegmentationOptions.from_granularity("pipe", "merge")
        lines = segment_transcript("one| two", options)
        assert [t.text for t in lines[0].tokens] == ["one ", "two"]

    def test_unknown_granularity_raises(self):
        with pytest.raises(ValueError, match="granularity"):
            SegmentationOptions.from_granularity("syllable")
