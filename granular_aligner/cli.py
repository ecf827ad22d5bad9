"""Command-line interface for the Granular Aligner.

WHY: Users need to check how a transcript will be segmented before a
recording session, produce the initial (untimed) export files, convert
a saved session between formats, and start the HTTP service.

HOW: argparse with two subcommands:
  segment: read a transcript (or a saved .gst / -session.json file),
           segment it and either print a token listing or write
           formatter output files next to the input
  serve  : run the FastAPI app with uvicorn
Status messages go to stderr; output files are saved next to the source
(or to --output-dir).

RULES:
- Input must have a supported extension (TRANSCRIPT_SUFFIXES) or be
  a "-session.json" snapshot
- .gst and -synced.txt inputs are loaded with load_gst so existing times
  survive
- --formats: comma-separated formatter keys, or "tokens" to print a listing
- Output naming: {stem}{suffix}, numeric suffix for conflicts (-synced-2.txt)
- Exit codes: 0 = success, 1 = error
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

import jsonschema

from granular_aligner import config
from granular_aligner.core.ir import GRANULARITIES, PunctuationMode, RecordingState, SegmentationOptions
from granular_aligner.core.recording import reset, resume
from granular_aligner.core.segmenter import segment_transcript
from granular_aligner.formatters import FORMATTERS
from granular_aligner.formatters.base import FormatterOutput
from granular_aligner.formatters.gst import load_gst
from granular_aligner.formatters.session_json import load_session_json

logger = logging.getLogger(__name__)

_SESSION_SUFFIX = "-session.json"
_SYNCED_SUFFIX = "-synced.txt"


def _status(msg: str) -> None:
    """Print a status message to stderr so stdout stays pipeable."""
    print(msg, file=sys.stderr, flush=True)


def _resolve_output_path(
    stem: str,
    suffix: str,
    output_dir: Path,
) -> Path:
    """Resolve the output file path, adding numeric suffix on conflict.

    RULES:
    - First attempt: {stem}{suffix} (e.g. song-synced.txt)
    - Conflict: insert a counter before the extension (song-synced-2.txt)
    - Counter starts at 2 and increments
    """
    base_path = output_dir / "{}{}".format(stem, suffix)
    if not base_path.exists():
        return base_path

    dot_idx = suffix.rfind(".")
    if dot_idx > 0:
        suffix_name = suffix[:dot_idx]
        suffix_ext = suffix[dot_idx:]
    else:
        suffix_name = suffix
        suffix_ext = ""

    counter = 2
    while True:
        candidate = output_dir / "{}{}-{}{}".format(stem, suffix_name, counter, suffix_ext)
        if not candidate.exists():
            return candidate
        counter += 1


def _save_output(output: FormatterOutput, stem: str, output_dir: Path) -> Path:
    path = _resolve_output_path(stem, output.suffix, output_dir)
    path.write_text(output.content, encoding="utf-8")
    return path


def _load_state(path: Path, options: SegmentationOptions, workers: int) -> RecordingState:
    """Load an input file into a recording state.

    Plain transcripts are segmented and reset. GST exports (.gst or
    -synced.txt) keep their times and resume at the first line still to
    record. Session snapshots are restored as saved.
    """
    content = path.read_text(encoding="utf-8")

    if path.name.endswith(_SESSION_SUFFIX):
        return load_session_json(content)

    if path.suffix.lower() == ".gst" or path.name.endswith(_SYNCED_SUFFIX):
        return resume(load_gst(content, options))

    return reset(segment_transcript(content, options, max_workers=workers))


def _output_stem(path: Path) -> str:
    for suffix in (_SESSION_SUFFIX, _SYNCED_SUFFIX):
        if path.name.endswith(suffix):
            return path.name[: -len(suffix)]
    return path.stem


def _print_tokens(state: RecordingState) -> None:
    for number, line in enumerate(state.lines, start=1):
        rendered = " ".join(
            "[{}]".format(t.text) if t.is_significant else "({})".format(t.text)
            for t in line.tokens
        )
        print("{:>4}: {}".format(number, rendered))


def _parse_formats(value: str) -> List[str]:
    keys = [k.strip() for k in value.split(",") if k.strip()]
    for key in keys:
        if key != "tokens" and key not in FORMATTERS:
            raise ValueError(
                "Unknown format '{}'. Available: tokens, {}".format(
                    key, ", ".join(FORMATTERS.keys())
                )
            )
    return keys


def _cmd_segment(args: argparse.Namespace) -> int:
    path = Path(args.input)
    if not path.is_file():
        _status("Error: File not found: {}".format(path))
        return 1

    if not path.name.endswith(_SESSION_SUFFIX) and path.suffix.lower() not in config.TRANSCRIPT_SUFFIXES:
        _status("Error: Unsupported file type '{}'. Supported: {}".format(
            path.suffix, ", ".join(sorted(config.TRANSCRIPT_SUFFIXES))
        ))
        return 1

    try:
        formats = _parse_formats(args.formats)
        options = SegmentationOptions.from_granularity(args.granularity, args.punctuation)
        state = _load_state(path, options, args.workers)
    except (ValueError, jsonschema.ValidationError) as exc:
        _status("Error: {}".format(exc))
        return 1

    significant = sum(1 for line in state.lines if line.is_significant)
    _status("Loaded {} lines ({} significant) from {}".format(len(state.lines), significant, path.name))

    output_dir = Path(args.output_dir) if args.output_dir else path.parent
    output_dir.mkdir(parents=True, exist_ok=True)

    for key in formats:
        if key == "tokens":
            _print_tokens(state)
            continue
        formatter = FORMATTERS[key]()
        for output in formatter.format(state):
            saved = _save_output(output, _output_stem(path), output_dir)
            _status("  {}: {}".format(formatter.name, saved))

    return 0


def _cmd_serve(args: argparse.Namespace) -> int:
    import uvicorn

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    logger.info("Starting Granular Aligner API on %s:%d", args.host, args.port)
    uvicorn.run("granular_aligner.server.app:app", host=args.host, port=args.port)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="granular_aligner",
        description="Segment transcripts and manage granular timing sessions.",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    seg = sub.add_parser("segment", help="Segment a transcript and write exports")
    seg.add_argument("input", help="Transcript (.txt/.lrc), GST export (.gst) or session snapshot")
    seg.add_argument(
        "--granularity",
        choices=GRANULARITIES,
        default=config.DEFAULT_GRANULARITY,
        help="Automatic splitting (default: %(default)s)",
    )
    seg.add_argument(
        "--punctuation",
        choices=[m.value for m in PunctuationMode],
        default=config.DEFAULT_PUNCTUATION,
        help="Punctuation handling (default: %(default)s)",
    )
    seg.add_argument(
        "--workers",
        type=int,
        default=config.SEGMENTATION_WORKERS,
        help="Segment lines on a thread pool of this size (default: %(default)s)",
    )
    seg.add_argument(
        "--formats",
        default="tokens",
        help="Comma-separated: tokens, {} (default: %(default)s)".format(", ".join(FORMATTERS.keys())),
    )
    seg.add_argument("--output-dir", default=None, help="Directory for output files")
    seg.set_defaults(func=_cmd_segment)

    srv = sub.add_parser("serve", help="Run the HTTP API")
    srv.add_argument("--host", default=config.SERVER_HOST)
    srv.add_argument("--port", type=int, default=config.SERVER_PORT)
    srv.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    srv.set_defaults(func=_cmd_serve)

    return parser


def main(argv: Optional[List[str]] = None) -> None:
    """Run the CLI and exit with its status code."""
    parser = build_parser()
    args = parser.parse_args(argv)
    sys.exit(args.func(args))


if __name__ == "__main__":
    main()
