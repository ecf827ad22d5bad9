"""Session snapshot JSON formatter.

WHY: The GST export keeps only what a player needs. Restoring a session
exactly (cursor, auto-advance flag, which tokens are insignificant)
needs a lossless snapshot of the whole RecordingState.

HOW: session_to_dict() maps the state to plain JSON types and validates
it against SESSION_SCHEMA with jsonschema before it is written.
load_session_json() validates incoming JSON against the same schema and
rebuilds the dataclasses.

RULES:
- A time is a number of seconds, the string "ignored", or null (absent)
- Schema validation is mandatory in both directions
- Output suffix: "-session.json", media type "application/json"
"""

from __future__ import annotations

import json
from typing import Any, Dict, List, Optional

import jsonschema

from granular_aligner.core.ir import IGNORED, Line, RecordingState, Timestamp, Token
from granular_aligner.formatters.base import BaseFormatter, FormatterOutput

SESSION_FORMAT_VERSION = "1.0.0"

_TIME_SCHEMA: Dict[str, Any] = {
    "oneOf": [
        {"type": "number", "minimum": 0},
        {"const": "ignored"},
        {"type": "null"},
    ]
}

SESSION_SCHEMA: Dict[str, Any] = {
    "$schema": "http://json-schema.org/draft-07/schema#",
    "title": "Granular aligner session",
    "type": "object",
    "required": ["version", "current_line_index", "auto_advanced", "lines"],
    "additionalProperties": False,
    "properties": {
        "version": {"type": "string"},
        "current_line_index": {"type": "integer", "minimum": 0},
        "auto_advanced": {"type": "boolean"},
        "lines": {
            "type": "array",
            "items": {
                "type": "object",
                "required": ["tokens"],
                "additionalProperties": False,
                "properties": {
                    "tokens": {
                        "type": "array",
                        "items": {
                            "type": "object",
                            "required": ["text", "significant", "start", "end"],
                            "additionalProperties": False,
                            "properties": {
                                "text": {"type": "string", "minLength": 1},
                                "significant": {"type": "boolean"},
                                "start": _TIME_SCHEMA,
                                "end": _TIME_SCHEMA,
                            },
                        },
                    },
                },
            },
        },
    },
}


def _time_to_json(stamp: Optional[Timestamp]) -> Any:
    if stamp is None:
        return None
    if stamp.is_ignored:
        return "ignored"
    return stamp.seconds


def _time_from_json(value: Any) -> Optional[Timestamp]:
    if value is None:
        return None
    if value == "ignored":
        return IGNORED
    return Timestamp.at(value)


def session_to_dict(state: RecordingState) -> Dict[str, Any]:
    """Convert a RecordingState to a schema-valid JSON-ready dict.

    Raises:
        jsonschema.ValidationError: If the produced dict violates SESSION_SCHEMA.
    """
    output = {
        "version": SESSION_FORMAT_VERSION,
        "current_line_index": state.current_line_index,
        "auto_advanced": state.auto_advanced,
        "lines": [
            {
                "tokens": [
                    {
                        "text": t.text,
                        "significant": t.is_significant,
                        "start": _time_to_json(t.start_time),
                        "end": _time_to_json(t.end_time),
                    }
                    for t in line.tokens
                ]
            }
            for line in state.lines
        ],
    }
    jsonschema.validate(instance=output, schema=SESSION_SCHEMA)
    return output


def load_session_json(content: str) -> RecordingState:
    """Parse and validate a session snapshot.

    Raises:
        ValueError: If the content is not JSON, a token ends without a
            start, or the cursor is out of range.
        jsonschema.ValidationError: If the JSON does not match SESSION_SCHEMA.
    """
    try:
        data = json.loads(content)
    except json.JSONDecodeError as e:
        raise ValueError("Session file is not valid JSON: {}".format(e)) from None

    jsonschema.validate(instance=data, schema=SESSION_SCHEMA)

    lines: List[Line] = []
    for number, line in enumerate(data["lines"], start=1):
        tokens: List[Token] = []
        for t in line["tokens"]:
            start_time = _time_from_json(t["start"])
            end_time = _time_from_json(t["end"])
            if end_time is not None and start_time is None:
                raise ValueError(
                    "Token {!r} on line {} has an end time but no start time".format(t["text"], number)
                )
            tokens.append(Token(
                text=t["text"],
                is_significant=t["significant"],
                start_time=start_time,
                end_time=end_time,
            ))
        lines.append(Line(tokens=tokens))

    # An empty session only has line 0
    index = data["current_line_index"]
    if index >= max(len(lines), 1):
        raise ValueError("current_line_index {} out of range".format(index))

    return RecordingState(
        lines=lines,
        current_line_index=index,
        auto_advanced=data["auto_advanced"],
    )


class SessionJsonFormatter(BaseFormatter):
    """Formatter that produces a lossless JSON snapshot of the session."""

    @property
    def name(self) -> str:
        return "Session JSON"

    def format(self, state: RecordingState) -> List[FormatterOutput]:
        """Serialize the state.

        Raises:
            jsonschema.ValidationError: If the snapshot violates the schema.
        """
        content = json.dumps(session_to_dict(state), indent=2, ensure_ascii=False)
        return [
            FormatterOutput(
                suffix="-session.json",
                content=content,
                media_type="application/json",
            )
        ]
