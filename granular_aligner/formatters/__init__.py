"""Output formatter registry.

WHY: The CLI and the HTTP API need a single lookup to find the right
formatter by name. Adding a format means one new module and one line here.

HOW: FORMATTERS maps string keys to formatter *classes* (not instances).
Callers instantiate as needed: ``formatter = FORMATTERS["gst"]()``.

RULES:
- Keys are snake_case identifiers (used in CLI flags and URL paths)
- Values are BaseFormatter subclasses (not instances)
- Every formatter listed here must be importable without side effects
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from granular_aligner.formatters.gst import GranularSyncedTextFormatter
from granular_aligner.formatters.session_json import SessionJsonFormatter

if TYPE_CHECKING:
    from granular_aligner.formatters.base import BaseFormatter

FORMATTERS: dict[str, type[BaseFormatter]] = {
    "gst": GranularSyncedTextFormatter,
    "session_json": SessionJsonFormatter,
}
