"""Abstract base formatter and output container.

WHY: A recording session can be saved in more than one shape (the synced
text export, a full JSON snapshot). This base class gives the CLI and the
HTTP API one interface for every format.

HOW: BaseFormatter is an ABC with a ``name`` property and a ``format()``
method taking the recording state. FormatterOutput bundles a file suffix
with its content and MIME type.

RULES:
- Subclasses MUST implement ``name`` (human-readable) and ``format()``
- ``format()`` returns a list; current formatters return one item
- ``suffix`` starts with a hyphen, e.g. ``"-synced.txt"``
- The caller is responsible for prepending the source filename stem
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass

from granular_aligner.core.ir import RecordingState


@dataclass
class FormatterOutput:
    """One output file produced by a formatter.

    Attributes:
        suffix: File suffix appended to the source stem,
                e.g. ``"-synced.txt"`` → ``"song-synced.txt"``.
        content: The file content.
        media_type: MIME type for the content, e.g. ``"text/plain"``.
    """

    suffix: str
    content: str
    media_type: str


class BaseFormatter(ABC):
    """Abstract base for all output formatters.

    To add a new output format:
    1. Create a new file in formatters/
    2. Subclass BaseFormatter
    3. Implement format() and name
    4. Register in FORMATTERS dict in formatters/__init__.py
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Human-readable format name, e.g. 'Granular Synced Text'."""

    @abstractmethod
    def format(self, state: RecordingState) -> list[FormatterOutput]:
        """Convert the recording state into one or more output files.

        Args:
            state: The session document: lines with their token times,
                   cursor position and auto-advance flag.

        Returns:
            List of FormatterOutput objects.
        """
