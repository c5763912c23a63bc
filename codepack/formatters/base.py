"""Abstract base formatter for delimited multi-file output.

WHY: Every output style concatenates the same processed files; only the
wrapper lines around each file differ. This base class fixes the shared
layout (separator, header, verbatim content, footer) so each style only
declares its delimiters.

HOW: BaseFormatter is an ABC with a ``name`` property and a ``header()``
method; ``footer()`` defaults to no lines. ``append()`` is concrete and
writes one file's block into the shared line buffer.

RULES:
- A single blank line precedes every file except the first
- Content is split on "\\n" and appended verbatim (blank lines kept,
  a trailing newline yields a trailing empty line)
- Header/footer lines never contain newlines
- Formatters are stateless; one instance may serve many requests
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import List


class BaseFormatter(ABC):
    """Abstract base for all output styles.

    To add a new output style:
    1. Create a new file in formatters/
    2. Subclass BaseFormatter
    3. Implement name and header() (and footer() if the style closes blocks)
    4. Register in FORMATTERS dict in formatters/__init__.py
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Human-readable style name, e.g. 'Markdown'."""

    @abstractmethod
    def header(self, path_label: str, extension: str) -> List[str]:
        """Lines written before a file's content."""

    def footer(self, extension: str) -> List[str]:
        """Lines written after a file's content."""
        return []

    def append(
        self,
        lines: List[str],
        path_label: str,
        extension: str,
        content: str,
        is_first: bool,
    ) -> None:
        """Append one file's block to ``lines`` in place.

        Args:
            lines: Shared output buffer for the whole request.
            path_label: File path, or name when the path is empty.
            extension: Extension used by styles that tag code fences.
            content: Processed file content.
            is_first: True for the first text file of the request.
        """
        if not is_first:
            lines.append("")
        lines.extend(self.header(path_label, extension))
        lines.extend(content.split("\n"))
        lines.extend(self.footer(extension))
