"""XML-tag wrapper style.

WHY: Several model vendors recommend wrapping documents in XML-like tags
so the model can tell where one file ends and the next begins.

HOW: Opens each file with ``<file name="<path>">`` and closes it with
``</file>``. The path label is written as-is; the output is a prompt
convention, not a well-formed XML document.

RULES:
- Per file: 2 wrapper lines + content lines (+1 separator after the first)
"""

from __future__ import annotations

from typing import List

from codepack.formatters.base import BaseFormatter


class XMLFormatter(BaseFormatter):
    """Formatter that wraps each file in ``<file>`` tags."""

    @property
    def name(self) -> str:
        return "XML"

    def header(self, path_label: str, extension: str) -> List[str]:
        return ['<file name="{}">'.format(path_label)]

    def footer(self, extension: str) -> List[str]:
        return ["</file>"]
