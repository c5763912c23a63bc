"""Markdown style: a heading per file and a language-tagged code fence.

WHY: Markdown output renders nicely in chat UIs and lets the model see
each file's language from the fence tag.

HOW: ``### <path>`` heading, then an opening fence tagged with the file
extension, the content, and a closing fence.

RULES:
- Per file: 3 wrapper lines + content lines (+1 separator after the first)
- The fence tag is the bare extension (``py``, ``ts``, ``txt``...)
- Content containing ``` is not escaped
"""

from __future__ import annotations

from typing import List

from codepack.formatters.base import BaseFormatter

FENCE = "```"


class MarkdownFormatter(BaseFormatter):
    """Formatter that emits a heading and fenced code block per file."""

    @property
    def name(self) -> str:
        return "Markdown"

    def header(self, path_label: str, extension: str) -> List[str]:
        return ["### {}".format(path_label), "{}{}".format(FENCE, extension)]

    def footer(self, extension: str) -> List[str]:
        return [FENCE]
