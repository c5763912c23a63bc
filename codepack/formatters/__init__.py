"""Output style registry: pluggable delimiter conventions.

WHY: The orchestrator, HTTP API, and CLI need a single lookup to find
the right formatter by style name. A central dict makes it trivial to
add new styles: create the formatter class, import it here, add one line.

HOW: FORMATTERS maps style names to formatter *classes* (not instances).
get_formatter() instantiates the class for a style, falling back to the
standard banner for anything unregistered.

RULES:
- Keys match codepack.core.ir.OutputStyle values exactly
- Values are BaseFormatter subclasses (not instances)
- Unknown styles never raise; they format as "standard"
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from codepack.core.ir import OutputStyle
from codepack.formatters.banner import HashFormatter, MinimalFormatter, StandardFormatter
from codepack.formatters.markdown_fence import MarkdownFormatter
from codepack.formatters.xml_tags import XMLFormatter

if TYPE_CHECKING:
    from codepack.formatters.base import BaseFormatter

FORMATTERS: dict[str, type[BaseFormatter]] = {
    OutputStyle.STANDARD.value: StandardFormatter,
    OutputStyle.HASH.value: HashFormatter,
    OutputStyle.MINIMAL.value: MinimalFormatter,
    OutputStyle.XML.value: XMLFormatter,
    OutputStyle.MARKDOWN.value: MarkdownFormatter,
}


def get_formatter(style: str) -> BaseFormatter:
    """Formatter instance for ``style``; unknown styles get StandardFormatter."""
    if isinstance(style, OutputStyle):
        style = style.value
    return FORMATTERS.get(style, StandardFormatter)()
