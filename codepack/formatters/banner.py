"""Single-line banner styles: standard, hash, and minimal.

WHY: Most consumers only need a visible marker between files. These
three styles differ only in how the path label is wrapped, so they share
one module.

RULES:
- standard: ``/* --- <path> --- */`` (also the fallback for unknown styles)
- hash: ``# --- <path> ---``
- minimal: ``--- <path> ---``
- No footer in any banner style
"""

from __future__ import annotations

from typing import List

from codepack.formatters.base import BaseFormatter


class StandardFormatter(BaseFormatter):
    """C-style comment banner."""

    @property
    def name(self) -> str:
        return "Standard"

    def header(self, path_label: str, extension: str) -> List[str]:
        return ["/* --- {} --- */".format(path_label)]


class HashFormatter(BaseFormatter):
    """Shell/Python-style comment banner."""

    @property
    def name(self) -> str:
        return "Hash"

    def header(self, path_label: str, extension: str) -> List[str]:
        return ["# --- {} ---".format(path_label)]


class MinimalFormatter(BaseFormatter):
    @property
    def name(self) -> str:
        return "Minimal"

    def header(self, path_label: str, extension: str) -> List[str]:
        return ["--- {} ---".format(path_label)]
