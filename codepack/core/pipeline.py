"""Tiered content reduction: passthrough guard → structural → textual.

WHY: A syntax-aware transformer gives the most faithful reduction but
only exists for some languages and can fail on unusual input. A
pattern-based processor covers every language with less precision. The
pipeline prefers the first, falls back to the second, and never lets a
single file's failure take down the request.

HOW: TransformPipeline holds an ordered list of tiers. Each tier is a
coroutine ``(content, extension, mode) -> str | None``; transform() runs
them left to right and returns the first non-None result, or the content
unchanged if every tier declines.

RULES:
- raw mode or empty content → unchanged, no transformer invoked
- Content longer than max_process_size → unchanged, regardless of mode
- Structural result + minify → textual "minify" pass over it (the
  structural side only strips comments, leaving blank lines behind)
- Structural None or exception → textual fallback; exceptions are logged
  as warnings and never propagate. A failing minify cleanup pass counts
  as a structural failure (fallback runs over the original content)
- Fallback maps signatures-only / interfaces-only to raw (no reduction)
  and passes remove-comments / minify through unchanged
- Textual processor exceptions in the fallback tier DO propagate (it
  must not raise)
"""

from __future__ import annotations

import inspect
import logging
from typing import Awaitable, Callable, List, Optional

from codepack.config import MAX_PROCESS_SIZE
from codepack.core.collaborators import (
    StructuralTransform,
    TextualTransform,
    identity_textual,
    unsupported_structural,
)
from codepack.core.ir import ProcessingMode

logger = logging.getLogger(__name__)

Tier = Callable[[str, str, ProcessingMode], Awaitable[Optional[str]]]

# Modes the structural transformer is asked to handle.
STRUCTURAL_MODES = frozenset({
    ProcessingMode.REMOVE_COMMENTS,
    ProcessingMode.SIGNATURES_ONLY,
    ProcessingMode.INTERFACES_ONLY,
    ProcessingMode.MINIFY,
})

# The textual processor cannot extract structure; these degrade to raw.
_FALLBACK_MODE = {
    ProcessingMode.SIGNATURES_ONLY: ProcessingMode.RAW,
    ProcessingMode.INTERFACES_ONLY: ProcessingMode.RAW,
}


class TransformPipeline:
    """Strategy chain over the external structural and textual transformers.

    Args:
        structural: Syntax-aware transformer; defaults to "nothing supported".
        textual: Pattern-based processor; defaults to identity.
        max_process_size: Character ceiling above which content is passed
            through untouched.
    """

    def __init__(
        self,
        structural: Optional[StructuralTransform] = None,
        textual: Optional[TextualTransform] = None,
        max_process_size: int = MAX_PROCESS_SIZE,
    ) -> None:
        self.structural = structural or unsupported_structural
        self.textual = textual or identity_textual
        self.max_process_size = max_process_size
        self._tiers: List[Tier] = [
            self._passthrough_tier,
            self._structural_tier,
            self._textual_tier,
        ]

    async def transform(self, content: str, extension: str, mode: ProcessingMode) -> str:
        """Reduce one file's content according to ``mode``."""
        mode = ProcessingMode(mode)
        for tier in self._tiers:
            result = await tier(content, extension, mode)
            if result is not None:
                return result
        return content

    # ------------------------------------------------------------------
    # Tiers
    # ------------------------------------------------------------------

    async def _passthrough_tier(
        self, content: str, extension: str, mode: ProcessingMode,
    ) -> Optional[str]:
        if mode == ProcessingMode.RAW or not content:
            return content
        if len(content) > self.max_process_size:
            logger.debug(
                "Skipping transform for .%s content (%d chars > %d)",
                extension, len(content), self.max_process_size,
            )
            return content
        return None

    async def _structural_tier(
        self, content: str, extension: str, mode: ProcessingMode,
    ) -> Optional[str]:
        if mode not in STRUCTURAL_MODES:
            return None
        try:
            result = self.structural(content, extension, mode.value)
            if inspect.isawaitable(result):
                result = await result
            if result is not None and mode == ProcessingMode.MINIFY:
                result = self.textual(result, extension, ProcessingMode.MINIFY.value)
        except Exception:
            logger.warning(
                "Structural transform failed for .%s (%s), falling back to textual processor",
                extension, mode.value, exc_info=True,
            )
            return None
        return result

    async def _textual_tier(
        self, content: str, extension: str, mode: ProcessingMode,
    ) -> Optional[str]:
        fallback = _FALLBACK_MODE.get(mode, mode)
        return self.textual(content, extension, fallback.value)
