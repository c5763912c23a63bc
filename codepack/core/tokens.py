"""Token accounting over a single shared tiktoken encoding.

WHY: Savings reported to the user must be measured in the units models
bill for, not characters. All requests must agree on the same tokenizer
so numbers are comparable across batches.

HOW: TokenCounter is the interface the orchestrator depends on.
TiktokenCounter wraps a tiktoken Encoding. get_token_counter() returns
the process-wide instance, created lazily on first call and cached for
the life of the process.

RULES:
- The shared encoding is read-only after creation; no locking needed
- count() is deterministic and side-effect free
- Special-token text inside files is counted as ordinary text
"""

from __future__ import annotations

import functools
from abc import ABC, abstractmethod

import tiktoken

from codepack.config import TOKENIZER_ENCODING


class TokenCounter(ABC):
    """Interface for counting tokens in text."""

    @abstractmethod
    def count(self, text: str) -> int:
        """Return the token count for the given text."""
        ...


class TiktokenCounter(TokenCounter):
    """Exact byte-level BPE counts via tiktoken.

    Source files routinely contain strings such as ``<|endoftext|>``;
    ``disallowed_special=()`` makes tiktoken encode them as plain text
    instead of raising.
    """

    def __init__(self, encoding_name: str = TOKENIZER_ENCODING) -> None:
        self.encoding_name = encoding_name
        self._encoding = tiktoken.get_encoding(encoding_name)

    def count(self, text: str) -> int:
        if not text:
            return 0
        return len(self._encoding.encode(text, disallowed_special=()))


@functools.lru_cache(maxsize=None)
def get_token_counter() -> TokenCounter:
    """The process-wide token counter (created once, never torn down)."""
    return TiktokenCounter()
