"""Exception hierarchy shared across codepack.

WHY: Callers need typed exceptions to tell a failed request apart from a
broken response stream or a misconfigured collaborator, without catching
unrelated errors.

RULES:
- Every codepack exception derives from CodePackError
- Per-file structural transform failures are NOT exceptions at this level;
  the pipeline absorbs them
"""

from __future__ import annotations


class CodePackError(Exception):
    """Base class for all codepack errors."""


class ProcessingError(CodePackError):
    """A request ended with a terminal error response.

    Attributes:
        request_id: The id of the failed request.
        message: The error text carried by the terminal response.
    """

    def __init__(self, request_id: str, message: str) -> None:
        self.request_id = request_id
        self.message = message
        super().__init__("Request {} failed: {}".format(request_id, message))


class ProtocolError(CodePackError):
    """A response stream broke the progress*-then-one-terminal contract."""


class CollaboratorImportError(CodePackError):
    """A "package.module:callable" path could not be resolved."""
