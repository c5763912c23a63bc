"""Structural/textual transformer contracts, defaults, and loading.

WHY: codepack orchestrates content reduction but does not own it. The
syntax-aware transformer and the pattern-based fallback live in the host
application (or a plugin package). This module pins down their call
signatures, supplies no-op defaults so the pipeline always runs, and
resolves "package.module:callable" paths from config or the CLI.

HOW: Two type aliases describe the contracts. unsupported_structural()
reports every input as unsupported; identity_textual() returns content
unchanged. load_transform() imports a dotted path with importlib.

RULES:
- Structural: (content, extension, mode) -> str | None, may raise, may be async
- None is the "unsupported" sentinel
- Textual: (content, extension, mode) -> str, must not raise
- An empty path means "use the default"
"""

from __future__ import annotations

import importlib
from typing import Awaitable, Callable, Optional, Union

from codepack.core.errors import CollaboratorImportError

StructuralTransform = Callable[
    [str, str, str],
    Union[Optional[str], Awaitable[Optional[str]]],
]
TextualTransform = Callable[[str, str, str], str]


def unsupported_structural(content: str, extension: str, mode: str) -> Optional[str]:
    """Default structural transformer: nothing is supported."""
    return None


def identity_textual(content: str, extension: str, mode: str) -> str:
    """Default textual processor: no reduction in any mode."""
    return content


def load_transform(path: str) -> Callable:
    """Resolve ``"package.module:attr"`` to a callable.

    Raises:
        CollaboratorImportError: Malformed path, import failure, missing
            attribute, or a non-callable target.
    """
    module_name, sep, attr = path.partition(":")
    if not sep or not module_name or not attr:
        raise CollaboratorImportError(
            "Expected 'package.module:callable', got {!r}".format(path)
        )
    try:
        module = importlib.import_module(module_name)
    except ImportError as exc:
        raise CollaboratorImportError(
            "Cannot import module {!r}: {}".format(module_name, exc)
        ) from exc

    target = module
    for part in attr.split("."):
        try:
            target = getattr(target, part)
        except AttributeError as exc:
            raise CollaboratorImportError(
                "Module {!r} has no attribute {!r}".format(module_name, attr)
            ) from exc

    if not callable(target):
        raise CollaboratorImportError("{!r} is not callable".format(path))
    return target


def resolve_structural(path: str = "") -> StructuralTransform:
    """Structural transformer for ``path``, or the unsupported default."""
    return load_transform(path) if path else unsupported_structural


def resolve_textual(path: str = "") -> TextualTransform:
    """Textual processor for ``path``, or the identity default."""
    return load_transform(path) if path else identity_textual
