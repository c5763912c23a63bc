"""HTTP client for a remote codepack API.

WHY: Python callers on another host (CI jobs, notebooks, bots) should be
able to bundle files through a running codepack server with the same
request/response types as in-process use.

HOW: CodePackClient wraps httpx.AsyncClient and parses the NDJSON
stream back into codepack.core.ir response objects.
"""

from codepack.api.client import CodePackAPIError, CodePackClient

__all__ = ["CodePackAPIError", "CodePackClient"]
