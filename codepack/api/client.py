"""Async HTTP client for the codepack API.

WHY: Remote callers want progress events as they happen and a typed
result at the end, without re-implementing the NDJSON protocol.

HOW: Uses httpx.AsyncClient for non-blocking HTTP. CodePackClient is an
async context manager: enter it to open the connection pool, exit to
close it. stream_process() posts a request to /process and yields one
response object per NDJSON line; process() drains that stream and
returns the ProcessingResult.

RULES:
- Always use the async context manager (async with CodePackClient(...) as client:)
- Non-2xx responses raise CodePackAPIError
- The stream must end with exactly one terminal response (ProtocolError otherwise)
- A terminal error response raises ProcessingError from process()
- Blank NDJSON lines are skipped
"""

from __future__ import annotations

import json
from typing import Any, AsyncIterator, Dict, List, Optional

import httpx

from codepack.config import API_URL
from codepack.core.errors import CodePackError
from codepack.core.ir import ProcessingRequest, ProcessingResult, WorkerResponse, response_from_message
from codepack.core.orchestrator import collect_responses

_DEFAULT_TIMEOUT_S = 300.0


class CodePackAPIError(CodePackError):
    """Raised when the codepack API returns an error response.

    Attributes:
        status_code: HTTP status code.
        message: Response body text or ``detail`` field.
    """

    def __init__(self, status_code: int, message: str) -> None:
        self.status_code = status_code
        self.message = message
        super().__init__("codepack API error {}: {}".format(status_code, message))


class CodePackClient:
    """Async client for a running codepack server.

    Args:
        base_url: Server root, e.g. ``"http://127.0.0.1:8000"``.
        timeout: Per-request timeout in seconds.
        transport: Optional httpx transport (tests use httpx.MockTransport).
    """

    def __init__(
        self,
        base_url: str = API_URL,
        timeout: float = _DEFAULT_TIMEOUT_S,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    async def __aenter__(self) -> "CodePackClient":
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=self._timeout,
            transport=self._transport,
        )
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            raise RuntimeError("CodePackClient must be used as an async context manager")
        return self._client

    # ------------------------------------------------------------------
    # Processing
    # ------------------------------------------------------------------

    async def stream_process(self, request: ProcessingRequest) -> AsyncIterator[WorkerResponse]:
        """POST ``request`` to /process and yield responses as they arrive."""
        body = _request_body(request)
        async with self.client.stream("POST", "/process", json=body) as response:
            if response.status_code >= 400:
                await response.aread()
                raise CodePackAPIError(response.status_code, _error_detail(response))
            async for line in response.aiter_lines():
                if not line.strip():
                    continue
                yield response_from_message(json.loads(line))

    async def process(self, request: ProcessingRequest) -> ProcessingResult:
        """Run ``request`` remotely and return its result.

        Raises:
            CodePackAPIError: The server rejected the request.
            ProcessingError: The request ended with an error response.
            ProtocolError: The stream broke the terminal contract.
        """
        responses: List[WorkerResponse] = []
        async for item in self.stream_process(request):
            responses.append(item)
        return collect_responses(responses)

    # ------------------------------------------------------------------
    # Misc
    # ------------------------------------------------------------------

    async def health(self) -> Dict[str, Any]:
        response = await self.client.get("/health")
        if response.status_code >= 400:
            raise CodePackAPIError(response.status_code, _error_detail(response))
        return response.json()


def _request_body(request: ProcessingRequest) -> Dict[str, Any]:
    """HTTP body for ``request`` (the worker message minus its type tag)."""
    body = request.to_message()
    body.pop("type")
    return body


def _error_detail(response: httpx.Response) -> str:
    try:
        data = response.json()
    except ValueError:
        return response.text
    if isinstance(data, dict) and "detail" in data:
        return str(data["detail"])
    return response.text
