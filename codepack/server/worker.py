"""Dedicated execution context for processing requests.

WHY: Bundling thousands of files must not block the caller: a CLI
printing progress, an HTTP handler streaming a response, a GUI. Each
worker is an isolated context: its own thread, its own event loop, and
a message-passing interface, so the caller only ever sees messages.

HOW: start() launches a daemon thread that creates an event loop, posts
a ReadyResponse, then pulls request messages from a thread-safe inbox
queue. Each "process" message is validated and run through
CodeProcessor.stream(); every response is posted to the outbox queue.
run() is the caller-side convenience: post one request and iterate its
responses until the terminal one.

RULES:
- The inbox and outbox queues are the ONLY channel between threads
- ReadyResponse is posted exactly once, before any request is handled
- Messages whose type is not "process" are dropped without a response
- A malformed "process" message yields one ErrorResponse and nothing else
- Requests are handled one at a time in arrival (FIFO) order; a request
  posted while another runs waits in the inbox
- No cancellation: stop() lets the current request finish, then exits
"""

from __future__ import annotations

import asyncio
import logging
import queue
import threading
from typing import Any, Dict, Iterator, Optional

from pydantic import ValidationError

from codepack.config import WORKER_ID
from codepack.core.errors import ProtocolError
from codepack.core.ir import (
    ErrorResponse,
    ProcessingRequest,
    ProcessingResult,
    ReadyResponse,
    WorkerResponse,
)
from codepack.core.orchestrator import CodeProcessor, collect_responses
from codepack.server.models import ProcessMessage

logger = logging.getLogger(__name__)

_STOP = object()


class ProcessingWorker:
    """One single-threaded cooperative execution context.

    Args:
        processor: Orchestrator run inside the worker thread.
        worker_id: Id carried by the readiness signal.

    Usage::

        with ProcessingWorker() as worker:
            for response in worker.run(request):
                ...
    """

    def __init__(
        self,
        processor: Optional[CodeProcessor] = None,
        worker_id: str = WORKER_ID,
    ) -> None:
        self.processor = processor or CodeProcessor()
        self.worker_id = worker_id
        self._inbox: queue.Queue = queue.Queue()
        self._outbox: queue.Queue = queue.Queue()
        self._thread: Optional[threading.Thread] = None
        self._ready = threading.Event()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self) -> None:
        """Start the worker thread (no-op if already running)."""
        if self._thread is not None and self._thread.is_alive():
            return
        self._thread = threading.Thread(
            target=self._run_loop,
            name="codepack-{}".format(self.worker_id),
            daemon=True,
        )
        self._thread.start()

    def stop(self, timeout: Optional[float] = None) -> None:
        """Ask the worker to exit after the current request and wait for it."""
        if self._thread is None:
            return
        self._inbox.put(_STOP)
        self._thread.join(timeout)
        self._thread = None

    @property
    def is_alive(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def wait_ready(self, timeout: Optional[float] = None) -> bool:
        return self._ready.wait(timeout)

    def __enter__(self) -> "ProcessingWorker":
        self.start()
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.stop()

    # ------------------------------------------------------------------
    # Messaging
    # ------------------------------------------------------------------

    def post_message(self, message: Dict[str, Any]) -> None:
        """Queue a raw message for the worker."""
        self._inbox.put(message)

    def get_response(self, timeout: Optional[float] = None) -> WorkerResponse:
        """Next posted response; raises queue.Empty on timeout."""
        return self._outbox.get(timeout=timeout)

    def run(
        self,
        request: ProcessingRequest,
        timeout: Optional[float] = None,
    ) -> Iterator[WorkerResponse]:
        """Submit ``request`` and yield its responses through the terminal one.

        Assumes the caller is the only producer on this worker; the
        readiness signal is skipped, any other foreign response raises.

        Raises:
            ProtocolError: A response for a different request arrives.
            queue.Empty: No response within ``timeout`` seconds.
        """
        self.start()
        self.post_message(request.to_message())
        while True:
            response = self.get_response(timeout=timeout)
            if isinstance(response, ReadyResponse):
                continue
            if response.id != request.id:
                raise ProtocolError(
                    "Response for request {} while waiting for {}".format(response.id, request.id)
                )
            yield response
            if response.is_terminal:
                return

    def process(self, request: ProcessingRequest, timeout: Optional[float] = None) -> ProcessingResult:
        """Run ``request`` to completion and return its result."""
        return collect_responses(self.run(request, timeout=timeout))

    # ------------------------------------------------------------------
    # Worker thread
    # ------------------------------------------------------------------

    def _run_loop(self) -> None:
        loop = asyncio.new_event_loop()
        asyncio.set_event_loop(loop)
        try:
            self._outbox.put(ReadyResponse(id=self.worker_id))
            self._ready.set()
            logger.debug("Worker %s ready", self.worker_id)
            while True:
                message = self._inbox.get()
                if message is _STOP:
                    break
                loop.run_until_complete(self._handle(message))
        finally:
            loop.close()
            logger.debug("Worker %s stopped", self.worker_id)

    async def _handle(self, message: Any) -> None:
        if not isinstance(message, dict) or message.get("type") != "process":
            logger.debug("Ignoring non-process message on worker %s", self.worker_id)
            return

        try:
            request = ProcessMessage.model_validate(message).to_request()
        except ValidationError as exc:
            request_id = message.get("id")
            logger.warning("Rejecting malformed process message %r: %s", request_id, exc)
            self._outbox.put(ErrorResponse(
                id=str(request_id) if request_id is not None else "",
                error="Malformed process message: {}".format(exc),
            ))
            return

        async for response in self.processor.stream(request):
            self._outbox.put(response)
