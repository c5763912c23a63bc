"""Execution contexts and the HTTP API for codepack.

WHY: Hosts talk to the processing core through messages, either
in-process (ProcessingWorker) or over HTTP (FastAPI app).

HOW: models.py validates wire messages, worker.py runs requests in a
dedicated thread with its own event loop, jobs.py tracks background
jobs, app.py exposes everything over HTTP.

RULES:
- The wire protocol is defined once, in codepack.core.ir + models.py
- Workers never share an event loop with their caller
"""
