"""Configuration constants, protocol defaults, and .env loading.

WHY: Centralizes all configurable values so they are easy to find,
update, and override. The size ceiling, tokenizer encoding, progress
cadence, and collaborator paths are plain data, not buried in logic,
so operators can tune a deployment without touching code.

HOW: python-dotenv loads the .env file on import. Constants are defined
at module level; values that deployments commonly change are read from
environment variables with sensible defaults.

RULES:
- MAX_PROCESS_SIZE is measured in characters (2 MiB by default)
- Progress cadence constants mirror the wire protocol and are not env-tunable
- Collaborator paths use the "package.module:callable" form
- All env-tunable defaults are prefixed with CODEPACK_
"""

from __future__ import annotations

import logging
import os
from typing import Optional

from dotenv import load_dotenv

# Load .env from the project root (where the script is run from)
load_dotenv()

# ---------------------------------------------------------------------------
# Transformation limits
# ---------------------------------------------------------------------------

MAX_PROCESS_SIZE = int(os.getenv("CODEPACK_MAX_PROCESS_SIZE", str(2 * 1024 * 1024)))
"""Content longer than this (in characters) bypasses every transformer."""

# ---------------------------------------------------------------------------
# Tokenizer
# ---------------------------------------------------------------------------

TOKENIZER_ENCODING = os.getenv("CODEPACK_TOKENIZER_ENCODING", "cl100k_base")
"""tiktoken encoding shared by all token accounting (GPT-4 family)."""

# ---------------------------------------------------------------------------
# Progress protocol
# ---------------------------------------------------------------------------

PROGRESS_SMALL_BATCH = 100
"""Batches with fewer text files than this report after every file."""

PROGRESS_STRIDE = 5
"""Larger batches report every PROGRESS_STRIDE files (and on the last)."""

STARTING_FILE_NAME = "Starting..."
"""current_file_name of the initial progress event."""

WORKER_ID = "code-processing"
"""Identifier carried by the worker's readiness signal."""

# ---------------------------------------------------------------------------
# Collaborators
# ---------------------------------------------------------------------------

STRUCTURAL_TRANSFORM_PATH = os.getenv("CODEPACK_STRUCTURAL_TRANSFORM", "").strip()
TEXTUAL_TRANSFORM_PATH = os.getenv("CODEPACK_TEXTUAL_TRANSFORM", "").strip()

# ---------------------------------------------------------------------------
# Request defaults
# ---------------------------------------------------------------------------

DEFAULT_OUTPUT_STYLE = os.getenv("CODEPACK_DEFAULT_STYLE", "standard")
DEFAULT_MODE = os.getenv("CODEPACK_DEFAULT_MODE", "raw")

# ---------------------------------------------------------------------------
# Service / client
# ---------------------------------------------------------------------------

API_URL = os.getenv("CODEPACK_API_URL", "http://127.0.0.1:8000")
LOG_LEVEL = os.getenv("CODEPACK_LOG_LEVEL", "INFO").upper()

LOG_FORMAT = "%(asctime)s %(name)s %(levelname)s %(message)s"


def configure_logging(level: Optional[str] = None) -> None:
    """Configure root logging for CLI and server entry points.

    WHY: Library modules only create named loggers; the process entry
    point decides where records go and at which level.

    HOW: logging.basicConfig with the shared LOG_FORMAT. Unknown level
    names fall back to INFO.

    RULES:
    - Called once from cli.main() and server.app.run_api()
    - Never called on import
    """
    name = (level or LOG_LEVEL).upper()
    logging.basicConfig(
        level=getattr(logging, name, logging.INFO),
        format=LOG_FORMAT,
    )
