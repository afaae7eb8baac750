from __future__ import annotations
import os

DOCS_URL = os.environ.get(
    "JOBCHAIN_DOCS_URL",
    "https://github.com/jobchain/jobchain/wiki/Common-Exceptions-and-possible-reasons",
)
DEFAULT_CONF = os.environ.get("JOBCHAIN_CONF") or None
MAX_WORKERS = int(os.environ["JOBCHAIN_MAX_WORKERS"]) if os.environ.get("JOBCHAIN_MAX_WORKERS") else None
