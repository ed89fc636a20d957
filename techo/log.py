"""
Logging setup shared by the server and the CLI.
"""

import logging
import sys

# Modules only ever do: logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s [%(name)s:%(levelname)s] %(message)s"


def configure_logging(level: str = "info", stream=sys.stdout) -> None:
    numeric = getattr(logging, level.upper(), logging.INFO)

    root = logging.getLogger()
    # Only add a handler once to avoid duplicate lines
    if not root.handlers:
        handler = logging.StreamHandler(stream)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        root.addHandler(handler)
    root.setLevel(numeric)

    for name in ("techo", "uvicorn.error", "uvicorn.access"):
        logging.getLogger(name).setLevel(numeric)
