"""Entrypoint for the Lookout SSF relay."""

from __future__ import annotations

import logging
import sys
from pathlib import Path

if __package__ in (None, ""):
    sys.path.insert(0, str(Path(__file__).resolve().parents[1]))  # pragma: no cover

from lookout_ssf import __version__
from lookout_ssf.config import load_settings
from lookout_ssf.logging_utils import configure_logging

logger = logging.getLogger(__name__)


def run_entrypoint() -> None:
    """Load configuration, then serve the relay with uvicorn."""
    settings = load_settings()
    configure_logging(settings.logging)
    logger.info("Starting Lookout SSF relay v%s", __version__)

    from lookout_ssf.transport.http_server import create_http_app

    try:
        import uvicorn
    except ImportError as exc:
        raise RuntimeError("uvicorn is required to serve the relay") from exc

    app = create_http_app()
    uvicorn.run(
        app,
        host=settings.server.host,
        port=settings.server.port,
        ws="none",
        log_config=None,
    )


if __name__ == "__main__":  # pragma: no cover
    run_entrypoint()
