"""Main entry point for running the matching API server."""

import os

import uvicorn

from buddymatch.logging import get_logger
from buddymatch.services.api import build_app

logger = get_logger(__name__)


def main() -> None:
    """Run the matching API server."""
    app = build_app()
    host = os.getenv("BUDDYMATCH_HOST", "0.0.0.0")
    port = int(os.getenv("BUDDYMATCH_PORT", "8000"))
    logger.info("matching_api_starting", host=host, port=port)
    uvicorn.run(app, host=host, port=port, log_level="info")


if __name__ == "__main__":
    main()
