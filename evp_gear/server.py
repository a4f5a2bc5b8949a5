"""Run the EVP-Gear API with uvicorn."""

import logging
import sys

from .config import config


def configure_logging(level: str | None = None) -> None:
    """Configure root logging for the server process."""
    logging.basicConfig(
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        level=getattr(logging, (level or config.log_level).upper(), logging.INFO),
        stream=sys.stdout
    )
    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)


def main(host: str | None = None, port: int | None = None) -> None:
    import uvicorn

    configure_logging()
    logger = logging.getLogger(__name__)
    host = host or config.host
    port = port or config.port
    logger.info(f"Starting EVP-Gear API on {host}:{port} (data: {config.data_dir})")
    if not config.ai_enabled:
        logger.warning("GEMINI_API_KEY not set: suggestions, visuals and analysis are disabled")
    uvicorn.run("evp_gear.api:app", host=host, port=port)


if __name__ == "__main__":
    main()
