"""Run the Chronos HTTP service: ``python -m chronos``."""

import logging
import os

import uvicorn
from dotenv import load_dotenv

from chronos import __version__
from chronos.config import load_config
from chronos.utils.errors import ConfigurationError


logger = logging.getLogger("chronos")


def main() -> None:
    load_dotenv()

    # Setup basic logging for startup
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )

    # Load config to get port
    try:
        port = load_config().port
    except ConfigurationError as e:
        logger.error(f"Failed to load config: {e}")
        port = int(os.getenv("CHRONOS_PORT", "3000"))

    logger.info(f"Starting Chronos v{__version__} on port {port}")

    uvicorn.run(
        "chronos.server:app",
        host="0.0.0.0",
        port=port,
        log_level=os.getenv("LOG_LEVEL", "INFO").lower(),
    )


if __name__ == "__main__":
    main()
