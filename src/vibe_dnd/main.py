"""
vibe-dnd web service entry point.
"""

import logging
import sys

import uvicorn

from .config import AppConfig, ConfigError
from .server import create_app

logger = logging.getLogger("vibe-dnd")


def main() -> None:
    """Load configuration from the environment and serve the app with uvicorn."""
    try:
        config = AppConfig.from_env()
    except ConfigError as e:
        logging.basicConfig(level=logging.ERROR)
        logger.error(f"❌ {e}. Please see README.md for instructions.")
        sys.exit(1)

    logging.basicConfig(
        level=config.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    logger.info(f"📚 Reference catalog: {config.open5e_base_url} (cache TTL {config.reference_cache_ttl}s)")
    logger.info(f"🔐 Protected prefixes: {', '.join(config.protected_prefixes)}")

    app = create_app(config)
    logger.info(f"✅ Serving vibe-dnd on http://{config.host}:{config.port}")
    uvicorn.run(app, host=config.host, port=config.port, log_level=config.log_level.lower())


if __name__ == "__main__":
    main()
