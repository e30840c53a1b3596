"""Process entry point: ``python -m collab_dashboard``."""

import sys

import uvicorn

from collab_dashboard.config import ConfigError, load_settings
from collab_dashboard.constants import SERVER_HOST, SERVER_PORT
from collab_dashboard.utils.logging import get_logger, setup_logging

logger = get_logger("collab_dashboard")


def main() -> None:
    """Validate configuration, then serve on 0.0.0.0:3000."""
    try:
        settings = load_settings()
    except ConfigError as e:
        setup_logging(level="ERROR")
        logger.critical(str(e))
        sys.exit(1)

    setup_logging()
    uvicorn.run(
        "collab_dashboard.main:app",
        host=SERVER_HOST,
        port=SERVER_PORT,
        proxy_headers=True,
        log_level="info" if settings.is_production else "debug",
    )


if __name__ == "__main__":
    main()
