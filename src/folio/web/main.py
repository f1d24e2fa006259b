"""Production HTTP entrypoint."""

from __future__ import annotations

import logging
import sys

from dotenv import load_dotenv
import uvicorn

load_dotenv()

from folio.web.app import build_app
from folio.web.config import AppSettings


logging.basicConfig(
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    level=logging.INFO,
)
logger = logging.getLogger(__name__)


def main() -> None:
    """Main entrypoint for the HTTP service."""
    try:
        settings = AppSettings.from_env()
        logger.info(
            "Loaded config: db=%s, catalog=%s, delivery=%s",
            settings.db_path,
            settings.catalog_base_url,
            settings.delivery_mode.value,
        )
    except ValueError as e:
        logger.error("Configuration error: %s", e)
        sys.exit(1)

    uvicorn.run(build_app(settings), host=settings.host, port=settings.port, log_config=None)


if __name__ == "__main__":
    main()
