"""Entry point: run the Vertex Claude OpenAI gateway with uvicorn."""

import logging
import sys

import uvicorn

from vertex_gateway import assert_settings, create_app, load_config
from vertex_gateway.core.exceptions import ConfigurationError

logger = logging.getLogger("vertex-gateway")


def main() -> int:
    settings = load_config()
    try:
        # Without an explicit service account key, Application Default Credentials are used.
        assert_settings(settings, require_credentials=False)
    except ConfigurationError as exc:
        logger.error(exc.message)
        return 1

    app = create_app(settings)
    logger.info(
        f"Vertex Claude OpenAI gateway listening on port {settings.port}, "
        f"default model = {settings.default_model}"
    )
    uvicorn.run(app, host=settings.host, port=settings.port, log_level="info")
    return 0


if __name__ == "__main__":
    sys.exit(main())
