"""Flask application factory for the typing engine API."""

import logging
import os
from typing import Optional

from flask import Flask

from api.typing_api import typing_api
from models.engine_config import EngineConfig
from services import init_services
from services.typing_service import TypingService

logger = logging.getLogger(__name__)


def create_app(config: Optional[dict] = None, service: Optional[TypingService] = None) -> Flask:
    """Create and configure the Flask app.

    Args:
        config: Flask config overrides, e.g. ``{"TESTING": True}``.
        service: Pre-built TypingService. Built from the environment when omitted.
    """
    app = Flask(__name__)
    if config:
        app.config.update(config)

    if service is None:
        service = init_services(EngineConfig.from_env())
    app.extensions["typing_service"] = service
    app.register_blueprint(typing_api)

    if not app.config.get("TESTING"):
        service.start_background_sweep()
    return app


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    app = create_app()
    port = int(os.environ.get("PORT", "5000"))
    logger.info("Starting typing engine API on port %s", port)
    app.run(host="127.0.0.1", port=port)
