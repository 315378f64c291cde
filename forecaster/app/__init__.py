"""Application factory and app-wide configuration."""

import threading
from typing import Optional

from flask import Flask
from flask_cors import CORS
from loguru import logger

from forecaster.app.api.routes import api_bp
from forecaster.config import AppConfig, load_config
from forecaster.core.store import InMemoryStore, KeyValueStore, SqliteStore
from forecaster.log import configure_logging


def create_app(
    config: Optional[AppConfig] = None,
    store: Optional[KeyValueStore] = None,
) -> Flask:
    """Build the Flask app instance.

    ``store`` overrides the store ``config.cache_path`` would select.
    """
    config = config or load_config()
    configure_logging(config.log_level)

    if store is None:
        if config.cache_path:
            logger.info(f"Caching inputs in {config.cache_path}")
            store = SqliteStore(config.cache_path)
        else:
            store = InMemoryStore()

    app = Flask(__name__)
    app.extensions["forecaster"] = {
        "config": config,
        "store": store,
        "session": None,
        "session_lock": threading.Lock(),
    }

    CORS(
        app,
        resources={r"/api/*": {"origins": config.cors_origins}},
        supports_credentials=True,
    )

    app.register_blueprint(api_bp, url_prefix="/api")
    return app
