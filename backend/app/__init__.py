"""Flask application factory."""

import logging
import os
from flask import Flask
from flask_cors import CORS

from app.config import config
from services.adapters.factory import create_adapter
from services.settings import load_settings

ADAPTER_EXTENSION = "cycle_data_adapter"


def load_organisation_settings(app):
    """Build organisation settings from app config and the organisation file."""
    settings = load_settings(app.config, app.config.get("ORGANISATION_CONFIG"))
    app.logger.info(
        f"Loaded organisation settings: source={settings.source}, "
        f"{len(settings.areas)} areas, {len(settings.stages)} stages"
    )
    return settings


def create_app(config_name=None, overrides=None):
    """Create and configure the Flask application.

    Args:
        config_name: Key into ``app.config.config``; defaults to $APP_ENV
        overrides: Extra config values applied last (used by tests)

    Raises:
        RuntimeError: if the configured adapter cannot be built
    """
    app = Flask(__name__)
    config_name = config_name or os.getenv("APP_ENV", "development")
    app.config.from_object(config[config_name])
    if overrides:
        app.config.update(overrides)

    if not app.debug and not app.testing:
        logging.basicConfig(level=logging.INFO)

    # Enable CORS for frontend
    origins = [o.strip() for o in app.config["CORS_ORIGINS"].split(",") if o.strip()]
    CORS(app, resources={
        r"/api/*": {
            "origins": origins,
            "methods": ["GET", "OPTIONS"],
            "allow_headers": ["Content-Type"]
        }
    })

    # One adapter per app, built up front
    settings = load_organisation_settings(app)
    result = create_adapter(settings)
    if not result.is_ok:
        app.logger.error(f"Cannot start without a cycle data adapter: {result.error}")
        raise RuntimeError(str(result.error))
    app.extensions[ADAPTER_EXTENSION] = result.value
    app.extensions["organisation_settings"] = settings

    # Register blueprints
    from app.api import cycle_data
    app.register_blueprint(cycle_data.bp)

    # Health check endpoint
    @app.route("/health")
    def health():
        return {"status": "ok", "source": settings.source}

    return app
