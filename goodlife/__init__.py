"""
GoodLife goal planning engine.

``create_app`` builds the Flask application serving the plan REST API over an
in-memory store; ``goodlife.services.GoalBoardService`` is the client-side
engine that edits plans optimistically against that API.
"""

import logging

from flask import Flask

from config import Config

logger = logging.getLogger(__name__)


def create_app(config_overrides=None):
    from .api import EXTENSION_KEY, register_blueprints
    from .infrastructure import InMemoryStore, seed_demo_data
    from .services.async_helper import run_async

    app = Flask(__name__, static_folder=None, static_url_path=None)
    app.config.from_object(Config)
    if config_overrides:
        app.config.update(config_overrides)

    # Configure Python logging level from LOG_LEVEL (default ERROR)
    log_level_name = str(app.config.get('LOG_LEVEL') or 'ERROR').upper()
    log_level = getattr(logging, log_level_name, logging.ERROR)
    logging.getLogger().setLevel(log_level)
    app.logger.setLevel(log_level)

    # Suppress asyncio debug logging unless explicitly needed
    logging.getLogger('asyncio').setLevel(logging.INFO)

    store = InMemoryStore()
    app.extensions[EXTENSION_KEY] = store

    if app.config.get('SEED_DEMO_DATA'):
        plan_id = run_async(seed_demo_data(store.plans, store.domain_plans))
        app.logger.info(f"Demo plan {plan_id} available")

    register_blueprints(app)
    return app
