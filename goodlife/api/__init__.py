"""
API package initialization.
Registers the REST blueprints the goal engine persists through.
"""

import logging

from flask import current_app

logger = logging.getLogger(__name__)

EXTENSION_KEY = 'goodlife'


def get_store():
    """Repositories wired into the running application by ``create_app``."""
    return current_app.extensions[EXTENSION_KEY]


def register_blueprints(app):
    """Register all API blueprints with the Flask app."""
    from .domain_plans import domain_plans_api
    from .plans import plans_api

    app.register_blueprint(plans_api)
    app.register_blueprint(domain_plans_api)
    logger.debug("Registered GoodLife API blueprints")
