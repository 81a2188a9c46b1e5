"""
GradPortal Application Factory
Graduate-school portal login bridged to the legacy student portal
"""

import os
from typing import Optional
from flask import Flask
from flask_cors import CORS
from gradportal.models import init_db
from gradportal.routes import auth_bp
from gradportal.services import TTLCache, LegacyPortalClient
from gradportal.utils import setup_logging, log_info


def create_app(config_name: Optional[str] = None) -> Flask:
    """
    Application factory

    Args:
        config_name: Configuration name (development, production, testing)

    Returns:
        Flask application instance
    """
    app = Flask(__name__)

    # Load configuration
    if config_name is None:
        config_name = os.environ.get('FLASK_ENV', 'development')

    # Import and set configuration
    from config import config
    config_class = config.get(config_name, config['default'])
    app.config.from_object(config_class)
    config_class.init_app(app)

    # Initialize extensions
    CORS(app, supports_credentials=True)
    app.extensions['gradportal_cache'] = TTLCache()
    app.extensions['legacy_portal'] = LegacyPortalClient.from_config(app.config)

    # Setup logging
    with app.app_context():
        setup_logging()
        log_info("Application initialized")

    # Register blueprints
    app.register_blueprint(auth_bp, url_prefix='/api/auth')

    # Create database tables
    init_db(app)

    return app
