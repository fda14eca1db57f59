"""Application factory for the federation microsite builder."""

from __future__ import annotations

import os

from flask import Flask, jsonify

from fedsite.auth import init_auth
from fedsite.blueprints.builder import builder_bp
from fedsite.blueprints.common.tenant import init_tenant
from fedsite.blueprints.site import init_site
from fedsite.config import Config
from fedsite.extensions import db, limiter, login_manager, migrate
from fedsite.security.config import (
    configure_cors,
    configure_security_headers,
    validate_input_length,
)


def create_app(config_class=Config):
    """Create Flask application."""
    app = Flask(__name__, template_folder="templates", static_folder="static")
    app.config.from_object(config_class)

    # Initialize Flask extensions
    db.init_app(app)
    migrate.init_app(app, db)
    login_manager.init_app(app)
    init_auth(app)

    # Tenant resolution runs before the limiter so limit keys see the microsite
    init_tenant(app)
    limiter.init_app(app)
    init_site(app)

    # Configure security
    configure_security_headers(app)
    configure_cors(app)
    validate_input_length(app)

    # Ensure models are registered for migrations
    import fedsite.models  # noqa: F401

    if os.getenv("FLASK_ENV") == "development":
        app.config["TEMPLATES_AUTO_RELOAD"] = True
        app.jinja_env.auto_reload = True

    app.register_blueprint(builder_bp, url_prefix='/microsites')

    @app.route('/health')
    def health():
        return jsonify({'status': 'ok'})

    @app.errorhandler(404)
    def not_found(error):
        return jsonify({'error': 'Not found', 'kind': 'not_found'}), 404

    @app.errorhandler(429)
    def rate_limited(error):
        return jsonify({'error': 'Too many requests', 'kind': 'rate_limited'}), 429

    @app.errorhandler(500)
    def internal_error(error):
        return jsonify({'error': 'Internal server error', 'kind': 'error'}), 500

    # Register CLI commands
    from fedsite.commands import register_commands
    register_commands(app)

    return app
