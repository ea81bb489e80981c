"""Flask application factory for the CLSI standards API."""

import logging
import os

from flask import Flask, jsonify

from ..exceptions import CLSIStandardsError, LabResultNotFoundError
from ..rules.conditions import ConditionError
from ..services import create_services
from .config import get_config

logger = logging.getLogger(__name__)


def register_error_handlers(app: Flask) -> None:
    """Translate domain exceptions into JSON error responses."""

    @app.errorhandler(LabResultNotFoundError)
    def handle_not_found(e):
        return jsonify({"success": False, "error": str(e)}), 404

    @app.errorhandler(CLSIStandardsError)
    def handle_domain_error(e):
        return jsonify({"success": False, "error": str(e)}), 400

    @app.errorhandler(ConditionError)
    def handle_condition_error(e):
        return jsonify({"success": False, "error": f"Invalid condition: {e}"}), 400

    @app.errorhandler(ValueError)
    def handle_value_error(e):
        logger.debug(f"Rejected request: {e}")
        return jsonify({"success": False, "error": str(e)}), 400


def create_app(config=None):
    """Create and configure the Flask application.

    Args:
        config: Optional configuration object or dict

    Returns:
        Configured Flask application
    """
    app = Flask(__name__)

    # Load configuration
    if config is None:
        config = get_config()

    if isinstance(config, dict):
        app.config.from_object(get_config())
        app.config.update(config)
    else:
        app.config.from_object(config)

    # Initialize services over the standards database
    app.services = create_services(app.config.get("CLSI_DB_PATH"))

    # Register blueprints
    from .routes import breakpoints_bp, rules_bp, lab_results_bp

    app.register_blueprint(breakpoints_bp, url_prefix="/api")
    app.register_blueprint(rules_bp, url_prefix="/api")
    app.register_blueprint(lab_results_bp, url_prefix="/api")

    register_error_handlers(app)

    @app.route("/health")
    def health():
        return jsonify({"status": "ok"})

    return app


def run_dev_server():
    """Run development server."""
    app = create_app()
    app.run(
        host="0.0.0.0",
        port=int(os.environ.get("PORT", 5000)),
        debug=True,
    )


if __name__ == "__main__":
    run_dev_server()
