"""
Flask route blueprints for CanLabeler.

This module contains all route handlers organized by functionality:
- labels: Workflow session, printing, next can, reprint
- scale: Scale connection and live weight
- api: Health check, lot lookup, ledger reconciliation

Each blueprint is registered with the Flask app in create_app().
"""

from .labels import labels_bp
from .scale import scale_bp
from .api import api_bp

__all__ = [
    "labels_bp",
    "scale_bp",
    "api_bp",
]


def register_blueprints(app):
    """
    Register all blueprints with the Flask app.

    Args:
        app: Flask application instance
    """
    app.register_blueprint(labels_bp)
    app.register_blueprint(scale_bp)
    app.register_blueprint(api_bp)
