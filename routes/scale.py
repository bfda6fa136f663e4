"""
Scale routes.

The operator connects the scale once per session; the form then polls the
live weight.
"""

from flask import Blueprint, current_app

from logging_config import get_logger


# Module logger
logger = get_logger(__name__)

scale_bp = Blueprint("scale", __name__)


@scale_bp.route("/api/scale/connect", methods=["POST"])
def connect():
    """Open the scale port and start reading. DeviceUnavailable -> 503."""
    scale_service = current_app.config["SCALE_SERVICE"]
    scale_service.start()
    return scale_service.to_dict()


@scale_bp.route("/api/scale/disconnect", methods=["POST"])
def disconnect():
    scale_service = current_app.config["SCALE_SERVICE"]
    scale_service.stop()
    return scale_service.to_dict()


@scale_bp.route("/api/scale/weight", methods=["GET"])
def weight():
    """Latest weight in grams (last reading wins)."""
    return current_app.config["SCALE_SERVICE"].to_dict()
