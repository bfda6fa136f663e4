"""
API routes.

Handles:
- /api/lots/<lot>         - Whether labels were already printed for a lot
- /api/ledger/reconcile   - Advance a counter that lags the print log
- /health                 - Health check endpoint
"""

import re

from flask import Blueprint, current_app

from core.exceptions import ValidationError
from models.print_outcome import WorkflowState
from services.reconciliation import reconcile_ledger
from logging_config import get_logger


# Module logger
logger = get_logger(__name__)

api_bp = Blueprint("api", __name__)

_LOT_RE = re.compile(r"[0-9]{5}")


@api_bp.route("/api/lots/<lot>", methods=["GET"])
def lot_lookup(lot: str):
    """Tell the operator whether this lot already has printed cans."""
    if not _LOT_RE.fullmatch(lot):
        raise ValidationError("Lot must be exactly 5 digits", field="lot")

    store = current_app.config["RECORD_STORE"]
    return {"lot": lot, "exists": store.lot_exists(lot)}


@api_bp.route("/api/ledger/reconcile", methods=["POST"])
def reconcile():
    """
    Repair the counter after a LedgerUpdateFailed.

    The workflow is reset and reloaded afterwards so it picks up the
    repaired counter.
    """
    store = current_app.config["RECORD_STORE"]
    workflow = current_app.config["PRINT_WORKFLOW"]

    # reset() raises WorkflowStateError (409) while a print is in flight
    if workflow.state != WorkflowState.IDLE:
        workflow.reset()

    result = reconcile_ledger(store, store)
    if result.changed:
        logger.warning(f"Ledger reconciled: {result.previous_next_id} -> {result.next_id}")

    workflow.load()
    return {"reconcile": result.to_dict(), "state": workflow.state.value}


@api_bp.route("/health", methods=["GET"])
def health():
    """Health check endpoint with service status."""
    health_status = {
        "status": "ok",
        "environment": current_app.config.get("ENVIRONMENT", "unknown"),
        "checks": {}
    }

    workflow = current_app.config.get("PRINT_WORKFLOW")
    if workflow is None:
        health_status["checks"]["workflow"] = "not_available"
        health_status["status"] = "degraded"
    elif workflow.load_error is not None:
        health_status["checks"]["workflow"] = "load_failed"
        health_status["status"] = "degraded"
    else:
        health_status["checks"]["workflow"] = workflow.state.value

    outcome = workflow.last_outcome if workflow else None
    if outcome is not None and outcome.needs_reconciliation:
        health_status["checks"]["ledger"] = "needs_reconciliation"
        health_status["status"] = "degraded"
    else:
        health_status["checks"]["ledger"] = "ok"

    # Scale is optional - report it, but it never degrades health
    scale_service = current_app.config.get("SCALE_SERVICE")
    if scale_service is not None and scale_service.is_running:
        health_status["checks"]["scale"] = "connected"
    else:
        health_status["checks"]["scale"] = "disconnected"

    status_code = 200 if health_status["status"] == "ok" else 503
    return health_status, status_code
