"""
Label routes.

Drives the print workflow for the labeler form:
- /api/session          current state, catalogs, draft and last outcome
- /api/session/load     load catalogs (or retry a failed load)
- /api/session/reset    full restart: drop everything and reload
- /api/labels           print one label
- /api/labels/next      after a print: same article, or start over
- /api/labels/reprint   send the last label again (no new can id)
"""

import bleach
from flask import Blueprint, current_app, request

from core.exceptions import ValidationError
from models.label_order import LabelOrder
from models.print_outcome import WorkflowState
from logging_config import get_logger


# Module logger
logger = get_logger(__name__)

labels_bp = Blueprint("labels", __name__)

# Constants
MAX_FIELD_LENGTH = 64
ORDER_FIELDS = ("product_id", "brand_id", "lot", "manufacture_date", "expiry_date", "weight_grams")

_OUTCOME_STATUS = {
    WorkflowState.COMPLETED: 200,
    WorkflowState.ABORTED: 400,
    WorkflowState.FAULTED: 502,
}


def _sanitize_text(text, max_length: int = MAX_FIELD_LENGTH) -> str:
    """Sanitize user input text."""
    if text is None:
        return ""
    text = str(text).strip()
    text = bleach.clean(text, tags=[], strip=True)
    if max_length and len(text) > max_length:
        text = text[:max_length]
    return text


def _workflow():
    return current_app.config["PRINT_WORKFLOW"]


def _request_data() -> dict:
    """Form fields or JSON body, whichever the client sent."""
    if request.is_json:
        return request.get_json(silent=True) or {}
    return request.form.to_dict()


def _session_payload(workflow) -> dict:
    counter = workflow.counter
    outcome = workflow.last_outcome
    load_error = workflow.load_error
    return {
        "state": workflow.state.value,
        "counter": counter.to_dict() if counter else None,
        "products": [p.to_dict() for p in workflow.products],
        "brands": [b.to_dict() for b in workflow.brands],
        "draft": workflow.draft.to_dict(),
        "last_outcome": outcome.to_dict() if outcome else None,
        "load_error": load_error.to_dict() if load_error else None,
    }


def _reload(workflow) -> None:
    """Return to IDLE (unless a failed load is being retried) and load again."""
    if workflow.state != WorkflowState.IDLE and workflow.load_error is None:
        workflow.reset()
    workflow.load()


@labels_bp.route("/api/session", methods=["GET"])
def session_state():
    """Current workflow state for the labeler form."""
    return _session_payload(_workflow())


@labels_bp.route("/api/session/load", methods=["POST"])
def session_load():
    """
    Load catalogs and the counter.

    From a failed load this retries; from any settled state it restarts.
    """
    workflow = _workflow()
    _reload(workflow)
    return _session_payload(workflow)


@labels_bp.route("/api/session/reset", methods=["POST"])
def session_reset():
    """Full restart: everything is fetched again."""
    workflow = _workflow()
    workflow.reset()
    workflow.load()
    return _session_payload(workflow)


@labels_bp.route("/api/labels", methods=["POST"])
def print_label():
    """
    Print one label.

    Body (JSON or form): product_id, brand_id, lot, manufacture_date,
    expiry_date, weight_grams. Missing fields keep the current draft
    values; a missing weight is taken from the scale if it is connected.
    """
    workflow = _workflow()
    data = _request_data()

    fields = {}
    for name in ORDER_FIELDS:
        if name not in data:
            continue
        value = data[name]
        fields[name] = value if isinstance(value, int) and name == "weight_grams" else _sanitize_text(value)

    if fields.get("weight_grams", "") == "":
        fields.pop("weight_grams", None)
        scale_service = current_app.config.get("SCALE_SERVICE")
        if scale_service is not None and scale_service.is_running:
            fields["weight_grams"] = scale_service.current_weight_grams

    try:
        order = LabelOrder.from_dict(fields, defaults=workflow.draft)
    except ValueError as e:
        raise ValidationError(f"Invalid date: {e}", field="date") from e

    outcome = workflow.print_label(order)
    logger.info(f"Print finished: {outcome.state.value} ({outcome.message})")

    return outcome.to_dict(), _OUTCOME_STATUS.get(outcome.state, 200)


@labels_bp.route("/api/labels/next", methods=["POST"])
def next_label():
    """
    Operator's answer to "same article?".

    same_article=true keeps product, brand and lot and zeroes the weight;
    otherwise the workflow restarts and reloads everything.
    """
    workflow = _workflow()
    data = _request_data()
    same_article = str(data.get("same_article", "")).lower() in {"1", "true", "yes", "on"}

    if same_article:
        workflow.continue_same_article()
    else:
        workflow.reset()
        workflow.load()

    return _session_payload(workflow)


@labels_bp.route("/api/labels/reprint", methods=["POST"])
def reprint_label():
    """Send the last label to the printer again."""
    outcome = _workflow().redispatch()
    return outcome.to_dict(), _OUTCOME_STATUS.get(outcome.state, 200)
