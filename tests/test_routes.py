"""
Integration tests for the HTTP routes.

The app is built with the testing config, a seeded in-memory store and a
mocked printer, and exercised through the Flask test client.
"""

import pytest
from unittest.mock import MagicMock, patch

from app import create_app, error_status
from core.exceptions import (
    ConcurrentPrintRejected,
    DeviceUnavailable,
    LedgerUpdateFailed,
    LoadError,
    ValidationError,
)
from core.memory_store import InMemoryRecordStore
from core.scale import ScaleReader
from models.catalog import Product, Brand
from models.ledger import SequenceCounter, PrintRecord


# Fixtures

@pytest.fixture
def store():
    return InMemoryRecordStore(
        products=[Product(id="recP1", display_name="Dulce de leche 1kg", product_code="014",
                          rne="02-033445", rnpa="02-588901")],
        brands=[Brand(id="recB1", display_name="La Vaquita", indicator=7)],
        counter=SequenceCounter(id="recC1", next_id=4821),
    )


@pytest.fixture
def printer():
    mock_printer = MagicMock()
    mock_printer.name = "printer"
    return mock_printer


@pytest.fixture
def app(store, printer):
    app = create_app(
        "config.TestingConfig",
        record_store=store,
        printer=printer,
        scale_reader_factory=lambda: ScaleReader(port=None),
    )
    return app


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def loaded_client(client):
    response = client.post("/api/session/load")
    assert response.status_code == 200
    return client


@pytest.fixture
def label_body():
    return {
        "product_id": "recP1",
        "brand_id": "recB1",
        "lot": "00235",
        "manufacture_date": "2024-03-01",
        "expiry_date": "2026-03-01",
        "weight_grams": 500,
    }


# Tests for the session endpoints

class TestSession:
    """Tests for /api/session*."""

    def test_starts_idle(self, client):
        data = client.get("/api/session").get_json()

        assert data["state"] == "idle"
        assert data["counter"] is None
        assert data["products"] == []

    def test_load(self, loaded_client):
        data = loaded_client.get("/api/session").get_json()

        assert data["state"] == "ready"
        assert data["counter"] == {"id": "recC1", "next_id": 4821}
        assert data["products"][0]["product_code"] == "014"
        assert data["brands"][0]["indicator"] == 7
        assert data["draft"]["manufacture_date"] is not None

    def test_load_failure_then_retry(self, client, store):
        with patch.object(store, "read_counter", side_effect=LoadError("Airtable down", source="ledger")):
            response = client.post("/api/session/load")

        assert response.status_code == 502
        assert response.get_json()["error"] == "LoadError"
        assert client.get("/api/session").get_json()["load_error"]["error"] == "LoadError"

        response = client.post("/api/session/load")

        assert response.status_code == 200
        assert response.get_json()["state"] == "ready"

    def test_reload_when_ready(self, loaded_client):
        response = loaded_client.post("/api/session/load")
        assert response.get_json()["state"] == "ready"

    def test_reset(self, loaded_client, store):
        store.advance_counter("recC1", 5000)

        data = loaded_client.post("/api/session/reset").get_json()

        assert data["state"] == "ready"
        assert data["counter"]["next_id"] == 5000


# Tests for printing

class TestPrintLabel:
    """Tests for POST /api/labels."""

    def test_print(self, loaded_client, label_body, store, printer):
        response = loaded_client.post("/api/labels", json=label_body)

        assert response.status_code == 200
        data = response.get_json()
        assert data["state"] == "completed"
        assert data["can_id"] == 4821
        assert data["code21"] == "701400482100235005006"
        assert store.read_counter().next_id == 4822
        printer.send.assert_called_once()

    def test_print_form_post(self, loaded_client, label_body):
        form = {name: str(value) for name, value in label_body.items()}

        response = loaded_client.post("/api/labels", data=form)

        assert response.status_code == 200
        assert response.get_json()["code21"] == "701400482100235005006"

    def test_markup_stripped_from_input(self, loaded_client, label_body):
        label_body["lot"] = "<b>00235</b>"

        response = loaded_client.post("/api/labels", json=label_body)

        assert response.status_code == 200

    def test_validation_abort(self, loaded_client, label_body, store, printer):
        label_body["lot"] = "235"

        response = loaded_client.post("/api/labels", json=label_body)

        assert response.status_code == 400
        data = response.get_json()
        assert data["state"] == "aborted"
        assert data["details"]["field"] == "lot"
        assert store.records == []
        printer.send.assert_not_called()

    def test_invalid_date(self, loaded_client, label_body):
        label_body["expiry_date"] = "01/03/2026"

        response = loaded_client.post("/api/labels", json=label_body)

        assert response.status_code == 400
        assert response.get_json()["error"] == "ValidationError"

    def test_print_before_load(self, client, label_body):
        response = client.post("/api/labels", json=label_body)

        assert response.status_code == 409
        assert response.get_json()["error"] == "WorkflowStateError"

    def test_missing_fields_use_draft(self, loaded_client, label_body):
        loaded_client.post("/api/labels", json=label_body)
        loaded_client.post("/api/labels/next", json={"same_article": True})

        response = loaded_client.post("/api/labels", json={"weight_grams": 750})

        assert response.status_code == 200
        assert response.get_json()["can_id"] == 4822

    def test_weight_from_scale_when_missing(self, app, loaded_client, label_body):
        scale = app.config["SCALE_SERVICE"]
        scale.current_weight_grams = 1250
        del label_body["weight_grams"]

        with patch.object(type(scale), "is_running", new=True):
            response = loaded_client.post("/api/labels", json=label_body)

        assert response.get_json()["code21"][15:20] == "01250"

    def test_dispatch_failure_then_reprint(self, loaded_client, label_body, printer, store):
        printer.send.side_effect = DeviceUnavailable("printer", "Printer offline")

        response = loaded_client.post("/api/labels", json=label_body)

        assert response.status_code == 502
        assert response.get_json()["failed_step"] == "dispatching"

        printer.send.side_effect = None
        response = loaded_client.post("/api/labels/reprint")

        assert response.status_code == 200
        assert response.get_json()["can_id"] == 4821
        assert len(store.records) == 1

    def test_advance_failure_reported(self, loaded_client, label_body, store):
        with patch.object(store, "advance_counter", side_effect=RuntimeError("timeout")):
            response = loaded_client.post("/api/labels", json=label_body)

        data = response.get_json()
        assert response.status_code == 502
        assert data["needs_reconciliation"] is True
        assert loaded_client.get("/health").get_json()["checks"]["ledger"] == "needs_reconciliation"


class TestNextLabel:
    """Tests for POST /api/labels/next."""

    def test_same_article(self, loaded_client, label_body):
        loaded_client.post("/api/labels", json=label_body)

        data = loaded_client.post("/api/labels/next", json={"same_article": True}).get_json()

        assert data["state"] == "ready"
        assert data["draft"]["weight_grams"] == 0
        assert data["draft"]["lot"] == "00235"

    def test_new_article_reloads(self, loaded_client, label_body):
        loaded_client.post("/api/labels", json=label_body)

        data = loaded_client.post("/api/labels/next", json={"same_article": False}).get_json()

        assert data["state"] == "ready"
        assert data["draft"]["lot"] == ""
        assert data["counter"]["next_id"] == 4822

    def test_same_article_before_print(self, loaded_client):
        response = loaded_client.post("/api/labels/next", json={"same_article": True})
        assert response.status_code == 409


# Tests for the API endpoints

class TestApi:
    """Tests for lot lookup, reconciliation and health."""

    def test_lot_lookup(self, loaded_client, label_body):
        assert loaded_client.get("/api/lots/00235").get_json()["exists"] is False

        loaded_client.post("/api/labels", json=label_body)

        assert loaded_client.get("/api/lots/00235").get_json()["exists"] is True

    def test_lot_lookup_invalid(self, client):
        response = client.get("/api/lots/abc")
        assert response.status_code == 400

    def test_reconcile(self, loaded_client, store):
        store.append_record(PrintRecord(
            can_id=4821, lot="00235", product_id="recP1", brand_id="recB1",
            weight_grams=500, rne="", rnpa="", code21="",
        ))

        response = loaded_client.post("/api/ledger/reconcile")

        data = response.get_json()
        assert response.status_code == 200
        assert data["reconcile"]["changed"] is True
        assert data["reconcile"]["next_id"] == 4822
        assert data["state"] == "ready"
        assert store.read_counter().next_id == 4822

    def test_health(self, loaded_client):
        response = loaded_client.get("/health")

        data = response.get_json()
        assert response.status_code == 200
        assert data["status"] == "ok"
        assert data["checks"]["workflow"] == "ready"
        assert data["checks"]["scale"] == "disconnected"

    def test_not_found_is_json(self, client):
        response = client.get("/nope")

        assert response.status_code == 404
        assert response.get_json()["error"] == "NotFound"

    def test_wrong_method_is_json(self, client):
        response = client.get("/api/labels")

        assert response.status_code == 405
        assert response.get_json()["error"] == "MethodNotAllowed"


class TestScaleRoutes:
    """Tests for /api/scale/*."""

    def test_connect_without_port(self, client):
        response = client.post("/api/scale/connect")

        assert response.status_code == 503
        assert response.get_json()["details"]["device"] == "scale"

    def test_weight(self, client):
        data = client.get("/api/scale/weight").get_json()

        assert data["connected"] is False
        assert data["weight_grams"] == 0

    def test_disconnect_when_not_connected(self, client):
        response = client.post("/api/scale/disconnect")
        assert response.status_code == 200


class TestErrorStatus:
    """Tests for the error -> HTTP status mapping."""

    @pytest.mark.parametrize("error,status", [
        (ValidationError("bad"), 400),
        (ConcurrentPrintRejected("persisting"), 409),
        (DeviceUnavailable("printer"), 503),
        (LoadError("down"), 502),
        (LedgerUpdateFailed(1), 502),
    ])
    def test_mapping(self, error, status):
        assert error_status(error) == status
