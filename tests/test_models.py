"""
Unit tests for the data models.
"""

from datetime import date

import pytest

from core.exceptions import ValidationError, LedgerUpdateFailed
from models.catalog import Product, Brand, pad_product_code
from models.label_order import LabelOrder, add_years, parse_date
from models.ledger import SequenceCounter, PrintRecord
from models.print_outcome import PrintOutcome, WorkflowState


class TestLabelOrder:
    """Tests for LabelOrder and its date helpers."""

    @pytest.mark.parametrize("start,years,expected", [
        (date(2024, 3, 15), 2, date(2026, 3, 15)),
        (date(2024, 2, 29), 2, date(2026, 2, 28)),
        (date(2024, 2, 29), 4, date(2028, 2, 29)),
        (date(2023, 12, 31), 1, date(2024, 12, 31)),
    ])
    def test_add_years(self, start, years, expected):
        assert add_years(start, years) == expected

    def test_parse_date(self):
        assert parse_date("2024-03-15") == date(2024, 3, 15)
        assert parse_date("") is None
        assert parse_date(None) is None
        assert parse_date(date(2024, 3, 15)) == date(2024, 3, 15)

    def test_parse_date_invalid(self):
        with pytest.raises(ValueError):
            parse_date("15/03/2024")

    def test_seeded(self):
        order = LabelOrder.seeded(date(2024, 3, 15), 3)

        assert order.manufacture_date == date(2024, 3, 15)
        assert order.expiry_date == date(2027, 3, 15)
        assert order.lot == ""

    def test_for_next_can(self):
        order = LabelOrder(product_id="p1", brand_id="b1", lot="00235", weight_grams=750)

        next_order = order.for_next_can()

        assert next_order.weight_grams == 0
        assert next_order.lot == "00235"
        assert order.weight_grams == 750

    def test_from_dict_falls_back_to_defaults(self):
        defaults = LabelOrder(product_id="p1", brand_id="b1", lot="00235",
                              manufacture_date=date(2024, 3, 15), expiry_date=date(2026, 3, 15))

        order = LabelOrder.from_dict({"lot": "00236", "weight_grams": "500"}, defaults=defaults)

        assert order.product_id == "p1"
        assert order.lot == "00236"
        assert order.weight_grams == "500"
        assert order.expiry_date == date(2026, 3, 15)

    def test_to_dict(self):
        order = LabelOrder(lot="00235", manufacture_date=date(2024, 3, 15))

        data = order.to_dict()

        assert data["manufacture_date"] == "2024-03-15"
        assert data["expiry_date"] is None


class TestCatalogAndLedger:
    """Tests for catalog and ledger models."""

    @pytest.mark.parametrize("value,expected", [
        ("14", "014"),
        (14, "014"),
        (14.0, "014"),
        ("014", "014"),
        (None, ""),
    ])
    def test_pad_product_code(self, value, expected):
        assert pad_product_code(value) == expected

    def test_product_round_trip(self):
        product = Product(id="p1", display_name="X", product_code="014", rne="R", rnpa="N")
        assert Product.from_dict(product.to_dict()) == product

    def test_brand_from_dict(self):
        assert Brand.from_dict({"id": "b1", "display_name": "B", "indicator": "7"}).indicator == 7

    def test_counter_advanced(self):
        counter = SequenceCounter(id="c", next_id=41)
        assert counter.advanced() == SequenceCounter(id="c", next_id=42)
        assert counter.next_id == 41

    def test_print_record_keeps_lot_text(self):
        record = PrintRecord.from_dict({"can_id": "5", "lot": "00235"})
        assert record.can_id == 5
        assert record.lot == "00235"


class TestPrintOutcome:
    """Tests for PrintOutcome factories."""

    def test_in_flight_states(self):
        assert WorkflowState.PERSISTING.in_flight
        assert not WorkflowState.READY.in_flight
        assert not WorkflowState.FAULTED.in_flight

    def test_aborted(self):
        outcome = PrintOutcome.create_aborted(ValidationError("Lot must be exactly 5 digits", field="lot"))

        assert outcome.state == WorkflowState.ABORTED
        assert outcome.details == {"field": "lot"}
        assert not outcome.succeeded

    def test_needs_reconciliation(self):
        outcome = PrintOutcome.create_faulted(
            WorkflowState.ADVANCING, LedgerUpdateFailed(7, counter_id="c"), can_id=7, record_id="rec1"
        )

        assert outcome.needs_reconciliation
        assert outcome.to_dict()["needs_reconciliation"] is True
        assert outcome.to_dict()["failed_step"] == "advancing"

    def test_to_dict_omits_payload(self):
        outcome = PrintOutcome.create_completed(1, "0" * 21, "rec1", "^XA^XZ")
        assert "payload" not in outcome.to_dict()
