"""
Unit tests for label rendering and the printer sinks.
"""

from datetime import date
from unittest.mock import MagicMock, patch

import pytest

from core.exceptions import DeviceUnavailable
from core.printers import NetworkLabelPrinter, DeviceLabelPrinter
from models.catalog import Product
from modules.label_markup import escape_field, render_label


CODE = "701400482100235005006"


@pytest.fixture
def product():
    return Product(id="recP1", display_name="Dulce de leche 1kg", product_code="014",
                   rne="02-033445", rnpa="02-588901")


@pytest.fixture
def payload(product):
    return render_label(
        product=product,
        lot="00235",
        code21=CODE,
        manufacture_date=date(2024, 3, 1),
        expiry_date=date(2026, 3, 1),
    )


# Tests for ZPL rendering

class TestRenderLabel:
    """Tests for render_label()."""

    def test_single_label_document(self, payload):
        assert payload.startswith("^XA^CI28")
        assert payload.endswith("^XZ")
        assert payload.count("^XA") == 1
        assert payload.count("^XZ") == 1

    def test_barcode_carries_code(self, payload):
        assert f"^BCN,80,Y,N,N^FD{CODE}^FS" in payload

    def test_regulatory_fields(self, payload):
        assert "^FDDulce de leche 1kg^FS" in payload
        assert "^FDF. Fab: 2024-03-01^FS" in payload
        assert "^FDF. Vto: 2026-03-01^FS" in payload
        assert "^FDRNE: 02-033445^FS" in payload
        assert "^FDRNPA: 02-588901^FS" in payload
        assert "^FDLOT 00235^FS" in payload

    def test_missing_dates_render_blank(self, product):
        payload = render_label(product, "00235", CODE, None, None)
        assert "^FDF. Fab: ^FS" in payload

    def test_control_characters_escaped(self):
        product = Product(id="p", display_name="A^XZ~B_C", product_code="001")

        payload = render_label(product, "00001", CODE, None, None)

        assert "^FDA_5EXZ_7EB_5FC^FS" in payload
        assert payload.count("^XZ") == 1


class TestEscapeField:
    """Tests for escape_field()."""

    @pytest.mark.parametrize("text,expected", [
        ("plain", "plain"),
        ("a_b", "a_5Fb"),
        ("^FS", "_5EFS"),
        ("~JA", "_7EJA"),
        ("Ñandú", "Ñandú"),
    ])
    def test_escape(self, text, expected):
        assert escape_field(text) == expected


# Tests for printer sinks

class TestNetworkLabelPrinter:
    """Tests for raw TCP printing."""

    def test_send(self):
        sock = MagicMock()
        with patch("core.printers.socket.create_connection") as mock_connect:
            mock_connect.return_value.__enter__.return_value = sock
            NetworkLabelPrinter("10.0.0.50", timeout_seconds=2.0).send("^XA^XZ")

        mock_connect.assert_called_once_with(("10.0.0.50", 9100), timeout=2.0)
        sock.sendall.assert_called_once_with(b"^XA^XZ")

    def test_send_encodes_utf8(self):
        sock = MagicMock()
        with patch("core.printers.socket.create_connection") as mock_connect:
            mock_connect.return_value.__enter__.return_value = sock
            NetworkLabelPrinter("printer.local").send("Ñ")

        sock.sendall.assert_called_once_with("Ñ".encode("utf-8"))

    def test_connection_refused(self):
        with patch("core.printers.socket.create_connection", side_effect=ConnectionRefusedError("refused")):
            with pytest.raises(DeviceUnavailable) as exc_info:
                NetworkLabelPrinter("10.0.0.50").send("^XA^XZ")

        assert exc_info.value.device == "printer"
        assert exc_info.value.details["host"] == "10.0.0.50"

    def test_no_host(self):
        with pytest.raises(DeviceUnavailable):
            NetworkLabelPrinter("").send("^XA^XZ")


class TestDeviceLabelPrinter:
    """Tests for device-file printing."""

    def test_send(self, tmp_path):
        device = tmp_path / "lp0"

        DeviceLabelPrinter(str(device)).send("^XA^XZ")

        assert device.read_bytes() == b"^XA^XZ"

    def test_missing_device(self, tmp_path):
        with pytest.raises(DeviceUnavailable) as exc_info:
            DeviceLabelPrinter(str(tmp_path / "missing" / "lp0")).send("^XA^XZ")

        assert exc_info.value.details["device"].endswith("lp0")

    def test_no_device(self):
        with pytest.raises(DeviceUnavailable):
            DeviceLabelPrinter("").send("^XA^XZ")
