"""
Unit tests for the Code21 encoder.

The field layout is an external contract, so the reference code below is
pinned digit for digit.
"""

import pytest

from core.code21 import (
    CODE_WIDTH,
    MAX_CAN_ID,
    MAX_WEIGHT_GRAMS,
    calculate_check_digit,
    decode_code21,
    encode_code21,
    is_valid_code21,
)
from core.exceptions import EncodingError


REFERENCE_CODE = "701400482100235005006"


@pytest.fixture
def reference_fields():
    return {
        "can_id": 4821,
        "lot": "00235",
        "indicator": 7,
        "product_code": "014",
        "weight_grams": 500,
    }


class TestCheckDigit:
    """Tests for the GS1 mod-10 check digit."""

    def test_ean13_reference(self):
        """Known EAN-13: 629104150021 -> 3."""
        assert calculate_check_digit("629104150021") == "3"

    def test_all_zeros(self):
        assert calculate_check_digit("0" * 20) == "0"

    def test_reference_code_data(self):
        assert calculate_check_digit(REFERENCE_CODE[:20]) == "6"

    @pytest.mark.parametrize("digits", ["", "12a4", "1 2", None])
    def test_rejects_non_numeric(self, digits):
        with pytest.raises(EncodingError):
            calculate_check_digit(digits)


class TestEncode:
    """Tests for encode_code21()."""

    def test_reference_code(self, reference_fields):
        assert encode_code21(**reference_fields) == REFERENCE_CODE

    def test_is_deterministic(self, reference_fields):
        assert encode_code21(**reference_fields) == encode_code21(**reference_fields)

    def test_fixed_width_with_small_values(self):
        code = encode_code21(can_id=1, lot="00001", indicator=0, product_code="1", weight_grams=0)

        assert len(code) == CODE_WIDTH
        assert code[:20] == "00010000010000100000"

    @pytest.mark.parametrize("product_code", ["014", "14", "0014", 14])
    def test_product_code_forms_are_equivalent(self, reference_fields, product_code):
        reference_fields["product_code"] = product_code
        assert encode_code21(**reference_fields) == REFERENCE_CODE

    def test_string_numbers_accepted(self, reference_fields):
        reference_fields.update(can_id="4821", indicator="7", weight_grams="500")
        assert encode_code21(**reference_fields) == REFERENCE_CODE

    def test_max_values_fit(self):
        code = encode_code21(
            can_id=MAX_CAN_ID, lot="99999", indicator=9, product_code="999", weight_grams=MAX_WEIGHT_GRAMS
        )
        assert code[:20] == "9" * 20

    @pytest.mark.parametrize("field,value", [
        ("can_id", MAX_CAN_ID + 1),
        ("weight_grams", MAX_WEIGHT_GRAMS + 1),
        ("indicator", 10),
        ("product_code", "1000"),
    ])
    def test_overflow_raises(self, reference_fields, field, value):
        reference_fields[field] = value

        with pytest.raises(EncodingError) as exc_info:
            encode_code21(**reference_fields)

        assert exc_info.value.field == field

    @pytest.mark.parametrize("value", [-1, True, 1.5, "12a", None])
    def test_invalid_can_id(self, reference_fields, value):
        reference_fields["can_id"] = value
        with pytest.raises(EncodingError):
            encode_code21(**reference_fields)

    @pytest.mark.parametrize("lot", ["235", "002350", "00a35", 235, ""])
    def test_lot_must_be_five_digits(self, reference_fields, lot):
        reference_fields["lot"] = lot

        with pytest.raises(EncodingError) as exc_info:
            encode_code21(**reference_fields)

        assert exc_info.value.field == "lot"


class TestDecode:
    """Tests for decode_code21() and is_valid_code21()."""

    def test_reference_fields(self):
        fields = decode_code21(REFERENCE_CODE)

        assert fields.indicator == 7
        assert fields.product_code == "014"
        assert fields.can_id == 4821
        assert fields.lot == "00235"
        assert fields.weight_grams == 500
        assert fields.check_digit == "6"

    def test_bad_check_digit(self):
        tampered = REFERENCE_CODE[:-1] + "7"

        with pytest.raises(EncodingError) as exc_info:
            decode_code21(tampered)

        assert exc_info.value.field == "check_digit"

    def test_single_digit_change_detected(self):
        # Changing the weight by one gram must invalidate the code
        tampered = REFERENCE_CODE[:19] + "1" + REFERENCE_CODE[20:]
        assert not is_valid_code21(tampered)

    @pytest.mark.parametrize("code", [REFERENCE_CODE[:-1], REFERENCE_CODE + "0", "70140048210023500500X", None])
    def test_malformed(self, code):
        assert not is_valid_code21(code)

    def test_valid(self):
        assert is_valid_code21(REFERENCE_CODE)


class TestRoundTrip:
    """Encoding then decoding recovers every field at the width limits."""

    @pytest.mark.parametrize("can_id", [0, 1, MAX_CAN_ID])
    @pytest.mark.parametrize("weight_grams", [0, MAX_WEIGHT_GRAMS])
    @pytest.mark.parametrize("indicator", [0, 9])
    @pytest.mark.parametrize("product_code", ["000", "999"])
    def test_fields_survive(self, can_id, weight_grams, indicator, product_code):
        code = encode_code21(
            can_id=can_id,
            lot="00235",
            indicator=indicator,
            product_code=product_code,
            weight_grams=weight_grams,
        )

        fields = decode_code21(code)

        assert len(code) == CODE_WIDTH
        assert fields.can_id == can_id
        assert fields.lot == "00235"
        assert fields.indicator == indicator
        assert fields.product_code == product_code
        assert fields.weight_grams == weight_grams
        assert calculate_check_digit(code[:20]) == code[20]
