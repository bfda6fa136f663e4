"""
Code21 encoder.

Every printed can carries a 21-digit numeric code, rendered as a linear
barcode and as literal digits. The layout is a fixed contract - changing a
width breaks decoding of every label already in circulation:

    +-----------+---------+--------+-------+--------+-------+
    | indicator | product | can id |  lot  | weight | check |
    |     1     |    3    |   6    |   5   |   5    |   1   |
    +-----------+---------+--------+-------+--------+-------+

    indicator  brand indicator digit (0-9)
    product    catalog product code, zero padded
    can id     sequence ledger value consumed by this label
    lot        operator lot, exactly 5 digits
    weight     net weight in grams, zero padded
    check      GS1 mod-10 check digit over the first 20 digits

Example:
    >>> encode_code21(can_id=4821, lot="00235", indicator=7, product_code="014", weight_grams=500)
    '701400482100235005006'
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Union

from .exceptions import EncodingError


INDICATOR_WIDTH = 1
PRODUCT_CODE_WIDTH = 3
CAN_ID_WIDTH = 6
LOT_WIDTH = 5
WEIGHT_WIDTH = 5

DATA_WIDTH = INDICATOR_WIDTH + PRODUCT_CODE_WIDTH + CAN_ID_WIDTH + LOT_WIDTH + WEIGHT_WIDTH
CODE_WIDTH = DATA_WIDTH + 1

MAX_CAN_ID = 10 ** CAN_ID_WIDTH - 1
MAX_WEIGHT_GRAMS = 10 ** WEIGHT_WIDTH - 1

_DIGITS_RE = re.compile(r"[0-9]+")
_LOT_RE = re.compile(r"[0-9]{%d}" % LOT_WIDTH)

IntLike = Union[int, str]


@dataclass(frozen=True)
class Code21Fields:
    """Fields recovered from a decoded Code21."""

    indicator: int
    product_code: str
    can_id: int
    lot: str
    weight_grams: int
    check_digit: str


def calculate_check_digit(digits: str) -> str:
    """
    Calculate the GS1 check digit for a numeric string.

    Weights alternate 3,1,3,1... starting from the rightmost digit, which
    for the 20 data digits of a Code21 means 1,3,1,3... from the left.

    Args:
        digits: Numeric string without check digit

    Returns:
        Single check digit as string
    """
    if not _DIGITS_RE.fullmatch(digits or ""):
        raise EncodingError("Check digit input must be numeric", field="digits", value=digits)
    total = sum(int(digit) * (3 if i % 2 == 0 else 1) for i, digit in enumerate(reversed(digits)))
    return str((10 - (total % 10)) % 10)


def _field(value: IntLike, width: int, name: str) -> str:
    """Render a non-negative integer field left-padded to `width` digits."""
    if isinstance(value, bool):
        raise EncodingError(f"{name} must be numeric", field=name, value=value)

    if isinstance(value, int):
        if value < 0:
            raise EncodingError(f"{name} cannot be negative", field=name, value=value)
        text = str(value)
    elif isinstance(value, str):
        text = value.strip()
        if not _DIGITS_RE.fullmatch(text):
            raise EncodingError(f"{name} must contain only digits", field=name, value=value)
        # Drop redundant leading zeros so "0014" still fits a 3-digit field
        text = text.lstrip("0") or "0"
    else:
        raise EncodingError(f"{name} must be numeric", field=name, value=value)

    if len(text) > width:
        raise EncodingError(
            f"{name} {value} does not fit in {width} digits",
            field=name,
            value=value,
        )
    return text.zfill(width)


def encode_code21(
    can_id: IntLike,
    lot: str,
    indicator: IntLike,
    product_code: IntLike,
    weight_grams: IntLike,
) -> str:
    """
    Build the 21-digit code for one can.

    Pure and deterministic: the same inputs always produce the same code.

    Args:
        can_id: Sequence id consumed by this label
        lot: Lot number, exactly 5 digits
        indicator: Brand indicator digit
        product_code: Catalog product code
        weight_grams: Net weight in grams

    Returns:
        21-character numeric string

    Raises:
        EncodingError: If a field is not numeric or overflows its width
    """
    if not isinstance(lot, str) or not _LOT_RE.fullmatch(lot):
        raise EncodingError(f"Lot must be exactly {LOT_WIDTH} digits", field="lot", value=lot)

    data = (
        _field(indicator, INDICATOR_WIDTH, "indicator")
        + _field(product_code, PRODUCT_CODE_WIDTH, "product_code")
        + _field(can_id, CAN_ID_WIDTH, "can_id")
        + lot
        + _field(weight_grams, WEIGHT_WIDTH, "weight_grams")
    )
    return data + calculate_check_digit(data)


def decode_code21(code: str) -> Code21Fields:
    """
    Split a Code21 back into its fields.

    Raises:
        EncodingError: If the code is malformed or its check digit is wrong
    """
    if not isinstance(code, str) or len(code) != CODE_WIDTH or not _DIGITS_RE.fullmatch(code):
        raise EncodingError(f"Code must be exactly {CODE_WIDTH} digits", field="code", value=code)

    data, check = code[:DATA_WIDTH], code[DATA_WIDTH:]
    if calculate_check_digit(data) != check:
        raise EncodingError("Check digit mismatch", field="check_digit", value=code)

    pos = 0
    parts = []
    for width in (INDICATOR_WIDTH, PRODUCT_CODE_WIDTH, CAN_ID_WIDTH, LOT_WIDTH, WEIGHT_WIDTH):
        parts.append(data[pos:pos + width])
        pos += width

    indicator, product_code, can_id, lot, weight = parts
    return Code21Fields(
        indicator=int(indicator),
        product_code=product_code,
        can_id=int(can_id),
        lot=lot,
        weight_grams=int(weight),
        check_digit=check,
    )


def is_valid_code21(code: str) -> bool:
    """True if `code` is a well-formed Code21 with a correct check digit."""
    try:
        decode_code21(code)
    except EncodingError:
        return False
    return True
