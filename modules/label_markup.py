"""
ZPL label rendering.

Builds the printer payload for one can. The label carries the fields the
regulations require (product name, manufacture and expiry dates, RNE, RNPA,
lot) plus the Code21 as a Code 128 barcode with its digits printed under it.

Layout (dots, 203 dpi):

    (20,20)   product name
    (20,50)   F. Fab: <manufacture date>
    (20,75)   F. Vto: <expiry date>
    (20,100)  RNE: <rne>          (150,100) RNPA: <rnpa>
    (20,130)  LOT <lot>
    (20,160)  Code 128 barcode, interpretation line below
"""

from __future__ import annotations

from datetime import date
from typing import List, Optional

from models.catalog import Product


# ^FH_ enables hex escapes in field data; these characters would otherwise
# be read as ZPL commands or escape introducers
_FIELD_ESCAPES = {
    "_": "_5F",
    "^": "_5E",
    "~": "_7E",
}


def escape_field(text: str) -> str:
    """Escape text for use inside a ^FH_ ^FD ... ^FS field."""
    return "".join(_FIELD_ESCAPES.get(ch, ch) for ch in str(text))


def _format_date(value: Optional[date]) -> str:
    return value.isoformat() if value else ""


def _text(x: int, y: int, size: int, text: str) -> str:
    return f"^FO{x},{y}^A0N,{size},{size}^FH_^FD{escape_field(text)}^FS"


def render_label(
    product: Product,
    lot: str,
    code21: str,
    manufacture_date: Optional[date],
    expiry_date: Optional[date],
) -> str:
    """
    Render the ZPL payload for one can.

    Args:
        product: Product being labeled
        lot: 5-digit lot
        code21: The can's 21-digit code
        manufacture_date: Manufacture date printed as F. Fab
        expiry_date: Expiry date printed as F. Vto

    Returns:
        ZPL document (one label, ^XA ... ^XZ)
    """
    lines: List[str] = [
        "^XA^CI28",
        _text(20, 20, 24, product.display_name),
        _text(20, 50, 18, f"F. Fab: {_format_date(manufacture_date)}"),
        _text(20, 75, 18, f"F. Vto: {_format_date(expiry_date)}"),
        _text(20, 100, 20, f"RNE: {product.rne}"),
        _text(150, 100, 20, f"RNPA: {product.rnpa}"),
        _text(20, 130, 20, f"LOT {lot}"),
        # Code 128, 80 dots high, interpretation line printed below
        f"^FO20,160^BY2^BCN,80,Y,N,N^FD{code21}^FS",
        "^XZ",
    ]
    return "\n".join(lines)
