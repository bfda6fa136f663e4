"""
Catalog data models.

Products and brands are owned by the external record store. The workflow
only reads them, so both are frozen snapshots.
"""

from __future__ import annotations

from dataclasses import dataclass, asdict
from typing import Dict, Any


@dataclass(frozen=True)
class Product:
    """
    A product that can be labeled.

    The product code is always held zero padded to 3 digits, matching the
    Code21 product field.
    """

    id: str
    """Record store identity."""

    display_name: str
    """Name printed on the label."""

    product_code: str
    """Zero-padded 3-digit product code (e.g. '014')."""

    rne: str = ""
    """First regulatory reference (RNE)."""

    rnpa: str = ""
    """Second regulatory reference (RNPA)."""

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON responses."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Product":
        """Create from dictionary (e.g., from a seed file)."""
        return cls(
            id=str(data.get("id", "")),
            display_name=data.get("display_name", ""),
            product_code=pad_product_code(data.get("product_code", "")),
            rne=str(data.get("rne", "") or ""),
            rnpa=str(data.get("rnpa", "") or ""),
        )


@dataclass(frozen=True)
class Brand:
    """A brand with its single-digit Code21 indicator."""

    id: str
    display_name: str
    indicator: int

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON responses."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Brand":
        """Create from dictionary (e.g., from a seed file)."""
        return cls(
            id=str(data.get("id", "")),
            display_name=data.get("display_name", ""),
            indicator=int(data.get("indicator", 0)),
        )


def pad_product_code(value: Any) -> str:
    """Render a catalog product code as a 3-digit string ('14' -> '014')."""
    if value is None:
        return ""
    # Numeric fields may come back as floats from the record store
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    return str(value).strip().zfill(3)
