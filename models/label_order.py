"""
Label order model.

A LabelOrder is what the operator fills in for one can: product, brand,
lot, dates and weight. It lives for one print attempt; after a successful
print the "same article" path keeps everything but the weight.
"""

from __future__ import annotations

from dataclasses import dataclass, asdict, replace
from datetime import date
from typing import Dict, Any, Optional


DEFAULT_SHELF_LIFE_YEARS = 2


def add_years(start: date, years: int) -> date:
    """Add calendar years, moving Feb 29 to Feb 28 in non-leap years."""
    try:
        return start.replace(year=start.year + years)
    except ValueError:
        return start.replace(year=start.year + years, day=28)


def parse_date(value: Any) -> Optional[date]:
    """Parse an ISO date (YYYY-MM-DD); returns None for empty values."""
    if value is None or value == "":
        return None
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value).strip())


@dataclass
class LabelOrder:
    """
    Operator input for one label.

    Mutable while the operator edits it; the workflow copies it when a
    print starts.
    """

    product_id: str = ""
    """Selected product record id (empty if nothing selected)."""

    brand_id: str = ""
    """Selected brand record id (empty if nothing selected)."""

    lot: str = ""
    """Lot number, must be exactly 5 digits to print."""

    manufacture_date: Optional[date] = None
    expiry_date: Optional[date] = None

    weight_grams: Any = 0
    """Net weight in grams. Kept untyped until validation."""

    @classmethod
    def seeded(cls, today: date, shelf_life_years: int = DEFAULT_SHELF_LIFE_YEARS) -> "LabelOrder":
        """Create an empty order with today's manufacture date and default expiry."""
        return cls(
            manufacture_date=today,
            expiry_date=add_years(today, shelf_life_years),
        )

    def for_next_can(self) -> "LabelOrder":
        """Same article, different can: keep the selection, zero the weight."""
        return replace(self, weight_grams=0)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON responses."""
        data = asdict(self)
        data["manufacture_date"] = self.manufacture_date.isoformat() if self.manufacture_date else None
        data["expiry_date"] = self.expiry_date.isoformat() if self.expiry_date else None
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any], defaults: Optional["LabelOrder"] = None) -> "LabelOrder":
        """
        Create from request data, falling back to `defaults` for missing keys.

        Raises:
            ValueError: If a date is not in ISO format
        """
        base = defaults or cls()
        return cls(
            product_id=str(data.get("product_id", base.product_id) or ""),
            brand_id=str(data.get("brand_id", base.brand_id) or ""),
            lot=str(data.get("lot", base.lot) or ""),
            manufacture_date=parse_date(data.get("manufacture_date", base.manufacture_date)),
            expiry_date=parse_date(data.get("expiry_date", base.expiry_date)),
            weight_grams=data.get("weight_grams", base.weight_grams),
        )
