"""Helper modules for the CanLabeler application."""

__all__ = [
    "label_markup",
]
