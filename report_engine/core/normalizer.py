"""
Name and Unit Normalization

Pure functions that make equivalent free-text entries aggregate together:
- Item names: trim, then capitalize each word and lowercase the rest
  ("OKRA", "okra" and " Okra " all become "Okra")
- Units: case-insensitive synonym lookup. Gram spellings convert to
  kilograms (quantity / 1000), kilogram spellings only change spelling,
  everything else passes through. A missing unit is "unspecified".
"""
import logging
from dataclasses import dataclass
from typing import Iterable, Optional, Tuple

logger = logging.getLogger(__name__)

UNSPECIFIED_UNIT = "unspecified"
KILOGRAM = "kg"
MIXED_UNITS_MARKER = ">2 units, truncated"
MAX_DISPLAYED_UNITS = 2

GRAM_SYNONYMS = frozenset({"g", "gm", "gms", "gr", "gram", "grams", "gramme", "grammes"})
KILOGRAM_SYNONYMS = frozenset({
    "kg", "kgs", "kilo", "kilos", "kilogram", "kilograms", "kilogramme", "kilogrammes",
})


@dataclass(frozen=True)
class Quantity:
    """A quantity in a normalized unit."""
    qty: float
    unit: str

    def to_dict(self) -> dict:
        return {"qty": self.qty, "unit": self.unit}


def normalize_name(name: Optional[str]) -> str:
    """Merge key for an item name: trimmed, per-word capitalized."""
    if not name:
        return ""
    return " ".join(word.capitalize() for word in name.strip().split())


def _unit_key(unit: Optional[str]) -> str:
    return unit.strip().lower().rstrip(".") if unit else ""


def normalize_unit(unit: Optional[str]) -> str:
    """Canonical unit spelling. Idempotent."""
    key = _unit_key(unit)
    if not key:
        return UNSPECIFIED_UNIT
    if key in GRAM_SYNONYMS or key in KILOGRAM_SYNONYMS:
        return KILOGRAM
    return unit.strip()


def normalize_quantity(qty: float, unit: Optional[str]) -> Quantity:
    """
    Convert a quantity to its normalized unit.

    Example:
        normalize_quantity(2500, "g")  -> Quantity(qty=2.5, unit="kg")
        normalize_quantity(10, "KGS")  -> Quantity(qty=10, unit="kg")
    """
    key = _unit_key(unit)
    if key in GRAM_SYNONYMS:
        return Quantity(qty / 1000, KILOGRAM)
    return Quantity(qty, normalize_unit(unit))


def summarize_units(units: Iterable[str]) -> str:
    """
    Display text for the distinct units merged under one item.

    More than two distinct units is a data-quality anomaly and is shown
    as a truncation marker rather than resolved.
    """
    distinct: Tuple[str, ...] = tuple(sorted(set(units)))
    if not distinct:
        return UNSPECIFIED_UNIT
    if len(distinct) > MAX_DISPLAYED_UNITS:
        return MIXED_UNITS_MARKER
    return ", ".join(distinct)
