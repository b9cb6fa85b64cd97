"""
Diagram Notation
================

Header token and crow's foot symbol tables shared by the generator and parser.
"""

from typing import Dict, Optional, Tuple

from erdsync.models.schemas import Cardinality, DIAGRAM_HEADER

__all__ = [
    "DIAGRAM_HEADER",
    "CARDINALITY_SYMBOLS",
    "SYMBOL_CARDINALITIES",
    "symbol_for",
    "cardinality_for_symbol",
]

CARDINALITY_SYMBOLS: Dict[Cardinality, str] = {
    Cardinality.ONE_TO_ONE: "||--||",
    Cardinality.ONE_TO_MANY: "||--o{",
    Cardinality.MANY_TO_ONE: "}o--||",
    Cardinality.MANY_TO_MANY: "}o--o{",
}

SYMBOL_CARDINALITIES: Dict[str, Cardinality] = {
    symbol: cardinality for cardinality, symbol in CARDINALITY_SYMBOLS.items()
}

# Mermaid end markers, in either orientation: || exactly one, |o zero or one,
# }| one or more, }o zero or more.
_ONE_MARKERS = {"||", "|o", "o|"}
_MANY_MARKERS = {"}|", "|{", "}o", "o{"}


def symbol_for(cardinality: Cardinality) -> str:
    """Canonical symbol for a cardinality; unknown values fall back to one-to-many."""
    return CARDINALITY_SYMBOLS.get(cardinality, CARDINALITY_SYMBOLS[Cardinality.ONE_TO_MANY])


def _side(marker: str) -> Optional[str]:
    if marker in _ONE_MARKERS:
        return "one"
    if marker in _MANY_MARKERS:
        return "many"
    return None


def cardinality_for_symbol(symbol: str) -> Optional[Tuple[Cardinality, bool]]:
    """
    Interpret a relationship symbol.

    Args:
        symbol: Two end markers joined by ``--`` or ``..``

    Returns:
        Tuple of (cardinality, identifying) or None when the symbol is not
        a valid crow's foot pair
    """
    if symbol in SYMBOL_CARDINALITIES:
        return SYMBOL_CARDINALITIES[symbol], True

    if len(symbol) != 6 or symbol[2:4] not in ("--", ".."):
        return None

    left, right = _side(symbol[:2]), _side(symbol[4:])
    if left is None or right is None:
        return None

    cardinality = {
        ("one", "one"): Cardinality.ONE_TO_ONE,
        ("one", "many"): Cardinality.ONE_TO_MANY,
        ("many", "one"): Cardinality.MANY_TO_ONE,
        ("many", "many"): Cardinality.MANY_TO_MANY,
    }[(left, right)]
    return cardinality, symbol[2:4] == "--"
