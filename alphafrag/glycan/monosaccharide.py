"""Monosaccharides and glycan compositions.

A glycan known only by its composition is a bag of monosaccharide counts,
e.g. ``Hex5HexNAc4``. This module holds the monosaccharide table, the
composition grammar and the enumeration of sub-compositions that glycan
B/Y fragments and core options on peptide fragments are built from.

Key Features
------------
- Residue formulas (free sugar minus water) for the common monosaccharides
- ProForma composition parsing (``Hex5HexNAc4dHex1``), counts may be negative
  so that invalid compositions survive parsing and are rejected downstream
- ``composition_options`` enumerates every sub-composition within a size range

Sources
-------
- ProForma 2.0 monosaccharide names: https://github.com/HUPO-PSI/ProForma
- Residue compositions: https://www.ncbi.nlm.nih.gov/glycans/snfg.html

Examples
--------
>>> comp = parse_composition("Hex1Hep2")
>>> [format_composition(c) for c in composition_options(comp, (1, 1))]
['Hex1', 'Hep1']
"""

from __future__ import annotations

import re
from enum import Enum
from typing import Dict, List, Optional, Sequence, Tuple

from ..constants import MAX_GLYCAN_COUNT
from ..chemistry.formula import MolecularFormula, formula
from ..errors import FormulaParseError


class MonoSaccharide(Enum):
    """Monosaccharide residues by their ProForma name."""

    Pen = "Pen"
    Hex = "Hex"
    HexNAc = "HexNAc"
    HexN = "HexN"
    HexA = "HexA"
    HexS = "HexS"
    HexP = "HexP"
    dHex = "dHex"
    Hep = "Hep"
    NeuAc = "NeuAc"
    NeuGc = "NeuGc"
    Kdn = "Kdn"
    Sulfate = "Sulfate"
    Phosphate = "Phosphate"

    def __str__(self) -> str:
        return self.value

    @classmethod
    def from_name(cls, name: str) -> "MonoSaccharide":
        sugar = _BY_NAME.get(name.lower())
        if sugar is None:
            raise ValueError(f"Unknown monosaccharide: {name}")
        return sugar

    def formula(self) -> MolecularFormula:
        return _FORMULAS[self]

    def is_fucose(self) -> bool:
        """Fucose-like decorations do not count towards glycan depth."""
        return self is MonoSaccharide.dHex


_FORMULAS: Dict[MonoSaccharide, MolecularFormula] = {
    MonoSaccharide.Pen: formula("C5H8O4"),
    MonoSaccharide.Hex: formula("C6H10O5"),
    MonoSaccharide.HexNAc: formula("C8H13NO5"),
    MonoSaccharide.HexN: formula("C6H11NO4"),
    MonoSaccharide.HexA: formula("C6H8O6"),
    MonoSaccharide.HexS: formula("C6H10O8S"),
    MonoSaccharide.HexP: formula("C6H11O8P"),
    MonoSaccharide.dHex: formula("C6H10O4"),
    MonoSaccharide.Hep: formula("C7H12O6"),
    MonoSaccharide.NeuAc: formula("C11H17NO8"),
    MonoSaccharide.NeuGc: formula("C11H17NO9"),
    MonoSaccharide.Kdn: formula("C9H14O8"),
    MonoSaccharide.Sulfate: formula("O3S"),
    MonoSaccharide.Phosphate: formula("HO3P"),
}

# Aliases accepted next to the ProForma names
_ALIASES: Dict[str, MonoSaccharide] = {
    "fuc": MonoSaccharide.dHex,
    "neu5ac": MonoSaccharide.NeuAc,
    "neu5gc": MonoSaccharide.NeuGc,
    "sia": MonoSaccharide.NeuAc,
    "glcnac": MonoSaccharide.HexNAc,
    "galnac": MonoSaccharide.HexNAc,
    "man": MonoSaccharide.Hex,
    "gal": MonoSaccharide.Hex,
    "glc": MonoSaccharide.Hex,
    "xyl": MonoSaccharide.Pen,
}

_BY_NAME: Dict[str, MonoSaccharide] = {sugar.value.lower(): sugar for sugar in MonoSaccharide}
_BY_NAME.update(_ALIASES)

# Longest first, so "HexNAc" is not read as "Hex" followed by junk
GLYCAN_PARSE_LIST: List[Tuple[str, MonoSaccharide]] = sorted(
    _BY_NAME.items(), key=lambda item: len(item[0]), reverse=True
)

Composition = Tuple[Tuple[MonoSaccharide, int], ...]

_COUNT = re.compile(r"-?\d+")


def match_sugar(text: str, index: int) -> Optional[Tuple[MonoSaccharide, int]]:
    """Find the monosaccharide name starting at ``index`` (case-insensitive)."""
    lowered = text[index:].lower()
    for name, sugar in GLYCAN_PARSE_LIST:
        if lowered.startswith(name):
            return sugar, len(name)
    return None


# =============================================================================
# Composition handling
# =============================================================================

def parse_composition(text: str) -> Composition:
    """Parse a ProForma glycan composition like ``Hex5HexNAc4``.

    A missing count means 1. The result is simplified (sorted, merged, zero
    counts dropped). Negative counts are kept: validity is checked where
    fragments are generated.

    Raises
    ------
    FormulaParseError
        For text that is not a monosaccharide name
    """
    index = 0
    output = []
    while index < len(text):
        if text[index] == " ":
            index += 1
            continue
        found = match_sugar(text, index)
        if found is None:
            raise FormulaParseError(
                "Invalid glycan composition",
                "Could not recognise this monosaccharide",
                text, index, len(text) - index,
            )
        sugar, length = found
        index += length
        number = _COUNT.match(text, index)
        if number is None:
            count = 1
        else:
            count = int(number.group(0))
            index = number.end()
        output.append((sugar, count))
    return simplify_composition(output)


def simplify_composition(composition: Sequence[Tuple[MonoSaccharide, int]]) -> Composition:
    """Sort on monosaccharide, merge duplicates and drop zero counts."""
    order = {sugar: i for i, sugar in enumerate(MonoSaccharide)}
    merged: Dict[MonoSaccharide, int] = {}
    for sugar, count in composition:
        merged[sugar] = merged.get(sugar, 0) + count
    return tuple(
        (sugar, count)
        for sugar, count in sorted(merged.items(), key=lambda item: order[item[0]])
        if count != 0
    )


def is_valid_composition(composition: Composition) -> bool:
    """Every count must be non-negative and below ``MAX_GLYCAN_COUNT``."""
    return all(0 <= count < MAX_GLYCAN_COUNT for _, count in composition)


def composition_formula(composition: Sequence[Tuple[MonoSaccharide, int]]) -> MolecularFormula:
    return sum((sugar.formula() * count for sugar, count in composition), MolecularFormula())


def composition_size(composition: Sequence[Tuple[MonoSaccharide, int]]) -> int:
    return sum(count for _, count in composition)


def format_composition(composition: Sequence[Tuple[MonoSaccharide, int]]) -> str:
    return "".join(f"{sugar}{count}" for sugar, count in composition)


def composition_left_over(composition: Composition, remove: Composition) -> Composition:
    """What is left of ``composition`` after ``remove`` broke off, zeros dropped."""
    removed = dict(remove)
    output = []
    for sugar, count in composition:
        left = count - removed.get(sugar, 0)
        if left != 0:
            output.append((sugar, left))
    return tuple(output)


def composition_options(
    composition: Composition, size_range: Tuple[Optional[int], Optional[int]]
) -> List[Composition]:
    """All unique sub-compositions with a total size within ``size_range``.

    Works incrementally over the monosaccharides: every sugar seeds fresh
    options of 1 up to its count, and extends every option built so far by 1
    up to its count. An option only keeps growing while below the maximum.

    Parameters
    ----------
    composition : tuple of (MonoSaccharide, int)
        The full composition, assumed simplified and valid
    size_range : (int or None, int or None)
        Inclusive minimum and maximum number of monosaccharides

    Returns
    -------
    list of composition
        Empty when the maximum is 0

    Examples
    --------
    >>> comp = parse_composition("Hex1Hep2")
    >>> [format_composition(c) for c in composition_options(comp, (2, 2))]
    ['Hep2', 'Hex1Hep1']
    """
    minimum, maximum = size_range
    if maximum == 0:
        return []

    def fits(size: int) -> bool:
        return (minimum is None or size >= minimum) and (maximum is None or size <= maximum)

    options: List[Composition] = []
    result: List[Composition] = []
    for sugar, available in composition:
        new_options: List[Composition] = []
        for n in range(1, available + 1):
            fresh = ((sugar, n),)
            if fits(n):
                result.append(fresh)
            new_options.append(fresh)
        for n in range(1, available + 1):
            for option in options:
                extended = option + ((sugar, n),)
                size = composition_size(extended)
                if maximum is not None and size > maximum:
                    continue
                if fits(size):
                    result.append(extended)
                if maximum is None or size < maximum:
                    new_options.append(extended)
        options.extend(new_options)
    return result
