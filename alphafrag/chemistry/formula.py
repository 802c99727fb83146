"""Molecular formula algebra.

A :class:`MolecularFormula` is an immutable multiset of
``(element, isotope, count)`` triples plus a free floating additional mass
and a set of provenance labels. The triples are always canonical: sorted on
element then isotope, no zero counts, every (element, isotope) pair at most
once. Every operation returns a new, re-canonicalised formula.

Key Features
------------
- Pointwise arithmetic (``+``, ``-``, ``*`` by integer or integral fraction,
  ``sum``) that funnels through one validity gate (:meth:`MolecularFormula.add`)
- Monoisotopic, average and most abundant masses (:class:`MassMode`)
- Hill notation in ASCII, fancy unicode and HTML; the ASCII form, additional
  mass (``+15.9949``) and charge (``:z+1``) included, parses back to the same
  formula
- Charges are stored as (negative) electron counts, ``:z+1`` in text

Examples
--------
>>> water = MolecularFormula([(Element.H, None, 2), (Element.O, None, 1)])
>>> water.hill_notation()
'H2O'
>>> round(water.monoisotopic_mass(), 4)
18.0106
"""

from __future__ import annotations

import logging
from enum import Enum
from fractions import Fraction
from functools import total_ordering
from typing import Dict, Iterable, Optional, Tuple

import numpy as np

from ..constants import DEFAULT_ISOTOPE_THRESHOLD, ISOTOPE_SPACING, MOST_ABUNDANT_THRESHOLD
from ..errors import InvalidFormulaError
from .elements import Element
from .labels import AmbiguousLabel

logger = logging.getLogger(__name__)

ElementCount = Tuple[Element, Optional[int], int]

_SUBSCRIPT = str.maketrans("0123456789-", "₀₁₂₃₄₅₆₇₈₉₋")
_SUPERSCRIPT = str.maketrans("0123456789+-", "⁰¹²³⁴⁵⁶⁷⁸⁹⁺⁻")


class MassMode(Enum):
    """Which scalar mass to use where a formula has to become a number."""

    MONOISOTOPIC = "monoisotopic"
    AVERAGE = "average"
    MOST_ABUNDANT = "most_abundant"


def _check(element: Element, isotope: Optional[int], count: int):
    if count != 0 and not element.is_valid(isotope):
        name = element.symbol if isotope is None else f"{isotope}{element.symbol}"
        raise InvalidFormulaError(f"No known mass for {name}")


def _canonical(counts: Dict[Tuple[Element, Optional[int]], int]) -> Tuple[ElementCount, ...]:
    return tuple(
        (element, isotope, count)
        for (element, isotope), count in sorted(
            counts.items(), key=lambda item: (item[0][0].number, item[0][1] or 0)
        )
        if count != 0
    )


def _merge_labels(a: Tuple[AmbiguousLabel, ...], b: Tuple[AmbiguousLabel, ...]):
    if not b:
        return a
    if not a:
        return b
    return tuple(dict.fromkeys(a + b))


@total_ordering
class MolecularFormula:
    """An elemental formula with additional mass and provenance labels.

    Parameters
    ----------
    elements : iterable of (Element, isotope or None, int)
        Triples in any order; duplicates are merged and zeros dropped
    additional_mass : float
        Monoisotopic-only mass from numeric mass shifts (Da)
    labels : iterable of AmbiguousLabel
        Provenance of this formula, part of equality and hashing

    Raises
    ------
    InvalidFormulaError
        If an element has no known mass for the requested isotope
    """

    __slots__ = ("_elements", "_additional_mass", "_labels")

    def __init__(
        self,
        elements: Iterable[ElementCount] = (),
        additional_mass: float = 0.0,
        labels: Iterable[AmbiguousLabel] = (),
    ):
        counts: Dict[Tuple[Element, Optional[int]], int] = {}
        for element, isotope, count in elements:
            _check(element, isotope, count)
            counts[(element, isotope)] = counts.get((element, isotope), 0) + int(count)
        self._elements = _canonical(counts)
        self._additional_mass = float(additional_mass)
        self._labels = tuple(dict.fromkeys(labels))

    @classmethod
    def _new(cls, elements, additional_mass, labels) -> "MolecularFormula":
        formula = cls.__new__(cls)
        formula._elements = elements
        formula._additional_mass = additional_mass
        formula._labels = labels
        return formula

    @classmethod
    def from_pro_forma(
        cls, text: str, allow_charge: bool = True, allow_empty: bool = False
    ) -> "MolecularFormula":
        """Parse the ProForma formula dialect, see :func:`parsing.parse_pro_forma`."""
        from .parsing import parse_pro_forma

        return parse_pro_forma(text, allow_charge=allow_charge, allow_empty=allow_empty)

    @classmethod
    def with_additional_mass(cls, mass: float) -> "MolecularFormula":
        return cls((), additional_mass=mass)

    # =========================================================================
    # Accessors
    # =========================================================================

    @property
    def elements(self) -> Tuple[ElementCount, ...]:
        return self._elements

    @property
    def additional_mass(self) -> float:
        return self._additional_mass

    @property
    def labels(self) -> Tuple[AmbiguousLabel, ...]:
        return self._labels

    def is_empty(self) -> bool:
        return not self._elements and self._additional_mass == 0.0

    def count(self, element: Element, isotope: Optional[int] = None) -> int:
        for e, i, c in self._elements:
            if e is element and i == isotope:
                return c
        return 0

    def charge(self) -> int:
        """Net charge, as the negated number of electrons."""
        return -self.count(Element.Electron)

    # =========================================================================
    # Construction
    # =========================================================================

    def add(self, element: Element, isotope: Optional[int], count: int) -> "MolecularFormula":
        """Return a copy with ``count`` extra atoms of ``element``/``isotope``.

        This is the validity gate of the algebra: an element without a known
        mass for ``isotope`` raises :class:`InvalidFormulaError`. A count of 0
        is a no-op.
        """
        _check(element, isotope, count)
        if count == 0:
            return self
        counts = {(e, i): c for e, i, c in self._elements}
        counts[(element, isotope)] = counts.get((element, isotope), 0) + count
        return MolecularFormula._new(_canonical(counts), self._additional_mass, self._labels)

    def with_label(self, label: AmbiguousLabel) -> "MolecularFormula":
        return MolecularFormula._new(
            self._elements, self._additional_mass, _merge_labels(self._labels, (label,))
        )

    def with_labels(self, labels: Iterable[AmbiguousLabel]) -> "MolecularFormula":
        return MolecularFormula._new(
            self._elements, self._additional_mass, _merge_labels(self._labels, tuple(labels))
        )

    def without_labels(self) -> "MolecularFormula":
        return MolecularFormula._new(self._elements, self._additional_mass, ())

    def with_global_isotope(self, element: Element, isotope: int) -> "MolecularFormula":
        """Replace all natural ``element`` atoms by ``isotope``."""
        natural = self.count(element)
        if natural == 0:
            return self
        return self.add(element, None, -natural).add(element, isotope, natural)

    # =========================================================================
    # Arithmetic
    # =========================================================================

    def _combine(self, other: "MolecularFormula", sign: int) -> "MolecularFormula":
        if not other._elements:
            elements = self._elements
        else:
            counts = {(e, i): c for e, i, c in self._elements}
            for e, i, c in other._elements:
                counts[(e, i)] = counts.get((e, i), 0) + sign * c
            elements = _canonical(counts)
        return MolecularFormula._new(
            elements,
            self._additional_mass + sign * other._additional_mass,
            _merge_labels(self._labels, other._labels),
        )

    def __add__(self, other):
        if isinstance(other, MolecularFormula):
            return self._combine(other, 1)
        return NotImplemented

    def __radd__(self, other):
        # Allows sum() over formulas
        if isinstance(other, int) and other == 0:
            return self
        return NotImplemented

    def __sub__(self, other):
        if isinstance(other, MolecularFormula):
            return self._combine(other, -1)
        return NotImplemented

    def __neg__(self) -> "MolecularFormula":
        return MolecularFormula._new(
            tuple((e, i, -c) for e, i, c in self._elements),
            -self._additional_mass,
            self._labels,
        )

    def __mul__(self, factor):
        if isinstance(factor, bool) or not isinstance(factor, (int, Fraction)):
            return NotImplemented
        if factor == 0:
            return MolecularFormula._new((), 0.0, self._labels)
        elements = []
        for e, i, c in self._elements:
            scaled = c * factor
            if isinstance(scaled, Fraction):
                if scaled.denominator != 1:
                    raise ValueError(f"Cannot take {factor} of {c} {e.symbol} atoms")
                scaled = scaled.numerator
            elements.append((e, i, scaled))
        return MolecularFormula._new(
            tuple(elements), self._additional_mass * float(factor), self._labels
        )

    __rmul__ = __mul__

    # =========================================================================
    # Comparison
    # =========================================================================

    def _key(self):
        return (
            tuple((e.number, i or 0, c) for e, i, c in self._elements),
            self._additional_mass,
            tuple(sorted(str(label) for label in self._labels)),
        )

    def __eq__(self, other):
        if not isinstance(other, MolecularFormula):
            return NotImplemented
        return (
            self._elements == other._elements
            and self._additional_mass == other._additional_mass
            and set(self._labels) == set(other._labels)
        )

    def __lt__(self, other):
        if not isinstance(other, MolecularFormula):
            return NotImplemented
        return self._key() < other._key()

    def __hash__(self):
        return hash((self._elements, self._additional_mass, frozenset(self._labels)))

    # =========================================================================
    # Masses
    # =========================================================================

    def monoisotopic_mass(self) -> float:
        """Sum of the exact masses of all atoms plus the additional mass (Da)."""
        return self._additional_mass + sum(e.mass(i) * c for e, i, c in self._elements)

    def average_weight(self) -> float:
        return self._additional_mass + sum(e.average_weight(i) * c for e, i, c in self._elements)

    def most_abundant_mass(self, threshold: float = MOST_ABUNDANT_THRESHOLD) -> float:
        """Monoisotopic mass shifted to the highest bin of the isotope envelope.

        The envelope is cut at ``threshold`` (0.01 by default), which is
        plenty to find its highest bin. Bin 0 of the envelope is the lightest
        isotope of every element, so for elements like Fe, Ni and Se, whose
        lightest isotope is not the monoisotopic one, the shift is counted
        from that lightest isotope: ``formula("Fe").most_abundant_mass()``
        is 57.94 while 56Fe, at 55.93, is the most abundant isotope.
        """
        distribution = self.isotopic_distribution(threshold)
        return self.monoisotopic_mass() + int(np.argmax(distribution)) * ISOTOPE_SPACING

    def mass(self, mode: MassMode = MassMode.MONOISOTOPIC) -> float:
        if mode == MassMode.MONOISOTOPIC:
            return self.monoisotopic_mass()
        if mode == MassMode.AVERAGE:
            return self.average_weight()
        if mode == MassMode.MOST_ABUNDANT:
            return self.most_abundant_mass()
        raise ValueError(f"Unknown mass mode: {mode}")

    def isotopic_distribution(self, threshold: float = DEFAULT_ISOTOPE_THRESHOLD) -> np.ndarray:
        """Probability per integer Dalton offset, see :mod:`.isotopes`."""
        from .isotopes import isotopic_distribution

        return isotopic_distribution(self, threshold)

    # =========================================================================
    # Hill Notation
    # =========================================================================

    def _hill_order(self):
        has_carbon = any(e is Element.C for e, _, _ in self._elements)

        def key(entry):
            element, isotope, _ = entry
            if has_carbon and element is Element.C:
                rank = 0
            elif has_carbon and element is Element.H:
                rank = 1
            else:
                rank = 2
            return (rank, element.symbol, isotope or 0)

        return sorted(
            (entry for entry in self._elements if entry[0] is not Element.Electron), key=key
        )

    def _hill(self, style: str) -> str:
        parts = []
        for element, isotope, count in self._hill_order():
            if style == "ascii":
                if isotope is not None:
                    parts.append(f"[{isotope}{element.symbol}{count}]")
                else:
                    parts.append(element.symbol if count == 1 else f"{element.symbol}{count}")
            else:
                number = "" if count == 1 else str(count)
                if style == "fancy":
                    prefix = str(isotope).translate(_SUPERSCRIPT) if isotope else ""
                    parts.append(f"{prefix}{element.symbol}{number.translate(_SUBSCRIPT)}")
                else:
                    prefix = f"<sup>{isotope}</sup>" if isotope else ""
                    suffix = f"<sub>{number}</sub>" if number else ""
                    parts.append(f"{prefix}{element.symbol}{suffix}")
        if self._additional_mass != 0.0:
            parts.append(f"{self._additional_mass:+}")
        charge = self.charge()
        if charge != 0:
            if style == "ascii":
                parts.append(f":z{charge:+d}")
            else:
                text = ("" if abs(charge) == 1 else str(abs(charge))) + ("+" if charge > 0 else "-")
                parts.append(text.translate(_SUPERSCRIPT) if style == "fancy" else f"<sup>{text}</sup>")
        if not parts:
            return "(empty)"
        return "".join(parts)

    def hill_notation(self) -> str:
        """ASCII Hill notation, parseable by :meth:`from_pro_forma`.

        Examples
        --------
        >>> MolecularFormula.from_pro_forma("[13C2]H2N").hill_notation()
        '[13C2]H2N'
        """
        return self._hill("ascii")

    def hill_notation_fancy(self) -> str:
        return self._hill("fancy")

    def hill_notation_html(self) -> str:
        return self._hill("html")

    def __str__(self) -> str:
        return self.hill_notation()

    def __repr__(self) -> str:
        return f"MolecularFormula('{self.hill_notation()}')"


def formula(text: str) -> MolecularFormula:
    """Shorthand for :meth:`MolecularFormula.from_pro_forma` on trusted text."""
    return MolecularFormula.from_pro_forma(text, allow_charge=True, allow_empty=True)
