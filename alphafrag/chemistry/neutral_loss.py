"""Neutral losses and diagnostic ions.

Grammar of a neutral loss (``NeutralLoss.parse``):

- ``-H2O`` / ``+H2O``: loss or gain of one formula
- ``-2H2O``: loss of the formula twice
- ``-17.03`` / ``+1x12``: numeric masses, optionally with a count

Adding a loss to a formula (``formula + loss``) adds or subtracts the
formula ``count`` times; a side chain loss subtracts the side chain.
"""

import re
from dataclasses import dataclass
from typing import Any

from ..errors import FormulaParseError
from .formula import MolecularFormula
from .multi import Multi
from .parsing import parse_pro_forma

_TITLE = "Invalid neutral loss"
_NUMBER = re.compile(r"[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?$")


@dataclass(frozen=True)
class NeutralLoss:
    """Base of :class:`Gain`, :class:`Loss` and :class:`SideChainLoss`."""

    def signed_formula(self) -> MolecularFormula:
        raise NotImplementedError

    def is_empty(self) -> bool:
        return self.signed_formula().is_empty()

    def __radd__(self, other):
        if isinstance(other, MolecularFormula):
            return other + self.signed_formula()
        if isinstance(other, Multi):
            return other + self.signed_formula()
        return NotImplemented

    def _notation(self, sign: str, count: int, formula: MolecularFormula, render, times: str) -> str:
        text = render(formula).lstrip("+")
        if not formula.elements and count != 1:
            return f"{sign}{count}{times}{text}"
        if count == 1:
            return f"{sign}{text}"
        return f"{sign}{count}{text}"

    def __str__(self) -> str:
        return self.hill_notation()

    @staticmethod
    def parse(text: str) -> "NeutralLoss":
        """Parse a neutral loss like ``-H2O``, ``+2NH3`` or ``-1x17.03``.

        Raises
        ------
        FormulaParseError
            For empty text, a missing sign or an invalid formula
        """
        if _NUMBER.match(text):
            number = float(text)
            if number >= 0.0:
                return Gain(1, MolecularFormula.with_additional_mass(number))
            return Loss(1, MolecularFormula.with_additional_mass(abs(number)))
        if ("x" in text and "xe" not in text) or "×" in text:
            start, _, end = text.replace("×", "x").partition("x")
            if not start.startswith(("+", "-")):
                raise FormulaParseError(
                    _TITLE, "A neutral loss can only start with '+' or '-'", text, 0, 1
                )
            if not re.fullmatch(r"[+-]\d+", start):
                raise FormulaParseError(
                    _TITLE,
                    "The text before the times symbol should be a valid number, like: `-1x12`",
                    text, 0, len(start),
                )
            if not _NUMBER.match(end):
                raise FormulaParseError(
                    _TITLE,
                    "The text after the times symbol should be a valid number, like: `-1x12`",
                    text, len(start) + 1, len(end),
                )
            amount = int(start)
            mass = MolecularFormula.with_additional_mass(float(end))
            return Gain(amount, mass) if amount >= 0 else Loss(-amount, mass)
        if not text:
            raise FormulaParseError(_TITLE, "A neutral loss cannot be an empty string", text)
        if text[0] not in "+-":
            raise FormulaParseError(_TITLE, "A neutral loss can only start with '+' or '-'", text, 0, 1)
        amount_text = re.match(r"\d*", text[1:]).group(0)
        amount = 1
        if amount_text:
            amount = int(amount_text)
            if amount >= 2**16:
                raise FormulaParseError(
                    _TITLE, "The amount specifier is too big to fit", text, 1, len(amount_text)
                )
        try:
            formula = parse_pro_forma(text[1 + len(amount_text):], allow_charge=False)
        except FormulaParseError as err:
            raise FormulaParseError(
                err.title, err.explanation, text, err.offset + 1 + len(amount_text), err.length
            ) from err
        return Loss(amount, formula) if text[0] == "-" else Gain(amount, formula)


@dataclass(frozen=True)
class Gain(NeutralLoss):
    count: int
    formula: MolecularFormula

    def signed_formula(self) -> MolecularFormula:
        return self.formula * self.count

    def hill_notation(self) -> str:
        return self._notation("+", self.count, self.formula, MolecularFormula.hill_notation, "x")

    def hill_notation_fancy(self) -> str:
        return self._notation("+", self.count, self.formula, MolecularFormula.hill_notation_fancy, "×")

    def hill_notation_html(self) -> str:
        return self._notation("+", self.count, self.formula, MolecularFormula.hill_notation_html, "×")


@dataclass(frozen=True)
class Loss(NeutralLoss):
    count: int
    formula: MolecularFormula

    def signed_formula(self) -> MolecularFormula:
        return -(self.formula * self.count)

    def hill_notation(self) -> str:
        return self._notation("-", self.count, self.formula, MolecularFormula.hill_notation, "x")

    def hill_notation_fancy(self) -> str:
        return self._notation("-", self.count, self.formula, MolecularFormula.hill_notation_fancy, "×")

    def hill_notation_html(self) -> str:
        return self._notation("-", self.count, self.formula, MolecularFormula.hill_notation_html, "×")


@dataclass(frozen=True)
class SideChainLoss(NeutralLoss):
    """Loss of the full side chain of ``aminoacid``."""

    formula: MolecularFormula
    aminoacid: Any

    def signed_formula(self) -> MolecularFormula:
        return -self.formula

    def hill_notation(self) -> str:
        return f"-sidechain_{self.aminoacid}"

    hill_notation_fancy = hill_notation
    hill_notation_html = hill_notation


@dataclass(frozen=True)
class DiagnosticIon:
    """A characteristic low mass ion, stored as its neutral formula."""

    formula: MolecularFormula

    def __str__(self) -> str:
        return str(self.formula)


def loss(text: str) -> NeutralLoss:
    """Shorthand for :meth:`NeutralLoss.parse`."""
    return NeutralLoss.parse(text)
