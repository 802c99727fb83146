"""Text grammars for molecular formulas.

All dialects parse into the same :class:`MolecularFormula` and report
problems as :class:`FormulaParseError` carrying the byte span of the
offending token.

Dialects
--------
- ProForma: ``C2H3NO``, ``[13C2][12C-2]H2N``, ``H2O:z+1``, ``H2O+15.9949``,
  ``(empty)``
- PSI-MOD: ``(12)C -5 (13)C 5 H 1 N 3 O -1 S 9``
- Unimod composition: ``H(2) C(-2) 13C(2) N O``, with shorthands like ``Hex``
- XL-MOD: ``C7 D10 H2 N4 O2 -H``, ``D`` meaning deuterium
- RESID: ``C 5 H 9 N 1 O 2 S 1 +``, comma separated alternatives

The ProForma scan is a single left to right pass with one pending element:
every new element symbol first flushes the pending one with count 1.
"""

import logging
import re
from typing import List, Optional

from ..errors import FormulaParseError, InvalidFormulaError
from .elements import ELEMENT_PARSE_LIST, Element
from .formula import MolecularFormula

logger = logging.getLogger(__name__)

_PRO_FORMA = "Invalid ProForma molecular formula"
_PSI_MOD = "Invalid PSI-MOD molecular formula"
_UNIMOD = "Invalid Unimod chemical formula"
_XLMOD = "Invalid Xlmod molecular formula"
_RESID = "Invalid RESID molecular formula"

# Signed decimal mass term, a plain signed integer after an element is a count
_MASS = re.compile(r"[+-]\d+(?:\.\d*(?:[eE][+-]?\d+)?|[eE][+-]?\d+)")


def _explain_number(kind: str, text: str) -> str:
    if text in ("", "+", "-"):
        return f"The {kind} is empty"
    if re.fullmatch(r"[+-]?\d+", text):
        return f"The {kind} is too big to fit"
    return f"The {kind} is not a valid number"


def _to_int(title: str, kind: str, text: str, value: str, offset: int, positive: bool = False) -> int:
    if re.fullmatch(r"[+-]?\d+", value):
        number = int(value)
        # Counts are 32 bit signed, isotopes 16 bit non zero
        if positive:
            if 0 < number < 2**16 and not value.startswith(("+", "-")):
                return number
            if number == 0:
                raise FormulaParseError(title, f"The {kind} is zero", text, offset, len(value))
        elif -(2**31) <= number < 2**31:
            return number
    raise FormulaParseError(title, _explain_number(kind, value), text, offset, len(value))


def _match_element(text: str, index: int) -> Optional[str]:
    for symbol, _ in ELEMENT_PARSE_LIST:
        if text.startswith(symbol, index):
            return symbol
    return None


def _add(title, result, element, isotope, count, text, offset, length):
    try:
        return result.add(element, isotope, count)
    except InvalidFormulaError as err:
        raise FormulaParseError(title, str(err), text, offset, length) from err


# =============================================================================
# ProForma
# =============================================================================

def parse_pro_forma(
    text: str, allow_charge: bool = True, allow_empty: bool = False
) -> MolecularFormula:
    """Parse a ProForma elemental formula.

    Parameters
    ----------
    text : str
        Formula like ``C2H3N1O1``; isotopes as ``[13C2]``; spaces are ignored
    allow_charge : bool
        Accept a trailing ``:z+N`` / ``:z-N`` charge (stored as electrons).
        A signed decimal like ``+15.9949`` adds a monoisotopic mass shift
    allow_empty : bool
        Accept an empty string or the ``(empty)`` literal

    Returns
    -------
    MolecularFormula

    Raises
    ------
    FormulaParseError
        With the span of the offending token

    Examples
    --------
    >>> f = parse_pro_forma("[13C2][12C-2]H2N")
    >>> f.count(Element.C, 13), f.count(Element.C, 12)
    (2, -2)
    """
    if text.strip() in ("", "(empty)"):
        if allow_empty:
            return MolecularFormula()
        raise FormulaParseError(_PRO_FORMA, "The formula is empty", text, 0, len(text))

    result = MolecularFormula()
    pending: Optional[Element] = None
    pending_at = 0
    index = 0
    end = len(text)
    while index < end:
        char = text[index]
        if char == "[":
            close = text.find("]", index)
            if close == -1:
                raise FormulaParseError(
                    _PRO_FORMA, "No closing square bracket found", text, index, 1
                )
            if pending is not None:
                result = _add(_PRO_FORMA, result, pending, None, 1, text, pending_at, len(pending.symbol))
                pending = None
            inner_start = index + 1
            match = re.match(r" *(\d*) *([A-Za-z]*) *([-+\d]*) *$", text[inner_start:close])
            if match is None:
                raise FormulaParseError(
                    _PRO_FORMA, "Invalid isotope block", text, index, close - index + 1
                )
            symbol = match.group(2)
            element = next((e for s, e in ELEMENT_PARSE_LIST if s == symbol), None)
            if element is None:
                raise FormulaParseError(
                    _PRO_FORMA, "Invalid element", text, inner_start + match.start(2), len(symbol)
                )
            count = _to_int(
                _PRO_FORMA, "element number", text, match.group(3), inner_start + match.start(3)
            )
            isotope = _to_int(
                _PRO_FORMA, "isotope number", text, match.group(1),
                inner_start + match.start(1), positive=True,
            )
            result = _add(_PRO_FORMA, result, element, isotope, count, text, index, close - index + 1)
            index = close + 1
        elif char in "+-" and _MASS.match(text, index):
            if pending is not None:
                result = _add(_PRO_FORMA, result, pending, None, 1, text, pending_at, len(pending.symbol))
                pending = None
            mass = _MASS.match(text, index).group(0)
            result = result + MolecularFormula.with_additional_mass(float(mass))
            index += len(mass)
        elif (char == "-" or char.isdigit()) and pending is not None:
            length = len(re.match(r"[-\d]*", text[index:]).group(0))
            count = _to_int(_PRO_FORMA, "element number", text, text[index:index + length], index)
            if count != 0:
                result = _add(
                    _PRO_FORMA, result, pending, None, count, text, pending_at, len(pending.symbol)
                )
            pending = None
            index += length
        elif char in " \t":
            index += 1
        elif char == ":" and allow_charge:
            if text.startswith(":z", index):
                charge = _to_int(_PRO_FORMA, "charge number", text, text[index + 2:].strip(), index + 2)
                if pending is not None:
                    result = _add(
                        _PRO_FORMA, result, pending, None, 1, text, pending_at, len(pending.symbol)
                    )
                    pending = None
                result = result.add(Element.Electron, None, -charge)
                index = end
                break
            raise FormulaParseError(
                _PRO_FORMA,
                "A charge tag was not set up properly, a charge tag should be formed as "
                "':z<sign><number>'",
                text, index, 2,
            )
        else:
            if pending is not None:
                result = _add(_PRO_FORMA, result, pending, None, 1, text, pending_at, len(pending.symbol))
                pending = None
            symbol = _match_element(text, index)
            if symbol is None:
                raise FormulaParseError(
                    _PRO_FORMA, "Not a valid character in formula", text, index, 1
                )
            pending = Element.from_symbol(symbol)
            pending_at = index
            index += len(symbol)
    if pending is not None:
        result = _add(_PRO_FORMA, result, pending, None, 1, text, pending_at, len(pending.symbol))
    if not allow_empty and result.is_empty():
        raise FormulaParseError(_PRO_FORMA, "The formula is empty", text, 0, len(text))
    return result


# =============================================================================
# PSI-MOD
# =============================================================================

def parse_psi_mod(text: str) -> MolecularFormula:
    """Parse a PSI-MOD ``DiffFormula``, e.g. ``(12)C -5 (13)C 5 H 1``.

    Every element needs an explicit count.
    """
    result = MolecularFormula()
    isotope = None
    pending: Optional[Element] = None
    index = 0
    while index < len(text):
        char = text[index]
        if char == "(" and isotope is None:
            close = text.find(")", index)
            if close == -1:
                raise FormulaParseError(_PSI_MOD, "No closing round bracket found", text, index, 1)
            isotope = _to_int(
                _PSI_MOD, "isotope number", text, text[index + 1:close], index + 1, positive=True
            )
            index = close + 1
        elif (char == "-" or char.isdigit()) and pending is not None:
            length = len(re.match(r"[-\d]*", text[index:]).group(0))
            count = _to_int(_PSI_MOD, "element number", text, text[index:index + length], index)
            if count != 0:
                result = _add(_PSI_MOD, result, pending, isotope, count, text, index - 1, 1)
            pending = None
            isotope = None
            index += length
        elif char in " \t":
            index += 1
        else:
            if pending is not None:
                result = _add(_PSI_MOD, result, pending, None, 1, text, index - 1, 1)
            symbol = _match_element(text, index)
            if symbol is None:
                raise FormulaParseError(_PSI_MOD, "Not a valid character in formula", text, index, 1)
            pending = Element.from_symbol(symbol)
            index += len(symbol)
    if isotope is not None or pending is not None:
        raise FormulaParseError(_PSI_MOD, "Last element missed a count", text, index, 1)
    return result


# =============================================================================
# Unimod
# =============================================================================

# Unimod composition bricks that are not elements
_UNIMOD_BRICKS = {
    "ac": "C2H2O",
    "me": "CH2",
    "kdn": "C9H14O8",
    "kdo": "C8H12O7",
    "sulf": "SO3",
    "phos": "PO3",
    "water": "H2O",
    "hex": "C6H10O5",
    "hexnac": "C8H13NO5",
    "dhex": "C6H10O4",
    "neuac": "C11H17NO8",
    "neugc": "C11H17NO9",
    "pent": "C5H8O4",
    "hexa": "C6H8O6",
    "hexn": "C6H11NO4",
}


def _unimod_brick(text: str, start: int, name: str, isotope: Optional[int], count: int, result):
    element = next((e for s, e in ELEMENT_PARSE_LIST if s.lower() == name.lower()), None)
    if element is not None:
        return _add(_UNIMOD, result, element, isotope, count, text, start, len(name))
    brick = _UNIMOD_BRICKS.get(name.lower())
    if brick is None:
        raise FormulaParseError(
            _UNIMOD,
            "Unknown Unimod composition brick, use an element or one of the unimod "
            "shorthands. Eg: 'H(13) C(12) N O(3)'.",
            text, start, len(name),
        )
    return result + parse_pro_forma(brick) * count


def parse_unimod(text: str) -> MolecularFormula:
    """Parse a Unimod composition, e.g. ``H(2) C(-2) 13C(2) N O``."""
    result = MolecularFormula()
    for match in re.finditer(r"\S+", text):
        token = match.group(0)
        parts = re.fullmatch(r"(\d*)([A-Za-z]+)(?:\(([-+]?\d*)(\)?))?", token)
        if parts is None:
            raise FormulaParseError(
                _UNIMOD, "Not a valid composition brick", text, match.start(), len(token)
            )
        isotope_text, name, amount, closed = parts.groups()
        isotope = None
        if isotope_text:
            isotope = _to_int(_UNIMOD, "isotope", text, isotope_text, match.start(), positive=True)
        count = 1
        if amount is not None:
            amount_at = match.start() + len(isotope_text) + len(name) + 1
            if not closed:
                raise FormulaParseError(
                    _UNIMOD, "The amount of an element should be closed by ')'",
                    text, amount_at + len(amount), 1,
                )
            count = _to_int(_UNIMOD, "element amount", text, amount, amount_at)
        result = _unimod_brick(
            text, match.start() + len(isotope_text), name, isotope, count, result
        )
    return result


# =============================================================================
# XL-MOD
# =============================================================================

def parse_xlmod(text: str) -> MolecularFormula:
    """Parse an XL-MOD formula, e.g. ``C7 D10 H2 N4 O2``.

    Blocks are whitespace separated ``[-][isotope]Element[count]``; ``D`` is
    hydrogen isotope 2.
    """
    result = MolecularFormula()
    for match in re.finditer(r"\S+", text):
        block = match.group(0)
        offset = match.start()
        parts = re.fullmatch(r"(-?)(\d*)([A-Za-z]*)(\d*)", block)
        if parts is None or not parts.group(3):
            raise FormulaParseError(_XLMOD, "No element is defined", text, offset, len(block))
        negative, isotope_text, symbol, number = parts.groups()
        element_at = offset + len(negative) + len(isotope_text)
        isotope = None
        if symbol == "D":
            if isotope_text:
                raise FormulaParseError(
                    _XLMOD,
                    "A deuterium cannot have a defined isotope as deuterium is by definition "
                    "always isotope 2 of hydrogen",
                    text, offset + len(negative), len(isotope_text),
                )
            element, isotope = Element.H, 2
        else:
            element = next((e for s, e in ELEMENT_PARSE_LIST if s == symbol), None)
            if element is None:
                raise FormulaParseError(
                    _XLMOD, "Not a valid character in formula", text, element_at, len(symbol)
                )
            if isotope_text:
                isotope = _to_int(
                    _XLMOD, "isotope number", text, isotope_text, offset + len(negative), positive=True
                )
        count = _to_int(_XLMOD, "element count", text, number, element_at + len(symbol)) if number else 1
        if negative:
            count = -count
        result = _add(_XLMOD, result, element, isotope, count, text, element_at, len(symbol))
    return result


# =============================================================================
# RESID
# =============================================================================

def parse_resid_single(text: str, offset: int = 0, full_text: Optional[str] = None) -> MolecularFormula:
    """Parse one RESID formula, e.g. ``C 5 H 9 N 1 O 2 S 1 +``.

    A ``+`` or ``-`` sign stands for a charge (one electron less or more).
    """
    full_text = text if full_text is None else full_text
    result = MolecularFormula()
    index = 0
    while index < len(text):
        if text[index].isspace():
            index += 1
            continue
        symbol = _match_element(text, index)
        amount = 1
        if symbol is not None:
            element = Element.from_symbol(symbol)
            index += len(symbol)
        elif text[index] == "+":
            element, amount = Element.Electron, -1
            index += 1
        elif text[index] == "-":
            element = Element.Electron
            index += 1
        else:
            raise FormulaParseError(
                _RESID,
                f"Not a valid character in formula, now has: {result}",
                full_text, offset + index, 1,
            )
        while index < len(text) and text[index].isspace():
            index += 1
        number = re.match(r"\d+", text[index:])
        if number is not None:
            amount *= int(number.group(0))
            index += len(number.group(0))
        result = _add(_RESID, result, element, None, amount, full_text, offset + index, 1)
    return result


def parse_resid(text: str) -> List[MolecularFormula]:
    """Parse comma separated RESID formulas into alternatives."""
    alternatives = []
    start = 0
    for part in text.split(","):
        alternatives.append(parse_resid_single(part, start, text))
        start += len(part) + 1
    return alternatives
