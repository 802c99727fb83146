"""Exception types raised by AlphaFrag.

Parse errors remember where in the input text they happened so a caller can
point at the offending token. Errors about the chemistry itself (an isotope
without a known mass, a linker that does not fit) carry a plain message.
"""

from dataclasses import dataclass
from typing import Any, Optional


class AlphaFragError(Exception):
    """Base class for all AlphaFrag errors."""


class FormulaParseError(AlphaFragError, ValueError):
    """Malformed text in one of the formula, loss or rule grammars.

    Parameters
    ----------
    title : str
        Short description, e.g. "Invalid ProForma molecular formula"
    explanation : str
        Human readable cause
    text : str
        The full input that was being parsed
    offset, length : int
        Byte span of the offending token inside ``text``
    """

    def __init__(
        self,
        title: str,
        explanation: str,
        text: str = "",
        offset: int = 0,
        length: int = 0,
    ):
        self.title = title
        self.explanation = explanation
        self.text = text
        self.offset = offset
        self.length = length
        super().__init__(str(self))

    def __str__(self) -> str:
        return (
            f"{self.title}: {self.explanation} "
            f"(at {self.offset}..{self.offset + self.length} in '{self.text}')"
        )


class ProFormaParseError(FormulaParseError):
    """Malformed ProForma peptidoform text."""


class InvalidFormulaError(AlphaFragError, ValueError):
    """An element/isotope combination without a known mass."""


class PlacementError(AlphaFragError):
    """A modification forced onto a position its rules do not allow."""


class CrossLinkError(AlphaFragError):
    """Inconsistent cross-link definitions in a peptidoform."""


class UnconnectedPeptidoformError(CrossLinkError):
    """Not all chains of a peptidoform ion are reachable through cross-links."""


class UnknownPositionError(AlphaFragError):
    """A modification of unknown position that fits nowhere on the peptide."""

    def __init__(self, name: str, group: Optional[int] = None):
        self.name = name
        self.group = group
        group_text = "(no group)" if group is None else str(group)
        super().__init__(
            "Modification of unknown position cannot be placed: there is no position "
            "where this modification can be placed based on its placement rules "
            f"(Name: {name}, Group: {group_text})"
        )


@dataclass(frozen=True)
class PlacementWarning:
    """A rule violation found while auditing an already built peptidoform.

    Enforcement collects these instead of raising :class:`PlacementError`.
    """

    message: str
    peptidoform_index: int = 0
    position: Any = None

    def __str__(self) -> str:
        return self.message
