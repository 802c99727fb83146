"""Placement rules: where a modification may sit on a peptide.

A rule is checked against one residue and the slot it is being placed in
(the N-terminus, a side chain, or the C-terminus) and answers with a
ternary :class:`RulePossible`:

- ``YES``: allowed here
- ``ONLY_IF_NOT_TERMINAL``: the residue matches a side chain rule but the
  slot is a terminus, so it only fits on the side chain
- ``NO``: not allowed

Rules combine with OR semantics: any ``YES`` wins, then any
``ONLY_IF_NOT_TERMINAL``.

Text form (``PlacementRule.parse``): ``"C@Anywhere"``, ``"KR@AnyNTerm"``,
``"ProteinCTerm"``, ``"Anywhere"``.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import FrozenSet, Iterable, Optional

from ..errors import FormulaParseError
from .aminoacid import AminoAcid

_POSITION_HELP = (
    "Use any of the following for the position: Anywhere, AnyNTerm, ProteinNTerm, "
    "AnyCTerm, ProteinCTerm"
)


class RulePossible(Enum):
    NO = 0
    ONLY_IF_NOT_TERMINAL = 1
    YES = 2

    def __or__(self, other: "RulePossible") -> "RulePossible":
        return self if self.value >= other.value else other

    def any_possible(self) -> bool:
        return self is not RulePossible.NO


@dataclass(frozen=True, order=True)
class SequencePosition:
    """A slot on a peptide: the N-terminus, a residue index, or the C-terminus.

    Sorted N-terminus first, then by index, C-terminus last.
    """

    rank: int
    index: int = 0

    N_TERM = None  # type: SequencePosition
    C_TERM = None  # type: SequencePosition

    @classmethod
    def at(cls, index: int) -> "SequencePosition":
        return cls(1, index)

    @property
    def is_n_term(self) -> bool:
        return self.rank == 0

    @property
    def is_c_term(self) -> bool:
        return self.rank == 2

    @property
    def is_terminal(self) -> bool:
        return self.rank != 1

    def __str__(self) -> str:
        if self.is_n_term:
            return "N-term"
        if self.is_c_term:
            return "C-term"
        return str(self.index)


SequencePosition.N_TERM = SequencePosition(0)
SequencePosition.C_TERM = SequencePosition(2)


class Position(Enum):
    """The location class a rule refers to."""

    Anywhere = "Anywhere"
    AnyNTerm = "AnyNTerm"
    AnyCTerm = "AnyCTerm"
    ProteinNTerm = "ProteinNTerm"
    ProteinCTerm = "ProteinCTerm"

    def __str__(self) -> str:
        return self.value

    @classmethod
    def parse(cls, text: str) -> Optional["Position"]:
        for position in cls:
            if position.value.lower() == text.lower():
                return position
        return None

    def is_possible(self, position: SequencePosition) -> bool:
        if self is Position.Anywhere:
            return True
        if self in (Position.AnyNTerm, Position.ProteinNTerm):
            return position.is_n_term
        return position.is_c_term

    def is_possible_position(self, position: "Position") -> bool:
        """Whether ``position`` is at least as specific as this position."""
        if self is Position.Anywhere:
            return True
        if self is Position.AnyNTerm:
            return position in (Position.AnyNTerm, Position.ProteinNTerm)
        if self is Position.AnyCTerm:
            return position in (Position.AnyCTerm, Position.ProteinCTerm)
        return position is self


# =============================================================================
# Rules
# =============================================================================

@dataclass(frozen=True)
class PlacementRule:
    """Base class of the four rule kinds."""

    def is_possible(self, seq, position: SequencePosition) -> RulePossible:
        raise NotImplementedError

    def is_possible_aa(self, aminoacid: AminoAcid, position: Position) -> RulePossible:
        raise NotImplementedError

    @staticmethod
    def any_possible(rules: Iterable["PlacementRule"], seq, position: SequencePosition) -> RulePossible:
        result = RulePossible.NO
        for rule in rules:
            result = result | rule.is_possible(seq, position)
            if result is RulePossible.YES:
                break
        return result

    @staticmethod
    def any_possible_aa(rules: Iterable["PlacementRule"], aminoacid: AminoAcid, position: Position) -> RulePossible:
        result = RulePossible.NO
        for rule in rules:
            result = result | rule.is_possible_aa(aminoacid, position)
        return result

    @staticmethod
    def parse(text: str) -> "PlacementRule":
        """Parse ``"AA@Position"`` or a bare ``"Position"``."""
        head, at, tail = text.partition("@")
        if at:
            aminoacids = []
            for i, code in enumerate(head):
                try:
                    aminoacids.append(AminoAcid.from_code(code))
                except ValueError:
                    raise FormulaParseError(
                        "Invalid amino acid",
                        "Invalid amino acid in specified amino acids in placement rule",
                        text, i, 1,
                    ) from None
            position = Position.parse(tail)
            if position is None:
                raise FormulaParseError("Invalid position", _POSITION_HELP, text, len(head) + 1, len(tail))
            return AminoAcidRule(frozenset(aminoacids), position)
        position = Position.parse(text)
        if position is None:
            raise FormulaParseError("Invalid position", _POSITION_HELP, text, 0, len(text))
        if position is Position.Anywhere:
            return AnywhereRule()
        return TerminalRule(position)


@dataclass(frozen=True)
class AminoAcidRule(PlacementRule):
    aminoacids: FrozenSet[AminoAcid]
    position: Position = Position.Anywhere

    def is_possible(self, seq, position: SequencePosition) -> RulePossible:
        if seq.aminoacid not in self.aminoacids:
            return RulePossible.NO
        if self.position is Position.Anywhere:
            return RulePossible.ONLY_IF_NOT_TERMINAL if position.is_terminal else RulePossible.YES
        return RulePossible.YES if self.position.is_possible(position) else RulePossible.NO

    def is_possible_aa(self, aminoacid: AminoAcid, position: Position) -> RulePossible:
        if aminoacid in self.aminoacids and self.position.is_possible_position(position):
            return RulePossible.YES
        return RulePossible.NO

    def __str__(self) -> str:
        codes = "".join(sorted(aa.code for aa in self.aminoacids))
        return f"{codes}@{self.position}"


@dataclass(frozen=True)
class PsiModificationRule(PlacementRule):
    """Only on a residue already carrying PSI-MOD modification ``id``."""

    id: int
    position: Position = Position.Anywhere

    def is_possible(self, seq, position: SequencePosition) -> RulePossible:
        carries = any(
            getattr(getattr(m, "modification", None), "psi_mod_id", None) == self.id
            for m in seq.modifications
        )
        if carries and self.position.is_possible(position):
            return RulePossible.YES
        return RulePossible.NO

    def is_possible_aa(self, aminoacid: AminoAcid, position: Position) -> RulePossible:
        return RulePossible.NO

    def __str__(self) -> str:
        return f"MOD:{self.id:05}@{self.position}"


@dataclass(frozen=True)
class TerminalRule(PlacementRule):
    position: Position

    def is_possible(self, seq, position: SequencePosition) -> RulePossible:
        if self.position.is_possible(position) and position.is_terminal:
            return RulePossible.YES
        return RulePossible.NO

    def is_possible_aa(self, aminoacid: AminoAcid, position: Position) -> RulePossible:
        if self.position.is_possible_position(position) and position is not Position.Anywhere:
            return RulePossible.YES
        return RulePossible.NO

    def __str__(self) -> str:
        return str(self.position)


@dataclass(frozen=True)
class AnywhereRule(PlacementRule):
    def is_possible(self, seq, position: SequencePosition) -> RulePossible:
        return RulePossible.YES

    def is_possible_aa(self, aminoacid: AminoAcid, position: Position) -> RulePossible:
        return RulePossible.YES

    def __str__(self) -> str:
        return "Anywhere"


def rules(*texts: str):
    """Parse several rules at once, e.g. ``rules("K@Anywhere", "ProteinNTerm")``."""
    return tuple(PlacementRule.parse(text) for text in texts)
