"""Provenance labels attached to formulas.

A label records why a formula exists: which option of an ambiguous amino
acid, where an ambiguous modification was placed, which charge carrier was
added, whether a cross-link stayed intact or broke, which glycan fragment
is carried. Labels only matter to keep apart alternatives that share an
elemental composition; they never change a mass.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Tuple


@dataclass(frozen=True)
class AmbiguousLabel:
    """Base class of all formula provenance labels."""


@dataclass(frozen=True)
class AminoAcidLabel(AmbiguousLabel):
    """Which residue an ambiguous amino acid (B, Z) resolved to."""

    option: str
    sequence_index: int
    peptidoform_index: int = 0
    peptidoform_ion_index: int = 0

    def __str__(self) -> str:
        return f"{self.option}@{self.sequence_index}"


@dataclass(frozen=True)
class ModificationLabel(AmbiguousLabel):
    """Where an ambiguous modification was placed."""

    id: int
    sequence_index: Any
    peptidoform_index: int = 0
    peptidoform_ion_index: int = 0

    def __str__(self) -> str:
        return f"#{self.id}@{self.sequence_index}"


@dataclass(frozen=True)
class ChargeCarrierLabel(AmbiguousLabel):
    formula: Any

    def __str__(self) -> str:
        return f"charge carrier {self.formula}"


@dataclass(frozen=True)
class CrossLinkBoundLabel(AmbiguousLabel):
    """The cross-link is intact in this formula."""

    name: Any

    def __str__(self) -> str:
        return f"intact {self.name}"


@dataclass(frozen=True)
class CrossLinkBrokenLabel(AmbiguousLabel):
    """The cross-link cleaved, leaving ``formula`` as stub."""

    name: Any
    formula: Any

    def __str__(self) -> str:
        return f"broken {self.name} stub {self.formula}"


@dataclass(frozen=True)
class GlycanFragmentLabel(AmbiguousLabel):
    """A glycan structure reduced to the part left by these breakages."""

    breakages: Tuple[Any, ...]

    def __str__(self) -> str:
        return "glycan " + ",".join(str(b) for b in self.breakages)


@dataclass(frozen=True)
class GlycanFragmentCompositionLabel(AmbiguousLabel):
    """A glycan composition reduced to this sub-composition."""

    composition: Tuple[Tuple[Any, int], ...]

    def __str__(self) -> str:
        return "glycan " + "".join(f"{sugar}{count}" for sugar, count in self.composition)
