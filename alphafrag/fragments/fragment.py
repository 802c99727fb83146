"""Theoretical fragment ions.

A :class:`Fragment` is one charged ion with its full formula (terminal
groups, charge carriers and neutral losses included) and a
:class:`FragmentType` annotation saying what it is: a backbone ion at some
position, the precursor, an immonium or diagnostic ion, or a glycan B/Y ion.

Key Features
------------
- Fragments keep formulas, masses are only computed on request (``mz``)
- ``generate_all`` / ``generate_series`` build the full cross product of
  termini x masses x charge carriers x neutral losses (x hydrogen variants)
- ``fragments_to_arrays`` turns a fragment list into flat numpy arrays with
  a numba kernel, for vectorised matching against spectra

Examples
--------
>>> from alphafrag.chemistry import formula, MolecularCharge
>>> f = Fragment(formula("H2O"), 0, FragmentType(FragmentKind.precursor))
>>> round(f.with_charge(MolecularCharge.proton(1)).mz(), 4)
19.0178
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, List, Optional, Sequence, Tuple, Union

import numba
import numpy as np

from ..chemistry.charge import CachedCharge, ChargeRange, MolecularCharge
from ..chemistry.formula import MassMode, MolecularFormula, formula
from ..chemistry.labels import ChargeCarrierLabel
from ..chemistry.multi import Multi
from ..chemistry.neutral_loss import NeutralLoss
from ..glycan.monosaccharide import Composition, MonoSaccharide, format_composition
from ..glycan.structure import GlycanPosition
from ..sequence.aminoacid import AminoAcid
from ..sequence.placement import SequencePosition

HYDROGEN = formula("H")


# =============================================================================
# Positions
# =============================================================================

def _index(position: SequencePosition, length: int) -> int:
    if position.is_n_term:
        return 0
    if position.is_c_term:
        return length - 1
    return position.index


@dataclass(frozen=True)
class PeptidePosition:
    """Position of a backbone fragment.

    Parameters
    ----------
    sequence_index : SequencePosition
        Residue the fragment was cut next to
    series_number : int
        Number of the ion in its series (b1, y3, ...), counted from its terminus
    sequence_length : int
        Number of residues of the peptide
    """

    sequence_index: SequencePosition
    series_number: int
    sequence_length: int

    @classmethod
    def n(cls, sequence_index: SequencePosition, sequence_length: int) -> "PeptidePosition":
        """Position of an N-terminal ion cut after ``sequence_index``."""
        return cls(sequence_index, _index(sequence_index, sequence_length) + 1, sequence_length)

    @classmethod
    def c(cls, sequence_index: SequencePosition, sequence_length: int) -> "PeptidePosition":
        """Position of a C-terminal ion cut before ``sequence_index``."""
        return cls(sequence_index, sequence_length - _index(sequence_index, sequence_length), sequence_length)

    def flip_terminal(self) -> "PeptidePosition":
        return PeptidePosition(
            self.sequence_index, self.sequence_length + 1 - self.series_number, self.sequence_length
        )

    def is_n_terminal(self) -> bool:
        return self.sequence_index.is_n_term or self.sequence_index.index == 0

    def is_c_terminal(self) -> bool:
        return self.sequence_index.is_c_term or self.sequence_index.index == self.sequence_length - 1


@dataclass(frozen=True)
class PeptideDiagnostic:
    """Diagnostic ion from a modification on a residue."""

    position: PeptidePosition
    aminoacid: AminoAcid


@dataclass(frozen=True)
class LabileDiagnostic:
    """Diagnostic ion from a labile modification."""

    modification: Any


@dataclass(frozen=True)
class GlycanDiagnostic:
    """Diagnostic ion from one monosaccharide of a glycan structure."""

    position: GlycanPosition
    sugar: MonoSaccharide


@dataclass(frozen=True)
class GlycanCompositionDiagnostic:
    """Diagnostic ion from one monosaccharide of a glycan composition."""

    sugar: MonoSaccharide
    attachment: Optional[Tuple[AminoAcid, SequencePosition]] = None


DiagnosticPosition = Union[PeptideDiagnostic, LabileDiagnostic, GlycanDiagnostic, GlycanCompositionDiagnostic]


# =============================================================================
# Fragment types
# =============================================================================

class FragmentKind(Enum):
    """Closed set of ion kinds."""

    a = "a"
    b = "b"
    c = "c"
    d = "d"
    v = "v"
    w = "w"
    x = "x"
    y = "y"
    z = "z"
    immonium = "imm"
    precursor = "p"
    diagnostic = "diagnostic"
    B = "B"
    Y = "Y"
    BComposition = "Bcomp"
    YComposition = "Ycomp"

    def is_n_terminal(self) -> bool:
        return self in (FragmentKind.a, FragmentKind.b, FragmentKind.c, FragmentKind.d)

    def is_c_terminal(self) -> bool:
        return self in (FragmentKind.v, FragmentKind.w, FragmentKind.x, FragmentKind.y, FragmentKind.z)

    def is_backbone(self) -> bool:
        return self.is_n_terminal() or self.is_c_terminal()

    def is_glycan(self) -> bool:
        return self in (FragmentKind.B, FragmentKind.Y, FragmentKind.BComposition, FragmentKind.YComposition)


# Stable integer codes for array output
KIND_CODES = {kind: code for code, kind in enumerate(FragmentKind)}


@dataclass(frozen=True)
class FragmentType:
    """What a fragment is.

    Only the fields that make sense for ``kind`` are set:

    - backbone and immonium ions: ``position`` (a :class:`PeptidePosition`)
      and ``aminoacid``; d/v/w ions also ``distance`` and ``label`` of the
      satellite group; ``variant`` is the number of added hydrogens
    - ``Y``: ``breakages``, the glycan positions that broke
    - ``B``: ``position`` (a :class:`GlycanPosition`), ``breakages`` (its Y
      breaks) and ``ends``
    - ``BComposition``/``YComposition``: ``composition`` and ``attachment``
    - ``diagnostic``: ``diagnostic``, a :data:`DiagnosticPosition`
    """

    kind: FragmentKind
    position: Any = None
    aminoacid: Optional[AminoAcid] = None
    variant: int = 0
    distance: Optional[int] = None
    label: str = ""
    breakages: Tuple[GlycanPosition, ...] = ()
    ends: Tuple[GlycanPosition, ...] = ()
    composition: Optional[Composition] = None
    attachment: Optional[Tuple[AminoAcid, SequencePosition]] = None
    diagnostic: Optional[Any] = None

    def with_variant(self, variant: int) -> "FragmentType":
        if variant == self.variant:
            return self
        return replace(self, variant=variant)

    @property
    def series_number(self) -> Optional[int]:
        if isinstance(self.position, PeptidePosition):
            return self.position.series_number
        return None

    def __str__(self) -> str:
        kind = self.kind
        if kind.is_backbone():
            variant = "'" * self.variant if self.variant > 0 else "·" * -self.variant
            prefix = f"{self.label}" if kind in (FragmentKind.d, FragmentKind.w) else ""
            return f"{prefix}{kind.value}{self.series_number}{variant}"
        if kind is FragmentKind.immonium:
            return f"imm{self.aminoacid}"
        if kind is FragmentKind.precursor:
            return "p"
        if kind is FragmentKind.Y:
            return "Y" + "".join(p.label() for p in self.breakages) if self.breakages else "Y0"
        if kind is FragmentKind.B:
            breaks = "".join(f"Y{p.label()}" for p in self.breakages)
            return f"B{self.position.label()}{breaks}"
        if kind in (FragmentKind.BComposition, FragmentKind.YComposition):
            return f"{kind.value[0]}{format_composition(self.composition or ())}"
        return "diagnostic"


# =============================================================================
# Fragments
# =============================================================================

@dataclass
class Fragment:
    """One theoretical ion.

    ``deviation``, ``confidence`` and ``auxiliary`` are annotations a spectrum
    matcher may fill in; generation leaves them at their defaults.
    """

    formula: MolecularFormula
    charge: int
    ion: FragmentType
    peptidoform_ion_index: int = 0
    peptidoform_index: int = 0
    neutral_loss: List[NeutralLoss] = field(default_factory=list)
    deviation: Optional[float] = None
    confidence: Optional[float] = None
    auxiliary: bool = False

    def mz(self, mode: MassMode = MassMode.MONOISOTOPIC) -> float:
        """Mass over charge; the neutral mass for uncharged fragments."""
        mass = self.formula.mass(mode)
        return mass / abs(self.charge) if self.charge else mass

    def ppm(self, other: "Fragment", mode: MassMode = MassMode.MONOISOTOPIC) -> float:
        return abs(self.mz(mode) - other.mz(mode)) / other.mz(mode) * 1e6

    def key(self) -> tuple:
        """Identity used to compare fragment sets independent of order."""
        return (
            self.formula,
            str(self.ion),
            self.ion.kind,
            self.charge,
            tuple(str(loss) for loss in self.neutral_loss),
            self.peptidoform_ion_index,
            self.peptidoform_index,
        )

    # -------------------------------------------------------------------------
    # Charges and losses
    # -------------------------------------------------------------------------

    def with_charge(self, charge: MolecularCharge) -> "Fragment":
        carriers = charge.formula()
        carriers = carriers.with_label(ChargeCarrierLabel(carriers))
        return replace(self, formula=self.formula + carriers, charge=carriers.charge())

    def with_charge_range(self, charge_carriers: CachedCharge, charge_range: ChargeRange) -> List["Fragment"]:
        return self.with_charges(charge_carriers.range(charge_range))

    def with_charges(self, charges: Sequence[MolecularCharge]) -> List["Fragment"]:
        return [self.with_charge(charge) for charge in charges]

    def with_neutral_loss(self, neutral_loss: NeutralLoss) -> "Fragment":
        return replace(
            self,
            formula=self.formula + neutral_loss.signed_formula(),
            neutral_loss=self.neutral_loss + [neutral_loss],
        )

    def with_neutral_losses(self, neutral_losses: Sequence[NeutralLoss]) -> List["Fragment"]:
        """This fragment followed by one copy per loss."""
        return [self] + [self.with_neutral_loss(loss) for loss in neutral_losses]

    # -------------------------------------------------------------------------
    # Cross products
    # -------------------------------------------------------------------------

    @staticmethod
    def generate_all(
        theoretical_mass: Multi,
        peptidoform_ion_index: int,
        peptidoform_index: int,
        annotation: FragmentType,
        termini: Multi,
        neutral_losses: Sequence[Sequence[NeutralLoss]],
        charge_carriers: CachedCharge,
        charge_range: ChargeRange,
    ) -> List["Fragment"]:
        """Every terminus x mass x charge x (no loss or one loss set) combination."""
        return _cross(
            theoretical_mass, peptidoform_ion_index, peptidoform_index, annotation, termini,
            [[]] + [list(losses) for losses in neutral_losses],
            charge_carriers.range(charge_range), (0,),
        )

    @staticmethod
    def generate_series(
        theoretical_mass: Multi,
        peptidoform_ion_index: int,
        peptidoform_index: int,
        annotation: FragmentType,
        termini: Multi,
        neutral_losses: Sequence[Sequence[NeutralLoss]],
        charge_carriers: CachedCharge,
        settings,
    ) -> List["Fragment"]:
        """Like :meth:`generate_all` with the losses, charges and hydrogen variants of an ion series.

        ``settings`` is a :class:`~alphafrag.fragments.model.PossibleSeries`:
        the loss sets of the series, its charge range and its allowed variants.
        """
        return _cross(
            theoretical_mass, peptidoform_ion_index, peptidoform_index, annotation, termini,
            [[]] + [list(losses) for losses in settings.neutral_losses] + [list(losses) for losses in neutral_losses],
            charge_carriers.range(settings.charge_range), settings.variants,
        )

    def __str__(self) -> str:
        losses = "".join(str(loss) for loss in self.neutral_loss)
        return f"{self.ion}@{self.mz():.4f}{self.charge:+d}{losses}"


def _cross(mass, ion_index, index, annotation, termini, loss_sets, charges, variants) -> List[Fragment]:
    output = []
    for term in termini:
        for option in mass:
            for charge in charges:
                carriers = charge.formula()
                carriers = carriers.with_label(ChargeCarrierLabel(carriers))
                for losses in loss_sets:
                    lost = sum((loss.signed_formula() for loss in losses), MolecularFormula())
                    base = term + option + carriers + lost
                    for variant in variants:
                        output.append(Fragment(
                            base + HYDROGEN * variant if variant else base,
                            carriers.charge(),
                            annotation.with_variant(variant),
                            ion_index,
                            index,
                            list(losses),
                        ))
    return output


# =============================================================================
# Array output
# =============================================================================

@numba.njit(cache=True)
def _mz_kernel(masses: np.ndarray, charges: np.ndarray) -> np.ndarray:
    mz = np.empty(masses.shape[0], dtype=np.float64)
    for i in range(masses.shape[0]):
        z = abs(charges[i])
        mz[i] = masses[i] / z if z > 0 else masses[i]
    return mz


def fragments_to_arrays(
    fragments: Sequence[Fragment], mode: MassMode = MassMode.MONOISOTOPIC
) -> Tuple[np.ndarray, np.ndarray, np.ndarray, np.ndarray]:
    """Flatten fragments into arrays for vectorised matching.

    Returns
    -------
    fragment_mz : np.ndarray (float64)
    fragment_kind : np.ndarray (uint8)
        Code from ``KIND_CODES``
    fragment_position : np.ndarray (int32)
        Series number, 0 for fragments without a backbone position
    fragment_charge : np.ndarray (int32)
    """
    masses = np.array([f.formula.mass(mode) for f in fragments], dtype=np.float64)
    charges = np.array([f.charge for f in fragments], dtype=np.int32)
    kinds = np.array([KIND_CODES[f.ion.kind] for f in fragments], dtype=np.uint8)
    positions = np.array([f.ion.series_number or 0 for f in fragments], dtype=np.int32)
    return _mz_kernel(masses, charges), kinds, positions, charges
