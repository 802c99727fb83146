"""Fragmentation models: which ions to generate, where, with which losses and charges.

A :class:`FragmentationModel` holds one settings object per backbone ion
series plus precursor, immonium, diagnostic and glycan settings. Presets
cover the common dissociation methods and are looked up by name with
:meth:`FragmentationModel.for_method`.

Key Features
------------
- Per series ``Location`` filters (first residues only, skip the last ones, ...)
- Satellite ions (d/v/w) with per residue maximal distances
- Generic, residue triggered and side chain neutral losses
- Hydrogen variants (c', z·, ...) per series
- Glycan settings: structural/compositional fragments, glycan cores on
  peptide fragments, monosaccharide specific diagnostic losses

Sources
-------
- Immonium related ions: 10.1016/j.ijms.2005.05.003 and 10.1002/jms.1001
- ETD satellite ions: 10.1002/jms.3919
- UVPD ion series: 10.1021/acs.chemrev.9b00440

Examples
--------
>>> model = FragmentationModel.for_method("hcd")
>>> model.c.location
Location(kind='nothing', n=0, c=0)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from itertools import combinations
from typing import List, Optional, Tuple

from ..chemistry.charge import ChargePoint, ChargeRange
from ..chemistry.neutral_loss import NeutralLoss, SideChainLoss, loss
from ..glycan.monosaccharide import MonoSaccharide
from ..sequence.aminoacid import BACKBONE, AminoAcid
from ..sequence.modification import GlycanPeptideFragment
from .fragment import PeptidePosition

logger = logging.getLogger(__name__)
WATER_LOSS = loss("-H2O")


def _codes(codes: str) -> Tuple[AminoAcid, ...]:
    return tuple(AminoAcid.from_code(code) for code in codes)


# =============================================================================
# Loss tables
# =============================================================================

IMMONIUM_LOSSES: List[Tuple[Tuple[AminoAcid, ...], List[NeutralLoss]]] = [
    (_codes("R"), [loss(t) for t in (
        "+C2O2", "-CH2", "-H3N", "-CH3N", "-C2H2N2", "-C3H6N2", "-CH5N3", "-C3H4N2O-1",
        "-C4H8N", "-C4H10N2",
    )]),
    (_codes("N"), [loss("-H3N")]),
    (_codes("DES"), [loss("-H2O")]),
    (_codes("Q"), [loss(t) for t in ("+CO", "-H3N", "-CH3NO")]),
    (_codes("H"), [loss(t) for t in ("+C2O2", "+CO", "-H3O-1", "-H5O-1", "-CH2N")]),
    (_codes("LIJ"), [loss(t) for t in ("-CH2", "-C3H6")]),
    (_codes("K"), [loss(t) for t in ("+CO", "-C-2HNO-1", "-H5O-1", "-H3N", "-CH5N", "-C2H7N")]),
    (_codes("M"), [loss(t) for t in ("-H2S", "-C2H3N", "-CH4S")]),
    (_codes("F"), [loss("+C2O2")]),
    (_codes("T"), [loss("-H2N")]),
    (_codes("W"), [loss(t) for t in ("-H4O-1", "-H5O-1", "-CHN", "-CH3N", "-C2H4N", "-C4H6N2")]),
    (_codes("Y"), [loss(t) for t in ("-CH3N", "-CH3NO", "-C5H7N")]),
    (_codes("V"), [loss(t) for t in ("-CHO-1", "-H3N", "-CH2N", "-CH5N")]),
]

GLYCAN_LOSSES: List[Tuple[MonoSaccharide, List[NeutralLoss]]] = [
    (MonoSaccharide.Hex, [loss(t) for t in ("-H2O", "-H4O2", "-CH6O3", "-C2H6O3")]),
    (MonoSaccharide.HexNAc, [loss(t) for t in (
        "-H2O", "-H4O2", "-C2H4O2", "-CH6O3", "-C2H6O3", "-C4H8O4",
    )]),
    (MonoSaccharide.NeuAc, [loss("-H2O")]),
    (MonoSaccharide.NeuGc, [loss("-H2O")]),
]


# =============================================================================
# Locations
# =============================================================================

@dataclass(frozen=True)
class Location:
    """Positions along the backbone where an ion series forms.

    Use the constructors: ``all()``, ``nothing()``, ``skip_n(n)``,
    ``skip_nc(n, c)``, ``take_n(skip, take)``, ``skip_c(n)``, ``take_c(n)``.
    """

    kind: str
    n: int = 0
    c: int = 0

    @classmethod
    def all(cls) -> "Location":
        return cls("all")

    @classmethod
    def nothing(cls) -> "Location":
        return cls("nothing")

    @classmethod
    def skip_n(cls, n: int) -> "Location":
        return cls("skip_n", n)

    @classmethod
    def skip_nc(cls, n: int, c: int) -> "Location":
        return cls("skip_nc", n, c)

    @classmethod
    def take_n(cls, skip: int, take: int) -> "Location":
        return cls("take_n", skip, take)

    @classmethod
    def skip_c(cls, n: int) -> "Location":
        return cls("skip_c", n)

    @classmethod
    def take_c(cls, n: int) -> "Location":
        return cls("take_c", n)

    def possible(self, position: PeptidePosition) -> bool:
        index = position.sequence_index.index
        length = position.sequence_length
        if self.kind == "all":
            return position.series_number != length
        if self.kind == "nothing":
            return False
        if self.kind == "skip_n":
            return index >= self.n
        if self.kind == "skip_nc":
            return index >= self.n and length - index > self.c
        if self.kind == "take_n":
            return self.n <= index < self.n + self.c
        if self.kind == "skip_c":
            return length - index > self.n
        if self.kind == "take_c":
            return length - index <= self.n
        raise ValueError(f"Unknown location kind: {self.kind}")


@dataclass(frozen=True)
class SatelliteLocation:
    """Where satellite ions form relative to their parent cleavage.

    ``rules`` give a maximal distance per set of residues, ``base`` the
    maximal distance for all other residues (None: not allowed).
    """

    rules: Tuple[Tuple[Tuple[AminoAcid, ...], int], ...] = ()
    base: Optional[int] = None

    def possible(self, index: int, sequence, c_terminal: bool) -> List[Tuple[AminoAcid, int]]:
        """Residues (with their distance) close enough to cleavage ``index`` to form a satellite ion."""
        distances = [distance for _, distance in self.rules]
        if self.base is not None:
            distances.append(self.base)
        if not distances:
            return []
        max_distance = max(distances) + 1
        if c_terminal:
            window = range(index, min(index + max_distance, len(sequence)))
        else:
            window = range(max(0, index + 1 - max_distance), index + 1)
        output = []
        for j in window:
            aminoacid = sequence[j].aminoacid
            distance = abs(j - index)
            allowed = None
            for aminoacids, maximum in self.rules:
                if aminoacid in aminoacids:
                    allowed = distance <= maximum
                    break
            if allowed is None and self.base is not None:
                allowed = distance <= self.base
            if allowed:
                output.append((aminoacid, distance))
        return output


# =============================================================================
# Ion series settings
# =============================================================================

SideChainSetting = Tuple[int, Optional[Tuple[AminoAcid, ...]]]
AminoAcidLosses = Tuple[Tuple[Tuple[AminoAcid, ...], Tuple[NeutralLoss, ...]], ...]


@dataclass(frozen=True)
class PrimaryIonSeries:
    """Settings of one of the a/b/c/x/y/z series."""

    location: Location = field(default_factory=Location.all)
    neutral_losses: Tuple[NeutralLoss, ...] = ()
    amino_acid_neutral_losses: AminoAcidLosses = ()
    amino_acid_side_chain_losses: SideChainSetting = (0, None)
    charge_range: ChargeRange = ChargeRange.ONE_TO_PRECURSOR
    variants: Tuple[int, ...] = (0,)

    @classmethod
    def none(cls) -> "PrimaryIonSeries":
        return cls(location=Location.nothing())

    def with_losses(self, *losses: NeutralLoss) -> "PrimaryIonSeries":
        return replace(self, neutral_losses=tuple(losses))

    def with_variants(self, *variants: int) -> "PrimaryIonSeries":
        return replace(self, variants=tuple(variants))

    def at(self, location: Location) -> "PrimaryIonSeries":
        return replace(self, location=location)


@dataclass(frozen=True)
class SatelliteIonSeries:
    """Settings of one of the d/v/w series. The default forms nowhere."""

    location: SatelliteLocation = field(default_factory=SatelliteLocation)
    neutral_losses: Tuple[NeutralLoss, ...] = ()
    amino_acid_neutral_losses: AminoAcidLosses = ()
    amino_acid_side_chain_losses: SideChainSetting = (0, None)
    charge_range: ChargeRange = ChargeRange.ONE_TO_PRECURSOR
    variants: Tuple[int, ...] = (0,)

    @classmethod
    def base(cls) -> "SatelliteIonSeries":
        """Forms from the residue right at the cleavage."""
        return cls(location=SatelliteLocation(base=0))

    def with_losses(self, *losses: NeutralLoss) -> "SatelliteIonSeries":
        return replace(self, neutral_losses=tuple(losses))

    def with_variants(self, *variants: int) -> "SatelliteIonSeries":
        return replace(self, variants=tuple(variants))

    def at(self, location: SatelliteLocation) -> "SatelliteIonSeries":
        return replace(self, location=location)


@dataclass
class PossibleSeries:
    """What one series may form at one position."""

    neutral_losses: List[List[NeutralLoss]]
    charge_range: ChargeRange
    variants: Tuple[int, ...]


@dataclass
class PossibleIons:
    """All ions that may form at one backbone position, see :meth:`FragmentationModel.ions`.

    Primary series are None where their location excludes the position;
    satellite series list the (residue, distance) pairs that may form.
    """

    a: Optional[PossibleSeries]
    b: Optional[PossibleSeries]
    c: Optional[PossibleSeries]
    d: Tuple[List[Tuple[AminoAcid, int]], PossibleSeries]
    v: Tuple[List[Tuple[AminoAcid, int]], PossibleSeries]
    w: Tuple[List[Tuple[AminoAcid, int]], PossibleSeries]
    x: Optional[PossibleSeries]
    y: Optional[PossibleSeries]
    z: Optional[PossibleSeries]
    immonium: Optional[Tuple[ChargeRange, List[Tuple[Tuple[AminoAcid, ...], List[NeutralLoss]]]]]


def get_all_sidechain_losses(sequence, setting: SideChainSetting) -> List[List[NeutralLoss]]:
    """All sets of 1 up to ``setting[0]`` side chain losses over the residues of ``sequence``.

    ``setting[1]`` restricts which residues may lose their side chain.
    """
    maximum, selection = setting
    if maximum == 0:
        return []
    seen = []
    for element in sequence:
        aminoacid = element.aminoacid
        if (selection is None or aminoacid in selection) and aminoacid not in seen:
            seen.append(aminoacid)
    options = [
        SideChainLoss(option - BACKBONE, aminoacid)
        for aminoacid in seen
        for option in aminoacid.formulas()
        if not (option - BACKBONE).is_empty()
    ]
    return [list(chosen) for k in range(1, maximum + 1) for chosen in combinations(options, k)]


def _series_losses(series, stretch) -> List[List[NeutralLoss]]:
    output = [[l] for l in series.neutral_losses]
    for element in stretch:
        for aminoacids, losses in series.amino_acid_neutral_losses:
            if element.aminoacid in aminoacids:
                output.extend([l] for l in losses)
    output.extend(get_all_sidechain_losses(stretch, series.amino_acid_side_chain_losses))
    return output


# =============================================================================
# Glycans
# =============================================================================

@dataclass(frozen=True)
class GlycanModel:
    """Glycan fragmentation settings.

    Parameters
    ----------
    allow_structural : bool
        Generate B/Y ions from glycans with a known structure
    compositional_range : (int or None, int or None)
        Sizes of the sub-compositions used for B/Y ions of composition-only glycans
    neutral_losses : tuple of NeutralLoss
        Losses on every B and Y ion
    specific_neutral_losses : tuple of (MonoSaccharide, losses)
        Extra diagnostic ions per monosaccharide
    default_peptide_fragment : GlycanPeptideFragment
        What of a glycan stays on a peptide fragment
    peptide_fragment_rules : tuple of (residues, GlycanPeptideFragment)
        Overrides of the default for glycans on specific residues
    oxonium_charge_range, other_charge_range : ChargeRange
        Charges of B/diagnostic ions and of Y ions
    """

    allow_structural: bool
    compositional_range: Tuple[Optional[int], Optional[int]]
    neutral_losses: Tuple[NeutralLoss, ...] = ()
    specific_neutral_losses: Tuple[Tuple[MonoSaccharide, Tuple[NeutralLoss, ...]], ...] = ()
    default_peptide_fragment: GlycanPeptideFragment = GlycanPeptideFragment.FULL
    peptide_fragment_rules: Tuple[Tuple[Tuple[AminoAcid, ...], GlycanPeptideFragment], ...] = ()
    oxonium_charge_range: ChargeRange = ChargeRange.ONE
    other_charge_range: ChargeRange = ChargeRange.ONE_TO_PRECURSOR

    ALLOW = None  # type: GlycanModel
    DISALLOW = None  # type: GlycanModel

    @classmethod
    def default_allow(cls) -> "GlycanModel":
        return cls(
            allow_structural=True,
            compositional_range=(None, None),
            specific_neutral_losses=tuple((sugar, tuple(losses)) for sugar, losses in GLYCAN_LOSSES),
            default_peptide_fragment=GlycanPeptideFragment.CORE_AND_FREE,
        )

    def peptide_fragment(self, aminoacid: Optional[AminoAcid]) -> GlycanPeptideFragment:
        """Glycan part kept on peptide fragments for a glycan on ``aminoacid``."""
        if aminoacid is not None:
            for aminoacids, setting in self.peptide_fragment_rules:
                if aminoacid in aminoacids:
                    return setting
        return self.default_peptide_fragment

    def diagnostic_losses(self, sugar: MonoSaccharide) -> List[NeutralLoss]:
        return [l for s, losses in self.specific_neutral_losses if s is sugar for l in losses]


GlycanModel.ALLOW = GlycanModel.default_allow()
GlycanModel.DISALLOW = GlycanModel(allow_structural=False, compositional_range=(None, 0))


# =============================================================================
# Model
# =============================================================================

@dataclass(frozen=True)
class PrecursorSettings:
    neutral_losses: Tuple[NeutralLoss, ...] = ()
    amino_acid_neutral_losses: AminoAcidLosses = ()
    amino_acid_side_chain_losses: SideChainSetting = (0, None)
    charge_range: ChargeRange = ChargeRange.PRECURSOR


@dataclass(frozen=True)
class FragmentationModel:
    """Everything the fragment engine needs to know about which ions to generate.

    Presets: :meth:`all`, :meth:`none`, :meth:`cid`, :meth:`etd`,
    :meth:`ethcd`, :meth:`ead`, :meth:`uvpd` and :meth:`for_method`.
    Adapt a preset with :func:`dataclasses.replace`.
    """

    a: PrimaryIonSeries = field(default_factory=PrimaryIonSeries.none)
    b: PrimaryIonSeries = field(default_factory=PrimaryIonSeries.none)
    c: PrimaryIonSeries = field(default_factory=PrimaryIonSeries.none)
    d: SatelliteIonSeries = field(default_factory=SatelliteIonSeries)
    v: SatelliteIonSeries = field(default_factory=SatelliteIonSeries)
    w: SatelliteIonSeries = field(default_factory=SatelliteIonSeries)
    x: PrimaryIonSeries = field(default_factory=PrimaryIonSeries.none)
    y: PrimaryIonSeries = field(default_factory=PrimaryIonSeries.none)
    z: PrimaryIonSeries = field(default_factory=PrimaryIonSeries.none)
    precursor: PrecursorSettings = field(default_factory=PrecursorSettings)
    immonium: Optional[Tuple[ChargeRange, List[Tuple[Tuple[AminoAcid, ...], List[NeutralLoss]]]]] = None
    modification_specific_neutral_losses: bool = False
    modification_specific_diagnostic_ions: Optional[ChargeRange] = None
    glycan: GlycanModel = GlycanModel.DISALLOW
    allow_cross_link_cleavage: bool = False

    # -------------------------------------------------------------------------
    # Per position
    # -------------------------------------------------------------------------

    def ions(self, position: PeptidePosition, peptidoform) -> PossibleIons:
        """All ions that may form at the N-terminal ``position`` of ``peptidoform``.

        Loss rules of N-terminal series look at the residues up to and
        including the cleavage, those of C-terminal series at the residues
        from the cleavage on.
        """
        index = position.sequence_index.index
        sequence = peptidoform.sequence
        n_stretch = sequence[:index + 1]
        c_stretch = sequence[index:]
        c_position = position.flip_terminal()

        def primary(series: PrimaryIonSeries, at: PeptidePosition, stretch) -> Optional[PossibleSeries]:
            if not series.location.possible(at):
                return None
            return PossibleSeries(_series_losses(series, stretch), series.charge_range, series.variants)

        def satellite(series: SatelliteIonSeries, stretch, c_terminal: bool):
            return (
                series.location.possible(index, sequence, c_terminal),
                PossibleSeries(_series_losses(series, stretch), series.charge_range, series.variants),
            )

        return PossibleIons(
            a=primary(self.a, position, n_stretch),
            b=primary(self.b, position, n_stretch),
            c=primary(self.c, position, n_stretch),
            d=satellite(self.d, n_stretch, False),
            v=satellite(self.v, c_stretch, True),
            w=satellite(self.w, c_stretch, True),
            x=primary(self.x, c_position, c_stretch),
            y=primary(self.y, c_position, c_stretch),
            z=primary(self.z, c_position, c_stretch),
            immonium=self.immonium,
        )

    # -------------------------------------------------------------------------
    # Presets
    # -------------------------------------------------------------------------

    @classmethod
    def all(cls) -> "FragmentationModel":
        """Every ion series everywhere, with water losses."""
        primary = PrimaryIonSeries().with_losses(WATER_LOSS)
        satellite = SatelliteIonSeries.base().with_losses(WATER_LOSS)
        return cls(
            a=primary, b=primary, c=primary,
            d=satellite, v=satellite, w=satellite,
            x=primary, y=primary, z=primary,
            precursor=PrecursorSettings((WATER_LOSS,), (), (1, None), ChargeRange.PRECURSOR),
            immonium=(ChargeRange.ONE, IMMONIUM_LOSSES),
            modification_specific_neutral_losses=True,
            modification_specific_diagnostic_ions=ChargeRange.ONE,
            glycan=replace(GlycanModel.default_allow(), neutral_losses=(WATER_LOSS,)),
            allow_cross_link_cleavage=True,
        )

    @classmethod
    def none(cls) -> "FragmentationModel":
        """Only the precursor."""
        return cls()

    @classmethod
    def uvpd(cls) -> "FragmentationModel":
        primary = PrimaryIonSeries()
        return cls(
            a=primary.with_variants(0, 1, 2),
            b=primary.with_variants(0, 2),
            c=primary,
            d=SatelliteIonSeries.base(),
            v=SatelliteIonSeries.base(),
            w=SatelliteIonSeries.base(),
            x=primary.with_variants(-1, 0, 1, 2),
            y=primary.with_variants(-2, -1, 0),
            z=primary,
            precursor=PrecursorSettings((WATER_LOSS,)),
            immonium=(ChargeRange.ONE, IMMONIUM_LOSSES),
            modification_specific_neutral_losses=True,
            modification_specific_diagnostic_ions=ChargeRange.ONE,
        )

    @classmethod
    def ethcd(cls) -> "FragmentationModel":
        """Electron transfer with supplemental collisional activation."""
        primary = PrimaryIonSeries().with_losses(WATER_LOSS)
        return cls(
            a=PrimaryIonSeries().at(Location.take_n(0, 1)),
            b=primary,
            c=primary.with_variants(0, 1),
            d=SatelliteIonSeries.base(),
            w=SatelliteIonSeries.base().with_losses(WATER_LOSS),
            y=primary,
            z=primary.with_variants(0, 1),
            precursor=PrecursorSettings((WATER_LOSS,), charge_range=ChargeRange.ONE_TO_PRECURSOR),
            modification_specific_neutral_losses=True,
            modification_specific_diagnostic_ions=ChargeRange.ONE,
            glycan=replace(
                GlycanModel.default_allow(),
                neutral_losses=(WATER_LOSS,),
                default_peptide_fragment=GlycanPeptideFragment.FULL,
            ),
            allow_cross_link_cleavage=True,
        )

    @classmethod
    def ead(cls) -> "FragmentationModel":
        """Electron activated dissociation."""
        primary = PrimaryIonSeries().with_losses(WATER_LOSS)
        satellite = SatelliteIonSeries.base().with_losses(WATER_LOSS)
        return cls(
            a=primary, b=primary, c=primary,
            d=satellite, v=satellite, w=satellite,
            x=primary, y=primary, z=primary.with_variants(0, 1),
            precursor=PrecursorSettings((WATER_LOSS,), charge_range=ChargeRange.ONE_TO_PRECURSOR),
            immonium=(ChargeRange.ONE, IMMONIUM_LOSSES),
            modification_specific_neutral_losses=True,
            modification_specific_diagnostic_ions=ChargeRange.ONE,
            glycan=replace(
                GlycanModel.default_allow(),
                neutral_losses=(WATER_LOSS,),
                default_peptide_fragment=GlycanPeptideFragment.FULL,
            ),
            allow_cross_link_cleavage=True,
        )

    @classmethod
    def cid(cls) -> "FragmentationModel":
        """Collision induced dissociation (CID/HCD)."""
        primary = PrimaryIonSeries().with_losses(WATER_LOSS)
        return cls(
            a=primary.at(Location.take_n(0, 1)),
            b=primary,
            d=SatelliteIonSeries.base().with_losses(WATER_LOSS),
            y=primary,
            precursor=PrecursorSettings((WATER_LOSS,)),
            modification_specific_neutral_losses=True,
            modification_specific_diagnostic_ions=ChargeRange.ONE,
            glycan=replace(
                GlycanModel.default_allow(),
                default_peptide_fragment=GlycanPeptideFragment.CORE,
                peptide_fragment_rules=(
                    (_codes("NW"), GlycanPeptideFragment.CORE),
                    (_codes("ST"), GlycanPeptideFragment.FREE),
                ),
            ),
            allow_cross_link_cleavage=True,
        )

    @classmethod
    def etd(cls) -> "FragmentationModel":
        """Electron transfer dissociation, satellite ion rules from 10.1002/jms.3919."""
        primary = PrimaryIonSeries().with_losses(WATER_LOSS)
        return cls(
            c=primary.with_variants(-1, 0, 2),
            v=SatelliteIonSeries.base(),
            w=SatelliteIonSeries(
                location=SatelliteLocation((
                    (_codes("M"), 5),
                    (_codes("LE"), 2),
                    (_codes("ID"), 1),
                    (_codes("VNTSWHFY"), 0),
                )),
                variants=(-1, 0, 1),
            ),
            y=primary,
            z=primary.with_variants(-1, 0, 1, 2),
            precursor=PrecursorSettings(
                (WATER_LOSS, loss("-HO"), loss("-H3N")),
                (
                    (_codes("D"), (loss("-CHO2"),)),
                    (_codes("E"), (loss("-C2H3O2"),)),
                ),
                (2, None),
                ChargeRange(ChargePoint.relative_to_precursor(-2), ChargePoint.relative_to_precursor(0)),
            ),
            modification_specific_neutral_losses=True,
            modification_specific_diagnostic_ions=ChargeRange.ONE,
            glycan=replace(GlycanModel.default_allow(), default_peptide_fragment=GlycanPeptideFragment.FREE),
            allow_cross_link_cleavage=True,
        )

    @classmethod
    def for_method(cls, method: str) -> "FragmentationModel":
        """Preset for a dissociation method name (case insensitive).

        Raises
        ------
        ValueError
            For names without a preset
        """
        factory = _METHODS.get(method.strip().lower())
        if factory is None:
            raise ValueError(
                f"Unknown fragmentation method: {method}. Available: {', '.join(sorted(_METHODS))}"
            )
        logger.debug(f"Using the {factory.__name__} fragmentation model for '{method}'")
        return factory()


_METHODS = {
    "all": FragmentationModel.all,
    "none": FragmentationModel.none,
    "cid": FragmentationModel.cid,
    "hcd": FragmentationModel.cid,
    "beamcid": FragmentationModel.cid,
    "etd": FragmentationModel.etd,
    "ethcd": FragmentationModel.ethcd,
    "etcid": FragmentationModel.ethcd,
    "ead": FragmentationModel.ead,
    "uvpd": FragmentationModel.uvpd,
}
